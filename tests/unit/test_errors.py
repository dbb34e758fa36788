"""Tests for the error taxonomy."""

import httpx
import pytest

from service_changes.core.errors import (
    ConfigurationError,
    DiscoveryError,
    ServiceChangesError,
    UnsupportedTriggerError,
    UpstreamFetchError,
    classify_http_error,
    create_user_friendly_message,
)


def status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.github.com/repos/acme/monorepo/commits/abc")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestErrorTypes:
    """Test cases for the error classes."""

    def test_exit_codes_are_distinct(self) -> None:
        codes = [
            ServiceChangesError.exit_code,
            ConfigurationError.exit_code,
            UnsupportedTriggerError.exit_code,
            UpstreamFetchError.exit_code,
            DiscoveryError.exit_code,
        ]
        assert codes == [1, 2, 3, 4, 5]

    def test_to_dict(self) -> None:
        error = UpstreamFetchError("boom", status=502, url="https://api.github.com/x")

        assert error.to_dict() == {
            "message": "boom",
            "code": "UPSTREAM_FETCH_ERROR",
            "details": {"status": 502, "url": "https://api.github.com/x"},
            "exit_code": 4,
            "type": "UpstreamFetchError",
        }

    def test_str_includes_status_and_code(self) -> None:
        assert str(UpstreamFetchError("boom", status=502)) == "boom (Status: 502) (Code: UPSTREAM_FETCH_ERROR)"

    def test_all_errors_share_base(self) -> None:
        for error_type in (ConfigurationError, UnsupportedTriggerError, UpstreamFetchError, DiscoveryError):
            assert issubclass(error_type, ServiceChangesError)


class TestClassifyHttpError:
    """Test cases for classify_http_error."""

    @pytest.mark.parametrize(
        "status, fragment",
        [
            (401, "bad credentials"),
            (403, "refused"),
            (404, "not found"),
            (429, "rate limit"),
            (503, "server error"),
            (418, "HTTP 418"),
        ],
    )
    def test_status_errors(self, status: int, fragment: str) -> None:
        error = classify_http_error(status_error(status))

        assert isinstance(error, UpstreamFetchError)
        assert error.status == status
        assert fragment in error.message
        assert error.details["url"].endswith("/commits/abc")

    def test_timeout(self) -> None:
        error = classify_http_error(httpx.ReadTimeout("timed out"))
        assert "timed out" in error.message

    def test_request_error_without_request(self) -> None:
        error = classify_http_error(httpx.ConnectError("refused"))

        assert isinstance(error, UpstreamFetchError)
        assert "url" not in error.details

    def test_passes_through_known_errors(self) -> None:
        original = DiscoveryError("walk failed")
        assert classify_http_error(original) is original


class TestUserFriendlyMessages:
    """Test cases for create_user_friendly_message."""

    def test_missing_token(self) -> None:
        message = create_user_friendly_message(ConfigurationError("Missing token", config_field="github_token"))
        assert message.startswith("Missing token")

    def test_unsupported_trigger(self) -> None:
        message = create_user_friendly_message(UnsupportedTriggerError(event_name="release"))
        assert "'release'" in message

    def test_authentication_failure(self) -> None:
        message = create_user_friendly_message(UpstreamFetchError("bad", status=401))
        assert "authentication failed" in message

    def test_discovery_failure(self) -> None:
        message = create_user_friendly_message(DiscoveryError("denied", path="/repo/services"))
        assert "/repo/services" in message
