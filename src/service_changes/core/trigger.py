"""
Trigger context for a detection run.

A run is triggered either by a push (one or more commits) or by a pull
request. The context is parsed from the GitHub event payload and passed
explicitly to the code that needs it.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from .errors import ConfigurationError, UnsupportedTriggerError

if TYPE_CHECKING:
    from ..config.settings import ServiceChangesSettings

logger = logging.getLogger(__name__)


class TriggerType(Enum):
    """Kinds of events that can trigger a run."""
    PUSH = "push"
    PULL_REQUEST = "pull_request"


EVENT_TRIGGERS = {
    "push": TriggerType.PUSH,
    "pull_request": TriggerType.PULL_REQUEST,
    "pull_request_target": TriggerType.PULL_REQUEST,
}


@dataclass
class TriggerContext:
    """Everything the change source needs to know about the triggering event."""
    trigger_type: TriggerType
    event_name: str
    owner: str
    repo: str
    commit_ids: List[str] = field(default_factory=list)
    pull_number: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def is_pull_request(self) -> bool:
        return self.trigger_type == TriggerType.PULL_REQUEST

    @classmethod
    def from_event(
        cls,
        event_name: str,
        payload: Dict[str, Any],
        repository: Optional[str] = None
    ) -> "TriggerContext":
        """Build a context from an event name and its payload.

        Args:
            event_name: GitHub event name (``push``, ``pull_request``, ...)
            payload: Decoded event payload
            repository: Fallback ``owner/name`` when the payload lacks one

        Raises:
            UnsupportedTriggerError: If the event is neither a push nor a pull request
            ConfigurationError: If the payload lacks required fields
        """
        trigger_type = EVENT_TRIGGERS.get(event_name)
        if trigger_type is None:
            raise UnsupportedTriggerError(
                f"Event '{event_name}' is neither a push nor a pull request",
                event_name=event_name
            )

        owner, repo = _repository_identity(payload, repository)

        if trigger_type == TriggerType.PUSH:
            commit_ids = [
                commit["id"]
                for commit in payload.get("commits") or []
                if commit.get("distinct", True) and commit.get("id")
            ]
            return cls(
                trigger_type=trigger_type,
                event_name=event_name,
                owner=owner,
                repo=repo,
                commit_ids=commit_ids,
                payload=payload,
            )

        pull_request = payload.get("pull_request") or {}
        number = pull_request.get("number", payload.get("number"))
        if number is None:
            raise ConfigurationError(
                "Pull request payload does not contain a pull request number",
                config_field="event_path"
            )
        head_sha = (pull_request.get("head") or {}).get("sha")
        return cls(
            trigger_type=trigger_type,
            event_name=event_name,
            owner=owner,
            repo=repo,
            commit_ids=[head_sha] if head_sha else [],
            pull_number=int(number),
            payload=payload,
        )


def _repository_identity(payload: Dict[str, Any], repository: Optional[str]) -> Tuple[str, str]:
    repo_info = payload.get("repository") or {}
    owner_info = repo_info.get("owner") or {}
    owner = owner_info.get("login") or owner_info.get("name")
    name = repo_info.get("name")

    if (not owner or not name) and repository and "/" in repository:
        owner, _, name = repository.partition("/")

    if not owner or not name:
        raise ConfigurationError(
            "Unable to determine the repository owner and name from the event payload",
            config_field="repository"
        )
    return owner, name


def read_event_payload(event_path: Path) -> Dict[str, Any]:
    """Read and decode a JSON event payload file."""
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except OSError as e:
        raise ConfigurationError(
            f"Unable to read event payload {event_path}: {e}",
            config_field="event_path",
            original_error=e
        )
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Event payload {event_path} is not valid JSON: {e}",
            config_field="event_path",
            original_error=e
        )

    if not isinstance(payload, dict):
        raise ConfigurationError(
            f"Event payload {event_path} must be a JSON object",
            config_field="event_path"
        )
    return payload


def load_trigger_context(settings: "ServiceChangesSettings") -> TriggerContext:
    """Build the trigger context described by ``settings``.

    Raises:
        ConfigurationError: If the event name or payload is missing or unreadable
        UnsupportedTriggerError: If the event is neither a push nor a pull request
    """
    if not settings.event_name:
        raise ConfigurationError(
            "No event name configured (GITHUB_EVENT_NAME)",
            config_field="event_name"
        )

    # Reject unsupported events before touching the filesystem
    if settings.event_name not in EVENT_TRIGGERS:
        raise UnsupportedTriggerError(
            f"Event '{settings.event_name}' is neither a push nor a pull request",
            event_name=settings.event_name
        )

    if not settings.event_path:
        raise ConfigurationError(
            "No event payload configured (GITHUB_EVENT_PATH)",
            config_field="event_path"
        )

    payload = read_event_payload(settings.event_path)
    context = TriggerContext.from_event(settings.event_name, payload, settings.repository)
    logger.info(
        f"Triggered by {context.event_name} on {context.full_name} "
        f"({len(context.commit_ids)} commit(s))"
    )
    return context
