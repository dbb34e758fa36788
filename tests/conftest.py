"""Shared fixtures for the Service Changes test suite."""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable

import pytest


ENV_PREFIXES = ("GITHUB_", "SERVICE_CHANGES_", "INPUT_")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from the runner's GitHub variables and any local .env."""
    for name in list(os.environ):
        if name.upper().startswith(ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[[Iterable[str]], Path]:
    """Build a checkout containing the given files."""

    def _make(files: Iterable[str]) -> Path:
        root = tmp_path / "repo"
        root.mkdir(exist_ok=True)
        (root / ".git").mkdir(exist_ok=True)
        for relative in files:
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("package main\n", encoding="utf-8")
        return root

    return _make


@pytest.fixture
def write_event(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    """Write an event payload to disk and return its path."""

    def _write(payload: Dict[str, Any]) -> Path:
        path = tmp_path / "event.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def push_payload() -> Dict[str, Any]:
    return {
        "ref": "refs/heads/main",
        "repository": {"name": "monorepo", "owner": {"login": "acme", "name": "acme"}},
        "commits": [
            {"id": "aaa111", "distinct": True},
            {"id": "bbb222", "distinct": True},
            {"id": "ccc333", "distinct": False},
        ],
    }


@pytest.fixture
def pull_request_payload() -> Dict[str, Any]:
    return {
        "action": "synchronize",
        "number": 42,
        "pull_request": {"number": 42, "head": {"sha": "fff999"}},
        "repository": {"name": "monorepo", "owner": {"login": "acme"}},
    }
