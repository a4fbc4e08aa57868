"""Pytest fixtures for memhooks tests."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from memhooks.config import Settings
from memhooks.core.registry import RegistryStore
from memhooks.core.worker_client import WorkerClient
from memhooks.hooks.catalog import KNOWN_SCRIPT_STEMS

WORKER_URL = "http://127.0.0.1:37777"
DEFAULT_CONTEXT = "## Recent work\n- Fixed the login redirect loop"

# ---------------------------------------------------------------------------
# Fake worker
# ---------------------------------------------------------------------------


class FakeWorker:
    """In-process stand-in for the worker HTTP API (via httpx.MockTransport).

    Attributes:
        up: When False every request fails with a connection error.
        context: Body returned by ``GET /context``.
        init_response: JSON returned by ``POST /sessions/init``.
        summary_status / summary_body: Response of ``POST /summary``.
        fail_paths: Paths answered with HTTP 500.
    """

    def __init__(self) -> None:
        self.up = True
        self.context = DEFAULT_CONTEXT
        self.init_response: dict[str, Any] = {"status": "ok"}
        self.summary_status = 200
        self.summary_body: Any = {"summary": "Worked on login"}
        self.fail_paths: set[str] = set()
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if not self.up:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.fail_paths:
            return httpx.Response(500, text="internal error")
        if path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if path == "/context":
            return httpx.Response(200, text=self.context)
        if path == "/observations":
            return httpx.Response(201, json={"id": len(self.requests)})
        if path == "/summary":
            if self.summary_status == 204:
                return httpx.Response(204)
            return httpx.Response(self.summary_status, json=self.summary_body)
        if path == "/sessions/init":
            return httpx.Response(200, json=self.init_response)
        return httpx.Response(404, text="not found")

    def client(self, **kwargs: Any) -> WorkerClient:
        kwargs.setdefault("sleep_fn", lambda _seconds: None)
        return WorkerClient(WORKER_URL, transport=httpx.MockTransport(self.handler), **kwargs)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def bodies(self, path: str) -> list[Any]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point HOME at a temp dir and drop any MEMHOOKS_* variables."""
    for key in list(os.environ):
        if key.startswith("MEMHOOKS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("CLAUDE_PROJECT_DIR", raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


# ---------------------------------------------------------------------------
# Basic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a temp data directory and a fixed interpreter path."""
    return Settings(
        data_dir=tmp_path / "data",
        python_path="/opt/memhooks/bin/python",
        worker_start_retries=2,
        worker_poll_interval=0.0,
    )


@pytest.fixture
def fake_worker() -> FakeWorker:
    return FakeWorker()


@pytest.fixture
def worker_client(fake_worker: FakeWorker) -> WorkerClient:
    return fake_worker.client()


@pytest.fixture
def registry(settings: Settings) -> RegistryStore:
    return RegistryStore(settings.registry_path)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An existing workspace directory named ``my-app``."""
    path = tmp_path / "src" / "my-app"
    path.mkdir(parents=True)
    (path / "README.md").write_text("# my-app\n", encoding="utf-8")
    return path


@pytest.fixture
def scripts_source(tmp_path: Path) -> Path:
    """A script source directory with every known script for both platforms."""
    source = tmp_path / "scripts-src"
    source.mkdir()
    for stem in KNOWN_SCRIPT_STEMS:
        (source / f"{stem}.sh").write_text(
            f'#!/usr/bin/env bash\nPY="@MEMHOOKS_PYTHON@"\n# {stem}\n', encoding="utf-8"
        )
        (source / f"{stem}.ps1").write_text(
            f"$Py = '@MEMHOOKS_PYTHON@'\n# {stem}\n", encoding="utf-8"
        )
    return source


@pytest.fixture
def snapshot_tree() -> Callable[[Path], dict[str, bytes | None]]:
    """Return a function capturing every file and directory below a root."""

    def _snapshot(root: Path) -> dict[str, bytes | None]:
        result: dict[str, bytes | None] = {}
        if not root.exists():
            return result
        for path in sorted(root.rglob("*")):
            rel = path.relative_to(root).as_posix()
            result[rel] = path.read_bytes() if path.is_file() else None
        return result

    return _snapshot
