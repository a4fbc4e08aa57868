"""Minimal HTTP client for the local memory worker.

Each hook process creates one ``WorkerClient`` from the settings it loaded at
startup.  Every call opens a short-lived ``httpx.Client`` with its own
timeout; no connection outlives a request because the worker is shared by
many hook processes running at once.

Failures surface as two exception types:

* ``WorkerUnavailableError`` - connection refused, timeout, exhausted start
  budget.
* ``WorkerRequestError`` - the worker answered with a non-success status;
  the response body is attached for diagnostics.

The hook state machine (``memhooks.hooks.executor``) turns both into a
degraded response, so nothing here ever reaches the host as a crash.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import httpx

from memhooks.core.errors import WorkerError, WorkerRequestError, WorkerUnavailableError

if TYPE_CHECKING:
    from memhooks.config import Settings

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"
CONTEXT_PATH = "/context"
OBSERVATIONS_PATH = "/observations"
SUMMARY_PATH = "/summary"
SESSION_INIT_PATH = "/sessions/init"

SpawnFn = Callable[[Sequence[str]], object]


def spawn_detached(command: Sequence[str]) -> subprocess.Popen[bytes]:
    """Start *command* as a background process that outlives this hook.

    The child gets its own session (POSIX) or process group (Windows) so the
    host killing the hook process does not take the worker down with it.
    """
    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if os.name == "nt":
        kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0x8) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0x200
        )
    else:
        kwargs["start_new_session"] = True
    return subprocess.Popen(list(command), **kwargs)


class WorkerClient:
    """Talks to the worker HTTP API.

    Args:
        base_url: Worker base URL, e.g. ``http://127.0.0.1:37777``.
        request_timeout: Default timeout for API calls, in seconds.
        health_timeout: Timeout for a single health check.
        start_command: Command that starts the worker; empty disables spawning.
        start_retries: Liveness polls after a spawn before giving up.
        poll_interval: Seconds between those polls.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        spawn_fn: Process launcher, defaults to ``spawn_detached``.
        sleep_fn: Sleep function used between polls.
        clock: Monotonic clock used for deadline bookkeeping.
    """

    def __init__(
        self,
        base_url: str,
        *,
        request_timeout: float = 5.0,
        health_timeout: float = 1.0,
        start_command: Sequence[str] = (),
        start_retries: int = 10,
        poll_interval: float = 0.5,
        transport: httpx.BaseTransport | None = None,
        spawn_fn: SpawnFn | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.health_timeout = health_timeout
        self.start_command = tuple(start_command)
        self.start_retries = start_retries
        self.poll_interval = poll_interval
        self._transport = transport
        self._spawn = spawn_fn or spawn_detached
        self._sleep = sleep_fn
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> WorkerClient:
        """Build a client from loaded settings; keyword overrides win."""
        kwargs: dict[str, Any] = {
            "request_timeout": settings.request_timeout,
            "health_timeout": settings.health_timeout,
            "start_command": settings.worker_start_command,
            "start_retries": settings.worker_start_retries,
            "poll_interval": settings.worker_poll_interval,
        }
        kwargs.update(overrides)
        return cls(settings.worker_url, **kwargs)

    def __repr__(self) -> str:
        return f"WorkerClient(base_url={self.base_url!r})"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        timeout: float | None,
        **kwargs: Any,
    ) -> httpx.Response:
        effective = self.request_timeout if timeout is None else timeout
        if effective <= 0:
            raise WorkerUnavailableError(f"No time left for {method} {path}")

        try:
            with httpx.Client(
                base_url=self.base_url,
                transport=self._transport,
                timeout=effective,
                trust_env=False,
            ) as client:
                response = client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise WorkerUnavailableError(f"{method} {path} timed out after {effective:.1f}s") from e
        except httpx.HTTPError as e:
            raise WorkerUnavailableError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise WorkerRequestError(path, response.status_code, response.text)
        return response

    # -------------------------------------------------------------------------
    # Liveness
    # -------------------------------------------------------------------------

    def is_healthy(self, timeout: float | None = None) -> bool:
        """Check ``GET /health`` once. Never raises and never starts the worker."""
        check_timeout = self.health_timeout if timeout is None else timeout
        try:
            self._request("GET", HEALTH_PATH, check_timeout)
        except WorkerError as e:
            logger.debug(f"Worker health check failed: {e}")
            return False
        return True

    def ensure_running(self, timeout: float | None = None) -> None:
        """Make sure the worker answers its health check.

        Checks once.  If the worker is down and a start command is configured,
        spawns it detached and polls until it is healthy, the retry budget is
        used up, or *timeout* expires.

        Raises:
            WorkerUnavailableError: If the worker is not healthy afterwards.
        """
        deadline = None if timeout is None else self._clock() + timeout

        def remaining() -> float:
            if deadline is None:
                return self.health_timeout
            return min(self.health_timeout, deadline - self._clock())

        if remaining() > 0 and self.is_healthy(remaining()):
            return

        if not self.start_command:
            raise WorkerUnavailableError(f"Worker at {self.base_url} is not running")
        if deadline is not None and deadline <= self._clock():
            raise WorkerUnavailableError(f"Worker at {self.base_url} is not running")

        logger.info(f"Starting worker: {' '.join(self.start_command)}")
        try:
            self._spawn(self.start_command)
        except OSError as e:
            raise WorkerUnavailableError(f"Could not start worker: {e}") from e

        for attempt in range(1, self.start_retries + 1):
            wait = self.poll_interval
            if deadline is not None:
                wait = min(wait, deadline - self._clock())
            if wait > 0:
                self._sleep(wait)
            budget = remaining()
            if budget <= 0:
                break
            if self.is_healthy(budget):
                logger.info(f"Worker became healthy after {attempt} poll(s)")
                return

        raise WorkerUnavailableError(
            f"Worker at {self.base_url} did not become healthy "
            f"within {self.start_retries} poll(s)"
        )

    # -------------------------------------------------------------------------
    # API calls
    # -------------------------------------------------------------------------

    def fetch_context(
        self,
        project: str,
        format: str = "markdown",
        timeout: float | None = None,
    ) -> str:
        """Fetch formatted context text for *project*."""
        response = self._request(
            "GET",
            CONTEXT_PATH,
            timeout,
            params={"project": project, "format": format},
        )
        return response.text

    def submit_observation(
        self,
        observation: dict[str, Any],
        timeout: float | None = None,
    ) -> None:
        """Post an observation. The response body is only logged."""
        response = self._request("POST", OBSERVATIONS_PATH, timeout, json=observation)
        logger.debug(f"Observation accepted ({response.status_code}): {response.text[:200]}")

    def request_summary(
        self,
        session_id: str,
        project: str = "",
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Ask the worker to summarize a session.

        Returns:
            The summary payload, or ``None`` when the worker had nothing to
            summarize (204, empty body, ``{}`` or ``{"status": "skipped"}``).
        """
        response = self._request(
            "POST",
            SUMMARY_PATH,
            timeout,
            json={"session_id": session_id, "project": project},
        )
        return _json_object_or_none(response, skipped_status="skipped")

    def init_session(
        self,
        session_id: str,
        project: str,
        prompt: str,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Register a new prompt with the worker and return its decision."""
        response = self._request(
            "POST",
            SESSION_INIT_PATH,
            timeout,
            json={"session_id": session_id, "project": project, "prompt": prompt},
        )
        return _json_object_or_none(response) or {}


def _json_object_or_none(
    response: httpx.Response, skipped_status: str | None = None
) -> dict[str, Any] | None:
    if response.status_code == 204 or not response.content.strip():
        return None
    try:
        data = response.json()
    except ValueError:
        logger.debug(f"Worker returned non-JSON body for {response.request.url.path}")
        return None
    if not isinstance(data, dict) or not data:
        return None
    if skipped_status is not None and data.get("status") == skipped_status:
        return None
    return data
