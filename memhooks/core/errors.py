"""Custom exceptions for memhooks."""

from __future__ import annotations


class MemHooksError(Exception):
    """Base exception for all memhooks errors."""

    pass


class ConfigurationError(MemHooksError):
    """Raised when configuration is invalid."""

    pass


class InvalidScopeError(ConfigurationError):
    """Raised when an install scope is not recognized."""

    def __init__(self, scope: str) -> None:
        self.scope = scope
        super().__init__(f"Invalid scope: {scope!r}. Use one of: project, user, enterprise")


class UnsupportedPlatformError(MemHooksError):
    """Raised when a scope has no install target on this operating system."""

    def __init__(self, scope: str, platform: str) -> None:
        self.scope = scope
        self.platform = platform
        super().__init__(f"No {scope} install target is known for platform {platform!r}")


class WorkerError(MemHooksError):
    """Base exception for worker communication failures."""

    pass


class WorkerUnavailableError(WorkerError):
    """Raised when the worker cannot be reached or did not become healthy."""

    pass


class WorkerRequestError(WorkerError):
    """Raised when the worker answers with a non-success HTTP status.

    The response body is kept for diagnostics.
    """

    def __init__(self, endpoint: str, status_code: int, body: str = "") -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        detail = f": {body[:200]}" if body else ""
        super().__init__(f"Worker request {endpoint} failed with HTTP {status_code}{detail}")
