"""memhooks - hook installer and runtime for a local memory worker.

Installs lifecycle hook scripts into editor hosts (Cursor, Claude Code) and
runs the hook processes those hosts spawn.  Every hook talks to a long-running
local worker over HTTP and degrades gracefully when the worker is down.
"""

__version__ = "0.4.0"

from memhooks.config import Settings, load_settings
from memhooks.core.errors import (
    ConfigurationError,
    InvalidScopeError,
    MemHooksError,
    UnsupportedPlatformError,
    WorkerError,
    WorkerRequestError,
    WorkerUnavailableError,
)

__all__ = [
    "__version__",
    "Settings",
    "load_settings",
    "MemHooksError",
    "ConfigurationError",
    "InvalidScopeError",
    "UnsupportedPlatformError",
    "WorkerError",
    "WorkerUnavailableError",
    "WorkerRequestError",
]
