"""User-facing remediation text for worker and installer failures.

Installer, uninstaller and status print these instead of stack traces.
"""

from __future__ import annotations

import re
import sys

# Common error patterns with helpful solutions
_ERROR_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"ECONNREFUSED|connection refused|not running", re.I),
        "The worker service is not running. Start it, or set MEMHOOKS_WORKER_COMMAND "
        "so hooks can start it on demand",
    ),
    (
        re.compile(r"port.*in use|EADDRINUSE|address already in use", re.I),
        "Port is already in use. Stop the other process or set MEMHOOKS_WORKER_PORT",
    ),
    (
        re.compile(r"ENOENT|no such file|not found", re.I),
        "A required file is missing. Reinstall with: memhooks install <scope>",
    ),
    (
        re.compile(r"permission denied|EACCES", re.I),
        "Permission denied. Check file permissions or run with appropriate privileges",
    ),
    (
        re.compile(r"timeout|timed out|ETIMEDOUT", re.I),
        "Operation timed out. The worker may be overloaded; try restarting it",
    ),
    (
        re.compile(r"database.*locked|SQLITE_BUSY", re.I),
        "Database is locked. Another process may be using it; try restarting the worker",
    ),
]


def _platform_name(platform: str | None) -> str:
    if platform:
        return platform
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def worker_restart_instructions(
    port: int | None = None,
    *,
    platform: str | None = None,
    actual_error: str = "",
    include_skill_fallback: bool = False,
    prefix: str = "",
) -> str:
    """Build platform-specific steps for bringing the worker back.

    Args:
        port: Worker port, shown in the header when given.
        platform: ``windows``, ``macos`` or ``linux``. Defaults to the
            running platform.
        actual_error: Underlying error text, prepended when given.
        include_skill_fallback: Add a hint to ask the assistant for help.
        prefix: Replaces the default header line.
    """
    header = prefix or "Worker service connection failed."
    port_info = f" (port {port})" if port else ""

    lines = [f"{header}{port_info}", "", "Quick fix:", "1. Close the editor completely"]
    if _platform_name(platform) == "windows":
        lines += [
            "2. Open PowerShell and run:",
            "   memhooks status",
            "   then start the worker (see MEMHOOKS_WORKER_COMMAND)",
        ]
    else:
        lines += [
            "2. Run: memhooks status",
            "   then start the worker (see MEMHOOKS_WORKER_COMMAND)",
        ]
    lines += [
        "3. Restart the editor",
        "",
        "If the problem persists:",
        "   - Check hook logs in ~/.memhooks/logs/hooks.log",
        "   - Verify the worker port with: memhooks status",
    ]
    if include_skill_fallback:
        lines += ["", 'Or ask the assistant: "troubleshoot memhooks"']

    message = "\n".join(lines)
    if actual_error:
        message = f"Error: {actual_error}\n\n{message}"
    return message


def user_friendly_error(error: BaseException | str, context: str = "") -> str:
    """Attach a suggested fix to a known error, or prefix *context*."""
    message = str(error)
    for pattern, solution in _ERROR_PATTERNS:
        if pattern.search(message):
            return f"{message}\n\nSolution: {solution}"
    if context:
        return f"{context}: {message}"
    return message
