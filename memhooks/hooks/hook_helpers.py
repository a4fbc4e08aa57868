"""Shared utilities for hook processes.

Input sanitization, stdin/stdout handling and project-name derivation.
Everything here is defensive: a hook must never fail because of its input.
"""

from __future__ import annotations

import json
import os
import re
import sys
from typing import IO, Any

STDIN_LIMIT = 524_288  # 512KB

UNKNOWN_PROJECT = "unknown-project"

# ---------------------------------------------------------------------------
# Input sanitization
# ---------------------------------------------------------------------------

_SESSION_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
"""Safe characters for session IDs."""

_WINDOWS_DEVICE_RE = re.compile(r"^(CON|NUL|PRN|AUX|COM[1-9]|LPT[1-9])(\..+)?$", re.IGNORECASE)
"""Windows reserved device names that must not be used as filenames."""

_DRIVE_ROOT_RE = re.compile(r"^([A-Za-z]):[\\/]*$")
_CURSOR_DRIVE_RE = re.compile(r"^/([A-Za-z]):([\\/].*)?$")
_PRIVATE_TAG_RE = re.compile(r"<private>.*?</private>", re.IGNORECASE | re.DOTALL)


def sanitize_session_id(session_id: str) -> str:
    """Sanitize a session ID before it is sent to the worker or logged.

    Returns the session ID unchanged if it passes validation, or an
    empty string if it contains unsafe characters.

    Args:
        session_id: Raw session ID from stdin JSON.

    Returns:
        The validated session ID, or ``""`` if invalid.
    """
    if not session_id:
        return ""

    if len(session_id) > 128:
        return ""

    if not _SESSION_ID_RE.match(session_id):
        return ""

    if _WINDOWS_DEVICE_RE.match(session_id):
        return ""

    return session_id


def normalize_drive_path(path: str) -> str:
    """Fix Cursor's Unix-style drive paths: ``/c:/Users/x`` -> ``C:/Users/x``."""
    match = _CURSOR_DRIVE_RE.match(path)
    if not match:
        return path
    return f"{match.group(1).upper()}:{match.group(2) or '/'}"


def validate_cwd(path: str) -> str:
    """Validate a workspace path reported by the host.

    Rejects relative paths and paths containing ``..`` components.

    Returns:
        The validated path, or ``""`` if invalid.
    """
    if not path or "\x00" in path:
        return ""

    parts = re.split(r"[\\/]", path)
    if ".." in parts:
        return ""

    if not (os.path.isabs(path) or _DRIVE_ROOT_RE.match(path[:3]) or path.startswith("/")):
        return ""

    return path


def strip_private_tags(text: str) -> str:
    """Remove ``<private>...</private>`` spans from *text*."""
    if not text or "<private>" not in text.lower():
        return text
    return _PRIVATE_TAG_RE.sub("", text).strip()


def strip_private_values(value: Any) -> Any:
    """Apply ``strip_private_tags`` to every string inside *value*."""
    if isinstance(value, str):
        return strip_private_tags(value)
    if isinstance(value, dict):
        return {k: strip_private_values(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [strip_private_values(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# stdin / stdout helpers
# ---------------------------------------------------------------------------


def read_stdin(stream: IO[str] | None = None) -> dict[str, object]:
    """Read and parse JSON from stdin.

    Returns:
        Parsed dict, or empty dict on any error.
    """
    source = stream if stream is not None else sys.stdin
    try:
        raw = source.read(STDIN_LIMIT)
        if not raw or not raw.strip():
            return {}
        data = json.loads(raw)
    except (OSError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def write_response(response: dict[str, Any], stream: IO[str] | None = None) -> None:
    """Write one JSON response line and flush."""
    target = stream if stream is not None else sys.stdout
    json.dump(response, target)
    target.write("\n")
    target.flush()


# ---------------------------------------------------------------------------
# Project identity
# ---------------------------------------------------------------------------


def get_project_root(cwd: str = "") -> str:
    """Resolve the project root from environment or explicit CWD.

    Resolution order:
    1. ``$CLAUDE_PROJECT_DIR`` (set by Claude Code for plugin hooks)
    2. *cwd* parameter (first workspace root from stdin)
    3. Empty string
    """
    return os.environ.get("CLAUDE_PROJECT_DIR", "") or cwd


def get_project_name(path: str) -> str:
    """Derive the project name from a workspace path.

    The name is the path's base name.  An empty path gives
    ``unknown-project``; a Windows drive root such as ``C:\\`` gives
    ``drive-C``.
    """
    if not path or not path.strip():
        return UNKNOWN_PROJECT

    drive = _DRIVE_ROOT_RE.match(path.strip())
    if drive:
        return f"drive-{drive.group(1).upper()}"

    name = re.split(r"[\\/]", path.strip().rstrip("\\/"))[-1]
    return name or UNKNOWN_PROJECT
