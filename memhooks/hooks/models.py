"""Domain types for hook payloads and responses.

Host payloads are modelled as a tagged variant keyed by ``LifecycleEvent``:
one frozen dataclass per event, all sharing ``HookPayload``'s common fields.
``parse_payload()`` folds Cursor and Claude Code field names into those
dataclasses and never raises; malformed fields fall back to defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from memhooks.hooks.hook_helpers import (
    get_project_name,
    get_project_root,
    normalize_drive_path,
    sanitize_session_id,
    validate_cwd,
)

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class LifecycleEvent(str, Enum):
    SESSION_START = "session_start"
    PROMPT_SUBMIT = "prompt_submit"
    TOOL_USE = "tool_use"
    FILE_EDIT = "file_edit"
    SESSION_STOP = "session_stop"


class HookHost(str, Enum):
    CLAUDE_CODE = "claude-code"
    CURSOR = "cursor"

    @classmethod
    def parse(cls, value: str) -> HookHost:
        """Resolve a host name or alias; unknown values mean Claude Code."""
        normalized = value.strip().lower()
        if normalized == "cursor":
            return cls.CURSOR
        return cls.CLAUDE_CODE


class HookExitCode(IntEnum):
    """Process exit codes understood by both hosts."""

    SUCCESS = 0


EVENT_ALIASES: dict[str, LifecycleEvent] = {
    # Claude Code (PascalCase)
    "SessionStart": LifecycleEvent.SESSION_START,
    "UserPromptSubmit": LifecycleEvent.PROMPT_SUBMIT,
    "PostToolUse": LifecycleEvent.TOOL_USE,
    "Stop": LifecycleEvent.SESSION_STOP,
    # Cursor (camelCase)
    "beforeSubmitPrompt": LifecycleEvent.PROMPT_SUBMIT,
    "afterMCPExecution": LifecycleEvent.TOOL_USE,
    "afterShellExecution": LifecycleEvent.TOOL_USE,
    "afterFileEdit": LifecycleEvent.FILE_EDIT,
    "stop": LifecycleEvent.SESSION_STOP,
    # kebab-case (CLI)
    "session-start": LifecycleEvent.SESSION_START,
    "prompt-submit": LifecycleEvent.PROMPT_SUBMIT,
    "tool-use": LifecycleEvent.TOOL_USE,
    "file-edit": LifecycleEvent.FILE_EDIT,
    "session-stop": LifecycleEvent.SESSION_STOP,
}


def normalize_event(raw: str) -> LifecycleEvent | None:
    """Map a host event name to a ``LifecycleEvent``, or ``None`` if unknown."""
    if raw in EVENT_ALIASES:
        return EVENT_ALIASES[raw]
    try:
        return LifecycleEvent(raw)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Payload variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HookPayload:
    """Fields shared by every lifecycle event."""

    event: LifecycleEvent
    host: HookHost = HookHost.CLAUDE_CODE
    session_id: str = ""
    workspace_roots: tuple[str, ...] = ()
    hook_event_name: str = ""

    @property
    def workspace(self) -> str:
        """First workspace root, or ``""``."""
        return self.workspace_roots[0] if self.workspace_roots else ""

    @property
    def project(self) -> str:
        return get_project_name(self.workspace)


@dataclass(frozen=True)
class SessionStartPayload(HookPayload):
    source: str = "startup"


@dataclass(frozen=True)
class PromptSubmitPayload(HookPayload):
    prompt: str = ""


@dataclass(frozen=True)
class ToolUsePayload(HookPayload):
    tool_name: str = ""
    tool_input: dict[str, Any] = field(default_factory=dict)
    tool_response: str = ""


@dataclass(frozen=True)
class FileEditPayload(HookPayload):
    file_path: str = ""
    edits: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class SessionStopPayload(HookPayload):
    status: str = ""
    stop_hook_active: bool = False


PAYLOAD_TYPES: dict[LifecycleEvent, type[HookPayload]] = {
    LifecycleEvent.SESSION_START: SessionStartPayload,
    LifecycleEvent.PROMPT_SUBMIT: PromptSubmitPayload,
    LifecycleEvent.TOOL_USE: ToolUsePayload,
    LifecycleEvent.FILE_EDIT: FileEditPayload,
    LifecycleEvent.SESSION_STOP: SessionStopPayload,
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _as_str(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def _as_dict(value: object) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _workspace_roots(
    data: dict[str, Any], host: HookHost = HookHost.CLAUDE_CODE
) -> tuple[str, ...]:
    roots: list[str] = []
    raw_roots = data.get("workspace_roots")
    if isinstance(raw_roots, list):
        roots = [str(r) for r in raw_roots if isinstance(r, str) and r]
    elif isinstance(raw_roots, str) and raw_roots:
        roots = [raw_roots]
    cwd = data.get("cwd")
    if not isinstance(cwd, str):
        cwd = ""
    # Claude Code exports the project directory for every hook it spawns
    if host is HookHost.CLAUDE_CODE:
        cwd = get_project_root(cwd)
    if not roots and cwd:
        roots = [cwd]

    validated = []
    for root in roots:
        checked = validate_cwd(normalize_drive_path(root))
        if checked:
            validated.append(checked)
    return tuple(validated)


def _session_id(data: dict[str, Any]) -> str:
    for key in ("session_id", "conversation_id", "generation_id"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return sanitize_session_id(value)
    return ""


def _tool_fields(data: dict[str, Any]) -> dict[str, Any]:
    # Cursor shell executions carry command/output instead of tool fields
    if "command" in data and "tool_name" not in data:
        return {
            "tool_name": "Shell",
            "tool_input": {"command": _as_str(data.get("command"))},
            "tool_response": _as_str(data.get("output", "")),
        }

    response = data.get("tool_response")
    if response is None:
        response = data.get("result_json", data.get("tool_output", ""))
    return {
        "tool_name": _as_str(data.get("tool_name", "")),
        "tool_input": _as_dict(data.get("tool_input", {})),
        "tool_response": _as_str(response),
    }


def _event_fields(event: LifecycleEvent, data: dict[str, Any]) -> dict[str, Any]:
    if event is LifecycleEvent.SESSION_START:
        return {"source": _as_str(data.get("source", "")) or "startup"}
    if event is LifecycleEvent.PROMPT_SUBMIT:
        return {"prompt": _as_str(data.get("prompt", ""))}
    if event is LifecycleEvent.TOOL_USE:
        return _tool_fields(data)
    if event is LifecycleEvent.FILE_EDIT:
        edits = data.get("edits")
        return {
            "file_path": normalize_drive_path(_as_str(data.get("file_path", ""))),
            "edits": tuple(e for e in edits if isinstance(e, dict))
            if isinstance(edits, list)
            else (),
        }
    return {
        "status": _as_str(data.get("status", data.get("trigger", ""))),
        "stop_hook_active": data.get("stop_hook_active") is True,
    }


def parse_payload(
    data: object,
    default_event: LifecycleEvent,
    host: HookHost = HookHost.CLAUDE_CODE,
) -> HookPayload:
    """Build the payload variant for one hook invocation.

    The event is taken from the payload's ``hook_event_name`` when it names a
    known event, otherwise *default_event* (the hook's own event) is used.

    Args:
        data: Parsed stdin JSON; anything other than a dict is treated as
            empty.
        default_event: Event of the hook being run.
        host: Host that spawned the hook.

    Returns:
        A ``HookPayload`` subclass instance matching the event.
    """
    payload = data if isinstance(data, dict) else {}
    raw_event = _as_str(payload.get("hook_event_name", ""))
    event = normalize_event(raw_event) or default_event

    common = {
        "event": event,
        "host": host,
        "session_id": _session_id(payload),
        "workspace_roots": _workspace_roots(payload, host),
        "hook_event_name": raw_event,
    }
    return PAYLOAD_TYPES[event](**common, **_event_fields(event, payload))


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

_CLAUDE_EVENT_NAMES: dict[LifecycleEvent, str] = {
    LifecycleEvent.SESSION_START: "SessionStart",
    LifecycleEvent.PROMPT_SUBMIT: "UserPromptSubmit",
    LifecycleEvent.TOOL_USE: "PostToolUse",
    LifecycleEvent.SESSION_STOP: "Stop",
}


@dataclass(frozen=True)
class HookResponse:
    """Decision written to stdout by a blocking hook."""

    continue_: bool = True
    additional_context: str = ""
    system_message: str = ""
    user_message: str = ""
    event: LifecycleEvent | None = None

    def to_dict(self, host: HookHost = HookHost.CLAUDE_CODE) -> dict[str, Any]:
        """Serialize for *host*; ``continue`` is always present."""
        result: dict[str, Any] = {"continue": self.continue_}

        if host is HookHost.CURSOR:
            if not self.continue_ and self.user_message:
                result["user_message"] = self.user_message
            return result

        if not self.continue_ and self.user_message:
            result["stopReason"] = self.user_message
        if self.system_message:
            result["systemMessage"] = self.system_message
        if self.additional_context and self.event in _CLAUDE_EVENT_NAMES:
            result["hookSpecificOutput"] = {
                "hookEventName": _CLAUDE_EVENT_NAMES[self.event],
                "additionalContext": self.additional_context,
            }
        return result
