"""Unit tests for memhooks.hooks.models.

Tests cover:
1. Event normalization: Claude Code, Cursor and kebab-case names
2. Payload parsing into per-event variants, Cursor field mapping
3. Malformed payloads fall back to defaults
4. Response serialization per host
"""

from __future__ import annotations

import pytest

from memhooks.hooks.models import (
    FileEditPayload,
    HookHost,
    HookResponse,
    LifecycleEvent,
    PromptSubmitPayload,
    SessionStartPayload,
    SessionStopPayload,
    ToolUsePayload,
    normalize_event,
    parse_payload,
)

# =============================================================================
# Event normalization
# =============================================================================


@pytest.mark.unit
class TestNormalizeEvent:
    """Test host event names map to lifecycle events."""

    def test_claude_code_names(self) -> None:
        assert normalize_event("SessionStart") is LifecycleEvent.SESSION_START
        assert normalize_event("UserPromptSubmit") is LifecycleEvent.PROMPT_SUBMIT
        assert normalize_event("PostToolUse") is LifecycleEvent.TOOL_USE
        assert normalize_event("Stop") is LifecycleEvent.SESSION_STOP

    def test_cursor_names(self) -> None:
        assert normalize_event("beforeSubmitPrompt") is LifecycleEvent.PROMPT_SUBMIT
        assert normalize_event("afterMCPExecution") is LifecycleEvent.TOOL_USE
        assert normalize_event("afterShellExecution") is LifecycleEvent.TOOL_USE
        assert normalize_event("afterFileEdit") is LifecycleEvent.FILE_EDIT
        assert normalize_event("stop") is LifecycleEvent.SESSION_STOP

    def test_canonical_values(self) -> None:
        assert normalize_event("tool_use") is LifecycleEvent.TOOL_USE

    def test_unknown(self) -> None:
        assert normalize_event("beforeReadFile") is None
        assert normalize_event("") is None


@pytest.mark.unit
class TestHookHost:
    """Test host parsing."""

    def test_cursor(self) -> None:
        assert HookHost.parse(" Cursor ") is HookHost.CURSOR

    def test_unknown_defaults_to_claude_code(self) -> None:
        assert HookHost.parse("vscode") is HookHost.CLAUDE_CODE


# =============================================================================
# Payload parsing
# =============================================================================


@pytest.mark.unit
class TestParsePayload:
    """Test payload variants and field mapping."""

    def test_empty_payload_uses_default_event(self) -> None:
        payload = parse_payload({}, LifecycleEvent.SESSION_START)
        assert isinstance(payload, SessionStartPayload)
        assert payload.source == "startup"
        assert payload.session_id == ""
        assert payload.project == "unknown-project"

    @pytest.mark.parametrize("data", [None, [], "text", 42])
    def test_non_dict_payload(self, data: object) -> None:
        payload = parse_payload(data, LifecycleEvent.PROMPT_SUBMIT)
        assert isinstance(payload, PromptSubmitPayload)
        assert payload.prompt == ""

    def test_hook_event_name_overrides_default(self) -> None:
        payload = parse_payload(
            {"hook_event_name": "afterFileEdit", "file_path": "/w/a.py"},
            LifecycleEvent.TOOL_USE,
            HookHost.CURSOR,
        )
        assert isinstance(payload, FileEditPayload)
        assert payload.file_path == "/w/a.py"

    def test_unknown_hook_event_name_ignored(self) -> None:
        payload = parse_payload({"hook_event_name": "weird"}, LifecycleEvent.SESSION_STOP)
        assert isinstance(payload, SessionStopPayload)
        assert payload.hook_event_name == "weird"

    def test_cursor_prompt(self) -> None:
        payload = parse_payload(
            {
                "hook_event_name": "beforeSubmitPrompt",
                "conversation_id": "conv-123",
                "workspace_roots": ["/home/me/src/my-app"],
                "prompt": "fix the bug",
            },
            LifecycleEvent.PROMPT_SUBMIT,
            HookHost.CURSOR,
        )
        assert isinstance(payload, PromptSubmitPayload)
        assert payload.session_id == "conv-123"
        assert payload.workspace == "/home/me/src/my-app"
        assert payload.project == "my-app"
        assert payload.prompt == "fix the bug"
        assert payload.host is HookHost.CURSOR

    def test_session_id_preferred_over_conversation_id(self) -> None:
        payload = parse_payload(
            {"session_id": "s-1", "conversation_id": "c-1"}, LifecycleEvent.SESSION_STOP
        )
        assert payload.session_id == "s-1"

    def test_unsafe_session_id_dropped(self) -> None:
        payload = parse_payload({"session_id": "../../etc"}, LifecycleEvent.SESSION_STOP)
        assert payload.session_id == ""

    def test_cwd_used_when_no_workspace_roots(self) -> None:
        payload = parse_payload({"cwd": "/srv/api"}, LifecycleEvent.SESSION_START)
        assert payload.workspace_roots == ("/srv/api",)

    def test_claude_project_dir_preferred_over_cwd(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CLAUDE_PROJECT_DIR", "/srv/api")
        payload = parse_payload({"cwd": "/srv/api/src"}, LifecycleEvent.SESSION_START)
        assert payload.workspace_roots == ("/srv/api",)
        assert payload.project == "api"

    def test_claude_project_dir_ignored_for_cursor(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CLAUDE_PROJECT_DIR", "/srv/api")
        payload = parse_payload(
            {"cwd": "/srv/web"}, LifecycleEvent.SESSION_START, HookHost.CURSOR
        )
        assert payload.workspace_roots == ("/srv/web",)

    def test_cursor_drive_path_normalized(self) -> None:
        payload = parse_payload(
            {"workspace_roots": ["/c:/Users/me/proj"]}, LifecycleEvent.SESSION_START
        )
        assert payload.workspace == "C:/Users/me/proj"
        assert payload.project == "proj"

    def test_relative_workspace_rejected(self) -> None:
        payload = parse_payload({"workspace_roots": ["src/app"]}, LifecycleEvent.SESSION_START)
        assert payload.workspace_roots == ()

    def test_traversal_workspace_rejected(self) -> None:
        payload = parse_payload({"cwd": "/home/../etc"}, LifecycleEvent.SESSION_START)
        assert payload.workspace_roots == ()

    def test_claude_tool_use(self) -> None:
        payload = parse_payload(
            {
                "hook_event_name": "PostToolUse",
                "tool_name": "Edit",
                "tool_input": {"file_path": "/w/a.py"},
                "tool_response": {"success": True},
            },
            LifecycleEvent.TOOL_USE,
        )
        assert isinstance(payload, ToolUsePayload)
        assert payload.tool_name == "Edit"
        assert payload.tool_input == {"file_path": "/w/a.py"}
        assert payload.tool_response == '{"success": true}'

    def test_cursor_mcp_execution(self) -> None:
        payload = parse_payload(
            {
                "hook_event_name": "afterMCPExecution",
                "tool_name": "search",
                "tool_input": '{"q": "x"}',
                "result_json": '{"hits": 1}',
            },
            LifecycleEvent.TOOL_USE,
            HookHost.CURSOR,
        )
        assert isinstance(payload, ToolUsePayload)
        assert payload.tool_input == {"q": "x"}
        assert payload.tool_response == '{"hits": 1}'

    def test_cursor_shell_execution(self) -> None:
        payload = parse_payload(
            {"hook_event_name": "afterShellExecution", "command": "ls -la", "output": "total 0"},
            LifecycleEvent.TOOL_USE,
            HookHost.CURSOR,
        )
        assert isinstance(payload, ToolUsePayload)
        assert payload.tool_name == "Shell"
        assert payload.tool_input == {"command": "ls -la"}
        assert payload.tool_response == "total 0"

    def test_file_edit_edits_filtered(self) -> None:
        payload = parse_payload(
            {"file_path": "/c:/w/a.py", "edits": [{"old_string": "a"}, "junk"]},
            LifecycleEvent.FILE_EDIT,
        )
        assert isinstance(payload, FileEditPayload)
        assert payload.file_path == "C:/w/a.py"
        assert payload.edits == ({"old_string": "a"},)

    def test_stop_hook_active(self) -> None:
        payload = parse_payload({"stop_hook_active": True}, LifecycleEvent.SESSION_STOP)
        assert isinstance(payload, SessionStopPayload)
        assert payload.stop_hook_active is True

    def test_stop_hook_active_requires_true(self) -> None:
        payload = parse_payload({"stop_hook_active": "yes"}, LifecycleEvent.SESSION_STOP)
        assert payload.stop_hook_active is False


# =============================================================================
# Responses
# =============================================================================


@pytest.mark.unit
class TestHookResponse:
    """Test per-host response serialization."""

    def test_default_continue(self) -> None:
        assert HookResponse().to_dict() == {"continue": True}
        assert HookResponse().to_dict(HookHost.CURSOR) == {"continue": True}

    def test_claude_additional_context(self) -> None:
        response = HookResponse(
            additional_context="ctx", event=LifecycleEvent.SESSION_START
        )
        assert response.to_dict() == {
            "continue": True,
            "hookSpecificOutput": {
                "hookEventName": "SessionStart",
                "additionalContext": "ctx",
            },
        }

    def test_cursor_drops_context(self) -> None:
        response = HookResponse(
            additional_context="ctx", system_message="hi", event=LifecycleEvent.SESSION_START
        )
        assert response.to_dict(HookHost.CURSOR) == {"continue": True}

    def test_block_claude(self) -> None:
        response = HookResponse(continue_=False, user_message="quota")
        assert response.to_dict() == {"continue": False, "stopReason": "quota"}

    def test_block_cursor(self) -> None:
        response = HookResponse(continue_=False, user_message="quota")
        assert response.to_dict(HookHost.CURSOR) == {"continue": False, "user_message": "quota"}

    def test_system_message(self) -> None:
        assert HookResponse(system_message="hello").to_dict() == {
            "continue": True,
            "systemMessage": "hello",
        }
