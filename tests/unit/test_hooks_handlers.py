"""Unit tests for the per-hook executors.

Tests cover:
1. session-init: private-only prompts skipped, worker block decision honored
2. context-inject: Claude additionalContext, Cursor rules snippet
3. user-message: Claude-only display, no-op for empty context
4. save-observation: skip list, private stripping, envelope shape
5. save-file-edit: edits captured, missing path skipped
6. session-summary: loop guard, registry-triggered context refresh
"""

from __future__ import annotations

from pathlib import Path

import pytest

from memhooks.config import Settings
from memhooks.core.context_file import context_snippet_path
from memhooks.core.registry import RegistryStore
from memhooks.hooks.context_inject import ContextInjectExecutor
from memhooks.hooks.executor import Budget, HookState
from memhooks.hooks.models import HookHost, LifecycleEvent, parse_payload
from memhooks.hooks.save_file_edit import SaveFileEditExecutor
from memhooks.hooks.save_observation import (
    SaveObservationExecutor,
    build_observation,
    should_skip_tool,
)
from memhooks.hooks.session_init import DEFAULT_BLOCK_REASON, SessionInitExecutor
from memhooks.hooks.session_summary import SessionSummaryExecutor
from memhooks.hooks.user_message import PRIVATE_TIP, UserMessageExecutor, format_user_message

# =============================================================================
# session-init
# =============================================================================


@pytest.mark.unit
class TestSessionInit:
    """Test the initial prompt gate."""

    def _run(self, fake_worker, settings: Settings, data: dict, host=HookHost.CLAUDE_CODE):
        payload = parse_payload(data, LifecycleEvent.PROMPT_SUBMIT, host)
        return SessionInitExecutor(fake_worker.client(), settings).run(payload)

    def test_registers_prompt(self, fake_worker, settings: Settings) -> None:
        outcome = self._run(
            fake_worker,
            settings,
            {"session_id": "s1", "cwd": "/w/my-app", "prompt": "fix it <private>pw</private>"},
        )
        assert outcome.response is not None
        assert outcome.response.to_dict() == {"continue": True}
        assert fake_worker.bodies("/sessions/init") == [
            {"session_id": "s1", "project": "my-app", "prompt": "fix it"}
        ]

    def test_private_only_prompt_skipped(self, fake_worker, settings: Settings) -> None:
        outcome = self._run(fake_worker, settings, {"prompt": "<private>secret</private>"})
        assert outcome.trace == (HookState.START, HookState.EMIT_RESPONSE)
        assert fake_worker.requests == []

    def test_block_decision_cursor(self, fake_worker, settings: Settings) -> None:
        fake_worker.init_response = {"decision": "block", "reason": "Daily quota reached"}
        outcome = self._run(fake_worker, settings, {"prompt": "hi"}, HookHost.CURSOR)
        assert outcome.response is not None
        assert outcome.response.to_dict(HookHost.CURSOR) == {
            "continue": False,
            "user_message": "Daily quota reached",
        }

    def test_block_without_reason(self, fake_worker, settings: Settings) -> None:
        fake_worker.init_response = {"decision": "block"}
        outcome = self._run(fake_worker, settings, {"prompt": "hi"})
        assert outcome.response is not None
        assert outcome.response.user_message == DEFAULT_BLOCK_REASON

    def test_worker_down_continues(self, fake_worker, settings: Settings) -> None:
        fake_worker.up = False
        outcome = self._run(fake_worker, settings, {"prompt": "hi"})
        assert outcome.degraded
        assert outcome.response is not None
        assert outcome.response.to_dict() == {"continue": True}


# =============================================================================
# context-inject
# =============================================================================


@pytest.mark.unit
class TestContextInject:
    """Test context injection per host."""

    def test_claude_additional_context(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload(
            {"hook_event_name": "SessionStart", "cwd": "/w/my-app"},
            LifecycleEvent.SESSION_START,
        )
        outcome = ContextInjectExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        result = outcome.response.to_dict()
        assert result["continue"] is True
        assert result["hookSpecificOutput"]["hookEventName"] == "SessionStart"
        assert result["hookSpecificOutput"]["additionalContext"] == fake_worker.context
        assert fake_worker.requests[-1].url.params["project"] == "my-app"

    def test_cursor_writes_snippet(
        self, fake_worker, settings: Settings, workspace: Path
    ) -> None:
        payload = parse_payload(
            {"hook_event_name": "beforeSubmitPrompt", "workspace_roots": [str(workspace)]},
            LifecycleEvent.SESSION_START,
            HookHost.CURSOR,
        )
        outcome = ContextInjectExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        assert outcome.response.to_dict(HookHost.CURSOR) == {"continue": True}
        snippet = context_snippet_path(workspace, settings.context_rule_name)
        assert fake_worker.context in snippet.read_text(encoding="utf-8")

    def test_worker_never_healthy(self, fake_worker, settings: Settings) -> None:
        fake_worker.up = False
        client = fake_worker.client(
            start_command=("worker",), spawn_fn=lambda cmd: None, start_retries=3
        )
        payload = parse_payload({"cwd": "/w/my-app"}, LifecycleEvent.SESSION_START)
        outcome = ContextInjectExecutor(client, settings).run(payload)
        assert outcome.degraded
        assert outcome.response is not None
        assert outcome.response.to_dict() == {"continue": True}
        assert "/context" not in fake_worker.paths


# =============================================================================
# user-message
# =============================================================================


@pytest.mark.unit
class TestUserMessage:
    """Test the informational display hook."""

    def test_claude_system_message(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({"cwd": "/w/my-app"}, LifecycleEvent.SESSION_START)
        outcome = UserMessageExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        message = outcome.response.to_dict()["systemMessage"]
        assert fake_worker.context in message
        assert PRIVATE_TIP in message

    def test_cursor_skipped(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({}, LifecycleEvent.SESSION_START, HookHost.CURSOR)
        outcome = UserMessageExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        assert outcome.response.to_dict(HookHost.CURSOR) == {"continue": True}
        assert fake_worker.requests == []

    def test_empty_context(self, fake_worker, settings: Settings) -> None:
        fake_worker.context = "   "
        payload = parse_payload({}, LifecycleEvent.SESSION_START)
        outcome = UserMessageExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        assert outcome.response.to_dict() == {"continue": True}

    def test_format_includes_worker_url(self) -> None:
        text = format_user_message("ctx", "http://127.0.0.1:37777")
        assert text.startswith("Memory context loaded")
        assert text.endswith("Worker: http://127.0.0.1:37777")


# =============================================================================
# save-observation
# =============================================================================


@pytest.mark.unit
class TestSaveObservation:
    """Test tool-execution capture."""

    @pytest.mark.parametrize(
        ("tool", "skip"),
        [
            ("Bash", False),
            ("TodoWrite", True),
            ("mcp__memhooks__search", True),
            ("", True),
        ],
    )
    def test_should_skip_tool(self, tool: str, skip: bool) -> None:
        assert should_skip_tool(tool)[0] is skip

    def test_captures_observation(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload(
            {
                "session_id": "s1",
                "cwd": "/w/my-app",
                "tool_name": "Bash",
                "tool_input": {"command": "echo <private>token</private>hi"},
                "tool_response": "hi",
            },
            LifecycleEvent.TOOL_USE,
        )
        outcome = SaveObservationExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is None
        assert fake_worker.bodies("/observations") == [
            {
                "session_id": "s1",
                "project": "my-app",
                "workspace": "/w/my-app",
                "host": "claude-code",
                "event": "tool_use",
                "tool_name": "Bash",
                "tool_input": {"command": "echo hi"},
                "tool_response": "hi",
            }
        ]

    def test_skipped_tool_not_sent(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({"tool_name": "TodoWrite"}, LifecycleEvent.TOOL_USE)
        outcome = SaveObservationExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is None
        assert fake_worker.requests == []

    def test_worker_down_is_silent(self, fake_worker, settings: Settings) -> None:
        fake_worker.up = False
        payload = parse_payload({"tool_name": "Bash"}, LifecycleEvent.TOOL_USE)
        outcome = SaveObservationExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.degraded
        assert outcome.response is None

    def test_build_observation_envelope(self) -> None:
        payload = parse_payload({}, LifecycleEvent.TOOL_USE, HookHost.CURSOR)
        envelope = build_observation(payload, extra=1)
        assert envelope["host"] == "cursor"
        assert envelope["project"] == "unknown-project"
        assert envelope["extra"] == 1

    def test_capture_ignores_other_payloads(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({"file_path": "/w/a.py"}, LifecycleEvent.FILE_EDIT)
        SaveObservationExecutor(fake_worker.client(), settings).capture(payload, Budget(5))
        assert fake_worker.requests == []


# =============================================================================
# save-file-edit
# =============================================================================


@pytest.mark.unit
class TestSaveFileEdit:
    """Test file-edit capture."""

    def test_captures_edit(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload(
            {
                "conversation_id": "c1",
                "workspace_roots": ["/w/my-app"],
                "file_path": "/w/my-app/a.py",
                "edits": [{"old_string": "a", "new_string": "b"}],
            },
            LifecycleEvent.FILE_EDIT,
            HookHost.CURSOR,
        )
        SaveFileEditExecutor(fake_worker.client(), settings).run(payload)
        (body,) = fake_worker.bodies("/observations")
        assert body["tool_name"] == "FileEdit"
        assert body["tool_input"] == {
            "file_path": "/w/my-app/a.py",
            "edits": [{"old_string": "a", "new_string": "b"}],
        }
        assert body["session_id"] == "c1"
        assert body["event"] == "file_edit"

    def test_missing_path_skipped(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({"edits": []}, LifecycleEvent.FILE_EDIT, HookHost.CURSOR)
        outcome = SaveFileEditExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is None
        assert fake_worker.requests == []

    def test_capture_ignores_other_payloads(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({"tool_name": "Edit"}, LifecycleEvent.TOOL_USE)
        SaveFileEditExecutor(fake_worker.client(), settings).capture(payload, Budget(5))
        assert fake_worker.requests == []


# =============================================================================
# session-summary
# =============================================================================


@pytest.mark.unit
class TestSessionSummary:
    """Test session summary and context refresh."""

    def test_requests_summary(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload(
            {"session_id": "s1", "cwd": "/w/my-app"}, LifecycleEvent.SESSION_STOP
        )
        outcome = SessionSummaryExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        assert outcome.response.to_dict() == {"continue": True}
        assert fake_worker.bodies("/summary") == [{"session_id": "s1", "project": "my-app"}]
        # Unregistered project: no context refresh
        assert "/context" not in fake_worker.paths

    def test_loop_guard(self, fake_worker, settings: Settings) -> None:
        payload = parse_payload({"stop_hook_active": True}, LifecycleEvent.SESSION_STOP)
        outcome = SessionSummaryExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.response is not None
        assert outcome.response.continue_ is True
        assert fake_worker.requests == []

    def test_refreshes_registered_project(
        self, fake_worker, settings: Settings, registry: RegistryStore, workspace: Path
    ) -> None:
        registry.register("my-app", workspace)
        fake_worker.context = "fresh context"
        payload = parse_payload(
            {"conversation_id": "c1", "workspace_roots": [str(workspace)], "status": "completed"},
            LifecycleEvent.SESSION_STOP,
            HookHost.CURSOR,
        )
        outcome = SessionSummaryExecutor(fake_worker.client(), settings, registry=registry).run(
            payload
        )
        assert outcome.state is HookState.EMIT_RESPONSE
        snippet = context_snippet_path(workspace, settings.context_rule_name)
        assert "fresh context" in snippet.read_text(encoding="utf-8")

    def test_refresh_failure_still_continues(
        self, fake_worker, settings: Settings, registry: RegistryStore, workspace: Path
    ) -> None:
        registry.register("my-app", workspace)
        fake_worker.fail_paths.add("/context")
        payload = parse_payload(
            {"workspace_roots": [str(workspace)]}, LifecycleEvent.SESSION_STOP, HookHost.CURSOR
        )
        outcome = SessionSummaryExecutor(fake_worker.client(), settings, registry=registry).run(
            payload
        )
        assert outcome.state is HookState.EMIT_RESPONSE
        assert outcome.response is not None
        assert outcome.response.to_dict(HookHost.CURSOR) == {"continue": True}
        assert not context_snippet_path(workspace).exists()

    def test_summary_failure_degrades(self, fake_worker, settings: Settings) -> None:
        fake_worker.fail_paths.add("/summary")
        payload = parse_payload({}, LifecycleEvent.SESSION_STOP)
        outcome = SessionSummaryExecutor(fake_worker.client(), settings).run(payload)
        assert outcome.degraded
        assert outcome.response is not None
        assert outcome.response.to_dict() == {"continue": True}
