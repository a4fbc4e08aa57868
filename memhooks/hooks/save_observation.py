"""Fire-and-forget capture of tool executions (PostToolUse, afterMCPExecution,
afterShellExecution)."""

from __future__ import annotations

from typing import Any

from memhooks.hooks.catalog import HOOKS_BY_NAME
from memhooks.hooks.executor import Budget, FireAndForgetExecutor
from memhooks.hooks.hook_helpers import strip_private_tags, strip_private_values
from memhooks.hooks.models import HookPayload, ToolUsePayload

SKIP_TOOLS: frozenset[str] = frozenset(
    {
        "AskUserQuestion",
        "ListMcpResourcesTool",
        "SlashCommand",
        "Skill",
        "TodoWrite",
    }
)
"""Tools whose executions never carry anything worth remembering."""

MEMHOOKS_TOOL_PREFIX = "mcp__memhooks__"
"""Prefix of the memory MCP server's own tools (avoid recursive capture)."""


def should_skip_tool(tool_name: str) -> tuple[bool, str]:
    """Check whether a tool invocation should be skipped.

    Returns:
        ``(skip, reason)``.
    """
    if not tool_name:
        return True, "empty_tool_name"
    if tool_name in SKIP_TOOLS:
        return True, f"skip_tool:{tool_name}"
    if tool_name.startswith(MEMHOOKS_TOOL_PREFIX):
        return True, "memhooks_tool"
    return False, ""


def build_observation(payload: HookPayload, **fields: Any) -> dict[str, Any]:
    """Common observation envelope sent to ``POST /observations``."""
    return {
        "session_id": payload.session_id,
        "project": payload.project,
        "workspace": payload.workspace,
        "host": payload.host.value,
        "event": payload.event.value,
        **fields,
    }


class SaveObservationExecutor(FireAndForgetExecutor):
    definition = HOOKS_BY_NAME["save-observation"]

    def should_skip(self, payload: HookPayload) -> bool:
        if not isinstance(payload, ToolUsePayload):
            return True
        skip, _reason = should_skip_tool(payload.tool_name)
        return skip

    def capture(self, payload: HookPayload, budget: Budget) -> None:
        if not isinstance(payload, ToolUsePayload):
            return
        observation = build_observation(
            payload,
            tool_name=payload.tool_name,
            tool_input=strip_private_values(payload.tool_input),
            tool_response=strip_private_tags(payload.tool_response),
        )
        self.client.submit_observation(observation, timeout=budget.remaining())
