"""Context injection at session start.

Claude Code receives the context as ``hookSpecificOutput.additionalContext``.
Cursor has no injection channel, so the context is written to the workspace's
rules snippet instead and the hook answers ``{"continue": true}``.
"""

from __future__ import annotations

from pathlib import Path

from memhooks.core.context_file import write_context_snippet
from memhooks.hooks.catalog import HOOKS_BY_NAME
from memhooks.hooks.executor import BlockingExecutor, Budget
from memhooks.hooks.models import HookHost, HookPayload, HookResponse


class ContextInjectExecutor(BlockingExecutor):
    definition = HOOKS_BY_NAME["context-inject"]

    def call_worker(self, payload: HookPayload, budget: Budget) -> HookResponse:
        context = self.client.fetch_context(
            payload.project,
            format=self.settings.context_format,
            timeout=budget.remaining(),
        )

        if payload.host is HookHost.CURSOR:
            if payload.workspace:
                write_context_snippet(
                    Path(payload.workspace),
                    context,
                    payload.project,
                    self.settings.context_rule_name,
                )
            return HookResponse(event=payload.event)

        return HookResponse(additional_context=context.strip(), event=payload.event)
