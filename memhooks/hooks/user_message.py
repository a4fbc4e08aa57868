"""Informational display of the loaded context (Claude Code SessionStart).

Runs alongside ``context-inject`` with no ordering between the two; both only
read from the worker.  The text goes to the user through ``systemMessage``
and never blocks the session.
"""

from __future__ import annotations

from memhooks.hooks.catalog import HOOKS_BY_NAME
from memhooks.hooks.executor import BlockingExecutor, Budget
from memhooks.hooks.models import HookHost, HookPayload, HookResponse

PRIVATE_TIP = (
    "Tip: wrap any part of a message in <private> ... </private> to keep it "
    "out of your memory history."
)


def format_user_message(context: str, worker_url: str = "") -> str:
    lines = ["Memory context loaded", "", context.strip(), "", PRIVATE_TIP]
    if worker_url:
        lines.append(f"Worker: {worker_url}")
    return "\n".join(lines)


class UserMessageExecutor(BlockingExecutor):
    definition = HOOKS_BY_NAME["user-message"]

    def should_skip(self, payload: HookPayload) -> bool:
        return payload.host is not HookHost.CLAUDE_CODE

    def call_worker(self, payload: HookPayload, budget: Budget) -> HookResponse:
        context = self.client.fetch_context(
            payload.project,
            format=self.settings.context_format,
            timeout=budget.remaining(),
        )
        if not context.strip():
            return HookResponse(event=payload.event)
        return HookResponse(
            system_message=format_user_message(context, self.settings.worker_url),
            event=payload.event,
        )
