"""Initial prompt gate (UserPromptSubmit / beforeSubmitPrompt).

Registers each prompt with the worker.  The worker may answer with a policy
decision ``{"decision": "block", "reason": "..."}``; that is the only way this
hook denies continuation.  Prompts made entirely of ``<private>`` content are
never sent.
"""

from __future__ import annotations

import logging

from memhooks.hooks.catalog import HOOKS_BY_NAME
from memhooks.hooks.executor import BlockingExecutor, Budget
from memhooks.hooks.hook_helpers import strip_private_tags
from memhooks.hooks.models import HookPayload, HookResponse, PromptSubmitPayload

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_REASON = "This prompt was blocked by the memory worker's policy."


def _visible_prompt(payload: HookPayload) -> str:
    if not isinstance(payload, PromptSubmitPayload):
        return ""
    return strip_private_tags(payload.prompt)


class SessionInitExecutor(BlockingExecutor):
    definition = HOOKS_BY_NAME["session-init"]

    def should_skip(self, payload: HookPayload) -> bool:
        return not _visible_prompt(payload)

    def call_worker(self, payload: HookPayload, budget: Budget) -> HookResponse:
        result = self.client.init_session(
            payload.session_id,
            payload.project,
            _visible_prompt(payload),
            timeout=budget.remaining(),
        )
        if result.get("decision") == "block":
            reason = str(result.get("reason") or DEFAULT_BLOCK_REASON)
            logger.info(f"Prompt blocked by worker policy: {reason}")
            return HookResponse(continue_=False, user_message=reason, event=payload.event)
        return HookResponse(event=payload.event)
