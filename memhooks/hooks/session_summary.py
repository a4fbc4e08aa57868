"""Session summary on Stop.

Asks the worker to summarize the session, then refreshes the Cursor context
snippet if the project is registered.  Always answers ``{"continue": true}``;
a Stop hook that re-fires because of its own output is skipped.
"""

from __future__ import annotations

import logging

from memhooks.core.context_file import refresh_registered_context
from memhooks.core.errors import WorkerError
from memhooks.hooks.catalog import HOOKS_BY_NAME
from memhooks.hooks.executor import BlockingExecutor, Budget
from memhooks.hooks.models import HookPayload, HookResponse, SessionStopPayload

logger = logging.getLogger(__name__)


class SessionSummaryExecutor(BlockingExecutor):
    definition = HOOKS_BY_NAME["session-summary"]

    def should_skip(self, payload: HookPayload) -> bool:
        # Loop guard
        return isinstance(payload, SessionStopPayload) and payload.stop_hook_active

    def call_worker(self, payload: HookPayload, budget: Budget) -> HookResponse:
        summary = self.client.request_summary(
            payload.session_id,
            payload.project,
            timeout=budget.remaining(),
        )
        if summary is None:
            logger.debug(f"Nothing to summarize for session {payload.session_id!r}")

        try:
            refresh_registered_context(
                payload.project,
                client=self.client,
                registry=self.registry,
                rule_name=self.settings.context_rule_name,
                format=self.settings.context_format,
                timeout=budget.remaining(),
            )
        except (WorkerError, OSError) as e:
            logger.warning(f"Context refresh for {payload.project!r} failed: {e}")

        return HookResponse(event=payload.event)
