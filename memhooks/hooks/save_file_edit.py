"""Fire-and-forget capture of file edits (afterFileEdit)."""

from __future__ import annotations

from memhooks.hooks.catalog import HOOKS_BY_NAME
from memhooks.hooks.executor import Budget, FireAndForgetExecutor
from memhooks.hooks.hook_helpers import strip_private_values
from memhooks.hooks.models import FileEditPayload, HookPayload
from memhooks.hooks.save_observation import build_observation

FILE_EDIT_TOOL_NAME = "FileEdit"


class SaveFileEditExecutor(FireAndForgetExecutor):
    definition = HOOKS_BY_NAME["save-file-edit"]

    def should_skip(self, payload: HookPayload) -> bool:
        return not isinstance(payload, FileEditPayload) or not payload.file_path

    def capture(self, payload: HookPayload, budget: Budget) -> None:
        if not isinstance(payload, FileEditPayload):
            return
        observation = build_observation(
            payload,
            tool_name=FILE_EDIT_TOOL_NAME,
            tool_input={
                "file_path": payload.file_path,
                "edits": strip_private_values(list(payload.edits)),
            },
            tool_response="",
        )
        self.client.submit_observation(observation, timeout=budget.remaining())
