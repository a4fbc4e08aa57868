"""Catalog of the hooks memhooks ships.

One ``HookDefinition`` per hook: its script file stem, lifecycle event,
host-enforced timeout and behavioral class.  The installer, the manifest
generator, the dispatcher and the status reporter all read this table.
"""

from __future__ import annotations

from dataclasses import dataclass

from memhooks.hooks.models import LifecycleEvent

COMMON_SCRIPT_STEM = "common"


@dataclass(frozen=True)
class HookDefinition:
    """Static description of one hook."""

    name: str
    event: LifecycleEvent
    host_timeout: int
    blocking: bool
    description: str = ""

    def __post_init__(self) -> None:
        if self.host_timeout <= 0:
            raise ValueError(f"Hook {self.name!r} needs a positive host timeout")

    @property
    def script_stem(self) -> str:
        return self.name

    def script_name(self, extension: str) -> str:
        return f"{self.script_stem}{extension}"

    def internal_budget(self, margin: float) -> float:
        """Seconds the hook may spend on worker calls.

        Always strictly below ``host_timeout`` so the degraded response can
        be written before the host kills the process.  A margin that would
        leave no budget falls back to half the host timeout.
        """
        budget = self.host_timeout - margin
        if budget <= 0 or budget >= self.host_timeout:
            budget = self.host_timeout / 2
        return budget


HOOK_DEFINITIONS: tuple[HookDefinition, ...] = (
    HookDefinition(
        name="session-init",
        event=LifecycleEvent.PROMPT_SUBMIT,
        host_timeout=10,
        blocking=True,
        description="Registers the prompt with the worker; may block on policy",
    ),
    HookDefinition(
        name="context-inject",
        event=LifecycleEvent.SESSION_START,
        host_timeout=15,
        blocking=True,
        description="Fetches project context for the session",
    ),
    HookDefinition(
        name="user-message",
        event=LifecycleEvent.SESSION_START,
        host_timeout=15,
        blocking=True,
        description="Shows the loaded context to the user",
    ),
    HookDefinition(
        name="save-observation",
        event=LifecycleEvent.TOOL_USE,
        host_timeout=10,
        blocking=False,
        description="Captures tool and shell executions",
    ),
    HookDefinition(
        name="save-file-edit",
        event=LifecycleEvent.FILE_EDIT,
        host_timeout=10,
        blocking=False,
        description="Captures file edits",
    ),
    HookDefinition(
        name="session-summary",
        event=LifecycleEvent.SESSION_STOP,
        host_timeout=30,
        blocking=True,
        description="Requests a session summary and refreshes the context snippet",
    ),
)

HOOKS_BY_NAME: dict[str, HookDefinition] = {h.name: h for h in HOOK_DEFINITIONS}

# Every script file name the installer may create, for both platforms
KNOWN_SCRIPT_STEMS: tuple[str, ...] = (COMMON_SCRIPT_STEM,) + tuple(HOOKS_BY_NAME)


def get_hook(name: str) -> HookDefinition | None:
    return HOOKS_BY_NAME.get(name)
