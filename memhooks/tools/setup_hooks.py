"""Generate hook manifests for Claude Code and Cursor.

Uses the **Strategy + Template Method** pattern to produce the manifest each
host expects.  The public API is the ``generate_hook_config()`` facade, used
by ``memhooks setup-hooks``; the installer reuses ``HookManifest`` and
``build_cursor_manifest()`` for the script-based Cursor install.

Supported hosts:

* **Claude Code**: plugin ``hooks.json`` calling ``python -m memhooks hook``
* **Cursor**: ``.cursor/hooks.json`` (schema version 1)
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from memhooks.core.platform import Invocation, PlatformResolver
from memhooks.hooks.catalog import HOOKS_BY_NAME, HookDefinition

MANIFEST_VERSION = 1
MANIFEST_FILE_NAME = "hooks.json"

# =============================================================================
# Manifest model
# =============================================================================


class HookCommand(BaseModel):
    """One command the host runs for an event.

    Written as ``{"command": ..., "timeoutSeconds": ...}``; ``timeout`` is
    accepted on read.  Entries added by hand may omit the timeout, and any
    other keys they carry are kept.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    command: str
    timeout: int | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("timeoutSeconds", "timeout"),
        serialization_alias="timeoutSeconds",
    )


class HookManifest(BaseModel):
    """Cursor ``hooks.json``: schema version plus event -> commands."""

    model_config = ConfigDict(extra="allow")

    version: int = MANIFEST_VERSION
    hooks: dict[str, list[HookCommand]] = Field(default_factory=dict)

    @property
    def events(self) -> list[str]:
        return list(self.hooks)

    def commands(self) -> list[str]:
        return [c.command for entries in self.hooks.values() for c in entries]

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def without_commands(self, commands: set[str]) -> HookManifest:
        """Copy with *commands* removed; events left empty are dropped."""
        hooks: dict[str, list[HookCommand]] = {}
        for event, entries in self.hooks.items():
            kept = [entry for entry in entries if entry.command not in commands]
            if kept:
                hooks[event] = kept
        return self.model_copy(update={"hooks": hooks})

    def merged_with(self, other: HookManifest) -> HookManifest:
        """Copy with *other*'s entries appended after this manifest's own."""
        hooks = {event: list(entries) for event, entries in self.hooks.items()}
        for event, entries in other.hooks.items():
            hooks.setdefault(event, []).extend(entries)
        return self.model_copy(update={"hooks": hooks})

    @classmethod
    def parse(cls, data: object) -> HookManifest | None:
        """Validate raw JSON; ``None`` if it is not a manifest."""
        if not isinstance(data, dict):
            return None
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None


# Event -> hooks, in the order the host should run them
CURSOR_EVENT_HOOKS: dict[str, tuple[str, ...]] = {
    "beforeSubmitPrompt": ("session-init", "context-inject"),
    "afterMCPExecution": ("save-observation",),
    "afterShellExecution": ("save-observation",),
    "afterFileEdit": ("save-file-edit",),
    "stop": ("session-summary",),
}

# Hooks the Cursor manifest references, in first-use order
CURSOR_HOOK_NAMES: tuple[str, ...] = tuple(
    dict.fromkeys(name for names in CURSOR_EVENT_HOOKS.values() for name in names)
)

CLAUDE_EVENT_HOOKS: dict[str, tuple[str, ...]] = {
    "SessionStart": ("context-inject", "user-message"),
    "UserPromptSubmit": ("session-init",),
    "PostToolUse": ("save-observation",),
    "Stop": ("session-summary",),
}

_CLAUDE_MATCHERS: dict[str, str] = {
    "SessionStart": "startup|resume|clear|compact",
}


def build_cursor_manifest(
    command_for: Callable[[HookDefinition], str | None],
) -> HookManifest:
    """Build the Cursor manifest from a per-hook command function.

    *command_for* returns ``None`` for hooks that are not available (for
    example a script missing from the install source); those hooks are left
    out, and events left with no hooks are dropped.
    """
    hooks: dict[str, list[HookCommand]] = {}
    for event, names in CURSOR_EVENT_HOOKS.items():
        entries = []
        for name in names:
            definition = HOOKS_BY_NAME[name]
            command = command_for(definition)
            if command is not None:
                entries.append(HookCommand(command=command, timeout=definition.host_timeout))
        if entries:
            hooks[event] = entries
    return HookManifest(version=MANIFEST_VERSION, hooks=hooks)


# =============================================================================
# Host capabilities
# =============================================================================


@dataclass(frozen=True)
class HostCapabilities:
    """Declares what a host supports."""

    hooks: bool
    context_injection: bool
    rules: bool
    hook_format: str  # "claude-code", "cursor-native"


# =============================================================================
# Strategy ABC (Template Method)
# =============================================================================


class HostConfigStrategy(ABC):
    """Base class for per-host manifest generation.

    Subclasses implement the two abstract hooks.  ``generate()`` assembles
    the overall response shape.
    """

    name: str
    capabilities: HostCapabilities

    def __init__(self, python: str, resolver: PlatformResolver) -> None:
        self.python = python
        self.resolver = resolver

    def hook_command(self, definition: HookDefinition) -> str:
        """Command line that runs *definition* through the Python dispatcher."""
        invocation = Invocation(
            self.python,
            ("-m", "memhooks", "hook", definition.name, "--host", self.name),
        )
        return self.resolver.render_command(invocation)

    def generate(self) -> dict[str, Any]:
        """Template method: assembles the full response dict.

        Returns:
            Config dict with ``host``, ``hooks``, ``instructions``,
            ``paths``, and ``capabilities``.
        """
        return {
            "host": self.name,
            "paths": {"python": self.python},
            "capabilities": {
                "hooks": self.capabilities.hooks,
                "context_injection": self.capabilities.context_injection,
                "rules": self.capabilities.rules,
                "hook_format": self.capabilities.hook_format,
            },
            "hooks": self.build_hooks(),
            "instructions": self.build_instructions(),
        }

    @abstractmethod
    def build_hooks(self) -> dict[str, Any]:
        """Build the host's hooks config."""

    @abstractmethod
    def build_instructions(self) -> str:
        """Build human-readable setup instructions."""


# =============================================================================
# Claude Code (plugin hooks)
# =============================================================================


class ClaudeCodeStrategy(HostConfigStrategy):
    name = "claude-code"
    capabilities = HostCapabilities(
        hooks=True,
        context_injection=True,
        rules=False,
        hook_format="claude-code",
    )

    def build_hooks(self) -> dict[str, Any]:
        hooks: dict[str, list[dict[str, Any]]] = {}
        for event, names in CLAUDE_EVENT_HOOKS.items():
            group: dict[str, Any] = {}
            if event in _CLAUDE_MATCHERS:
                group["matcher"] = _CLAUDE_MATCHERS[event]
            group["hooks"] = [
                {
                    "type": "command",
                    "command": self.hook_command(HOOKS_BY_NAME[name]),
                    "timeout": HOOKS_BY_NAME[name].host_timeout,
                }
                for name in names
            ]
            hooks[event] = [group]
        return {"hooks": hooks}

    def build_instructions(self) -> str:
        return (
            "Save the 'hooks' config as hooks/hooks.json in your plugin, or merge "
            "its 'hooks' key into .claude/settings.json."
        )


# =============================================================================
# Cursor (native hooks.json)
# =============================================================================


class CursorStrategy(HostConfigStrategy):
    name = "cursor"
    capabilities = HostCapabilities(
        hooks=True,
        context_injection=False,
        rules=True,
        hook_format="cursor-native",
    )

    def build_hooks(self) -> dict[str, Any]:
        return build_cursor_manifest(self.hook_command).to_json()

    def build_instructions(self) -> str:
        return (
            "Save the 'hooks' config to .cursor/hooks.json, or let memhooks install "
            "the hook scripts for you:\n\n"
            "  memhooks install project   # this workspace\n"
            "  memhooks install user      # every workspace"
        )


# =============================================================================
# Registry + alias resolution
# =============================================================================

_STRATEGY_REGISTRY: dict[str, type[HostConfigStrategy]] = {
    "claude-code": ClaudeCodeStrategy,
    "cursor": CursorStrategy,
}

_HOST_ALIASES: dict[str, str] = {
    "claude": "claude-code",
    "claudecode": "claude-code",
}

SUPPORTED_HOSTS: tuple[str, ...] = tuple(_STRATEGY_REGISTRY.keys())


def _resolve_host_name(host: str) -> str:
    """Resolve a host name or alias to a canonical name.

    Raises:
        ValueError: If the host is unknown.
    """
    normalized = host.lower().strip()
    if normalized in _STRATEGY_REGISTRY:
        return normalized
    if normalized in _HOST_ALIASES:
        return _HOST_ALIASES[normalized]
    raise ValueError(f"Unknown host: {host!r}. Supported hosts: {', '.join(SUPPORTED_HOSTS)}")


# =============================================================================
# Public facade
# =============================================================================


def generate_hook_config(
    *,
    host: str = "claude-code",
    python_path: str = "",
    resolver: PlatformResolver | None = None,
) -> dict[str, Any]:
    """Generate hook configuration for the specified host.

    Args:
        host: Target host name or alias.
        python_path: Python interpreter path. Defaults to ``sys.executable``.
        resolver: Platform resolver used to render command lines.

    Returns:
        Dict with ``host``, ``hooks``, ``instructions``, ``paths``, and
        ``capabilities``.

    Raises:
        ValueError: If the host name is unknown.
    """
    canonical = _resolve_host_name(host)
    strategy_cls = _STRATEGY_REGISTRY[canonical]
    strategy = strategy_cls(
        python=python_path or sys.executable,
        resolver=resolver or PlatformResolver(),
    )
    return strategy.generate()
