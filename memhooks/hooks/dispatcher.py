"""Unified dispatcher for all hook processes.

Routes ``memhooks hook <name> [--host <host>]`` to the matching executor.
Hook names are the catalog names (``session-init``, ``context-inject``, ...);
the host decides the response format.

CLI usage::

    echo '{"prompt":"hi"}' | python -m memhooks hook session-init --host cursor
    echo '{"tool_name":"Bash",...}' | memhooks hook save-observation

All exceptions are caught.  Exit code is always 0; blocking hooks always
print a JSON response, fire-and-forget hooks never print anything.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

from memhooks.config import Settings, load_settings
from memhooks.core.errors import ConfigurationError
from memhooks.core.logging import configure_hook_logging
from memhooks.core.worker_client import WorkerClient
from memhooks.hooks.catalog import HOOK_DEFINITIONS, get_hook
from memhooks.hooks.context_inject import ContextInjectExecutor
from memhooks.hooks.executor import HookExecutor
from memhooks.hooks.hook_helpers import read_stdin, write_response
from memhooks.hooks.models import HookExitCode, HookHost, HookResponse, parse_payload
from memhooks.hooks.save_file_edit import SaveFileEditExecutor
from memhooks.hooks.save_observation import SaveObservationExecutor
from memhooks.hooks.session_init import SessionInitExecutor
from memhooks.hooks.session_summary import SessionSummaryExecutor
from memhooks.hooks.user_message import UserMessageExecutor

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Executor registry
# ---------------------------------------------------------------------------

EXECUTORS: dict[str, type[HookExecutor]] = {
    cls.definition.name: cls
    for cls in (
        SessionInitExecutor,
        ContextInjectExecutor,
        UserMessageExecutor,
        SaveObservationExecutor,
        SaveFileEditExecutor,
        SessionSummaryExecutor,
    )
}

_USAGE = (
    "Usage: memhooks hook <name> [--host <claude-code|cursor>]\n"
    "Hooks: " + ", ".join(h.name for h in HOOK_DEFINITIONS)
)


# ---------------------------------------------------------------------------
# Primary dispatch function (testable surface)
# ---------------------------------------------------------------------------


def run_hook(
    name: str,
    host: str = "claude-code",
    *,
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
    settings: Settings | None = None,
    client: WorkerClient | None = None,
) -> int:
    """Run one hook invocation end to end.

    Args:
        name: Catalog hook name.
        host: Host that spawned the hook.
        stdin: Payload stream (default ``sys.stdin``).
        stdout: Response stream (default ``sys.stdout``).
        settings: Loaded settings; loaded from the environment if omitted.
        client: Worker client; built from *settings* if omitted.

    Returns:
        Always ``HookExitCode.SUCCESS``.
    """
    definition = get_hook(name)
    if definition is None:
        logger.warning(f"Unknown hook: {name!r}")
        return HookExitCode.SUCCESS

    host_enum = HookHost.parse(host)
    response: HookResponse | None
    try:
        settings = settings or load_settings()
        payload = parse_payload(read_stdin(stdin), definition.event, host_enum)
        executor = EXECUTORS[definition.name](
            client or WorkerClient.from_settings(settings),
            settings,
        )
        outcome = executor.run(payload)
        logger.debug(f"{name}: {' -> '.join(s.value for s in outcome.trace)}")
        response = outcome.response
    except Exception:
        logger.exception(f"{name}: unexpected failure")
        response = HookResponse(continue_=True) if definition.blocking else None

    if definition.blocking and response is None:
        response = HookResponse(continue_=True)

    if response is not None:
        try:
            write_response(response.to_dict(host_enum), stdout)
        except (OSError, ValueError) as e:
            logger.warning(f"{name}: could not write response: {e}")
    return HookExitCode.SUCCESS


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _parse_host_flag(argv: list[str]) -> str:
    """Extract --host value from argv, default to claude-code."""
    for i, arg in enumerate(argv):
        if arg in ("--host", "--client") and i + 1 < len(argv):
            return argv[i + 1]
    return "claude-code"


def _load_settings_for_hook() -> Settings:
    try:
        return load_settings()
    except ConfigurationError:
        # Defaults only; the hook still answers.
        return Settings.model_construct()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``memhooks hook <name> [--host <host>]``.

    Reads stdin, runs the hook, writes the response.  Always returns 0.
    """
    args = list(sys.argv[1:] if argv is None else argv)

    # Hand-parse args (no argparse; startup time matters)
    if not args or args[0] in ("--help", "-h"):
        print(_USAGE)
        return HookExitCode.SUCCESS

    name = args[0]
    host = _parse_host_flag(args)

    try:
        settings = _load_settings_for_hook()
        configure_hook_logging(settings.log_dir, settings.log_level, settings.log_json)
    except Exception:
        settings = None

    return run_hook(name, host, settings=settings)


if __name__ == "__main__":
    sys.exit(main())
