"""Entry point for the memhooks CLI and hook processes."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

logger = logging.getLogger(__name__)


def _configure_cli_logging(verbose: bool) -> None:
    from memhooks.config import load_settings
    from memhooks.core.errors import ConfigurationError
    from memhooks.core.logging import configure_logging

    try:
        settings = load_settings()
        level, json_format = settings.log_level, settings.log_json
    except ConfigurationError:
        level, json_format = "WARNING", False
    configure_logging(level="DEBUG" if verbose else level, json_format=json_format)


def run_version() -> None:
    """Print version information."""
    from memhooks import __version__

    print(f"memhooks {__version__}")


def run_install(args: argparse.Namespace) -> int:
    """Install the hook scripts for a scope.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    from memhooks.tools.installer import install_hooks

    source = Path(args.source).expanduser() if args.source else None
    return install_hooks(source, args.scope)


def run_uninstall(args: argparse.Namespace) -> int:
    """Remove the hook scripts of a scope."""
    from memhooks.tools.installer import uninstall_hooks

    return uninstall_hooks(args.scope)


def run_status(args: argparse.Namespace) -> int:
    from memhooks.tools.status import check_hooks_status

    return check_hooks_status()


def run_refresh_context(args: argparse.Namespace) -> int:
    from memhooks.tools.installer import run_refresh_context as refresh

    return refresh(args.project)


def run_configure_mcp(args: argparse.Namespace) -> int:
    from memhooks.tools.installer import configure_mcp

    return configure_mcp(args.scope)


def run_setup_hooks(args: argparse.Namespace) -> int:
    """Generate hook configuration for a host.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    from memhooks.tools.setup_hooks import generate_hook_config

    try:
        config = generate_hook_config(host=args.host, python_path=args.python_path or "")
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.output:
        from memhooks.core.filesystem import write_json_atomic

        output = Path(args.output).expanduser()
        try:
            write_json_atomic(output, config["hooks"])
        except OSError as e:
            print(f"Error: could not write {output}: {e}")
            return 1
        print(f"Wrote {config['host']} hooks config to {output}")
        return 0

    if args.json:
        print(json.dumps(config, indent=2))
        return 0

    print("memhooks - Hook Configuration")
    print(f"Host: {config['host']}")
    print(f"Python: {config['paths']['python']}")
    print()
    print("Hooks config:")
    print(json.dumps(config["hooks"], indent=2))
    print()
    print(config.get("instructions", ""))
    return 0


def _dispatch_hook() -> int:
    """Run ``memhooks hook ...``; called when ``sys.argv[1] == "hook"``."""
    from memhooks.hooks.dispatcher import main as hook_main

    return hook_main(sys.argv[2:])


def build_parser() -> argparse.ArgumentParser:
    from memhooks.hooks.catalog import HOOK_DEFINITIONS
    from memhooks.tools.setup_hooks import SUPPORTED_HOSTS

    scopes = ["project", "user", "enterprise"]

    parser = argparse.ArgumentParser(
        prog="memhooks",
        description="Install and run memory-worker hooks for Claude Code and Cursor",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    # Install command
    install_parser = subparsers.add_parser(
        "install",
        help="Install Cursor hook scripts and manifest",
    )
    install_parser.add_argument(
        "scope",
        nargs="?",
        default="project",
        help="Install scope: project (default), user or enterprise",
    )
    install_parser.add_argument(
        "--source",
        default=None,
        metavar="DIR",
        help="Directory with hook script sources (default: bundled scripts)",
    )

    # Uninstall command
    uninstall_parser = subparsers.add_parser(
        "uninstall",
        help="Remove installed hook scripts and manifest",
    )
    uninstall_parser.add_argument(
        "scope",
        nargs="?",
        default="project",
        help="Scope to remove: project (default), user or enterprise",
    )

    # Status command
    subparsers.add_parser(
        "status",
        help="Show installation, worker and registry status",
    )

    # Refresh-context command
    refresh_parser = subparsers.add_parser(
        "refresh-context",
        help="Rewrite the context snippet of a registered project",
    )
    refresh_parser.add_argument("project", help="Registered project name")

    # Configure-mcp command
    mcp_parser = subparsers.add_parser(
        "configure-mcp",
        help="Add the memory MCP server to <scope>/mcp.json",
    )
    mcp_parser.add_argument(
        "scope",
        nargs="?",
        default="project",
        help="Scope: project (default), user or enterprise",
    )

    # Setup-hooks command
    setup_hooks_parser = subparsers.add_parser(
        "setup-hooks",
        help="Print hook configuration for a host",
    )
    setup_hooks_parser.add_argument(
        "--host",
        "--client",
        dest="host",
        default="claude-code",
        choices=list(SUPPORTED_HOSTS),
        help="Target host (default: claude-code)",
    )
    setup_hooks_parser.add_argument(
        "--python-path",
        default="",
        help="Python interpreter path (default: auto-detect)",
    )
    setup_hooks_parser.add_argument(
        "--json",
        action="store_true",
        help="Output raw JSON only (for piping)",
    )
    setup_hooks_parser.add_argument(
        "--output",
        default=None,
        metavar="FILE",
        help="Write the hooks config to FILE instead of printing it",
    )

    # Hook command (handled by the fast path; listed for --help)
    hook_parser = subparsers.add_parser(
        "hook",
        help="Run one hook (reads the host payload from stdin)",
    )
    hook_parser.add_argument("name", choices=[h.name for h in HOOK_DEFINITIONS])
    hook_parser.add_argument("--host", default="claude-code")

    return parser


_COMMANDS = {
    "install": run_install,
    "uninstall": run_uninstall,
    "status": run_status,
    "refresh-context": run_refresh_context,
    "configure-mcp": run_configure_mcp,
    "setup-hooks": run_setup_hooks,
}


def main() -> NoReturn:
    """Main entry point with subcommand support."""
    # Fast-path: bypass argparse entirely for hook dispatch
    if len(sys.argv) >= 2 and sys.argv[1] == "hook":
        try:
            _dispatch_hook()
        except Exception:
            pass  # Fail-open
        sys.exit(0)

    parser = build_parser()
    args = parser.parse_args()

    if args.version:
        run_version()
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_cli_logging(args.verbose)
    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)
    sys.exit(handler(args))


if __name__ == "__main__":
    main()
