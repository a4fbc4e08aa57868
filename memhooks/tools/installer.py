"""Install and uninstall memhooks hook scripts for Cursor.

Creates, for a scope's target directory (``.cursor`` in the workspace, in the
home directory, or the system-wide enterprise location)::

    <target>/hooks.json              manifest (schema version 1)
    <target>/hooks/common.sh         shared helpers (.ps1 on Windows)
    <target>/hooks/<hook>.sh         one script per hook

and, for project scope only, the context snippet in ``.cursor/rules/`` plus an
entry in the project registry.  An existing ``hooks.json`` is merged rather
than replaced, and any file install would change is first copied to
``<name>.memhooks-backup`` so uninstall can put it back.

Usage::

    memhooks install project        # this workspace
    memhooks install user           # ~/.cursor
    memhooks uninstall project
    memhooks refresh-context my-app
    memhooks configure-mcp project

Every public function returns an exit code and prints human-readable
progress; none of them raise.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
from pathlib import Path
from typing import Any

from memhooks.config import Settings, load_settings
from memhooks.core.context_file import (
    PLACEHOLDER_CONTEXT,
    context_snippet_path,
    refresh_registered_context,
    write_context_snippet,
)
from memhooks.core.errors import InvalidScopeError, UnsupportedPlatformError, WorkerError
from memhooks.core.filesystem import (
    backup_path,
    preserve_original,
    read_json_tolerant,
    remove_dir_if_empty,
    remove_file,
    restore_original,
    write_json_atomic,
    write_text_atomic,
)
from memhooks.core.messages import user_friendly_error, worker_restart_instructions
from memhooks.core.platform import HOOKS_DIR_NAME, InstallScope, PlatformResolver
from memhooks.core.registry import RegistryStore
from memhooks.core.worker_client import WorkerClient
from memhooks.hooks.catalog import COMMON_SCRIPT_STEM, KNOWN_SCRIPT_STEMS, HookDefinition
from memhooks.hooks.hook_helpers import get_project_name
from memhooks.tools.setup_hooks import (
    CURSOR_HOOK_NAMES,
    MANIFEST_FILE_NAME,
    HookManifest,
    build_cursor_manifest,
)

logger = logging.getLogger(__name__)

PYTHON_PLACEHOLDER = "@MEMHOOKS_PYTHON@"
SCRIPT_EXTENSIONS = (".sh", ".ps1")
MCP_FILE_NAME = "mcp.json"
MCP_SERVER_NAME = "memhooks"

# Scripts copied by install; uninstall removes every known stem
INSTALLED_SCRIPT_STEMS: tuple[str, ...] = (COMMON_SCRIPT_STEM,) + CURSOR_HOOK_NAMES


def default_source_dir() -> Path:
    """The hook scripts shipped inside the package."""
    return Path(str(importlib.resources.files("memhooks") / "hook_scripts"))


# ---------------------------------------------------------------------------
# Target resolution
# ---------------------------------------------------------------------------


def _resolve_target(
    scope: InstallScope | str,
    resolver: PlatformResolver,
    cwd: Path | None,
    home: Path | None,
) -> tuple[InstallScope, Path]:
    """Parse *scope* and resolve its target directory.

    Raises:
        InvalidScopeError: If the scope is not recognized.
        UnsupportedPlatformError: If the scope has no target on this OS.
    """
    parsed = InstallScope.parse(scope)
    if parsed is None:
        raise InvalidScopeError(str(scope))
    target = resolver.target_dir(parsed, cwd=cwd, home=home)
    if target is None:
        raise UnsupportedPlatformError(parsed.value, resolver.sys_platform)
    return parsed, target


# ---------------------------------------------------------------------------
# JSON merge helper
# ---------------------------------------------------------------------------


def _merge_json(existing_path: Path, new_data: dict[str, Any], key: str) -> dict[str, Any]:
    """Read existing JSON, merge new data under key, return merged dict.

    If the file doesn't exist, returns *new_data*.
    If the file has invalid JSON, raises ``ValueError``.
    """
    if not existing_path.exists():
        return new_data

    raw = existing_path.read_text(encoding="utf-8").strip()
    if not raw:
        return new_data

    try:
        existing = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {existing_path}: {e}\nFix the file manually.") from e

    if not isinstance(existing, dict):
        raise ValueError(f"Expected JSON object in {existing_path}, got {type(existing).__name__}")

    # New data takes precedence for keys under the merge key
    if key in existing and isinstance(existing[key], dict) and key in new_data:
        existing[key].update(new_data[key])
    else:
        existing.update(new_data)

    return existing


# ---------------------------------------------------------------------------
# Install
# ---------------------------------------------------------------------------


def _script_command(
    scope: InstallScope,
    hooks_dir: Path,
    resolver: PlatformResolver,
    filename: str,
) -> str:
    """Manifest command for one installed script."""
    if scope is InstallScope.PROJECT:
        script = resolver.relative_script_path(filename)
    else:
        script = str(hooks_dir / filename)
    return resolver.render_command(resolver.script_invocation(script))


def _own_commands(scope: InstallScope, hooks_dir: Path, resolver: PlatformResolver) -> set[str]:
    """Every manifest command memhooks could have written for *scope*."""
    return {
        _script_command(scope, hooks_dir, resolver, stem + resolver.script_extension)
        for stem in KNOWN_SCRIPT_STEMS
    }


def _preserve(path: Path) -> None:
    if preserve_original(path):
        print(f"  Backed up existing {path} to {backup_path(path).name}")


def _install_script(
    source: Path,
    dest: Path,
    settings: Settings,
    resolver: PlatformResolver,
    keep_foreign: bool,
) -> None:
    """Copy one script, baking the interpreter path into it.

    With *keep_foreign*, a different file already at *dest* is backed up
    first so uninstall can put it back.
    """
    text = source.read_text(encoding="utf-8")
    python = resolver.quote_script_literal(settings.hook_python, source.suffix)
    text = text.replace(PYTHON_PLACEHOLDER, python)
    if keep_foreign and dest.is_file() and dest.read_bytes() != text.encode("utf-8"):
        _preserve(dest)
    mode = None if resolver.is_windows else 0o755
    write_text_atomic(dest, text, mode=mode)


def _merge_manifest(
    manifest_path: Path,
    ours: HookManifest,
    own_commands: set[str],
) -> HookManifest:
    """Combine *ours* with whatever manifest is already at *manifest_path*.

    Entries that are not ours keep their place; our previous entries are
    replaced.  A manifest we did not write is backed up before the first
    change, and one that cannot be parsed is backed up and replaced.
    """
    if not manifest_path.exists():
        return ours

    existing = HookManifest.parse(read_json_tolerant(manifest_path))
    if existing is None:
        logger.warning(f"Replacing unreadable manifest {manifest_path}")
        _preserve(manifest_path)
        return ours

    if own_commands.isdisjoint(existing.commands()):
        _preserve(manifest_path)
    return existing.without_commands(own_commands).merged_with(ours)


def _installed_before(manifest_path: Path, own_commands: set[str]) -> bool:
    existing = HookManifest.parse(read_json_tolerant(manifest_path))
    return existing is not None and not own_commands.isdisjoint(existing.commands())


def _fetch_initial_context(client: WorkerClient, project: str, settings: Settings) -> str:
    try:
        return client.fetch_context(project, format=settings.context_format)
    except WorkerError as e:
        logger.warning(f"Initial context fetch for {project!r} failed: {e}")
        print("  WARNING: could not fetch context from the worker; wrote a placeholder.")
        print(
            "\n".join(
                "    " + line
                for line in worker_restart_instructions(
                    settings.worker_port, actual_error=str(e)
                ).splitlines()
            )
        )
        return PLACEHOLDER_CONTEXT


def _install(
    source_dir: Path | None,
    scope: InstallScope | str,
    settings: Settings,
    client: WorkerClient | None,
    resolver: PlatformResolver,
    registry: RegistryStore | None,
    cwd: Path | None,
    home: Path | None,
) -> int:
    try:
        parsed, target = _resolve_target(scope, resolver, cwd, home)
    except (InvalidScopeError, UnsupportedPlatformError) as e:
        print(f"ERROR: {e}")
        return 1

    source = source_dir or default_source_dir()
    hooks_dir = target / HOOKS_DIR_NAME
    ext = resolver.script_extension

    print(f"memhooks - Install ({parsed.value} scope)")
    print(f"  Target: {target}")

    manifest_path = target / MANIFEST_FILE_NAME
    own_commands = _own_commands(parsed, hooks_dir, resolver)
    # Files found on a fresh install belong to the user
    keep_foreign = not _installed_before(manifest_path, own_commands)

    # 1. Scripts
    installed: set[str] = set()
    for stem in INSTALLED_SCRIPT_STEMS:
        filename = stem + ext
        src = source / filename
        if not src.is_file():
            logger.warning(f"Hook script {filename} not found in {source}")
            print(f"  WARNING: {filename} not found in {source}; skipping")
            continue
        _install_script(src, hooks_dir / filename, settings, resolver, keep_foreign)
        installed.add(stem)
        print(f"  Installed {hooks_dir / filename}")

    # 2. Manifest, referencing only the scripts that were installed
    def command_for(definition: HookDefinition) -> str | None:
        if definition.script_stem not in installed:
            return None
        return _script_command(parsed, hooks_dir, resolver, definition.script_name(ext))

    ours = build_cursor_manifest(command_for)
    manifest = _merge_manifest(manifest_path, ours, own_commands)
    write_json_atomic(manifest_path, manifest.to_json())
    print(f"  Wrote {manifest_path} ({len(ours.events)} events)")

    # 3. Project scope: context snippet + registry
    if parsed is InstallScope.PROJECT:
        workspace = target.parent
        project = get_project_name(str(workspace))
        client = client or WorkerClient.from_settings(settings)
        registry = registry or RegistryStore(settings.registry_path)

        context = _fetch_initial_context(client, project, settings)
        snippet = write_context_snippet(workspace, context, project, settings.context_rule_name)
        print(f"  Wrote {snippet}")

        registry.register(project, workspace)
        print(f"  Registered project {project!r}")

    print("\nDone. Restart Cursor to activate the hooks.")
    return 0


def install_hooks(
    source_dir: Path | None = None,
    scope: InstallScope | str = InstallScope.PROJECT,
    *,
    settings: Settings | None = None,
    client: WorkerClient | None = None,
    resolver: PlatformResolver | None = None,
    registry: RegistryStore | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> int:
    """Install hook scripts, manifest and (project scope) context snippet.

    Args:
        source_dir: Directory holding the hook script sources. Defaults to
            the scripts shipped with the package.
        scope: ``project``, ``user`` or ``enterprise``.
        settings: Loaded settings; loaded from the environment if omitted.
        client: Worker client used for the initial context fetch.
        resolver: Platform resolver (current platform if omitted).
        registry: Project registry (``settings.registry_path`` if omitted).
        cwd: Workspace for project scope (current directory if omitted).
        home: Home directory for user scope.

    Returns:
        Exit code (0 success, 1 error).
    """
    try:
        return _install(
            source_dir,
            scope,
            settings or load_settings(),
            client,
            resolver or PlatformResolver(),
            registry,
            cwd,
            home,
        )
    except Exception as e:
        logger.debug("Install failed", exc_info=True)
        print(f"ERROR: {user_friendly_error(e, 'Installation failed')}")
        return 1


# ---------------------------------------------------------------------------
# Uninstall
# ---------------------------------------------------------------------------


def _uninstall_manifest(manifest_path: Path, own_commands: set[str]) -> bool:
    """Take our commands out of the manifest, keeping everyone else's.

    The pre-install backup is moved back when nothing else changed since,
    so the original bytes return untouched.

    Returns:
        ``True`` if the manifest was changed, restored or removed.
    """
    backup = backup_path(manifest_path)
    current = HookManifest.parse(read_json_tolerant(manifest_path))
    if current is None:
        if restore_original(manifest_path):
            print(f"  Restored original {manifest_path}")
            return True
        if manifest_path.exists():
            logger.warning(f"Leaving unreadable manifest {manifest_path}")
            print(f"  Left {manifest_path} in place (not a hooks manifest)")
        return False

    remaining = current.without_commands(own_commands)
    if remaining.to_json() == current.to_json() and not backup.exists():
        return False

    if backup.exists():
        original = HookManifest.parse(read_json_tolerant(backup))
        if original is None and not remaining.hooks:
            unchanged = True
        else:
            unchanged = original is not None and original.to_json() == remaining.to_json()
        if unchanged:
            restore_original(manifest_path)
            print(f"  Restored original {manifest_path}")
            return True
        remove_file(backup)

    if remaining.hooks:
        write_json_atomic(manifest_path, remaining.to_json())
        print(f"  Removed memhooks entries from {manifest_path}")
    else:
        remove_file(manifest_path)
        print(f"  Removed {manifest_path}")
    return True


def _uninstall(
    scope: InstallScope | str,
    settings: Settings,
    resolver: PlatformResolver,
    registry: RegistryStore | None,
    cwd: Path | None,
    home: Path | None,
) -> int:
    try:
        parsed, target = _resolve_target(scope, resolver, cwd, home)
    except (InvalidScopeError, UnsupportedPlatformError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"memhooks - Uninstall ({parsed.value} scope)")
    removed = 0

    hooks_dir = target / HOOKS_DIR_NAME
    manifest_path = target / MANIFEST_FILE_NAME
    if _uninstall_manifest(manifest_path, _own_commands(parsed, hooks_dir, resolver)):
        removed += 1

    for stem in KNOWN_SCRIPT_STEMS:
        for ext in SCRIPT_EXTENSIONS:
            script = hooks_dir / f"{stem}{ext}"
            if restore_original(script):
                removed += 1
                print(f"  Restored original {script}")
            elif remove_file(script):
                removed += 1
                print(f"  Removed {script}")
    remove_dir_if_empty(hooks_dir)

    if parsed is InstallScope.PROJECT:
        workspace = target.parent
        snippet = context_snippet_path(workspace, settings.context_rule_name)
        if remove_file(snippet):
            removed += 1
            print(f"  Removed {snippet}")
        remove_dir_if_empty(snippet.parent)

        registry = registry or RegistryStore(settings.registry_path)
        project = get_project_name(str(workspace))
        entry = registry.get(project)
        if entry is not None and entry.workspace_path != str(workspace):
            logger.warning(
                f"Registry entry {project!r} belongs to {entry.workspace_path}; leaving it"
            )
            print(f"  Kept registry entry {project!r} (registered for {entry.workspace_path})")
        elif registry.unregister(project):
            removed += 1
            print(f"  Unregistered project {project!r}")
        remove_dir_if_empty(registry.path.parent)

    remove_dir_if_empty(target)

    if removed:
        print(f"\nDone. Removed {removed} item(s).")
    else:
        print("\nNothing to remove.")
    return 0


def uninstall_hooks(
    scope: InstallScope | str = InstallScope.PROJECT,
    *,
    settings: Settings | None = None,
    resolver: PlatformResolver | None = None,
    registry: RegistryStore | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> int:
    """Remove everything ``install_hooks`` created for *scope*.

    Files that install backed up are moved back; manifest entries that are
    not ours stay.  Every step is idempotent; calling this when nothing is
    installed succeeds.
    Directories are only removed when they end up empty.

    Returns:
        Exit code (0 success, 1 error).
    """
    try:
        return _uninstall(
            scope,
            settings or load_settings(),
            resolver or PlatformResolver(),
            registry,
            cwd,
            home,
        )
    except Exception as e:
        logger.debug("Uninstall failed", exc_info=True)
        print(f"ERROR: {user_friendly_error(e, 'Uninstall failed')}")
        return 1


# ---------------------------------------------------------------------------
# Context refresh
# ---------------------------------------------------------------------------


def update_context_for_project(
    project: str,
    *,
    settings: Settings | None = None,
    client: WorkerClient | None = None,
    registry: RegistryStore | None = None,
) -> bool:
    """Rewrite the context snippet of a registered project.

    Unregistered projects are ignored without contacting the worker.

    Returns:
        ``True`` if the snippet was rewritten.
    """
    settings = settings or load_settings()
    try:
        return refresh_registered_context(
            project,
            client=client or WorkerClient.from_settings(settings),
            registry=registry or RegistryStore(settings.registry_path),
            rule_name=settings.context_rule_name,
            format=settings.context_format,
        )
    except (WorkerError, OSError) as e:
        logger.warning(f"Context refresh for {project!r} failed: {e}")
        return False


def run_refresh_context(
    project: str,
    *,
    settings: Settings | None = None,
    client: WorkerClient | None = None,
    registry: RegistryStore | None = None,
) -> int:
    """CLI wrapper around ``update_context_for_project``."""
    try:
        settings = settings or load_settings()
        registry = registry or RegistryStore(settings.registry_path)
        if registry.get(project) is None:
            print(f"Project {project!r} is not registered. Run: memhooks install project")
            return 1
        if update_context_for_project(
            project, settings=settings, client=client, registry=registry
        ):
            print(f"Refreshed context for {project!r}")
            return 0
        print(worker_restart_instructions(settings.worker_port, prefix="Context refresh failed."))
        return 1
    except Exception as e:
        print(f"ERROR: {user_friendly_error(e, 'Context refresh failed')}")
        return 1


# ---------------------------------------------------------------------------
# MCP server configuration
# ---------------------------------------------------------------------------


def build_mcp_config(settings: Settings) -> dict[str, Any]:
    """Build the ``mcpServers`` entry for the memory MCP server.

    Raises:
        ValueError: If no MCP server command is configured.
    """
    argv = settings.mcp_server_argv
    if not argv:
        raise ValueError(
            "No MCP server command configured. Set MEMHOOKS_MCP_SERVER_COMMAND "
            "or mcp_server_command in settings.json."
        )
    server = {
        "command": argv[0],
        "args": list(argv[1:]),
        "env": {"MEMHOOKS_WORKER_PORT": str(settings.worker_port)},
    }
    return {"mcpServers": {MCP_SERVER_NAME: server}}


def configure_mcp(
    scope: InstallScope | str = InstallScope.PROJECT,
    *,
    settings: Settings | None = None,
    resolver: PlatformResolver | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> int:
    """Merge the memory MCP server into ``<target>/mcp.json``.

    Other servers already configured in the file are preserved.

    Returns:
        Exit code (0 success, 1 error).
    """
    try:
        settings = settings or load_settings()
        _parsed, target = _resolve_target(scope, resolver or PlatformResolver(), cwd, home)
        mcp_path = target / MCP_FILE_NAME
        merged = _merge_json(mcp_path, build_mcp_config(settings), "mcpServers")
        write_json_atomic(mcp_path, merged)
    except (InvalidScopeError, UnsupportedPlatformError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1
    except OSError as e:
        print(f"ERROR: {user_friendly_error(e, 'Could not write MCP config')}")
        return 1

    print(f"  Updated {mcp_path}")
    return 0
