"""Read-only status report for ``memhooks status``.

Inspects every scope's manifest and scripts, the worker's liveness (health check
only; the worker is never started from here) and the registry entry of the
current workspace.  The exit code reflects whether the report could be
produced, not whether the installation is healthy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from memhooks.config import Settings, load_settings
from memhooks.core.context_file import context_snippet_path
from memhooks.core.filesystem import read_json_tolerant
from memhooks.core.messages import user_friendly_error, worker_restart_instructions
from memhooks.core.platform import HOOKS_DIR_NAME, InstallScope, PlatformResolver
from memhooks.core.registry import RegistryEntry, RegistryStore
from memhooks.core.worker_client import WorkerClient
from memhooks.hooks.hook_helpers import get_project_name
from memhooks.tools.installer import INSTALLED_SCRIPT_STEMS
from memhooks.tools.setup_hooks import MANIFEST_FILE_NAME, HookManifest

logger = logging.getLogger(__name__)

MANIFEST_MISSING = "missing"
MANIFEST_INVALID = "invalid"
MANIFEST_OK = "ok"


@dataclass
class ScopeStatus:
    """Installation state of one scope."""

    scope: InstallScope
    target: Path
    manifest_state: str = MANIFEST_MISSING
    manifest_version: int | None = None
    events: list[str] = field(default_factory=list)
    scripts: dict[str, bool] = field(default_factory=dict)
    context_file: Path | None = None
    context_file_exists: bool = False

    @property
    def installed(self) -> bool:
        return self.manifest_state == MANIFEST_OK


@dataclass
class StatusReport:
    """Everything ``memhooks status`` prints."""

    platform: str
    script_extension: str
    scopes: list[ScopeStatus]
    worker_url: str
    worker_port: int
    worker_healthy: bool
    project: str
    workspace: Path
    registry_path: Path
    registry_entry: RegistryEntry | None = None
    unsupported_scopes: list[InstallScope] = field(default_factory=list)

    @property
    def registered(self) -> bool:
        return self.registry_entry is not None


def inspect_scope(
    scope: InstallScope,
    target: Path,
    resolver: PlatformResolver,
    settings: Settings,
) -> ScopeStatus:
    """Inspect manifest, scripts and context snippet of one scope."""
    status = ScopeStatus(scope=scope, target=target)

    manifest_path = target / MANIFEST_FILE_NAME
    if manifest_path.exists():
        manifest = HookManifest.parse(read_json_tolerant(manifest_path))
        if manifest is None:
            status.manifest_state = MANIFEST_INVALID
        else:
            status.manifest_state = MANIFEST_OK
            status.manifest_version = manifest.version
            status.events = manifest.events

    hooks_dir = target / HOOKS_DIR_NAME
    for stem in INSTALLED_SCRIPT_STEMS:
        filename = stem + resolver.script_extension
        status.scripts[filename] = (hooks_dir / filename).is_file()

    if scope is InstallScope.PROJECT:
        status.context_file = context_snippet_path(target.parent, settings.context_rule_name)
        status.context_file_exists = status.context_file.is_file()

    return status


def collect_status(
    *,
    settings: Settings,
    client: WorkerClient,
    resolver: PlatformResolver,
    registry: RegistryStore,
    cwd: Path | None = None,
    home: Path | None = None,
) -> StatusReport:
    """Gather the report without printing anything."""
    scopes: list[ScopeStatus] = []
    unsupported: list[InstallScope] = []
    for scope in InstallScope:
        target = resolver.target_dir(scope, cwd=cwd, home=home)
        if target is None:
            unsupported.append(scope)
            continue
        scopes.append(inspect_scope(scope, target, resolver, settings))

    workspace = (cwd or Path.cwd()).absolute()
    project = get_project_name(str(workspace))

    return StatusReport(
        platform=resolver.sys_platform,
        script_extension=resolver.script_extension,
        scopes=scopes,
        worker_url=client.base_url,
        worker_port=settings.worker_port,
        worker_healthy=client.is_healthy(),
        project=project,
        workspace=workspace,
        registry_path=registry.path,
        registry_entry=registry.get(project),
        unsupported_scopes=unsupported,
    )


def format_report(report: StatusReport) -> str:
    """Render the report as the text printed by ``memhooks status``."""
    lines = ["memhooks - Status", ""]
    lines.append(f"Platform: {report.platform} (scripts: {report.script_extension})")
    lines.append("")

    for status in report.scopes:
        lines.append(f"[{status.scope.value}] {status.target}")
        if status.manifest_state == MANIFEST_MISSING:
            lines.append("  Manifest: not installed")
        elif status.manifest_state == MANIFEST_INVALID:
            lines.append("  Manifest: INVALID (reinstall to repair)")
        else:
            lines.append(f"  Manifest: version {status.manifest_version}")
            lines.append(f"  Events: {', '.join(status.events) or '(none)'}")
        if status.installed or any(status.scripts.values()):
            for filename, present in status.scripts.items():
                lines.append(f"  {'ok     ' if present else 'MISSING'} {filename}")
        if status.context_file is not None and status.installed:
            state = "present" if status.context_file_exists else "MISSING"
            lines.append(f"  Context file: {state} ({status.context_file})")
        lines.append("")

    for scope in report.unsupported_scopes:
        lines.append(f"[{scope.value}] not available on {report.platform}")
    if report.unsupported_scopes:
        lines.append("")

    if report.worker_healthy:
        lines.append(f"Worker: running at {report.worker_url}")
    else:
        lines.append(f"Worker: NOT reachable at {report.worker_url}")
        lines.append("")
        lines.append(
            worker_restart_instructions(
                report.worker_port,
                prefix="Hooks will run in degraded mode until the worker is back.",
            )
        )
    lines.append("")

    if report.registry_entry is not None:
        lines.append(
            f"Project {report.project!r}: registered "
            f"({report.registry_entry.workspace_path}, "
            f"installed {report.registry_entry.installed_at})"
        )
        if report.registry_entry.workspace_path != str(report.workspace):
            lines.append(f"  NOTE: registered path differs from {report.workspace}")
    else:
        lines.append(f"Project {report.project!r}: not registered")
    lines.append(f"Registry: {report.registry_path}")

    return "\n".join(lines)


def check_hooks_status(
    *,
    settings: Settings | None = None,
    client: WorkerClient | None = None,
    resolver: PlatformResolver | None = None,
    registry: RegistryStore | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> int:
    """Print the status report.

    Returns:
        0 when the report was produced, 1 if producing it failed.
    """
    try:
        settings = settings or load_settings()
        report = collect_status(
            settings=settings,
            client=client or WorkerClient.from_settings(settings),
            resolver=resolver or PlatformResolver(),
            registry=registry or RegistryStore(settings.registry_path),
            cwd=cwd,
            home=home,
        )
    except Exception as e:
        logger.debug("Status report failed", exc_info=True)
        print(f"ERROR: {user_friendly_error(e, 'Could not produce status report')}")
        return 1

    print(format_report(report))
    return 0
