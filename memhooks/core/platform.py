"""Platform resolution: host OS, install targets and command rendering.

All knowledge about operating-system differences lives here.  The installer
only builds ``Invocation`` descriptors (executable + arguments) and asks the
resolver to render them into the command-line string the host will run.
"""

from __future__ import annotations

import shlex
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath

# =============================================================================
# Enumerations
# =============================================================================


class InstallScope(str, Enum):
    """Installation breadth; decides the target directory."""

    PROJECT = "project"
    USER = "user"
    ENTERPRISE = "enterprise"

    @classmethod
    def parse(cls, value: object) -> InstallScope | None:
        """Return the matching scope, or ``None`` if *value* is not a scope."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class HostOS(str, Enum):
    WINDOWS = "windows"
    UNIX = "unix"


# =============================================================================
# Invocation descriptor
# =============================================================================


@dataclass(frozen=True)
class Invocation:
    """An executable plus its arguments, not yet rendered for a shell."""

    executable: str
    args: tuple[str, ...] = ()


# =============================================================================
# Constants
# =============================================================================

HOST_DIR_NAME = ".cursor"
HOOKS_DIR_NAME = "hooks"

_ENTERPRISE_DIRS: dict[str, str] = {
    "darwin": "/Library/Application Support/Cursor",
    "linux": "/etc/cursor",
    "win32": "C:\\ProgramData\\Cursor",
}

_POWERSHELL_PREFIX = ("powershell.exe", "-ExecutionPolicy", "Bypass", "-File")


def _platform_key(sys_platform: str) -> str:
    if sys_platform.startswith("linux"):
        return "linux"
    if sys_platform in ("win32", "cygwin"):
        return "win32"
    return sys_platform


# =============================================================================
# Resolver
# =============================================================================


class PlatformResolver:
    """Resolves OS-specific paths and command lines.

    Args:
        sys_platform: Platform identifier in ``sys.platform`` form. Defaults
            to the running interpreter's platform; tests pass other values to
            exercise foreign platforms.
    """

    def __init__(self, sys_platform: str | None = None) -> None:
        self.sys_platform = _platform_key(sys_platform or sys.platform)

    def __repr__(self) -> str:
        return f"PlatformResolver(sys_platform={self.sys_platform!r})"

    # -------------------------------------------------------------------------
    # OS classification
    # -------------------------------------------------------------------------

    @property
    def host_os(self) -> HostOS:
        return HostOS.WINDOWS if self.sys_platform == "win32" else HostOS.UNIX

    @property
    def is_windows(self) -> bool:
        return self.host_os is HostOS.WINDOWS

    @property
    def script_extension(self) -> str:
        """``.ps1`` on Windows, ``.sh`` everywhere else."""
        return ".ps1" if self.is_windows else ".sh"

    @property
    def enterprise_supported(self) -> bool:
        return self.sys_platform in _ENTERPRISE_DIRS

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def target_dir(
        self,
        scope: InstallScope | str,
        cwd: Path | None = None,
        home: Path | None = None,
    ) -> Path | None:
        """Resolve the install target directory for *scope*.

        Args:
            scope: Install scope (enum member or its string value).
            cwd: Workspace directory for project scope. Defaults to the
                current working directory.
            home: Home directory for user scope. Defaults to ``Path.home()``.

        Returns:
            The absolute target directory, or ``None`` when the scope is not
            recognized or has no target on this platform.
        """
        parsed = InstallScope.parse(scope)
        if parsed is InstallScope.PROJECT:
            return (cwd or Path.cwd()).absolute() / HOST_DIR_NAME
        if parsed is InstallScope.USER:
            return (home or Path.home()).absolute() / HOST_DIR_NAME
        if parsed is InstallScope.ENTERPRISE:
            enterprise = _ENTERPRISE_DIRS.get(self.sys_platform)
            return Path(enterprise) if enterprise else None
        return None

    def relative_script_path(self, filename: str) -> str:
        """Workspace-relative script path written into project manifests."""
        if self.is_windows:
            return str(PureWindowsPath(HOST_DIR_NAME, HOOKS_DIR_NAME, filename))
        return "./" + str(PurePosixPath(HOST_DIR_NAME, HOOKS_DIR_NAME, filename))

    # -------------------------------------------------------------------------
    # Command rendering
    # -------------------------------------------------------------------------

    def script_invocation(self, script: str, *args: str) -> Invocation:
        """Build the invocation that runs a hook script on this platform."""
        if self.is_windows and script.lower().endswith(".ps1"):
            return Invocation(_POWERSHELL_PREFIX[0], _POWERSHELL_PREFIX[1:] + (script, *args))
        return Invocation(script, tuple(args))

    def render_command(self, invocation: Invocation) -> str:
        """Render an invocation as a host command-line string.

        Unix commands use POSIX shell quoting.  On Windows the script path
        following ``-File`` is always double-quoted and the remaining
        arguments follow the MSVC runtime quoting rules.
        """
        if not self.is_windows:
            return shlex.join([invocation.executable, *invocation.args])

        args = list(invocation.args)
        if invocation.executable.lower() == "powershell.exe" and "-File" in args:
            idx = args.index("-File")
            head = subprocess.list2cmdline([invocation.executable, *args[:idx]])
            if idx + 1 >= len(args):
                return f"{head} -File"
            rest = subprocess.list2cmdline(args[idx + 2 :])
            rendered = f'{head} -File "{args[idx + 1]}"'
            return f"{rendered} {rest}" if rest else rendered
        return subprocess.list2cmdline([invocation.executable, *args])

    def quote_script_literal(self, value: str, extension: str | None = None) -> str:
        """Escape *value* for embedding in a hook script string literal.

        ``.sh`` scripts embed values in double quotes, ``.ps1`` scripts in
        single quotes.
        """
        ext = extension or self.script_extension
        if ext == ".ps1":
            return value.replace("'", "''")
        out = value
        for ch in ("\\", '"', "$", "`"):
            out = out.replace(ch, "\\" + ch)
        return out
