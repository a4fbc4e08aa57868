"""Persisted registry of projects with hooks installed.

The registry is a single JSON object keyed by project name (the workspace
directory's base name)::

    {
      "my-app": {"workspacePath": "/home/me/src/my-app", "installedAt": "2026-..."}
    }

Every write rewrites the whole file atomically, so concurrent writers resolve
as last-writer-wins.  Only installer commands write the registry; hook
processes only read it.  A malformed file is treated as empty and replaced on
the next write.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from memhooks.core.filesystem import read_json_tolerant, remove_file, write_json_atomic

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RegistryEntry(BaseModel):
    """Install metadata for one project."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    workspace_path: str = Field(alias="workspacePath")
    installed_at: str = Field(alias="installedAt")

    def to_json(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class RegistryStore:
    """Reads and writes the project registry file.

    Args:
        path: Registry file location.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f"RegistryStore(path={str(self.path)!r})"

    def read(self) -> dict[str, RegistryEntry]:
        """Return the full mapping; empty if the file is absent or malformed."""
        data = read_json_tolerant(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring registry {self.path}: expected a JSON object")
            return {}

        entries: dict[str, RegistryEntry] = {}
        for name, raw in data.items():
            try:
                entries[str(name)] = RegistryEntry.model_validate(raw)
            except ValidationError:
                logger.warning(f"Skipping invalid registry entry {name!r} in {self.path}")
        return entries

    def write(self, mapping: dict[str, RegistryEntry]) -> None:
        """Replace the registry contents.

        An empty mapping removes the file instead of leaving ``{}`` behind.
        """
        if not mapping:
            remove_file(self.path)
            return
        write_json_atomic(self.path, {name: entry.to_json() for name, entry in mapping.items()})

    def get(self, name: str) -> RegistryEntry | None:
        return self.read().get(name)

    def register(self, name: str, workspace_path: Path | str) -> RegistryEntry:
        """Insert or replace the entry for *name* with the current time.

        Returns:
            The stored entry.
        """
        mapping = self.read()
        path_str = str(workspace_path)
        previous = mapping.get(name)
        if previous is not None and previous.workspace_path != path_str:
            logger.warning(
                f"Project name {name!r} was registered for {previous.workspace_path}; "
                f"replacing it with {path_str}"
            )

        entry = RegistryEntry(workspace_path=path_str, installed_at=_utc_timestamp())
        mapping[name] = entry
        self.write(mapping)
        logger.info(f"Registered project {name!r} -> {path_str}")
        return entry

    def unregister(self, name: str) -> bool:
        """Remove the entry for *name* if present.

        Returns:
            ``True`` if an entry was removed.
        """
        mapping = self.read()
        if name not in mapping:
            return False
        del mapping[name]
        self.write(mapping)
        logger.info(f"Unregistered project {name!r}")
        return True
