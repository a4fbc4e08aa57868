"""Atomic file writes and idempotent removal helpers.

Every file the host reads (manifest, scripts, context snippet) and the
registry are written to a temporary sibling first and moved into place with
``os.replace()``, so a concurrently starting host never sees a partial file.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _tmp_sibling(path: Path) -> Path:
    return path.with_name(f".{path.name}.{os.getpid()}.tmp")


def write_text_atomic(path: Path, text: str, mode: int | None = None) -> None:
    """Write *text* to *path* atomically.

    Parent directories are created if needed.

    Args:
        path: Destination file.
        text: File content (written as UTF-8 with ``\\n`` line endings).
        mode: Optional permission bits applied before the file is moved into
            place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _tmp_sibling(path)
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(str(tmp_path), str(path))
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize *data* deterministically and write it atomically."""
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def read_json_tolerant(path: Path) -> Any | None:
    """Read JSON from *path*, treating unreadable or malformed files as absent.

    Returns:
        The parsed value, or ``None`` if the file is missing, empty,
        unreadable, or not valid JSON.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return None

    if not raw.strip():
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring malformed JSON in {path}: {e}")
        return None


def remove_file(path: Path) -> bool:
    """Remove a file if it exists.

    Returns:
        ``True`` if a file was removed, ``False`` if nothing was there.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def remove_dir_if_empty(path: Path) -> bool:
    """Remove a directory only when it has no entries left.

    Returns:
        ``True`` if the directory was removed.
    """
    try:
        if not path.is_dir() or any(path.iterdir()):
            return False
        path.rmdir()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.debug(f"Could not remove directory {path}: {e}")
        return False
    return True


BACKUP_SUFFIX = ".memhooks-backup"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def preserve_original(path: Path) -> bool:
    """Copy *path* aside before it is overwritten.

    An existing backup is never replaced: it holds the file as it was before
    the first install.

    Returns:
        ``True`` if a backup was made.
    """
    backup = backup_path(path)
    if not path.is_file() or backup.exists():
        return False
    shutil.copy2(path, backup)
    logger.info(f"Backed up {path} to {backup}")
    return True


def restore_original(path: Path) -> bool:
    """Move the backup of *path* back into place.

    Returns:
        ``True`` if a backup was restored.
    """
    backup = backup_path(path)
    if not backup.is_file():
        return False
    os.replace(str(backup), str(path))
    return True
