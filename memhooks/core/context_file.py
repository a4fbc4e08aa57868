"""Context snippet file written into a workspace's Cursor rules.

The snippet is regenerated wholesale on install and on every refresh; it is
never edited in place.
"""

from __future__ import annotations

import logging
from pathlib import Path

from memhooks.core.filesystem import write_text_atomic
from memhooks.core.platform import HOST_DIR_NAME
from memhooks.core.registry import RegistryStore
from memhooks.core.worker_client import WorkerClient

logger = logging.getLogger(__name__)

RULES_DIR_NAME = "rules"
DEFAULT_RULE_NAME = "memory-context.mdc"

PLACEHOLDER_CONTEXT = (
    "*No context is available yet. It will appear here once the memory worker "
    "has recorded observations for this project.*"
)


def context_snippet_path(workspace: Path, rule_name: str = DEFAULT_RULE_NAME) -> Path:
    return workspace / HOST_DIR_NAME / RULES_DIR_NAME / rule_name


def render_context_snippet(context: str, project: str = "") -> str:
    """Render the rules file: front matter with ``alwaysApply: true`` and the text."""
    body = context.strip() or PLACEHOLDER_CONTEXT
    title = f"Memory context: {project}" if project else "Memory context"
    return (
        "---\n"
        "description: Recent memory context from previous sessions\n"
        "globs:\n"
        "alwaysApply: true\n"
        "---\n"
        "\n"
        f"# {title}\n"
        "\n"
        f"{body}\n"
    )


def write_context_snippet(
    workspace: Path,
    context: str,
    project: str = "",
    rule_name: str = DEFAULT_RULE_NAME,
) -> Path:
    """Atomically (re)write the snippet for *workspace* and return its path."""
    path = context_snippet_path(workspace, rule_name)
    write_text_atomic(path, render_context_snippet(context, project))
    return path


def refresh_registered_context(
    project: str,
    *,
    client: WorkerClient,
    registry: RegistryStore,
    rule_name: str = DEFAULT_RULE_NAME,
    format: str = "markdown",
    timeout: float | None = None,
) -> bool:
    """Re-fetch context for a registered project and rewrite its snippet.

    Projects that are not in the registry are left alone and the worker is
    not contacted.

    Returns:
        ``True`` if the snippet was rewritten.

    Raises:
        WorkerError: If the worker could not provide the context.
    """
    entry = registry.get(project)
    if entry is None:
        logger.debug(f"Project {project!r} is not registered; skipping context refresh")
        return False

    context = client.fetch_context(project, format=format, timeout=timeout)
    path = write_context_snippet(Path(entry.workspace_path), context, project, rule_name)
    logger.info(f"Refreshed context snippet {path}")
    return True
