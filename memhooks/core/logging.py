"""Secure structured logging for memhooks.

Two entry points:

* ``configure_logging()`` for operator commands (install, status, ...);
  log lines go to stderr so stdout stays free for command output.
* ``configure_hook_logging()`` for hook processes.  The host parses a hook's
  stdout as JSON, so hooks log only to a size-rotated file in the data
  directory and never to stdout or stderr.

Features:
    - Sensitive data masking (API keys, passwords, bearer tokens)
    - JSON structured logging format
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import re
import sys
from datetime import datetime, timezone
from pathlib import Path

# Patterns to mask in logs
SENSITIVE_PATTERNS = [
    (re.compile(r'api[_-]?key["\']?\s*[:=]\s*["\']?[\w-]+', re.I), "api_key=***MASKED***"),
    (re.compile(r"sk-[a-zA-Z0-9]{20,}"), "***API_KEY***"),
    (re.compile(r'password["\']?\s*[:=]\s*["\']?[^\s"\']+', re.I), "password=***MASKED***"),
    (re.compile(r"bearer\s+[\w.~+/-]+=*", re.I), "Bearer ***MASKED***"),
]

HOOK_LOG_FILE = "hooks.log"
HOOK_LOG_MAX_BYTES = 1_048_576
HOOK_LOG_BACKUPS = 1

_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def mask_sensitive(text: str) -> str:
    """Apply every masking pattern to *text*."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecureFormatter(logging.Formatter):
    """Formatter that masks sensitive data."""

    def format(self, record: logging.LogRecord) -> str:
        return mask_sensitive(super().format(record))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with sensitive data masked.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted log message with sensitive data masked.
        """
        log_data: dict[str, str | None] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return mask_sensitive(json.dumps(log_data))


def _build_formatter(json_format: bool, mask: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter()
    if mask:
        return SecureFormatter(fmt=_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)
    return logging.Formatter(fmt=_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)


def _reset_root(level: str) -> logging.Logger:
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    return root_logger


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    mask_sensitive: bool = True,
) -> None:
    """Configure logging for operator commands.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Use JSON format for structured logging.
        mask_sensitive: Mask sensitive data in logs.
    """
    root_logger = _reset_root(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(_build_formatter(json_format, mask_sensitive))
    root_logger.addHandler(console_handler)


def configure_hook_logging(
    log_dir: Path,
    level: str = "INFO",
    json_format: bool = False,
) -> Path | None:
    """Configure file-only logging for a hook process.

    Args:
        log_dir: Directory for ``hooks.log``. Created if missing.
        level: Logging level.
        json_format: Use JSON format for structured logging.

    Returns:
        The log file path, or ``None`` if the directory was unusable and
        logging was disabled.
    """
    root_logger = _reset_root(level)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / HOOK_LOG_FILE
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=HOOK_LOG_MAX_BYTES,
            backupCount=HOOK_LOG_BACKUPS,
            encoding="utf-8",
        )
    except OSError:
        root_logger.addHandler(logging.NullHandler())
        return None

    handler.setLevel(level.upper())
    handler.setFormatter(_build_formatter(json_format, True))
    root_logger.addHandler(handler)
    return log_path
