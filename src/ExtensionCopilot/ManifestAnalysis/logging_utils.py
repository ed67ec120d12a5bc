"""Structured logging helpers shared across manifest analysis components."""

from __future__ import annotations

import gzip
import json
import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from .settings import LOG_DIR

__all__ = ["JSONFormatter", "setup_logging"]

_CONTEXT_FIELDS = ("uri", "oid", "rule", "source", "version")


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per manifest analysis log record."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string with analysis-specific fields."""

        now = datetime.now(timezone.utc)
        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _compress_old_log(path: Path) -> None:
    compressed_path = path.with_suffix(path.suffix + ".gz")
    with path.open("rb") as source, gzip.open(compressed_path, "wb") as target:
        target.write(source.read())
    path.unlink(missing_ok=True)


def _cleanup_logs(log_dir: Path, retention_days: int) -> List[str]:
    """Compress expired ``.jsonl`` logs and purge expired archives in ``log_dir``."""

    actions: List[str] = []
    now = datetime.now(timezone.utc)
    retention_delta = timedelta(days=retention_days)
    for file in log_dir.glob("*.jsonl"):
        mtime = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
        if now - mtime > retention_delta:
            target = file.with_suffix(file.suffix + ".gz")
            _compress_old_log(file)
            actions.append(f"Compressed {file.name} -> {target.name}")
    for file in log_dir.glob("*.jsonl.gz"):
        mtime = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
        if now - mtime > retention_delta:
            file.unlink(missing_ok=True)
            actions.append(f"Deleted expired archive {file.name}")
    return actions


def setup_logging(
    *,
    level: str = "INFO",
    retention_days: int = 14,
    max_log_size_mb: int = 20,
    log_dir: Optional[Path] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the ``ExtensionCopilot`` logger tree.

    Installs a console handler on ``stderr`` (stdout belongs to CLI output) and
    a rotating JSON-lines file handler. Handlers installed by a previous call
    are replaced, so sessions may call this repeatedly.

    Args:
        level: Logging level name.
        retention_days: Age after which log files are compressed, then purged.
        max_log_size_mb: Rotation threshold of the JSON log file.
        log_dir: Explicit log directory; otherwise ``EXTCOPILOT_LOG_DIR`` or
            the platform user log directory.
        propagate: Whether records also reach the root logger.

    Returns:
        The configured ``ExtensionCopilot`` logger.
    """

    if log_dir is not None:
        resolved_dir = log_dir
    else:
        env_value = os.environ.get("EXTCOPILOT_LOG_DIR")
        env_path: Optional[Path] = None
        if env_value is not None:
            stripped = env_value.strip()
            if stripped:
                env_path = Path(stripped)
        resolved_dir = env_path or LOG_DIR
    resolved_dir.mkdir(parents=True, exist_ok=True)
    _cleanup_logs(resolved_dir, retention_days)

    logger = logging.getLogger("ExtensionCopilot")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_extcopilot_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler):
                stream = getattr(handler, "stream", None)
                if stream in (sys.stdout, sys.stderr):
                    continue
            handler.close()

    console_formatter = logging.Formatter("%(levelname)s: %(message)s")
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(console_formatter)
    stream_handler.setLevel(logging.WARNING)
    stream_handler._extcopilot_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    file_handler = RotatingFileHandler(
        resolved_dir / f"extension-copilot-{today}.jsonl",
        maxBytes=int(max_log_size_mb * 1024 * 1024),
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler._extcopilot_managed = True  # type: ignore[attr-defined]
    logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
