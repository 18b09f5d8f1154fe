"""Loguru helpers for consistent logging in the CLI and host applications."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from apienvelope.config.schema import Config

_SINK_IDS: dict[str, int] = {}


def configure_logging(config: Config, *, verbose: bool = False) -> None:
    """Replace the default stderr sink and add the optional log file sink."""
    level = "DEBUG" if verbose else config.logging.level.upper()
    logger.remove()
    _SINK_IDS.clear()
    _SINK_IDS["stderr"] = logger.add(sys.stderr, level=level)
    if config.logging.file:
        ensure_rotating_log_file(
            Path(config.logging.file).expanduser(),
            level=level,
            rotation=config.logging.rotation,
            retention=config.logging.retention,
        )


def ensure_rotating_log_file(
    log_path: Path,
    level: str = "INFO",
    rotation: str = "10 MB",
    retention: str = "14 days",
) -> Path:
    """Ensure a rotating log sink for the given file."""
    key = str(log_path)
    if key in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _SINK_IDS[key] = logger.add(
        key,
        level=level,
        rotation=rotation,
        retention=retention,
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    return log_path
