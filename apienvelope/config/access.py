"""Process-wide cached config lookups, keyed by resolved file path."""

from __future__ import annotations

import threading
from pathlib import Path

from apienvelope.config.loader import get_config_path, load_config
from apienvelope.config.schema import Config

_lock = threading.RLock()
_by_path: dict[Path, Config] = {}


def _resolve(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Return the config for ``config_path`` (default file when None), loading it once."""
    path = _resolve(config_path)
    with _lock:
        cached = None if force_reload else _by_path.get(path)
        if cached is None:
            cached = _by_path[path] = load_config(path)
        return cached


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one cached config, or every cached config when no path is given."""
    with _lock:
        if config_path is None:
            _by_path.clear()
        else:
            _by_path.pop(_resolve(config_path), None)
