"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for offlinekit:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.offlinekit/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~offlinekit.models.GlobalConfig`
  JSON file storing defaults (cache and retry policies, queue backend,
  feature flags, output format).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`), which the file-backed offline queue store relies on
so that a crash mid-save never leaves a torn queue on disk.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from offlinekit.exceptions import ConfigError
from offlinekit.models import GlobalConfig, QueueBackend

_APP_NAME = "offlinekit"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "offlinekit.json"

ENV_QUEUE_BACKEND = "OFFLINEKIT_QUEUE_BACKEND"
ENV_QUEUE_PATH = "OFFLINEKIT_QUEUE_PATH"
ENV_BASE_URL = "OFFLINEKIT_BASE_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms that follow the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/offlinekit/`` (default ``~/.config/offlinekit/``).
    On macOS/Windows: ``~/.offlinekit/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/offlinekit/`` (default ``~/.cache/offlinekit/``).
    On macOS/Windows: ``~/.offlinekit/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (offline queue, crash logs), creating it if necessary.

    Unlike the cache directory, the data directory holds state that must not
    be deleted casually: the persisted offline queue lives here.

    On Linux/BSD: ``$XDG_DATA_HOME/offlinekit/`` (default ``~/.local/share/offlinekit/``).
    On macOS/Windows: ``~/.offlinekit/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_queue_path(backend: QueueBackend) -> Path:
    """Return the default location of the persisted queue for *backend*.

    ``queue.json`` for the file backend, the ``queue/`` directory for the
    diskcache backend. Both live in the data directory.
    """
    if backend == QueueBackend.DISKCACHE:
        return get_data_dir() / "queue"
    return get_data_dir() / "queue.json"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~offlinekit.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./offlinekit.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. Its keys are merged over the global config one
    section at a time, so a project can pin e.g. ``{"queue": {"backend":
    "memory"}}`` without restating the rest.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_queue_backend: Optional[str] = None,
    cli_queue_path: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_queue_backend``, ``cli_queue_path``, ``cli_format``)
        2. Environment variables (``OFFLINEKIT_QUEUE_BACKEND``,
           ``OFFLINEKIT_QUEUE_PATH``, ``OFFLINEKIT_BASE_URL``)
        3. Project config (``./offlinekit.json``)
        4. User config (``~/.config/offlinekit/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer holds invalid values.
    """
    # 5 + 4. Defaults and user config
    config = load_global_config()

    # 3. Project-local config
    project = load_project_config()
    if project:
        try:
            config = GlobalConfig.model_validate(
                _merge(config.model_dump(mode="json"), project)
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    # 2. Environment, then 1. CLI flags
    backend = cli_queue_backend or os.environ.get(ENV_QUEUE_BACKEND)
    if backend:
        try:
            config.queue.backend = QueueBackend(backend.lower())
        except ValueError:
            raise ConfigError(
                f"Unknown queue backend '{backend}' "
                f"(expected one of: {', '.join(b.value for b in QueueBackend)})"
            ) from None

    queue_path = cli_queue_path or os.environ.get(ENV_QUEUE_PATH)
    if queue_path:
        config.queue.path = queue_path

    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        config.base_url = env_base_url

    if cli_format is not None:
        config.output.format = cli_format

    return config
