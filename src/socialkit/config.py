"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for socialkit:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.socialkit/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~socialkit.models.GlobalConfig`
  JSON file storing defaults.
* **Services** -- One JSON file per service, each deserialised into a
  :class:`~socialkit.models.ServiceConfig`. Managed via
  :func:`load_service_config`, :func:`save_service_config`,
  :func:`delete_service_config`.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  referenced as ``env:VAR`` or ``file:/path`` so they need not be stored in
  the service file itself.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from socialkit.exceptions import ConfigurationError
from socialkit.models import GlobalConfig, ServiceConfig

_APP_NAME = "socialkit"
_CONFIG_FILENAME = "config.json"

SECRET_FIELDS = ("client_id", "client_secret", "consumer_key", "consumer_secret")
"""ServiceConfig fields that may hold an ``env:`` or ``file:`` source descriptor."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/socialkit/`` (default ``~/.config/socialkit/``).
    On macOS/Windows: ``~/.socialkit/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credentials, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/socialkit/`` (default ``~/.local/share/socialkit/``).
    On macOS/Windows: ``~/.socialkit/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_services_dir() -> Path:
    """Return ``<config_dir>/services/``, creating it if necessary."""
    path = get_config_dir() / "services"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_credentials_dir() -> Path:
    """Return ``<data_dir>/credentials/``, creating it if necessary."""
    path = get_data_dir() / "credentials"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up and the original exception re-raised.

    Args:
        path: Destination file.
        data: Text content to write.
        mode: Optional permission bits applied to the temp file before any
            content is written (e.g. ``0o600`` for secrets).
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
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Includes KeyboardInterrupt.
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
    """Load the global configuration.

    Returns:
        The deserialised :class:`~socialkit.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigurationError: If the file exists but is invalid.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Services ---


def _service_path(service_id: str) -> Path:
    return get_services_dir() / f"{service_id}.json"


def list_service_ids() -> list[str]:
    """Return the ids of all configured services, sorted alphabetically."""
    return sorted(p.stem for p in get_services_dir().glob("*.json") if p.is_file())


def service_exists(service_id: str) -> bool:
    return _service_path(service_id).is_file()


def load_service_config(service_id: str, resolve_secrets: bool = True) -> ServiceConfig:
    """Load and validate a service configuration from disk.

    Args:
        service_id: Service identifier (``<service_id>.json`` in the
            services directory).
        resolve_secrets: When ``True``, fields listed in
            :data:`SECRET_FIELDS` that hold a source descriptor are replaced
            by the value :func:`resolve_credential` returns.

    Returns:
        The deserialised :class:`~socialkit.models.ServiceConfig`.

    Raises:
        ConfigurationError: If the file is missing, invalid, or a secret
            descriptor cannot be resolved.
    """
    path = _service_path(service_id)
    if not path.is_file():
        raise ConfigurationError(f"Service '{service_id}' not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = ServiceConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid service '{service_id}' at {path}: {exc}") from exc

    if resolve_secrets:
        config = resolve_service_secrets(config)
    return config


def save_service_config(config: ServiceConfig) -> None:
    """Persist a service configuration atomically.

    The file is created ``0o600`` because it may hold client secrets.
    """
    data = config.model_dump(mode="json", exclude_none=True)
    atomic_write(
        _service_path(config.service_id),
        json.dumps(data, indent=2) + "\n",
        mode=0o600,
    )


def delete_service_config(service_id: str) -> None:
    """Delete a service's configuration file.

    Raises:
        ConfigurationError: If the service does not exist.
    """
    path = _service_path(service_id)
    if not path.is_file():
        raise ConfigurationError(f"Service '{service_id}' not found at {path}")
    path.unlink()


# --- Precedence resolution ---


def resolve_service_id(cli_service: Optional[str] = None) -> str:
    """Pick the service to operate on.

    Precedence (high to low):
        1. ``cli_service``
        2. ``SOCIALKIT_SERVICE`` environment variable
        3. ``default_service`` in the global config
        4. The only configured service, if exactly one exists

    Raises:
        ConfigurationError: If no service can be determined.
    """
    if cli_service:
        return cli_service
    env_service = os.environ.get("SOCIALKIT_SERVICE")
    if env_service:
        return env_service
    global_cfg = load_global_config()
    if global_cfg.default_service:
        return global_cfg.default_service
    ids = list_service_ids()
    if len(ids) == 1:
        return ids[0]
    raise ConfigurationError(
        "No service specified. Pass one explicitly, set SOCIALKIT_SERVICE, "
        "or set default_service in the global config."
    )


# --- Credential source resolution ---


def is_source_descriptor(value: str) -> bool:
    return value.startswith("env:") or value.startswith("file:")


def resolve_credential(source: str) -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Any other string is returned unchanged, so literal values work too.

    Raises:
        ConfigurationError: If the variable is unset or the file unreadable.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    return source


def resolve_service_secrets(config: ServiceConfig) -> ServiceConfig:
    """Return a copy of *config* with every secret descriptor resolved."""
    updates: dict[str, str] = {}
    for name in SECRET_FIELDS:
        value = getattr(config, name)
        if value and is_source_descriptor(value):
            updates[name] = resolve_credential(value)
    if not updates:
        return config
    return config.model_copy(update=updates)
