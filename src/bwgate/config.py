"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all configuration for bwgate:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.bwgate/`` on macOS and Windows. See :func:`get_config_dir`.
* **Config file** -- A single :class:`~bwgate.models.GatewayConfig` JSON
  file. Managed via :func:`load_config_file` and :func:`save_config`.
* **Precedence resolution** -- :func:`resolve_config` merges explicit
  overrides, environment variables, the config file, and defaults into
  the final effective configuration.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files, interactive prompts, or literal values.

The config file stores credential *sources*, never the secrets they point
at. Tokens are never written to disk.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from bwgate.exceptions import ConfigError
from bwgate.models import GatewayConfig

_APP_NAME = "bwgate"
_CONFIG_FILENAME = "config.json"

# Environment variable -> dotted GatewayConfig field.
_ENV_FIELDS: dict[str, str] = {
    "BWGATE_BASE_URL": "request.base_url",
    "BWGATE_MAX_RETRIES": "request.max_retries",
    "BWGATE_IDENTITY_URL": "identity_url",
    "BWGATE_SCOPE": "scope",
    "BWGATE_CREDENTIAL_KIND": "credential_kind",
}

# Environment variables that hold secrets directly; mapped to an env: source.
_ENV_SOURCES: dict[str, str] = {
    "BWGATE_CLIENT_ID": "client_id_source",
    "BWGATE_CLIENT_SECRET": "client_secret_source",
    "BWGATE_SUBSCRIPTION_KEY": "subscription_key_source",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/bwgate/`` (default ``~/.config/bwgate/``).
    On macOS/Windows: ``~/.bwgate/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_file_path() -> Path:
    """Path to the config file, honouring ``BWGATE_CONFIG`` when set."""
    override = os.environ.get("BWGATE_CONFIG")
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
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
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def load_config_file() -> dict[str, Any]:
    """Load the raw config file as a dict.

    Returns:
        The parsed JSON object, or an empty dict if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = config_file_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def save_config(config: GatewayConfig) -> Path:
    """Persist *config* atomically to the config file.

    Args:
        config: The configuration to save.

    Returns:
        The path written.
    """
    path = config_file_path()
    data = config.model_dump(mode="json", exclude_none=True)
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
    return path


# --- Precedence resolution ---


def _set_dotted(target: dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for var, dotted in _ENV_FIELDS.items():
        value = os.environ.get(var)
        if value:
            _set_dotted(layer, dotted, value)
    for var, field_name in _ENV_SOURCES.items():
        if os.environ.get(var):
            layer[field_name] = f"env:{var}"
    return layer


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config(**overrides: Any) -> GatewayConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. Explicit keyword overrides (``request`` may be a partial dict)
        2. Environment variables (``BWGATE_*``)
        3. Config file (``$XDG_CONFIG_HOME/bwgate/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~bwgate.models.GatewayConfig`.

    Raises:
        ConfigError: If the merged values fail validation.
    """
    data = load_config_file()
    data = _merge(data, _env_layer())
    data = _merge(data, {k: v for k, v in overrides.items() if v is not None})
    try:
        return GatewayConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid bwgate configuration: {exc}") from exc


# --- Credential resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - ``"value:literal"`` -- the literal text after the prefix

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    if source.startswith("value:"):
        return source[6:]

    raise ConfigError(
        f"Unknown credential source '{source}'. "
        "Expected env:VAR, file:/path, prompt, or value:TEXT"
    )
