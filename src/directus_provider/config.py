"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for directus-provider:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.directus-provider/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Settings** -- A single :class:`~directus_provider.models.ProviderSettings`
  JSON file storing the Directus url, auto-login flag and capability
  configuration used by the CLI.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables and the settings file into the effective settings.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so that a crash never leaves a half-written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from directus_provider.exceptions import ConfigurationError
from directus_provider.models import CapabilityConfig, ProviderSettings

_APP_NAME = "directus-provider"
_CONFIG_FILENAME = "config.json"

ENV_URL = "DIRECTUS_URL"
"""Environment variable overriding the configured Directus url."""

ENV_TOKEN = "DIRECTUS_TOKEN"
"""Environment variable supplying a static access token."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/directus-provider/`` (default
    ``~/.config/directus-provider/``).  On macOS/Windows:
    ``~/.directus-provider/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (stored credentials), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/directus-provider/`` (default
    ``~/.local/share/directus-provider/``).  On macOS/Windows:
    ``~/.directus-provider/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_credentials_dir() -> Path:
    """Return ``<data_dir>/credentials``, creating it if necessary."""
    path = get_data_dir() / "credentials"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  When *mode* is
    given the permissions are applied before any content is written.  On
    any failure the temp file is cleaned up.
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
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings ---


def _settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> ProviderSettings:
    """Load the settings from the XDG config directory.

    Returns:
        The deserialised :class:`~directus_provider.models.ProviderSettings`.
        If the file does not exist, a default instance is returned.

    Raises:
        ConfigurationError: If the file exists but contains invalid JSON or
            fails Pydantic validation.
    """
    path = _settings_path()
    if not path.is_file():
        return ProviderSettings()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return ProviderSettings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: ProviderSettings) -> None:
    """Persist the settings atomically to disk.

    Args:
        settings: The settings to save.
    """
    data = settings.model_dump(mode="json")
    _atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(cli_url: Optional[str] = None) -> ProviderSettings:
    """Resolve settings with full precedence chain.

    Precedence (high to low):
        1. CLI flag (``cli_url``)
        2. Environment variables (``DIRECTUS_URL``, ``DIRECTUS_TOKEN``)
        3. Settings file (``~/.config/directus-provider/config.json``)
        4. Defaults

    ``DIRECTUS_TOKEN`` only enables the static-token capability when the
    settings file does not already configure one.

    Returns:
        The effective :class:`~directus_provider.models.ProviderSettings`.
    """
    settings = load_settings()

    api_url = settings.api_url
    env_url = os.environ.get(ENV_URL)
    if env_url:
        api_url = env_url
    if cli_url is not None:
        api_url = cli_url

    capabilities = settings.capabilities
    env_token = os.environ.get(ENV_TOKEN)
    if env_token and capabilities.static_token is None:
        capabilities = CapabilityConfig.model_validate(
            {**capabilities.model_dump(), "static_token": env_token}
        )

    return settings.model_copy(
        update={"api_url": api_url, "capabilities": capabilities}
    )
