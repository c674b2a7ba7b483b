"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for slinky:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.slinky/`` on macOS. See :func:`get_data_dir`.
* **Global config** -- A single :class:`~slinky.models.GlobalConfig`
  JSON file storing user defaults (colour, shell for ``exec``). It is
  edited by hand and only ever read.
* **Package manifest** -- The project-local ``slinky-package.json``,
  written by ``slinky-package init`` and read by the other
  ``slinky-package`` commands as a :class:`~slinky.models.PackageManifest`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the global config file into the effective
  configuration.

Manifest writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from slinky.exceptions import ConfigError
from slinky.models import ColorChoice, GlobalConfig, PackageManifest

_APP_NAME = "slinky"
_CONFIG_FILENAME = "config.json"
MANIFEST_FILENAME = "slinky-package.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS)."""
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


def _config_dir_path() -> Path:
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return _fallback_base_dir()


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/slinky/`` (default ``~/.local/share/slinky/``).
    On macOS: ``~/.slinky/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


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
        fd = None
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


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file. Reading never creates the directory."""
    return _config_dir_path() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~slinky.models.GlobalConfig`. If the
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


# --- Precedence resolution ---


def resolve_config(cli_color: Optional[ColorChoice] = None) -> GlobalConfig:
    """Resolve the effective user configuration.

    Precedence (high to low):
        1. CLI flags (``--color``)
        2. Environment variables (``SLINKY_COLOR``, ``SLINKY_EXEC_SHELL``)
        3. User config (``~/.config/slinky/config.json``)
        4. Defaults

    Returns:
        The merged :class:`~slinky.models.GlobalConfig`.

    Raises:
        ConfigError: If the config file is invalid or ``SLINKY_COLOR`` holds
            an unknown value.
    """
    config = load_global_config()

    env_color = os.environ.get("SLINKY_COLOR")
    if env_color:
        try:
            config.color = ColorChoice(env_color.lower())
        except ValueError as exc:
            raise ConfigError(
                f"Invalid SLINKY_COLOR value '{env_color}' (expected auto, always or never)"
            ) from exc

    env_shell = os.environ.get("SLINKY_EXEC_SHELL")
    if env_shell:
        config.exec_shell = env_shell

    if cli_color is not None:
        config.color = cli_color

    return config


def resolve_exec_shell(config: GlobalConfig) -> str:
    """Return the shell used to run ``slinky exec`` command strings."""
    return config.exec_shell or os.environ.get("SHELL") or "/bin/sh"


# --- Package manifest ---


def load_manifest(path: Optional[Path] = None) -> PackageManifest:
    """Load the packaging manifest.

    Args:
        path: Explicit manifest path. Defaults to ``./slinky-package.json``.
            A missing default file yields a default manifest; a missing
            explicit path is an error.

    Returns:
        The validated :class:`~slinky.models.PackageManifest`.

    Raises:
        ConfigError: If an explicit path does not exist, or the file contains
            invalid JSON or fails validation.
    """
    explicit = path is not None
    if path is None:
        path = Path.cwd() / MANIFEST_FILENAME
    if not path.is_file():
        if explicit:
            raise ConfigError(f"Manifest not found: {path}")
        return PackageManifest()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return PackageManifest.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid manifest at {path}: {exc}") from exc


def save_manifest(manifest: PackageManifest, path: Path) -> None:
    """Persist *manifest* atomically as JSON at *path*."""
    data = manifest.model_dump(mode="json")
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
