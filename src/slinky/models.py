"""Canonical Pydantic models shared across slinky modules.

The models fall into two groups:

**User configuration** -- serialised as JSON in the user's config directory:
    :class:`ColorChoice` and :class:`GlobalConfig`.

**Packaging** -- the project-local manifest read by ``slinky-package`` and
the install plan derived from it:
    :class:`Shell`, :class:`BuildConfig`, :class:`PackageManifest` and
    :class:`InstallEntry`.

All models use Pydantic v2. The manifest accepts unknown keys
(``extra="allow"``) so that distribution-specific fields survive a
load/save round trip in ``model_extra``.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from slinky import __version__


# --- User configuration ---


class ColorChoice(str, enum.Enum):
    """When to colourise terminal output."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class GlobalConfig(BaseModel):
    """Root configuration model persisted as ``config.json``."""

    color: ColorChoice = Field(
        default=ColorChoice.AUTO, description="Colour output: auto, always, never"
    )
    exec_shell: Optional[str] = Field(
        default=None,
        description="Shell used by 'slinky exec'. Falls back to $SHELL, then /bin/sh",
    )


# --- Packaging ---


class Shell(str, enum.Enum):
    """Shell dialects for which completion scripts are generated."""

    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"


class BuildConfig(BaseModel):
    """Build step settings embedded in a :class:`PackageManifest`."""

    dist_dir: str = Field(default="dist", description="Where compiled executables land")
    generate_dir: str = Field(
        default="generate", description="Where completion scripts and man pages land"
    )
    lockfile: Optional[str] = Field(
        default="requirements.lock",
        description="Hash-pinned requirements used for locked builds",
    )
    timeout: int = Field(default=300, description="Per-executable compile timeout in seconds")


class PackageManifest(BaseModel):
    """Package metadata and build settings for ``slinky-package``.

    Loaded from ``slinky-package.json`` in the project directory. Every field
    has a default so a project without a manifest still builds.

    Example::

        PackageManifest(
            name="slinky",
            version="0.1.0",
            arch=["x86_64"],
            binaries=["slinky", "slinky-ln"],
        )
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(default="slinky", description="Package and primary executable name")
    version: str = Field(default=__version__)
    release: int = Field(default=1, description="Package release number")
    description: str = Field(default="Wrangle symbolic links")
    url: Optional[str] = None
    license: list[str] = Field(default_factory=lambda: ["unknown"])
    arch: list[str] = Field(default_factory=lambda: ["x86_64"])
    depends: list[str] = Field(default_factory=list)
    makedepends: list[str] = Field(
        default_factory=lambda: ["python", "python-pip", "pyinstaller"]
    )
    binaries: list[str] = Field(
        default_factory=lambda: ["slinky", "slinky-ln"],
        description="Executables to compile, document and install",
    )
    build: BuildConfig = Field(default_factory=BuildConfig)


class InstallEntry(BaseModel):
    """A single file copy in the install plan."""

    source: Path
    destination: Path
    mode: int = Field(description="Permission bits applied after copying, e.g. 0o755")

    @property
    def mode_str(self) -> str:
        """The mode formatted as four octal digits (``0755``)."""
        return f"{self.mode:04o}"
