"""slinky -- Wrangle symbolic links.

This package ships two command-line tools and the packaging layer that
turns them into installable executables:

* ``slinky`` walks a directory tree and applies an action (list, retarget,
  tidy, convert to hardlinks or trees, delete, exec) to every symlink that
  passes a set of filters.
* ``slinky-ln`` creates symbolic links (or hardlinks, or mirrored trees)
  without the usual argument-order confusion of ``ln -s``.
* ``slinky-package`` compiles both tools, generates their shell completion
  scripts and man pages, and installs everything into a staging root.

Typical workflow::

    slinky -x list --status            # show dangling links under .
    slinky-ln ../shared/config.toml    # link into the current directory
    slinky-package all --destdir pkg   # build, generate and stage a package

Modules:
    app: ``slinky`` Typer application and console-script entry point.
    ln: ``slinky-ln`` Typer application and console-script entry point.
    links: Symlink discovery, classification and filesystem primitives.
    actions: One function per ``slinky`` sub-command, applied to a link.
    models: Pydantic models for configuration and the package manifest.
    config: XDG-aware configuration and manifest loading.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
