"""Shell completion plugin -- generate and install completion scripts and man pages.

This plugin provides the ``slinky generate`` command group with
sub-commands for printing completion scripts (bash, zsh, fish) and man
pages for both executables, and for installing the ``slinky`` completion
script for the current user.

The main export is :data:`generate_app`, a :class:`typer.Typer` instance
registered as a sub-command group on the root CLI. :func:`render_completion`
is also exported for programmatic use.
"""

from slinky.plugins.completion.plugin import generate_app, render_completion

__all__ = ["generate_app", "render_completion"]
