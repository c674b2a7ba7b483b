"""Shell completion and man page plugin -- the ``slinky generate`` command group.

This module implements three sub-commands:

* ``generate completions SHELL`` -- Print the completion script for
  ``slinky`` (or, with ``--command slinky-ln``, for ``slinky-ln``) to
  stdout. The packaging pipeline calls this on the freshly compiled
  executable.
* ``generate man`` -- Print a troff man page to stdout, rendered by
  :mod:`slinky.plugins.manpage`.
* ``generate install [SHELL]`` -- Auto-detect (or explicitly specify) the
  user's shell and write the completion script to the per-user config
  directory for that shell.

Supported shells: bash, zsh, fish.

Scripts come from the completion classes Typer registers with Click, so
they speak the same ``_<PROG>_COMPLETE`` protocol that the console-script
entry points answer at runtime.
"""

from __future__ import annotations

import importlib
import os
from pathlib import Path
from typing import Optional

import click
from click.shell_completion import get_completion_class
import typer

from slinky.models import Shell
from slinky.output import error, print_data, success, suggest


generate_app = typer.Typer(no_args_is_help=True)
"""Typer application for the ``generate`` command group."""

COMMANDS: dict[str, str] = {
    "slinky": "slinky.app:app",
    "slinky-ln": "slinky.ln:ln_app",
}
"""Executable name -> ``module:attribute`` of its Typer application."""


def get_click_command(command: str) -> click.Command:
    """Return the Click command behind the Typer application of *command*.

    Raises:
        KeyError: If *command* is not one of :data:`COMMANDS`.
    """
    module_name, attr = COMMANDS[command].split(":")
    typer_app = getattr(importlib.import_module(module_name), attr)
    return typer.main.get_command(typer_app)


def complete_var(command: str) -> str:
    """Environment variable that triggers completion for *command*."""
    return f"_{command.replace('-', '_').upper()}_COMPLETE"


def render_completion(command: str, shell: Shell) -> str:
    """Render the completion script of *command* for *shell*.

    Args:
        command: ``slinky`` or ``slinky-ln``.
        shell: Target shell dialect.

    Returns:
        The script source, ending with a newline.
    """
    from typer.completion import completion_init

    completion_init()
    cli = get_click_command(command)
    completion_class = get_completion_class(shell.value)
    if completion_class is None:
        raise ValueError(f"No completion support registered for {shell.value}")
    source = completion_class(cli, {}, command, complete_var(command)).source()
    return source if source.endswith("\n") else source + "\n"


_USER_LOCATIONS: dict[Shell, tuple[tuple[str, ...], str]] = {
    Shell.BASH: ((".bash_completion.d",), "{name}"),
    Shell.ZSH: ((".zfunc",), "_{name}"),
    Shell.FISH: ((".config", "fish", "completions"), "{name}.fish"),
}


def user_completion_path(shell: Shell, command: str = "slinky") -> Path:
    """Per-user location of the completion script for *command*."""
    segments, pattern = _USER_LOCATIONS[shell]
    directory = Path.home().joinpath(*segments)
    return directory / pattern.format(name=command)


def _command_names() -> str:
    return ", ".join(COMMANDS)


@generate_app.command("completions")
def generate_completions(
    shell: Shell = typer.Argument(..., case_sensitive=False, help="The shell to generate completions for."),
    command: str = typer.Option(
        "slinky", "--command", "-c", help="Executable to generate completions for (slinky, slinky-ln).",
    ),
) -> None:
    """Generate shell completions.

    Example:
        ::

            slinky generate completions bash > slinky.bash
            slinky generate completions zsh --command slinky-ln > _slinky-ln
    """
    if command not in COMMANDS:
        error(f"Unknown command: {command}. Supported: {_command_names()}")
        raise typer.Exit(code=2)
    print_data(render_completion(command, shell).rstrip("\n"))


@generate_app.command("man")
def generate_man(
    command: str = typer.Option(
        "slinky", "--command", "-c", help="Executable to generate the man page for (slinky, slinky-ln).",
    ),
) -> None:
    """Generate a man page."""
    from slinky.plugins.manpage import render_manpage

    if command not in COMMANDS:
        error(f"Unknown command: {command}. Supported: {_command_names()}")
        raise typer.Exit(code=2)
    print_data(render_manpage(command).rstrip("\n"))


@generate_app.command("install")
def install_completion(
    shell: Optional[str] = typer.Argument(
        None,
        help="Shell to install completion for (bash, zsh, fish). Auto-detected if omitted.",
    ),
) -> None:
    """Install shell completion for slinky for the current user.

    Detects the current shell from the ``SHELL`` environment variable, or
    accepts an explicit shell name argument, and writes the completion
    script to the standard per-user directory:

    * **bash**: ``~/.bash_completion.d/slinky``
    * **zsh**: ``~/.zfunc/_slinky``
    * **fish**: ``~/.config/fish/completions/slinky.fish``
    """
    if shell is None:
        shell = os.path.basename(os.environ.get("SHELL", "bash"))

    try:
        target_shell = Shell(shell.lower())
    except ValueError:
        error(f"Unsupported shell: {shell}. Supported: bash, zsh, fish")
        raise typer.Exit(code=2)

    script_path = user_completion_path(target_shell)
    script_path.parent.mkdir(parents=True, exist_ok=True)
    script_path.write_text(render_completion("slinky", target_shell))

    success(f"{target_shell.value.capitalize()} completion installed to {script_path}")
    if target_shell == Shell.BASH:
        suggest(f"Restart your shell or run: source {script_path}")
    elif target_shell == Shell.ZSH:
        suggest("Add to .zshrc: fpath+=~/.zfunc && autoload -Uz compinit && compinit")
    else:
        suggest("Restart your shell to activate completions.")
