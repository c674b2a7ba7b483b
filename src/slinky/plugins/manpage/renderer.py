"""Render troff man pages from the Click command behind a Typer application.

The renderer walks the command tree once, collecting plain dataclasses
(:class:`CommandDoc`, :class:`ParamDoc`) that the Jinja2 template
``slinky.1.j2`` turns into a section-1 page:

* ``.TH`` header, NAME, SYNOPSIS and DESCRIPTION
* OPTIONS and ARGUMENTS of the top-level command
* COMMANDS, listing every visible sub-command with its own options
  (the ``generate`` and ``help`` tooling commands are left out)
* VERSION

All user-facing text passes through the ``troff`` filter, which escapes
backslashes, hyphens and a leading control character.
"""

from __future__ import annotations

import datetime
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import click
from jinja2 import Environment, FileSystemLoader, select_autoescape

from slinky import __version__


TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``plugins/manpage/templates/``)."""

_RICH_MARKUP = re.compile(r"\[/?[a-z ]+\]")

# Tooling groups that are not part of the documented command set
_UNDOCUMENTED_COMMANDS = frozenset({"generate", "help"})


@dataclass
class ParamDoc:
    """One option or argument as it appears on the page."""

    names: str
    help: str = ""
    metavar: str = ""


@dataclass
class CommandDoc:
    """A command (or sub-command) and everything documented about it."""

    name: str
    summary: str = ""
    description: str = ""
    options: list[ParamDoc] = field(default_factory=list)
    arguments: list[ParamDoc] = field(default_factory=list)
    commands: list["CommandDoc"] = field(default_factory=list)


def troff_escape(text: Optional[str]) -> str:
    """Escape *text* for use in a troff document.

    Backslashes become ``\\e``, hyphens become ``\\-`` and a line starting
    with ``.`` or ``'`` is guarded with ``\\&`` so it is not read as a
    request.
    """
    if not text:
        return ""
    text = text.replace("\\", "\\e").replace("-", "\\-")
    lines = []
    for line in text.splitlines():
        if line.startswith((".", "'")):
            line = "\\&" + line
        lines.append(line)
    return "\n".join(lines)


def _clean(text: Optional[str]) -> str:
    if not text:
        return ""
    return _RICH_MARKUP.sub("", text).strip()


def _first_paragraph(text: str) -> str:
    return text.split("\n\n", 1)[0].replace("\n", " ").strip()


def _metavar(param: click.Parameter) -> str:
    if param.metavar:
        return param.metavar
    if isinstance(param, click.Argument):
        return param.human_readable_name.upper()
    return param.type.name.upper()


def _describe_param(param: click.Parameter) -> Optional[ParamDoc]:
    if isinstance(param, click.Option):
        if param.hidden:
            return None
        names = ", ".join(param.opts + param.secondary_opts)
        metavar = "" if param.is_flag else _metavar(param)
        return ParamDoc(names=names, help=_clean(param.help), metavar=metavar)
    if isinstance(param, click.Argument):
        return ParamDoc(
            names=param.human_readable_name,
            help=_clean(getattr(param, "help", None)),
            metavar=_metavar(param),
        )
    return None


def describe_command(command: click.Command, name: str) -> CommandDoc:
    """Collect the documentation of *command* and its visible sub-commands."""
    ctx = click.Context(command, info_name=name)
    description = _clean(command.help)
    doc = CommandDoc(
        name=name,
        summary=_clean(command.short_help) or _first_paragraph(description),
        description=description,
    )
    for param in command.get_params(ctx):
        described = _describe_param(param)
        if described is None:
            continue
        if isinstance(param, click.Argument):
            doc.arguments.append(described)
        else:
            doc.options.append(described)

    if isinstance(command, click.Group):
        for sub_name in command.list_commands(ctx):
            sub = command.get_command(ctx, sub_name)
            if sub is None or sub.hidden or sub_name in _UNDOCUMENTED_COMMANDS:
                continue
            doc.commands.append(describe_command(sub, sub_name))
    return doc


def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment for man page templates."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("1.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["troff"] = troff_escape
    return env


def _page_date() -> str:
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    if epoch and epoch.isdigit():
        day = datetime.datetime.fromtimestamp(int(epoch), tz=datetime.timezone.utc).date()
    else:
        day = datetime.date.today()
    return day.isoformat()


def render_manpage(command: str, version: str = __version__) -> str:
    """Render the man page of *command* (``slinky`` or ``slinky-ln``).

    Honors ``SOURCE_DATE_EPOCH`` for the page date.
    """
    from slinky.plugins.completion.plugin import get_click_command

    doc = describe_command(get_click_command(command), command)
    template = _create_jinja_env().get_template("slinky.1.j2")
    return template.render(page=doc, version=version, date=_page_date())
