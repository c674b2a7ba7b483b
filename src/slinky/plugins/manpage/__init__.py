"""Man page plugin -- render section-1 troff pages from the Click command tree.

The main export is :func:`render_manpage`, used by ``slinky generate man``.
"""

from slinky.plugins.manpage.renderer import render_manpage

__all__ = ["render_manpage"]
