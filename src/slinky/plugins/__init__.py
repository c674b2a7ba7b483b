"""Bundled plugins for slinky.

* :mod:`slinky.plugins.completion` -- the ``slinky generate`` command group
  (completion scripts and man pages).
* :mod:`slinky.plugins.manpage` -- troff man page rendering.
* :mod:`slinky.plugins.build` -- the ``slinky-package`` build and install
  pipeline.
"""
