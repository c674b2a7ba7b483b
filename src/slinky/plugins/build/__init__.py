"""Packaging plugin -- compile, document and install slinky.

Provides the ``slinky-package`` command line (:data:`build_app`) and the
step functions in :mod:`slinky.plugins.build.pipeline` that it drives.
"""

from slinky.plugins.build.plugin import build_app, main

__all__ = ["build_app", "main"]
