"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~slinky.exceptions.SlinkyError` subclass.
Packaging scripts can inspect the exit code to tell a failed compile from
a failed install without parsing stderr.

Example::

    $ slinky-package install --destdir ./pkg
    $ echo $?
    6   # EXIT_INSTALL_FAILURE -- an artifact could not be copied
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid or conflicting arguments."""

EXIT_NOT_FOUND = 4
"""The path to operate on does not exist."""

EXIT_BUILD_FAILURE = 5
"""Compiling the executables or generating their artifacts failed."""

EXIT_INSTALL_FAILURE = 6
"""Copying artifacts into the staging root failed."""

EXIT_VERIFY_FAILURE = 7
"""An installed layout is missing files or has the wrong permission bits."""
