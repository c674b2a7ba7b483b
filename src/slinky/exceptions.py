"""Exception hierarchy for slinky.

All exceptions inherit from :class:`SlinkyError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`slinky.exit_codes`.
Command functions catch ``SlinkyError`` and exit with the appropriate code,
while unexpected exceptions reaching the console-script entry points
produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    SlinkyError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- NotFoundError       (exit 4)
    +-- LinkError           (exit 1)
    +-- ConfigError         (exit 1)
    +-- PackagingError      (exit 5)
        +-- BuildError          (exit 5)
        +-- InstallError        (exit 6)
        +-- VerificationError   (exit 7)
"""

from slinky.exit_codes import (
    EXIT_BUILD_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INSTALL_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_VERIFY_FAILURE,
)


class SlinkyError(Exception):
    """Base exception for all slinky errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`slinky.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SlinkyError):
    """Raised for conflicting flags or malformed arguments (e.g. a bad regex)."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(SlinkyError):
    """Raised when the path to search or link does not exist."""

    exit_code = EXIT_NOT_FOUND


class LinkError(SlinkyError):
    """Raised when a single link operation cannot be carried out."""


class ConfigError(SlinkyError):
    """Raised for configuration problems (invalid JSON, failed validation)."""


class PackagingError(SlinkyError):
    """Base class for failures in the compile / artifacts / install pipeline."""

    exit_code = EXIT_BUILD_FAILURE


class BuildError(PackagingError):
    """Raised when compiling an executable or generating its artifacts fails."""

    exit_code = EXIT_BUILD_FAILURE


class InstallError(PackagingError):
    """Raised when an artifact cannot be copied into the staging root."""

    exit_code = EXIT_INSTALL_FAILURE


class VerificationError(PackagingError):
    """Raised when an installed layout does not match the install plan."""

    exit_code = EXIT_VERIFY_FAILURE
