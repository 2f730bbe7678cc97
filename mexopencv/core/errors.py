"""Error and warning types raised across the host boundary.

Every failure in an adapter call is fatal to that call and surfaces as one of
the `MexError` subclasses below. Each error carries a fixed identifier tag
(``"mexopencv:error"`` by default) next to its human-readable message, which
is what the host environment displays.

Classes:
    MexError: Base class for all host-level errors.
    ArgumentCountError: Wrong number of input or output arguments.
    InvalidArgument: Type, shape or value mismatch while marshaling, unknown
        option key or value, or an unknown object handle.
    LibraryOperationError: The wrapped library reported a failure.
    AllocationError: A host array could not be allocated.
    MexWarning: Warning category for the non-fatal cases.
"""

import logging
import warnings

ERROR_ID = "mexopencv:error"
WARNING_ID = "mexopencv:warning"


class MexError(Exception):
    """Base class for errors reported to the host.

    Attributes:
        identifier: The error-kind tag, e.g. ``"mexopencv:error"``.
        message: The formatted human-readable message.
    """

    identifier: str = ERROR_ID

    def __init__(self, message: str, identifier: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if identifier is not None:
            self.identifier = identifier

    def format(self) -> str:
        """Return the message prefixed with its identifier tag."""
        return f"{self.identifier}: {self.message}"


class ArgumentCountError(MexError):
    """Raised before any conversion when the argument counts do not match."""

    def __init__(self, message: str = "Wrong number of arguments", identifier: str | None = None) -> None:
        super().__init__(message, identifier)


class InvalidArgument(MexError, ValueError):
    """Raised for malformed arguments, unknown options and unknown handles."""


class LibraryOperationError(MexError, RuntimeError):
    """Raised when the wrapped library call itself fails."""


class AllocationError(MexError, MemoryError):
    """Raised when a host-side array cannot be allocated."""

    def __init__(self, message: str = "Allocation error", identifier: str | None = None) -> None:
        super().__init__(message, identifier)


class MexWarning(UserWarning):
    """Category for warnings issued to the host instead of failing the call."""


def set_identifiers(error_id: str, warning_id: str) -> None:
    """Change the identifier tags used by errors and warnings raised from now on."""
    global WARNING_ID
    MexError.identifier = error_id
    WARNING_ID = warning_id


def raise_warning(message: str) -> None:
    """Issue a host warning and continue.

    The warning is both logged and emitted through the `warnings` module so
    callers can filter or escalate it.

    Args:
        message: The warning text.
    """
    logging.warning(f"{WARNING_ID}: {message}")
    warnings.warn(f"{WARNING_ID}: {message}", MexWarning, stacklevel=3)
