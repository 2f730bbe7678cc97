"""Error handling utilities for the command line entry point.

This module provides a global exception hook so that errors escaping a
command are both logged to file and reported to the user with their
identifier tag.
"""

import logging
import sys
import traceback

from mexopencv.core.errors import MexError


def exception_handler(exctype: type[BaseException], value: BaseException, tb) -> None:  # type: ignore
    """Global exception handler to catch unhandled exceptions.

    This function logs the exception with its traceback and prints the
    message to standard error, prefixed with the identifier tag for errors
    raised by the bindings.

    Args:
        exctype: The exception type.
        value: The exception value.
        tb: The traceback object.
    """
    traceback_details = "".join(traceback.format_exception(exctype, value, tb))
    logging.error(f"Unhandled exception: {traceback_details}")

    if isinstance(value, MexError):
        print(f"Error using mexopencv\n{value.format()}", file=sys.stderr)
    else:
        print(f"An unexpected error occurred: {value!s}", file=sys.stderr)


def install_global_exception_handler() -> None:
    """Install the global exception handler.

    This function should be called at the start of the command so that all
    unhandled exceptions are properly logged and reported.
    """
    sys.excepthook = exception_handler
