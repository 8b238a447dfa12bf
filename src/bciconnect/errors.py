"""
Error Codes and Exceptions
==========================

Closed set of result codes for the fallible operations of the library
(P300 model initialization) and the exception hierarchy that carries them.

Stateless numeric operations have no error channel of their own: malformed
window shapes are caller preconditions. Only the optional checked layer
(``bciconnect.window.check_window``) reports geometry problems.

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Result codes returned by value from fallible operations."""
    OK = 0
    MODEL_LOAD_FAILED = 1
    NOT_ALLOWED_MODEL_NUMBER = 2
    UNKNOWN = 0xFF


class BCIConnectError(Exception):
    """Base exception for all library errors."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ModelNotAllowedError(BCIConnectError):
    """Raised when a P300 model number is not part of the model zoo."""

    code = ErrorCode.NOT_ALLOWED_MODEL_NUMBER


class ModelLoadError(BCIConnectError):
    """Raised when pretrained model coefficients cannot be loaded."""

    code = ErrorCode.MODEL_LOAD_FAILED


class WindowShapeError(BCIConnectError, ValueError):
    """Raised by the checked layer when a buffer does not match its geometry."""


def error_code_for(exc: BaseException) -> ErrorCode:
    """Map an exception to the result code reported for it."""
    if isinstance(exc, BCIConnectError):
        return exc.code
    return ErrorCode.UNKNOWN
