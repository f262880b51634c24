"""Error taxonomy for the recovery workflow.

Every failure that reaches the coordinator is a :class:`RecoveryError`
carrying an :class:`ErrorKind` and a message fit to show the user.  Gateway
implementations raise the network/validation/code variants; the coordinator
raises the local ones (:class:`MissingContextError`, :class:`InvalidStageError`)
before any network call is made.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of a recovery failure."""

    NETWORK_ERROR = "network_error"
    VALIDATION_ERROR = "validation_error"
    EXPIRED_OR_INVALID_CODE = "expired_or_invalid_code"
    MISSING_CONTEXT = "missing_context"
    INVALID_STAGE = "invalid_stage"


class RecoveryError(Exception):
    """Base class for all recovery failures."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    default_message = "An unexpected error occurred. Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(RecoveryError):
    """The transport failed and no server response arrived."""

    kind = ErrorKind.NETWORK_ERROR
    default_message = "Server not responding. Please try again later."


class InvalidRequestError(RecoveryError):
    """The server rejected a malformed email or code."""

    kind = ErrorKind.VALIDATION_ERROR


class ExpiredOrInvalidCodeError(RecoveryError):
    kind = ErrorKind.EXPIRED_OR_INVALID_CODE
    default_message = "The reset code is invalid or has expired."


class MissingContextError(RecoveryError):
    """No email could be resolved from memory or the durable store."""

    kind = ErrorKind.MISSING_CONTEXT
    default_message = "No email found. Please request password reset again."


class InvalidStageError(RecoveryError):
    kind = ErrorKind.INVALID_STAGE
    default_message = "This action is not available at the current step."
