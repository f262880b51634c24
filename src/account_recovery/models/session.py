"""RecoverySession model -- the record of one password-recovery attempt.

A session moves along the ordered path::

    idle -> request_pending -> code_sent -> verify_pending -> verified

Failures do not get a stage of their own in storage: an error message is
attached to whichever stage the failure happened in, and
:attr:`RecoverySession.display_stage` reports ``failed`` while it is set.
Only :class:`~account_recovery.coordinator.RecoveryCoordinator` mutates a
session.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from account_recovery.errors import ErrorKind


class RecoveryStage(str, Enum):
    """Position of a session in the recovery workflow."""

    IDLE = "idle"
    REQUEST_PENDING = "request_pending"
    CODE_SENT = "code_sent"
    VERIFY_PENDING = "verify_pending"
    VERIFIED = "verified"
    FAILED = "failed"

    @property
    def is_pending(self) -> bool:
        return self in (RecoveryStage.REQUEST_PENDING, RecoveryStage.VERIFY_PENDING)


class RecoverySession(BaseModel):
    """State of a single recovery attempt.

    Invariants checked on construction and on every assignment:

    - a token is only ever present on a ``verified`` session;
    - every stage other than ``idle`` has an email;
    - ``failed`` is never stored directly, it is derived from ``last_error``.
    """

    model_config = {"validate_assignment": True}

    email: Optional[str] = Field(
        default=None,
        description="Address the reset code was sent to.",
    )
    stage: RecoveryStage = Field(
        default=RecoveryStage.IDLE,
        description="Current position in the workflow.",
    )
    token: Optional[str] = Field(
        default=None,
        description="Short-lived recovery credential, set only after verification.",
    )
    last_error: Optional[str] = Field(
        default=None,
        description="Latest failure message, cleared on every new attempt.",
    )
    error_kind: Optional[ErrorKind] = Field(
        default=None,
        description="Classification of last_error.",
    )
    last_message: Optional[str] = Field(
        default=None,
        description="Latest success message shown to the user.",
    )

    @model_validator(mode="after")
    def check_invariants(self) -> "RecoverySession":
        if self.stage == RecoveryStage.FAILED:
            raise ValueError(
                "'failed' is derived from last_error and cannot be stored as a stage."
            )
        if self.token is not None and self.stage != RecoveryStage.VERIFIED:
            raise ValueError(
                f"A token may only be held by a verified session (stage={self.stage.value})."
            )
        if self.email is None and self.stage != RecoveryStage.IDLE:
            raise ValueError(f"Stage '{self.stage.value}' requires an email.")
        return self

    @property
    def display_stage(self) -> RecoveryStage:
        """The stage as the user sees it: ``failed`` while an error is set."""
        if self.last_error is not None:
            return RecoveryStage.FAILED
        return self.stage

    @property
    def is_verified(self) -> bool:
        return self.stage == RecoveryStage.VERIFIED
