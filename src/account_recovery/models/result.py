"""RecoveryResult -- the outcome of one coordinator operation."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from account_recovery.errors import ErrorKind, RecoveryError

# Navigation hints handed back to the caller.
NEXT_STEP_CODE_SENT = "code-sent"
NEXT_STEP_RESET_PASSWORD = "reset-password"


class RecoveryResult(BaseModel):
    """Either a success message or a classified error, never both.

    ``next_step`` and ``redirect_delay_seconds`` tell the caller which view
    to show next and how long to leave the success message on screen.
    """

    ok: bool
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    next_step: Optional[str] = None
    redirect_delay_seconds: float = Field(default=0.0, ge=0)
    suggest_resend: bool = Field(
        default=False,
        description="True when requesting a new code is the sensible next action.",
    )

    @classmethod
    def success(
        cls,
        message: str,
        next_step: Optional[str] = None,
        redirect_delay_seconds: float = 0.0,
    ) -> "RecoveryResult":
        return cls(
            ok=True,
            message=message,
            next_step=next_step,
            redirect_delay_seconds=redirect_delay_seconds,
        )

    @classmethod
    def failure(cls, exc: RecoveryError) -> "RecoveryResult":
        return cls(
            ok=False,
            error=exc.message,
            error_kind=exc.kind,
            suggest_resend=exc.kind == ErrorKind.EXPIRED_OR_INVALID_CODE,
        )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json")
