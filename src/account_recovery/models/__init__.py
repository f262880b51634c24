"""Pydantic data models for recovery sessions and operation results."""

from account_recovery.models.result import (
    NEXT_STEP_CODE_SENT,
    NEXT_STEP_RESET_PASSWORD,
    RecoveryResult,
)
from account_recovery.models.session import RecoverySession, RecoveryStage

__all__ = [
    "NEXT_STEP_CODE_SENT",
    "NEXT_STEP_RESET_PASSWORD",
    "RecoveryResult",
    "RecoverySession",
    "RecoveryStage",
]
