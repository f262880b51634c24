"""IdentityGateway contract -- the remote authority on reset codes.

The gateway decides whether an email is acceptable and whether a code is
valid; the coordinator never inspects a code's content.  Failures are
raised as :class:`~account_recovery.errors.RecoveryError` subclasses.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator


class GatewayResponse(BaseModel):
    """Success payload of a gateway call."""

    message: Optional[str] = Field(
        default=None,
        description="Human-readable message from the identity provider.",
    )
    token: Optional[str] = Field(
        default=None,
        description="Recovery credential, only ever returned by verify_code.",
    )

    @field_validator("message", "token", mode="before")
    @classmethod
    def blank_is_absent(cls, value: object) -> object:
        # A token is either present and usable or absent; "" counts as absent.
        if isinstance(value, str) and not value.strip():
            return None
        return value


@runtime_checkable
class IdentityGateway(Protocol):
    """Remote operations the recovery flow depends on.

    Resending a code goes through :meth:`request_reset` as well, so the
    initial request and a resend can never be handled differently.
    """

    async def request_reset(self, email: str) -> GatewayResponse:
        """Trigger out-of-band delivery of a reset code to *email*."""
        ...

    async def verify_code(self, email: str, code: str) -> GatewayResponse:
        """Validate *code* for *email*, possibly issuing a token."""
        ...
