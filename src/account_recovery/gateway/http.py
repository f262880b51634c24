"""HTTP implementation of the identity gateway.

Talks to the identity provider's REST API::

    POST {base_url}/forgot-password      {"email": ...}
    POST {base_url}/verify-reset-code    {"email": ..., "code": ...}

Successful responses carry an optional ``message`` and, for verification,
an optional ``token`` (``resetToken`` is accepted as an alias).  Error
responses carry ``error`` (preferred) or ``message``; a 429 is reported as
rate limiting.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from account_recovery.errors import (
    ExpiredOrInvalidCodeError,
    InvalidRequestError,
    NetworkError,
)
from account_recovery.gateway.base import GatewayResponse

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_PATH = "/forgot-password"
VERIFY_RESET_CODE_PATH = "/verify-reset-code"

REQUEST_FAILED_MESSAGE = "Failed to send password reset email. Please try again."
VERIFY_FAILED_MESSAGE = "Invalid or expired reset code"
RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."

# Statuses the provider uses for an unknown, spent or expired code.
_CODE_REJECTED_STATUSES = frozenset({401, 404, 410})


class HttpIdentityGateway:
    """Identity gateway backed by ``httpx.AsyncClient``.

    Parameters
    ----------
    base_url:
        Root URL of the identity provider, e.g. ``http://localhost:3000/auth``.
    timeout:
        Seconds before a request is abandoned.  *None* disables the
        client-side timeout.
    transport:
        Optional ``httpx`` transport, used to plug in a
        :class:`httpx.MockTransport` in tests.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def request_reset(self, email: str) -> GatewayResponse:
        data = await self._post(
            FORGOT_PASSWORD_PATH,
            {"email": email},
            fallback=REQUEST_FAILED_MESSAGE,
            verifying=False,
        )
        return GatewayResponse(message=_text(data, "message"))

    async def verify_code(self, email: str, code: str) -> GatewayResponse:
        data = await self._post(
            VERIFY_RESET_CODE_PATH,
            {"email": email, "code": code},
            fallback=VERIFY_FAILED_MESSAGE,
            verifying=True,
        )
        return GatewayResponse(
            message=_text(data, "message"),
            token=_text(data, "token") or _text(data, "resetToken"),
        )

    async def _post(
        self,
        path: str,
        payload: dict,
        fallback: str,
        verifying: bool,
    ) -> dict:
        """POST *payload* and return the decoded body of a 2xx response.

        Raises a classified :class:`RecoveryError` for everything else.
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Identity provider unreachable at %s: %s", url, exc)
            raise NetworkError() from exc

        data = _decode_body(response)
        if response.is_success:
            return data

        status = response.status_code
        logger.info(
            "Identity provider rejected %s with status %d.",
            path,
            status,
        )

        if status == 429:
            raise InvalidRequestError(_text(data, "message") or RATE_LIMITED_MESSAGE)

        server_message = _text(data, "error") or _text(data, "message")
        if verifying and (
            status in _CODE_REJECTED_STATUSES
            or _mentions_bad_code(server_message)
        ):
            raise ExpiredOrInvalidCodeError(server_message)

        raise InvalidRequestError(server_message or fallback)


def _decode_body(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _text(data: dict, field: str) -> Optional[str]:
    """Return ``data[field]`` when it is a non-blank string, else *None*."""
    value = data.get(field)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _mentions_bad_code(message: Optional[str]) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return "expired" in lowered or "invalid" in lowered
