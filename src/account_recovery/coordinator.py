"""RecoveryCoordinator -- the state machine behind password recovery.

Bridges a :class:`RecoverySession` (in-memory state), an
:class:`IdentityGateway` (remote authority on codes) and a
:class:`DurableStore` (the only state that survives a reload).

Every operation follows the same shape:

1. check locally that the current stage allows it -- local failures
   (``missing_context``, ``invalid_stage``, blank input) never reach the
   network;
2. make exactly one gateway call, with no retry;
3. on success, persist to the store and advance the session;
   on failure, leave the stage where it was and record ``last_error``.
   Unexpected exceptions from the gateway or the store are logged and
   reported as a generic validation error.

Operations return a :class:`RecoveryResult` instead of raising, so the
coordinator always ends in a stable, retryable stage.

Typical usage::

    coordinator = RecoveryCoordinator.from_config(RecoveryConfig.load())
    result = await coordinator.request_code("a@b.com")
    result = await coordinator.verify_code("123456")
    token = coordinator.consume_token()     # hand over to the reset step

The coordinator is not safe for concurrent use: callers must await each
operation before issuing the next.
"""

from __future__ import annotations

import logging
from typing import Optional

from account_recovery.config import DEFAULT_REDIRECT_DELAY_SECONDS, RecoveryConfig
from account_recovery.errors import (
    InvalidRequestError,
    InvalidStageError,
    MissingContextError,
    RecoveryError,
)
from account_recovery.gateway.base import IdentityGateway
from account_recovery.gateway.http import HttpIdentityGateway
from account_recovery.models.result import (
    NEXT_STEP_CODE_SENT,
    NEXT_STEP_RESET_PASSWORD,
    RecoveryResult,
)
from account_recovery.models.session import RecoverySession, RecoveryStage
from account_recovery.storage.store import (
    EMAIL_KEY,
    TOKEN_KEY,
    DurableStore,
    FileDurableStore,
)

logger = logging.getLogger(__name__)

CODE_SENT_MESSAGE = "Password reset code has been sent to your email address."
CODE_RESENT_MESSAGE = "New reset code has been sent to your email."
CODE_VERIFIED_MESSAGE = "Reset code verified successfully!"

BLANK_EMAIL_MESSAGE = "Please enter your email address."
BLANK_CODE_MESSAGE = "Please enter the reset code."
ALREADY_VERIFIED_MESSAGE = (
    "Your reset code has already been verified. Continue to set a new password."
)
IN_PROGRESS_MESSAGE = "A request is already in progress. Please wait."


class RecoveryCoordinator:
    """Drives a :class:`RecoverySession` through the recovery workflow.

    Parameters
    ----------
    gateway:
        The identity provider.
    store:
        Durable storage for the ``email`` and ``token`` keys.  On
        construction the session is rebuilt from it (see :meth:`restore`).
    redirect_delay_seconds:
        Delay hint attached to a successful verification.
    """

    def __init__(
        self,
        gateway: IdentityGateway,
        store: DurableStore,
        redirect_delay_seconds: float = DEFAULT_REDIRECT_DELAY_SECONDS,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._redirect_delay = redirect_delay_seconds
        self._session = self.restore()

    @classmethod
    def from_config(
        cls,
        config: RecoveryConfig,
        gateway: Optional[IdentityGateway] = None,
    ) -> "RecoveryCoordinator":
        """Build a coordinator with a file store and an HTTP gateway.

        *gateway* overrides the HTTP gateway derived from the config.
        """
        expiry = {}
        if config.token_ttl_seconds is not None:
            expiry[TOKEN_KEY] = config.token_ttl_seconds
        store = FileDurableStore(config.storage_path, expiry=expiry)
        if gateway is None:
            gateway = HttpIdentityGateway(
                config.gateway_base_url,
                timeout=config.gateway_timeout,
            )
        return cls(
            gateway,
            store,
            redirect_delay_seconds=config.redirect_delay_seconds,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session(self) -> RecoverySession:
        """A copy of the current session."""
        return self._session.model_copy()

    # ------------------------------------------------------------------
    # Workflow operations
    # ------------------------------------------------------------------

    async def request_code(self, email: str) -> RecoveryResult:
        """Ask the gateway to send a reset code to *email*.

        Allowed from any stage before verification.  Calling it again from
        ``code_sent`` restarts delivery, possibly for a different address.
        """
        email = email.strip()
        try:
            self._ensure_can_send()
            if not email:
                raise InvalidRequestError(BLANK_EMAIL_MESSAGE)
        except RecoveryError as exc:
            return self._fail(exc)
        return await self._send_code(email, CODE_SENT_MESSAGE)

    async def resend_code(self) -> RecoveryResult:
        """Send a fresh code to the email already on record.

        The stage stays ``code_sent`` whether the call succeeds or fails.
        """
        try:
            self._ensure_can_send()
            email = self._resolve_email()
        except RecoveryError as exc:
            return self._fail(exc)
        return await self._send_code(email, CODE_RESENT_MESSAGE)

    async def verify_code(self, code: str) -> RecoveryResult:
        """Verify *code* for the email on record.

        On success the session becomes ``verified`` and any token issued by
        the gateway is persisted before it is exposed on the session.
        """
        code = code.strip()
        try:
            email = self._resolve_email()
            if self._session.stage != RecoveryStage.CODE_SENT:
                raise InvalidStageError(self._stage_refusal())
            if not code:
                raise InvalidRequestError(BLANK_CODE_MESSAGE)
        except RecoveryError as exc:
            return self._fail(exc)

        self._replace(
            stage=RecoveryStage.VERIFY_PENDING,
            last_error=None,
            error_kind=None,
            last_message=None,
        )
        try:
            response = await self._gateway.verify_code(email, code)
            if response.token is not None:
                self._store.set(TOKEN_KEY, response.token)
        except RecoveryError as exc:
            self._replace(stage=RecoveryStage.CODE_SENT)
            logger.info("Reset code rejected for %s: %s", email, exc.kind.value)
            return self._fail(exc)
        except Exception:
            self._replace(stage=RecoveryStage.CODE_SENT)
            logger.exception("Verifying the reset code for %s failed", email)
            return self._fail(RecoveryError())

        if response.token is None:
            logger.warning(
                "Gateway verified the code for %s without issuing a token.", email
            )

        message = response.message or CODE_VERIFIED_MESSAGE
        self._replace(
            stage=RecoveryStage.VERIFIED,
            token=response.token,
            last_error=None,
            error_kind=None,
            last_message=message,
        )
        logger.info("Reset code verified for %s.", email)
        return RecoveryResult.success(
            message,
            next_step=NEXT_STEP_RESET_PASSWORD,
            redirect_delay_seconds=self._redirect_delay,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def restore(self) -> RecoverySession:
        """Rebuild a session from the durable store.

        An email alone resumes at ``code_sent``; an email plus a token
        resumes at ``verified``.  A token without an email is stale and is
        removed.
        """
        email = self._store.get(EMAIL_KEY)
        token = self._store.get(TOKEN_KEY)

        if email is None:
            if token is not None:
                logger.warning("Found a recovery token without an email. Discarding it.")
                self._store.remove(TOKEN_KEY)
            return RecoverySession()

        if token is not None:
            logger.debug("Restored verified recovery session for %s.", email)
            return RecoverySession(
                email=email, stage=RecoveryStage.VERIFIED, token=token
            )

        logger.debug("Restored recovery session for %s at code_sent.", email)
        return RecoverySession(email=email, stage=RecoveryStage.CODE_SENT)

    def consume_token(self) -> Optional[str]:
        """Hand the token to the password-reset step and end the session.

        Returns *None* (and keeps the session) unless the session is
        verified.  An expired token in the store also yields *None*.
        """
        if not self._session.is_verified:
            return None
        token = self._store.get(TOKEN_KEY)
        self.clear()
        return token

    def clear(self) -> None:
        """Forget the session in memory and in the durable store."""
        self._store.remove(TOKEN_KEY)
        self._store.remove(EMAIL_KEY)
        self._session = RecoverySession()
        logger.info("Recovery session cleared.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _send_code(self, email: str, default_message: str) -> RecoveryResult:
        """Shared request/resend path: one ``request_reset`` call."""
        snapshot = self._session
        self._replace(
            email=email,
            stage=RecoveryStage.REQUEST_PENDING,
            token=None,
            last_error=None,
            error_kind=None,
            last_message=None,
        )
        try:
            response = await self._gateway.request_reset(email)
            self._store.set(EMAIL_KEY, email)
            self._store.remove(TOKEN_KEY)
        except RecoveryError as exc:
            self._session = snapshot
            logger.info("Reset code request failed for %s: %s", email, exc.kind.value)
            return self._fail(exc)
        except Exception:
            self._session = snapshot
            logger.exception("Requesting a reset code for %s failed", email)
            return self._fail(RecoveryError())

        message = response.message or default_message
        self._replace(
            stage=RecoveryStage.CODE_SENT,
            last_error=None,
            error_kind=None,
            last_message=message,
        )
        logger.info("Reset code sent to %s.", email)
        return RecoveryResult.success(message, next_step=NEXT_STEP_CODE_SENT)

    def _resolve_email(self) -> str:
        """Return the email on record, falling back to the durable store.

        Adopting an email from the store resumes the session at
        ``code_sent``.
        """
        if self._session.email is not None:
            return self._session.email

        email = self._store.get(EMAIL_KEY)
        if not email:
            raise MissingContextError()

        self._replace(email=email, stage=RecoveryStage.CODE_SENT)
        return email

    def _ensure_can_send(self) -> None:
        if self._session.stage.is_pending or self._session.is_verified:
            raise InvalidStageError(self._stage_refusal())

    def _stage_refusal(self) -> str:
        if self._session.is_verified:
            return ALREADY_VERIFIED_MESSAGE
        if self._session.stage.is_pending:
            return IN_PROGRESS_MESSAGE
        return InvalidStageError.default_message

    def _fail(self, exc: RecoveryError) -> RecoveryResult:
        self._replace(
            last_error=exc.message,
            error_kind=exc.kind,
            last_message=None,
        )
        return RecoveryResult.failure(exc)

    def _replace(self, **changes) -> None:
        # Build a whole new session so invariants are checked on the final
        # state rather than field by field.
        data = self._session.model_dump()
        data.update(changes)
        self._session = RecoverySession.model_validate(data)
