"""Shared fixtures: a scripted identity gateway and a temp-dir durable store."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import pytest

from account_recovery.gateway.base import GatewayResponse
from account_recovery.storage.store import FileDurableStore

Outcome = Union[GatewayResponse, Exception]


class ScriptedGateway:
    """Identity gateway that replays queued outcomes and records every call.

    When a queue is empty, ``request_reset`` succeeds without a message and
    ``verify_code`` succeeds with the token ``"tok_default"``.
    """

    def __init__(self) -> None:
        self.request_outcomes: list[Outcome] = []
        self.verify_outcomes: list[Outcome] = []
        self.calls: list[tuple] = []

    async def request_reset(self, email: str) -> GatewayResponse:
        self.calls.append(("request_reset", email))
        return self._next(self.request_outcomes, GatewayResponse())

    async def verify_code(self, email: str, code: str) -> GatewayResponse:
        self.calls.append(("verify_code", email, code))
        return self._next(self.verify_outcomes, GatewayResponse(token="tok_default"))

    @staticmethod
    def _next(outcomes: list[Outcome], default: GatewayResponse) -> GatewayResponse:
        outcome = outcomes.pop(0) if outcomes else default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture()
def storage_path(tmp_path: Path) -> str:
    return str(tmp_path / ".account-recovery")


@pytest.fixture()
def store(storage_path: str) -> FileDurableStore:
    """Return a FileDurableStore rooted in a fresh temp directory."""
    return FileDurableStore(storage_path)
