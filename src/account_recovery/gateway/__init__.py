"""Identity gateway contract and its HTTP implementation."""

from account_recovery.gateway.base import GatewayResponse, IdentityGateway
from account_recovery.gateway.http import HttpIdentityGateway

__all__ = ["GatewayResponse", "HttpIdentityGateway", "IdentityGateway"]
