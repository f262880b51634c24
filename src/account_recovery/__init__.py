"""Account Recovery - Password-reset code workflow with a durable recovery session."""

__version__ = "0.1.0"

from account_recovery.config import RecoveryConfig
from account_recovery.coordinator import RecoveryCoordinator

__all__ = ["RecoveryConfig", "RecoveryCoordinator", "__version__"]
