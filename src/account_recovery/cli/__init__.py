"""Click CLI commands for driving the recovery workflow from a terminal.

Provides the ``recovery`` CLI entry point with subcommands:
- ``recovery request`` -- Send a reset code to an email address.
- ``recovery verify``  -- Verify the code received by email.
- ``recovery resend``  -- Send a new code to the email on record.
- ``recovery status``  -- Show the current session (never the token).
- ``recovery finish``  -- Hand the token to the password-reset step.
- ``recovery clear``   -- Abandon the flow.
"""

from account_recovery.cli.main import cli, clear, finish, request, resend, status, verify

__all__ = ["cli", "clear", "finish", "request", "resend", "status", "verify"]
