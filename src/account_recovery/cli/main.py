"""Main Click CLI entry point for the recovery command.

Every invocation builds a fresh :class:`RecoveryCoordinator` from the
durable store, so running ``verify`` in a new shell after ``request``
exercises exactly the same path as a full page reload.

Entry point registered in pyproject.toml::

    [project.scripts]
    recovery = "account_recovery.cli.main:cli"

Usage examples::

    recovery request a@b.com
    recovery verify 123456 --json-output
    recovery resend
    recovery status --json-output
    recovery finish
    recovery clear
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import click

from account_recovery import __version__
from account_recovery.config import RecoveryConfig
from account_recovery.coordinator import RecoveryCoordinator
from account_recovery.models.result import NEXT_STEP_RESET_PASSWORD, RecoveryResult


@click.group()
@click.version_option(version=__version__, prog_name="account-recovery")
@click.option(
    "--storage-path",
    type=click.Path(exists=False),
    default=None,
    envvar="ACCOUNT_RECOVERY_STORAGE_PATH",
    help="Path to the .account-recovery storage directory. Auto-detected if not set.",
)
@click.option(
    "--base-url",
    default=None,
    help="Base URL of the identity provider. Overrides the configured value.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Log workflow activity to stderr at the configured log level.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    storage_path: Optional[str],
    base_url: Optional[str],
    verbose: bool,
) -> None:
    """Account Recovery -- reset a forgotten password with an emailed code."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["storage_path"] = storage_path
    ctx.obj["base_url"] = base_url


@cli.command()
@click.argument("email")
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output the result as JSON instead of human-readable text.",
)
@click.pass_context
def request(ctx: click.Context, email: str, output_json: bool) -> None:
    """Send a password reset code to EMAIL."""
    coordinator = _build_coordinator(ctx)
    result = asyncio.run(coordinator.request_code(email))
    _render_result(ctx, result, output_json)
    if not output_json:
        click.echo("Enter the code with: recovery verify <code>")


@cli.command()
@click.argument("code")
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output the result as JSON instead of human-readable text.",
)
@click.pass_context
def verify(ctx: click.Context, code: str, output_json: bool) -> None:
    """Verify the reset CODE received by email."""
    coordinator = _build_coordinator(ctx)
    result = asyncio.run(coordinator.verify_code(code))
    _render_result(ctx, result, output_json)
    if not output_json and result.next_step == NEXT_STEP_RESET_PASSWORD:
        click.echo("You can now set a new password. Run: recovery finish")


@cli.command()
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output the result as JSON instead of human-readable text.",
)
@click.pass_context
def resend(ctx: click.Context, output_json: bool) -> None:
    """Send a new reset code to the email on record."""
    coordinator = _build_coordinator(ctx)
    result = asyncio.run(coordinator.resend_code())
    _render_result(ctx, result, output_json)


@cli.command()
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output status as JSON instead of human-readable text.",
)
@click.pass_context
def status(ctx: click.Context, output_json: bool) -> None:
    """Show the current recovery session.  The token itself is never shown."""
    coordinator = _build_coordinator(ctx)
    session = coordinator.session
    data = {
        "email": session.email,
        "stage": session.stage.value,
        "has_token": session.token is not None,
    }

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho("Account Recovery -- Session Status", fg="cyan", bold=True)
    click.secho("=" * 36, fg="cyan")
    click.echo(f"  Email:  {data['email'] or '(none)'}")
    click.echo(f"  Stage:  {data['stage']}")
    click.echo(f"  Token:  {'present' if data['has_token'] else 'absent'}")


@cli.command()
@click.pass_context
def finish(ctx: click.Context) -> None:
    """Hand the recovery token to the password-reset step and end the session."""
    coordinator = _build_coordinator(ctx)
    if not coordinator.session.is_verified:
        click.secho(
            "ERROR: No verified reset session. Please request a new password reset.",
            fg="red",
            err=True,
        )
        ctx.exit(1)

    token = coordinator.consume_token()
    if token is None:
        click.secho(
            "ERROR: Your reset session has expired. Please request a new password reset.",
            fg="red",
            err=True,
        )
        ctx.exit(1)
    click.echo(token)


@cli.command()
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Abandon the recovery flow and forget the stored email and token."""
    coordinator = _build_coordinator(ctx)
    coordinator.clear()
    click.echo("Recovery session cleared.")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_coordinator(ctx: click.Context) -> RecoveryCoordinator:
    """Load configuration and construct a coordinator from it.

    ``ctx.obj["gateway"]`` replaces the HTTP gateway when present.
    """
    storage_path = ctx.obj.get("storage_path")
    base_url = ctx.obj.get("base_url")

    try:
        config = RecoveryConfig.load(storage_path=storage_path)
        if base_url:
            config = RecoveryConfig.model_validate(
                {**config.model_dump(), "gateway_base_url": base_url}
            )
    except Exception as exc:
        click.secho(f"ERROR: Failed to load configuration: {exc}", fg="red", err=True)
        ctx.exit(1)

    if ctx.obj.get("verbose"):
        config.configure_logging()
    return RecoveryCoordinator.from_config(config, gateway=ctx.obj.get("gateway"))


def _render_result(
    ctx: click.Context, result: RecoveryResult, output_json: bool = False
) -> None:
    """Print a result; failures go to stderr and exit with status 1."""
    if output_json:
        click.echo(json.dumps(result.to_json_dict(), indent=2))
        if not result.ok:
            ctx.exit(1)
        return

    if result.ok:
        click.secho(result.message or "", fg="green")
        return

    click.secho(f"ERROR: {result.error}", fg="red", err=True)
    if result.suggest_resend:
        click.echo("Would you like to request a new code? Run: recovery resend", err=True)
    ctx.exit(1)


if __name__ == "__main__":
    cli()
