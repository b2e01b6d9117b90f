"""
Click CLI for the OAuth credential broker.

Operator commands for connecting and disconnecting providers without the
admin web UI. Side effects (backup sync, gateway restart) run inline
after each state-changing command.
"""

import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

import click

from .config import BrokerConfig
from .coordinator import OAuthCoordinator
from .exceptions import OAuthBrokerError
from .providers import ProviderId

logger = logging.getLogger(__name__)

PROVIDER_CHOICES = [provider.value for provider in ProviderId]


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def print_success(message: str) -> None:
    """Print success message."""
    click.secho(message, fg="green")


def run_inline(effect) -> None:
    effect()


def format_millis(value: Optional[int]) -> str:
    if value is None:
        return "-"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def get_coordinator(ctx: click.Context) -> OAuthCoordinator:
    """Get the OAuthCoordinator from context."""
    return ctx.obj["coordinator"]


@click.group()
@click.option("--state-dir", envvar="OAUTH_STATE_DIR", help="Credential/config directory")
@click.option("--pending-dir", envvar="OAUTH_PENDING_DIR", help="Pending flow directory")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--json", "output_json", is_flag=True, help="JSON output")
@click.pass_context
def cli(
    ctx: click.Context,
    state_dir: Optional[str],
    pending_dir: Optional[str],
    verbose: bool,
    output_json: bool,
) -> None:
    """
    OAuth Broker - connect OpenAI and Anthropic accounts to the gateway.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)

    try:
        config = BrokerConfig.from_env()
        if state_dir:
            config = replace(config, state_dir=state_dir)
        if pending_dir:
            config = replace(config, pending_dir=pending_dir)
    except OAuthBrokerError as e:
        print_error(str(e))
        sys.exit(2)

    ctx.obj["coordinator"] = OAuthCoordinator(config)
    ctx.obj["json"] = output_json


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show connection status for each provider."""
    statuses = get_coordinator(ctx).status()

    if ctx.obj["json"]:
        click.echo(json.dumps({name: s.to_dict() for name, s in statuses.items()}, indent=2))
        return

    for name, provider_status in statuses.items():
        marker = click.style("connected", fg="green") if provider_status.connected else "not connected"
        click.echo(f"{name:<10} {marker}")
        click.echo(f"  phase:    {provider_status.phase.value}")
        click.echo(f"  pending:  {'yes' if provider_status.pending else 'no'}")
        click.echo(f"  obtained: {format_millis(provider_status.obtained_at)}")


@cli.command()
@click.argument("provider", type=click.Choice(PROVIDER_CHOICES))
@click.pass_context
def start(ctx: click.Context, provider: str) -> None:
    """
    Start an authorization flow and print the authorize URL.

    \b
    Examples:
      oauth-broker start openai
      oauth-broker start anthropic
    """
    try:
        result = get_coordinator(ctx).start(provider)
    except OAuthBrokerError as e:
        print_error(str(e))
        sys.exit(1)

    if ctx.obj["json"]:
        click.echo(json.dumps({"auth_url": result.auth_url, "state": result.state}))
        return

    click.echo("Open this URL in a browser and authorize the application:")
    click.echo()
    click.echo(f"  {result.auth_url}")
    click.echo()
    click.echo(f"Then run: oauth-broker exchange {provider} --code <code>")


@cli.command()
@click.argument("provider", type=click.Choice(PROVIDER_CHOICES))
@click.option("--code", help="Authorization code")
@click.option("--callback-url", help="Full redirect URL (openai)")
@click.pass_context
def exchange(
    ctx: click.Context, provider: str, code: Optional[str], callback_url: Optional[str]
) -> None:
    """Exchange an authorization code and store the credentials."""
    try:
        result = get_coordinator(ctx).exchange(
            provider, code=code, callback_url=callback_url, schedule=run_inline
        )
    except OAuthBrokerError as e:
        if ctx.obj["json"]:
            click.echo(json.dumps({"status": "error", "error": str(e)}))
        else:
            print_error(str(e))
        sys.exit(1)

    if ctx.obj["json"]:
        click.echo(json.dumps({"status": "complete", "key_source": result.key_source.value}))
        return

    print_success(f"{provider} connected (api key source: {result.key_source.value})")
    if not result.config_patched:
        click.secho("Warning: gateway routing config was not updated", fg="yellow")


@cli.command()
@click.argument("provider", type=click.Choice(PROVIDER_CHOICES))
@click.pass_context
def revoke(ctx: click.Context, provider: str) -> None:
    """Remove stored credentials for a provider."""
    try:
        message = get_coordinator(ctx).revoke(provider, schedule=run_inline)
    except OAuthBrokerError as e:
        print_error(str(e))
        sys.exit(1)

    if ctx.obj["json"]:
        click.echo(json.dumps({"success": True, "message": message}))
        return
    print_success(message)


if __name__ == "__main__":
    cli()
