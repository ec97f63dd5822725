"""Subscription listing command."""

import sys

import click

from azprov.commands.cli_helpers import (
    AUTH_CHOICES,
    configure_logging,
    console,
    resolve_credential,
    subscriptions_table,
)
from azprov.subscription_selector import SubscriptionSelectionError, list_subscriptions


@click.command(name="subscriptions")
@click.option(
    "--auth",
    type=AUTH_CHOICES,
    default="cli",
    show_default=True,
    help="Credential source: Azure CLI login or the SDK default chain",
)
@click.option("--all", "include_disabled", is_flag=True, help="Include disabled subscriptions")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed execution information")
def subscriptions_command(auth: str, include_disabled: bool, verbose: bool) -> None:
    """List Azure subscriptions available to the current account.

    \b
    Examples:
        azprov subscriptions
        azprov subscriptions --all
    """
    configure_logging(verbose)
    credential = resolve_credential(auth)

    try:
        subs = list_subscriptions(credential, include_disabled=include_disabled)
    except SubscriptionSelectionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not subs:
        click.echo("No subscriptions found. Run: az login")
        return

    console.print(subscriptions_table(subs))
