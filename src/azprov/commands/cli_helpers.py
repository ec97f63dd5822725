"""Shared helpers for azprov commands.

Logging setup, credential resolution and rich output tables.
"""

import logging
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from azprov.credentials import CredentialError, create_credential
from azprov.subscription_selector import Subscription
from azprov.vm_provisioning import VMConfig, VMDetails

logger = logging.getLogger(__name__)

console = Console()

AUTH_CHOICES = click.Choice(["cli", "default"], case_sensitive=False)


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for a command run.

    Azure SDK request logging stays at WARNING unless verbose.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)
    logging.getLogger("azure").setLevel(logging.DEBUG if verbose else logging.WARNING)


def resolve_credential(auth: str) -> Any:
    """Create the Azure credential or exit with an error message."""
    try:
        return create_credential(auth)
    except CredentialError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def subscriptions_table(subscriptions: list[Subscription]) -> Table:
    table = Table(title="Azure Subscriptions", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Subscription ID", style="yellow")
    table.add_column("State")
    table.add_column("Tenant ID", style="dim")

    for i, sub in enumerate(subscriptions, 1):
        table.add_row(
            str(i), sub.display_name, sub.subscription_id, sub.state, sub.tenant_id or "-"
        )
    return table


def summary_table(config: VMConfig, subscription: Subscription) -> Table:
    """Table describing what is about to be created. The password is never shown."""
    table = Table(title="VM to be provisioned", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    image = config.image
    table.add_row("Subscription", subscription.label)
    table.add_row("Resource group", config.resource_group)
    table.add_row("Region", config.location)
    table.add_row("VM name", config.name)
    table.add_row("Size", f"{config.size} (2 vCPU, 4 GiB RAM)")
    image_urn = ":".join(image[k] for k in ("publisher", "offer", "sku", "version"))
    table.add_row("Image", image_urn)
    table.add_row("OS disk", f"{config.os_disk_size_gb} GB {config.os_disk_storage_type}")
    table.add_row("Admin username", config.admin_username)
    table.add_row(
        "Network",
        f"{config.vnet_name} / {config.subnet_name}, {config.nsg_name} (SSH 22 open)",
    )
    return table


def display_vm_details(details: VMDetails) -> None:
    """Print the connection details for a freshly provisioned VM."""
    click.echo()
    click.secho(f"VM {details.name} is ready", fg="green", bold=True)
    click.echo(f"  Resource group: {details.resource_group}")
    click.echo(f"  Region:         {details.location}")
    click.echo(f"  Size:           {details.size}")
    click.echo(f"  Public IP:      {details.public_ip or 'N/A'}")
    if details.private_ip:
        click.echo(f"  Private IP:     {details.private_ip}")
    click.echo()
    if details.ssh_command:
        click.echo("Connect with:")
        click.secho(f"  {details.ssh_command}", fg="cyan")
    else:
        click.secho("No public IP address was reported for the VM.", fg="yellow")
