"""VM provisioning command.

Walks the operator through subscription selection and the handful of values
the VM needs, then runs the fixed provisioning sequence.
"""

import logging
import os
import sys
from typing import Any

import click

from azprov.commands.cli_helpers import (
    AUTH_CHOICES,
    configure_logging,
    console,
    display_vm_details,
    resolve_credential,
    summary_table,
)
from azprov.config_manager import AzprovConfig, ConfigError, ConfigManager
from azprov.modules.interaction_handler import CLIInteractionHandler, InteractionHandler
from azprov.modules.progress import ProgressDisplay
from azprov.subscription_selector import (
    Subscription,
    SubscriptionSelectionError,
    list_subscriptions,
    select_subscription,
)
from azprov.vm_provisioning import (
    PROVISIONING_STEP_COUNT,
    ProvisioningError,
    ValidationError,
    VMConfig,
    VMDetails,
    VMProvisioner,
)

logger = logging.getLogger(__name__)

PASSWORD_ENV_VAR = "AZPROV_ADMIN_PASSWORD"  # noqa: S105 - env var name, not a password


def _resolve_subscription(
    credential: Any,
    interaction: InteractionHandler,
    requested: str | None,
    config: AzprovConfig,
) -> Subscription:
    """Select the subscription: explicit option, then last used, then prompt."""
    subs = list_subscriptions(credential)

    if requested:
        return select_subscription(subs, interaction, preferred=requested)

    remembered = config.default_subscription
    if remembered and any(s.subscription_id == remembered for s in subs) and len(subs) > 1:
        sub = select_subscription(subs, interaction, preferred=remembered)
        interaction.show_info(f"Using last used subscription: {sub.label}")
        return sub

    return select_subscription(subs, interaction)


def collect_vm_config(
    interaction: InteractionHandler,
    subscription: Subscription,
    config: AzprovConfig,
    region: str | None = None,
    resource_group: str | None = None,
    name: str | None = None,
    admin_username: str | None = None,
    admin_password: str | None = None,
) -> VMConfig:
    """Prompt for anything not given on the command line and validate it.

    Raises:
        ValidationError: If a value is invalid
    """
    region = region or interaction.prompt_text("Azure region", default=config.default_region)
    resource_group = resource_group or interaction.prompt_text(
        "Resource group name", default=config.default_resource_group
    )
    name = name or interaction.prompt_text("VM name")
    admin_username = admin_username or interaction.prompt_text(
        "Admin username", default=config.default_admin_username
    )
    if not admin_password:
        admin_password = interaction.prompt_password("Admin password")

    return VMProvisioner.create_vm_config(
        name=name,
        resource_group=resource_group,
        location=region,
        subscription_id=subscription.subscription_id,
        admin_username=admin_username,
        admin_password=admin_password,
    )


def run_provisioning(
    provisioner: VMProvisioner,
    vm_config: VMConfig,
    progress: ProgressDisplay | None = None,
) -> VMDetails:
    """Run the provisioning sequence with progress output."""
    progress = progress or ProgressDisplay()
    progress.start_operation(
        f"Provisioning VM {vm_config.name}",
        total_steps=PROVISIONING_STEP_COUNT,
        estimated_seconds=300,
    )
    try:
        details = provisioner.provision(vm_config, progress_callback=progress.step)
    except ProvisioningError:
        progress.complete(success=False)
        raise
    progress.complete(success=True, message=f"VM {vm_config.name} provisioned")
    return details


def _remember_defaults(
    config_path: str | None, subscription: Subscription, vm_config: VMConfig
) -> None:
    try:
        ConfigManager.update_config(
            config_path,
            default_subscription=subscription.subscription_id,
            default_region=vm_config.location,
            default_resource_group=vm_config.resource_group,
            default_admin_username=vm_config.admin_username,
            last_vm_name=vm_config.name,
        )
    except ConfigError as e:
        logger.warning(f"Could not save defaults: {e}")


@click.command(name="create")
@click.option("--subscription", "-s", help="Subscription ID or name", type=str)
@click.option("--region", "-r", help="Azure region (e.g. eastus)", type=str)
@click.option("--resource-group", "--rg", help="Resource group name", type=str)
@click.option("--name", "-n", help="VM name", type=str)
@click.option("--admin-username", "-u", help="Linux admin username", type=str)
@click.option(
    "--auth",
    type=AUTH_CHOICES,
    default="cli",
    show_default=True,
    help="Credential source: Azure CLI login or the SDK default chain",
)
@click.option("--config", help="Config file path", type=click.Path())
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed execution information")
def create_command(
    subscription: str | None,
    region: str | None,
    resource_group: str | None,
    name: str | None,
    admin_username: str | None,
    auth: str,
    config: str | None,
    yes: bool,
    verbose: bool,
) -> None:
    """Provision a Ubuntu 22.04 VM (Standard_B2s, 40 GB Premium SSD).

    Creates, in order: resource group, virtual network, subnet, network
    security group (SSH port 22 open), public IP, network interface and
    the virtual machine. Values not given as options are prompted for.

    The admin password is always prompted for, unless the
    AZPROV_ADMIN_PASSWORD environment variable is set.

    \b
    Examples:
        azprov create
        azprov create --region westeurope --rg demo-rg --name demo-vm
        azprov create -s "My Subscription" -n demo-vm --yes
    """
    configure_logging(verbose)
    interaction = CLIInteractionHandler()

    try:
        azprov_config = ConfigManager.load_config(config)
        credential = resolve_credential(auth)
        sub = _resolve_subscription(credential, interaction, subscription, azprov_config)

        vm_config = collect_vm_config(
            interaction,
            sub,
            azprov_config,
            region=region,
            resource_group=resource_group,
            name=name,
            admin_username=admin_username,
            admin_password=os.environ.get(PASSWORD_ENV_VAR),
        )

        console.print(summary_table(vm_config, sub))
        if not yes and not interaction.confirm("Create these resources?", default=True):
            click.echo("Cancelled.")
            return

        provisioner = VMProvisioner(credential, sub.subscription_id)
        details = run_provisioning(provisioner, vm_config)

        _remember_defaults(config, sub, vm_config)
        display_vm_details(details)

    except (KeyboardInterrupt, click.Abort):
        click.echo("\nCancelled.", err=True)
        sys.exit(130)
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except SubscriptionSelectionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except ProvisioningError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
