"""CLI entry point for azprov.

Commands:
    azprov                   # Show help
    azprov create            # Provision the VM (interactive)
    azprov subscriptions     # List available subscriptions
"""

import click

from azprov import __version__
from azprov.click_group import AzprovGroup
from azprov.commands import create_command, subscriptions_command


@click.group(
    cls=AzprovGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.pass_context
@click.version_option(version=__version__)
def main(ctx: click.Context) -> None:
    """azprov - provision a single Azure Ubuntu VM.

    Selects an Azure subscription, prompts for region, names and an admin
    password, then creates a resource group, network and a Ubuntu 22.04 LTS
    VM (Standard_B2s, 40 GB Premium SSD) with SSH open on port 22.

    \b
    COMMANDS:
        create          Provision the VM (prompts for missing values)
        subscriptions   List subscriptions for the logged-in account

    \b
    AUTHENTICATION:
        Run 'az login' first, or pass --auth default to use environment
        variables or managed identity.

    \b
    CONFIGURATION:
        Config file: ~/.azprov/config.toml
        Remembers: subscription, region, resource group, admin username

    For help on any command: azprov <command> --help
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


main.add_command(create_command)
main.add_command(subscriptions_command)


if __name__ == "__main__":
    main()
