"""Commands for the azprov CLI."""

from azprov.commands.provisioning import create_command
from azprov.commands.subscriptions import subscriptions_command

__all__ = ["create_command", "subscriptions_command"]
