"""Credential factory for Azure authentication.

This module creates Azure Identity SDK credential objects. azprov never stores
tokens; authentication is delegated entirely to the Azure Identity SDK.

Supported credential types:
- AzureCliCredential: Delegate to the operator's `az login` session (default)
- DefaultAzureCredential: Environment variables, managed identity, CLI, etc.
"""

import logging
from enum import StrEnum
from typing import Any

from azure.identity import AzureCliCredential, DefaultAzureCredential

logger = logging.getLogger(__name__)


class CredentialError(Exception):
    """Raised when credential creation fails."""

    pass


class AuthMethod(StrEnum):
    """Authentication method enumeration.

    - CLI: Use Azure CLI for authentication (default)
    - DEFAULT: Use the Azure SDK default credential chain
    """

    CLI = "cli"
    DEFAULT = "default"


def create_credential(method: str | AuthMethod = AuthMethod.CLI) -> Any:
    """Create Azure Identity credential for the given method.

    Args:
        method: "cli" or "default"

    Returns:
        Azure Identity credential object (TokenCredential)

    Raises:
        CredentialError: If the method is unknown or the credential cannot be built
    """
    try:
        auth_method = AuthMethod(method)
    except ValueError as e:
        valid = ", ".join(m.value for m in AuthMethod)
        raise CredentialError(
            f"Unsupported authentication method: {method}. Valid methods: {valid}"
        ) from e

    try:
        if auth_method == AuthMethod.CLI:
            logger.debug("Using Azure CLI credential")
            return AzureCliCredential()
        logger.debug("Using Azure default credential chain")
        return DefaultAzureCredential()
    except Exception as e:
        raise CredentialError(
            f"Failed to create {auth_method.value} credential. "
            f"Is Azure CLI installed and authenticated (az login)? Error: {type(e).__name__}"
        ) from e


__all__ = ["AuthMethod", "CredentialError", "create_credential"]
