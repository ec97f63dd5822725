"""azprov - single Azure Ubuntu VM provisioning CLI

Philosophy:
- Ruthless simplicity
- One fixed VM shape, one linear sequence of Azure calls
- Security by design (no credentials in code, passwords never persisted)
- Fail fast with helpful guidance

azprov selects an Azure subscription, prompts for a few names and a password,
then creates a resource group, network, and an Ubuntu 22.04 LTS VM.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
