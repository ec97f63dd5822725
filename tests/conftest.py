"""
Shared test fixtures for azprov tests.

This module provides common fixtures used across all test types:
- Mock Azure management clients wired to one parent mock (call ordering)
- Sample VM configuration
- Isolated config directory
"""

from unittest.mock import MagicMock, Mock

import pytest

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
TEST_PASSWORD = "Sup3r-Secret-Pass!"  # noqa: S105 - test fixture, not a real credential

RG_PREFIX = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/demo-rg/providers"


# ============================================================================
# AZURE MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def azure_clients():
    """Mock resource, network and compute clients sharing one parent.

    The parent mock records every SDK call in order, so tests can assert on
    the provisioning sequence via ``azure_clients.mock_calls``.
    """
    azure = MagicMock()

    azure.resource.resource_groups.check_existence.return_value = False
    azure.resource.resource_groups.create_or_update.return_value = Mock(
        id=f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/demo-rg",
        location="eastus",
    )

    network = azure.network
    network.virtual_networks.begin_create_or_update.return_value.result.return_value = Mock(
        id=f"{RG_PREFIX}/Microsoft.Network/virtualNetworks/demo-vm-vnet"
    )
    network.subnets.begin_create_or_update.return_value.result.return_value = Mock(
        id=f"{RG_PREFIX}/Microsoft.Network/virtualNetworks/demo-vm-vnet/subnets/demo-vm-subnet"
    )
    network.network_security_groups.begin_create_or_update.return_value.result.return_value = Mock(
        id=f"{RG_PREFIX}/Microsoft.Network/networkSecurityGroups/demo-vm-nsg"
    )
    network.public_ip_addresses.begin_create_or_update.return_value.result.return_value = Mock(
        id=f"{RG_PREFIX}/Microsoft.Network/publicIPAddresses/demo-vm-ip",
        ip_address="20.1.2.3",
    )
    network.network_interfaces.begin_create_or_update.return_value.result.return_value = Mock(
        id=f"{RG_PREFIX}/Microsoft.Network/networkInterfaces/demo-vm-nic",
        ip_configurations=[Mock(private_ip_address="10.0.0.4")],
    )

    azure.compute.virtual_machines.begin_create_or_update.return_value.result.return_value = Mock(
        id=f"{RG_PREFIX}/Microsoft.Compute/virtualMachines/demo-vm"
    )

    return azure


@pytest.fixture
def provisioner(azure_clients):
    """VMProvisioner wired to the mocked clients."""
    from azprov.vm_provisioning import VMProvisioner

    return VMProvisioner(
        credential=Mock(),
        subscription_id=SUBSCRIPTION_ID,
        resource_client=azure_clients.resource,
        network_client=azure_clients.network,
        compute_client=azure_clients.compute,
    )


@pytest.fixture
def vm_config():
    """Validated configuration for a VM named demo-vm."""
    from azprov.vm_provisioning import VMProvisioner

    return VMProvisioner.create_vm_config(
        name="demo-vm",
        resource_group="demo-rg",
        location="eastus",
        subscription_id=SUBSCRIPTION_ID,
        admin_username="azureuser",
        admin_password=TEST_PASSWORD,
    )


# ============================================================================
# CONFIG FIXTURES
# ============================================================================


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point ConfigManager at a temporary ~/.azprov directory.

    Returns the path of the config file (which does not exist yet).
    """
    from azprov.config_manager import ConfigManager

    config_dir = tmp_path / ".azprov"
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", config_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", config_dir / "config.toml")
    return config_dir / "config.toml"
