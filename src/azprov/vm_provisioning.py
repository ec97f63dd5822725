"""VM provisioning module.

This module creates a single fixed-shape Ubuntu VM with the Azure management
SDK. Resources are created strictly in order, each long-running operation is
awaited before the next one starts:

1. Resource group (create-or-get)
2. Virtual network
3. Subnet
4. Network security group (inbound SSH on port 22)
5. Public IP address
6. Network interface
7. Virtual machine

Fixed VM shape:
- Size Standard_B2s (2 vCPU, 4 GiB RAM)
- Ubuntu 22.04 LTS (Canonical, gen2)
- 40 GB Premium SSD OS disk

There is no retry and no rollback. A failing step raises ProvisioningError and
leaves any resources created before it in place.

Security:
- Input validation (names, region, username, password complexity)
- Admin password never logged, never included in repr
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar

from azure.core.exceptions import AzureError
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Raised when an Azure provisioning step fails.

    Attributes:
        step: Name of the step that failed
        created: Resources successfully created before the failure
    """

    def __init__(self, message: str, step: str | None = None, created: list[str] | None = None):
        super().__init__(message)
        self.step = step
        self.created = list(created or [])


class ValidationError(ValueError):
    """Raised when provisioning inputs are invalid."""

    pass


# Fixed VM shape
VM_SIZE = "Standard_B2s"
OS_DISK_SIZE_GB = 40
OS_DISK_STORAGE_TYPE = "Premium_LRS"
UBUNTU_2204_IMAGE: dict[str, str] = {
    "publisher": "Canonical",
    "offer": "0001-com-ubuntu-server-jammy",
    "sku": "22_04-lts-gen2",
    "version": "latest",
}

# Network layout
VNET_ADDRESS_PREFIX = "10.0.0.0/16"
SUBNET_ADDRESS_PREFIX = "10.0.0.0/24"
SSH_PORT = 22
SSH_RULE_PRIORITY = 1000

# Resource group, VNet, subnet, NSG, public IP, NIC, VM
PROVISIONING_STEP_COUNT = 7


@dataclass
class VMConfig:
    """VM configuration parameters.

    Only the names, region and credentials vary between runs. Everything else
    is the fixed VM shape.
    """

    name: str
    resource_group: str
    location: str
    subscription_id: str
    admin_username: str = "azureuser"
    admin_password: str = field(default="", repr=False)
    size: str = VM_SIZE
    os_disk_size_gb: int = OS_DISK_SIZE_GB
    os_disk_storage_type: str = OS_DISK_STORAGE_TYPE
    image: dict[str, str] = field(default_factory=lambda: dict(UBUNTU_2204_IMAGE))

    @property
    def vnet_name(self) -> str:
        return f"{self.name}-vnet"

    @property
    def subnet_name(self) -> str:
        return f"{self.name}-subnet"

    @property
    def nsg_name(self) -> str:
        return f"{self.name}-nsg"

    @property
    def public_ip_name(self) -> str:
        return f"{self.name}-ip"

    @property
    def nic_name(self) -> str:
        return f"{self.name}-nic"

    @property
    def ip_config_name(self) -> str:
        return f"{self.name}-ipconfig"

    @property
    def os_disk_name(self) -> str:
        return f"{self.name}-osdisk"


@dataclass
class VMDetails:
    """VM provisioning result details."""

    name: str
    resource_group: str
    location: str
    size: str
    admin_username: str
    public_ip: str | None = None
    private_ip: str | None = None
    id: str | None = None

    @property
    def ssh_command(self) -> str | None:
        """SSH command line for the new VM, or None without a public IP."""
        if not self.public_ip:
            return None
        return f"ssh {self.admin_username}@{self.public_ip}"


class VMProvisioner:
    """Provision one fixed-shape Azure Ubuntu VM.

    Management clients are built lazily from the credential. Tests (and
    callers that already hold clients) can pass them in directly.
    """

    VM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,62}[a-zA-Z0-9])?$")
    RESOURCE_GROUP_PATTERN = re.compile(r"^[\w\-\.()]{0,89}[\w\-()]$")
    REGION_PATTERN = re.compile(r"^[a-z][a-z0-9]{1,39}$")
    USERNAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_.-]{0,63}$")
    SUBSCRIPTION_ID_PATTERN = re.compile(
        r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
    )

    PASSWORD_MIN_LENGTH = 12
    PASSWORD_MAX_LENGTH = 72

    # Usernames Azure rejects for Linux VMs
    RESERVED_USERNAMES: ClassVar[set[str]] = {
        "1",
        "123",
        "a",
        "actuser",
        "adm",
        "admin",
        "admin1",
        "admin2",
        "administrator",
        "aspnet",
        "backup",
        "console",
        "david",
        "guest",
        "john",
        "owner",
        "root",
        "server",
        "sql",
        "support",
        "support_388945a0",
        "sys",
        "test",
        "test1",
        "test2",
        "test3",
        "user",
        "user1",
        "user2",
        "user3",
        "user4",
        "user5",
    }

    def __init__(
        self,
        credential: Any,
        subscription_id: str,
        resource_client: Any | None = None,
        network_client: Any | None = None,
        compute_client: Any | None = None,
    ):
        """Initialize VM provisioner.

        Args:
            credential: Azure Identity credential
            subscription_id: Target subscription ID
            resource_client: Optional pre-built ResourceManagementClient
            network_client: Optional pre-built NetworkManagementClient
            compute_client: Optional pre-built ComputeManagementClient
        """
        self._credential = credential
        self._subscription_id = subscription_id
        self._resource_client = resource_client
        self._network_client = network_client
        self._compute_client = compute_client
        self._created: list[str] = []

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    @property
    def resource_client(self) -> Any:
        if self._resource_client is None:
            self._resource_client = ResourceManagementClient(
                self._credential, self._subscription_id
            )
        return self._resource_client

    @property
    def network_client(self) -> Any:
        if self._network_client is None:
            self._network_client = NetworkManagementClient(
                self._credential, self._subscription_id
            )
        return self._network_client

    @property
    def compute_client(self) -> Any:
        if self._compute_client is None:
            self._compute_client = ComputeManagementClient(
                self._credential, self._subscription_id
            )
        return self._compute_client

    @property
    def created_resources(self) -> list[str]:
        """Resources created so far in this run, in creation order."""
        return list(self._created)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @classmethod
    def create_vm_config(
        cls,
        name: str,
        resource_group: str,
        location: str,
        subscription_id: str,
        admin_username: str,
        admin_password: str,
    ) -> VMConfig:
        """Create VM configuration with validation.

        Args:
            name: VM name
            resource_group: Resource group name
            location: Azure region (e.g. "eastus")
            subscription_id: Subscription to provision into
            admin_username: Linux admin account name
            admin_password: Linux admin account password

        Returns:
            VMConfig object

        Raises:
            ValidationError: If validation fails
        """
        values = {
            "VM name": name,
            "resource group": resource_group,
            "region": location,
            "subscription ID": subscription_id,
            "admin username": admin_username,
        }
        for label, value in values.items():
            if value is None or not str(value).strip():
                raise ValidationError(f"{label.capitalize()} cannot be empty")

        name = name.strip()
        resource_group = resource_group.strip()
        location = location.strip().lower().replace(" ", "")
        subscription_id = subscription_id.strip()
        admin_username = admin_username.strip()

        if not cls.VM_NAME_PATTERN.match(name):
            raise ValidationError(
                f"Invalid VM name: {name}. "
                "Must be 1-64 characters, letters, numbers and hyphens, "
                "and cannot start or end with a hyphen."
            )
        if not cls.RESOURCE_GROUP_PATTERN.match(resource_group):
            raise ValidationError(
                f"Invalid resource group name: {resource_group}. "
                "Must be 1-90 characters, alphanumeric, underscores, hyphens, dots, "
                "or parentheses, and cannot end with a dot."
            )
        if not cls.REGION_PATTERN.match(location):
            raise ValidationError(f"Invalid region: {location}")
        if not cls.SUBSCRIPTION_ID_PATTERN.match(subscription_id):
            raise ValidationError(f"Invalid subscription ID: {subscription_id}")

        cls.validate_admin_username(admin_username)
        cls.validate_admin_password(admin_password, admin_username)

        return VMConfig(
            name=name,
            resource_group=resource_group,
            location=location,
            subscription_id=subscription_id,
            admin_username=admin_username,
            admin_password=admin_password,
        )

    @classmethod
    def validate_admin_username(cls, username: str) -> None:
        """Validate Linux admin username.

        Raises:
            ValidationError: If the username is malformed or reserved
        """
        if not cls.USERNAME_PATTERN.match(username) or username.endswith("."):
            raise ValidationError(
                f"Invalid admin username: {username}. "
                "Must start with a letter or underscore, use letters, numbers, "
                "underscores, hyphens or dots, and be at most 64 characters."
            )
        if username.lower() in cls.RESERVED_USERNAMES:
            raise ValidationError(f"Admin username is reserved by Azure: {username}")

    @classmethod
    def validate_admin_password(cls, password: str, username: str | None = None) -> None:
        """Validate admin password against Azure's Linux VM rules.

        Rules: 12-72 characters and at least three of lowercase, uppercase,
        digit and special character. Error messages never contain the password.

        Raises:
            ValidationError: If the password does not meet the rules
        """
        if not password:
            raise ValidationError("Admin password cannot be empty")

        length = len(password)
        if length < cls.PASSWORD_MIN_LENGTH or length > cls.PASSWORD_MAX_LENGTH:
            raise ValidationError(
                f"Admin password must be {cls.PASSWORD_MIN_LENGTH}-"
                f"{cls.PASSWORD_MAX_LENGTH} characters long"
            )

        classes = [
            any(c.islower() for c in password),
            any(c.isupper() for c in password),
            any(c.isdigit() for c in password),
            any(not c.isalnum() for c in password),
        ]
        if sum(classes) < 3:
            raise ValidationError(
                "Admin password must contain at least three of: lowercase letter, "
                "uppercase letter, digit, special character"
            )

        if username and username.lower() in password.lower():
            raise ValidationError("Admin password cannot contain the admin username")

    # ------------------------------------------------------------------
    # Provisioning steps
    # ------------------------------------------------------------------

    def _run_step(self, step: str, operation: Callable[[], Any]) -> Any:
        """Run one provisioning step, converting SDK errors to ProvisioningError."""
        try:
            return operation()
        except AzureError as e:
            created = ", ".join(self._created) if self._created else "none"
            logger.error(f"Provisioning step failed: {step} ({type(e).__name__})")
            raise ProvisioningError(
                f"Failed to {step}: {e}\nResources already created (not rolled back): {created}",
                step=step,
                created=self._created,
            ) from e

    def ensure_resource_group(self, config: VMConfig) -> Any:
        """Get the resource group, creating it when it does not exist."""

        def _ensure() -> Any:
            groups = self.resource_client.resource_groups
            if groups.check_existence(config.resource_group):
                logger.debug(f"Using existing resource group: {config.resource_group}")
                return groups.get(config.resource_group)

            result = groups.create_or_update(config.resource_group, {"location": config.location})
            self._created.append(f"resource group {config.resource_group}")
            logger.debug(f"Created resource group: {config.resource_group} in {config.location}")
            return result

        return self._run_step(f"create resource group {config.resource_group}", _ensure)

    def create_virtual_network(self, config: VMConfig) -> Any:
        """Create the virtual network."""

        def _create() -> Any:
            poller = self.network_client.virtual_networks.begin_create_or_update(
                config.resource_group,
                config.vnet_name,
                {
                    "location": config.location,
                    "address_space": {"address_prefixes": [VNET_ADDRESS_PREFIX]},
                },
            )
            result = poller.result()
            self._created.append(f"virtual network {config.vnet_name}")
            logger.debug(f"Created virtual network: {config.vnet_name}")
            return result

        return self._run_step(f"create virtual network {config.vnet_name}", _create)

    def create_subnet(self, config: VMConfig) -> Any:
        """Create the subnet inside the virtual network."""

        def _create() -> Any:
            poller = self.network_client.subnets.begin_create_or_update(
                config.resource_group,
                config.vnet_name,
                config.subnet_name,
                {"address_prefix": SUBNET_ADDRESS_PREFIX},
            )
            result = poller.result()
            self._created.append(f"subnet {config.subnet_name}")
            logger.debug(f"Created subnet: {config.subnet_name}")
            return result

        return self._run_step(f"create subnet {config.subnet_name}", _create)

    def create_network_security_group(self, config: VMConfig) -> Any:
        """Create the NSG with a single inbound rule allowing SSH."""

        def _create() -> Any:
            poller = self.network_client.network_security_groups.begin_create_or_update(
                config.resource_group,
                config.nsg_name,
                {
                    "location": config.location,
                    "security_rules": [
                        {
                            "name": "AllowSSH",
                            "protocol": "Tcp",
                            "source_address_prefix": "*",
                            "source_port_range": "*",
                            "destination_address_prefix": "*",
                            "destination_port_range": str(SSH_PORT),
                            "access": "Allow",
                            "direction": "Inbound",
                            "priority": SSH_RULE_PRIORITY,
                        }
                    ],
                },
            )
            result = poller.result()
            self._created.append(f"network security group {config.nsg_name}")
            logger.debug(f"Created network security group: {config.nsg_name} (port {SSH_PORT})")
            return result

        return self._run_step(f"create network security group {config.nsg_name}", _create)

    def create_public_ip(self, config: VMConfig) -> Any:
        """Allocate a static Standard SKU public IP address."""

        def _create() -> Any:
            poller = self.network_client.public_ip_addresses.begin_create_or_update(
                config.resource_group,
                config.public_ip_name,
                {
                    "location": config.location,
                    "sku": {"name": "Standard"},
                    "public_ip_allocation_method": "Static",
                },
            )
            result = poller.result()
            self._created.append(f"public IP {config.public_ip_name}")
            logger.debug(f"Created public IP: {config.public_ip_name}")
            return result

        return self._run_step(f"create public IP {config.public_ip_name}", _create)

    def create_network_interface(
        self, config: VMConfig, subnet_id: str, public_ip_id: str, nsg_id: str
    ) -> Any:
        """Create the NIC bound to the subnet, public IP and NSG."""

        def _create() -> Any:
            poller = self.network_client.network_interfaces.begin_create_or_update(
                config.resource_group,
                config.nic_name,
                {
                    "location": config.location,
                    "ip_configurations": [
                        {
                            "name": config.ip_config_name,
                            "subnet": {"id": subnet_id},
                            "public_ip_address": {"id": public_ip_id},
                        }
                    ],
                    "network_security_group": {"id": nsg_id},
                },
            )
            result = poller.result()
            self._created.append(f"network interface {config.nic_name}")
            logger.debug(f"Created network interface: {config.nic_name}")
            return result

        return self._run_step(f"create network interface {config.nic_name}", _create)

    def build_vm_parameters(self, config: VMConfig, nic_id: str) -> dict[str, Any]:
        """Build the virtual machine create payload."""
        return {
            "location": config.location,
            "hardware_profile": {"vm_size": config.size},
            "storage_profile": {
                "image_reference": dict(config.image),
                "os_disk": {
                    "name": config.os_disk_name,
                    "create_option": "FromImage",
                    "disk_size_gb": config.os_disk_size_gb,
                    "managed_disk": {"storage_account_type": config.os_disk_storage_type},
                },
            },
            "os_profile": {
                "computer_name": config.name,
                "admin_username": config.admin_username,
                "admin_password": config.admin_password,
                "linux_configuration": {"disable_password_authentication": False},
            },
            "network_profile": {"network_interfaces": [{"id": nic_id}]},
        }

    def create_virtual_machine(self, config: VMConfig, nic_id: str) -> Any:
        """Create the VM and wait for provisioning to finish."""

        def _create() -> Any:
            poller = self.compute_client.virtual_machines.begin_create_or_update(
                config.resource_group,
                config.name,
                self.build_vm_parameters(config, nic_id),
            )
            result = poller.result()
            self._created.append(f"virtual machine {config.name}")
            logger.debug(f"Created virtual machine: {config.name}")
            return result

        return self._run_step(f"create virtual machine {config.name}", _create)

    def get_public_ip_address(self, config: VMConfig) -> str | None:
        """Read the current address of the VM's public IP resource."""
        pip = self._run_step(
            f"read public IP {config.public_ip_name}",
            lambda: self.network_client.public_ip_addresses.get(
                config.resource_group, config.public_ip_name
            ),
        )
        return pip.ip_address

    # ------------------------------------------------------------------
    # Full sequence
    # ------------------------------------------------------------------

    def provision(
        self, config: VMConfig, progress_callback: Callable[[str], None] | None = None
    ) -> VMDetails:
        """Create every resource for the VM, in order.

        Args:
            config: Validated VM configuration
            progress_callback: Optional callback for progress updates

        Returns:
            VMDetails with the public IP and SSH command

        Raises:
            ProvisioningError: If any step fails
        """

        def report_progress(msg: str):
            if progress_callback:
                progress_callback(msg)

        self._created = []

        report_progress(f"Resource group: {config.resource_group}")
        self.ensure_resource_group(config)

        report_progress(f"Virtual network: {config.vnet_name}")
        self.create_virtual_network(config)

        report_progress(f"Subnet: {config.subnet_name}")
        subnet = self.create_subnet(config)

        report_progress(f"Network security group: {config.nsg_name}")
        nsg = self.create_network_security_group(config)

        report_progress(f"Public IP: {config.public_ip_name}")
        public_ip = self.create_public_ip(config)

        report_progress(f"Network interface: {config.nic_name}")
        nic = self.create_network_interface(config, subnet.id, public_ip.id, nsg.id)

        report_progress(f"Virtual machine: {config.name} ({config.size}), this takes a few minutes")
        vm = self.create_virtual_machine(config, nic.id)

        address = public_ip.ip_address or self.get_public_ip_address(config)

        private_ip = None
        if nic.ip_configurations:
            private_ip = nic.ip_configurations[0].private_ip_address

        return VMDetails(
            name=config.name,
            resource_group=config.resource_group,
            location=config.location,
            size=config.size,
            admin_username=config.admin_username,
            public_ip=address,
            private_ip=private_ip,
            id=vm.id,
        )


__all__ = [
    "OS_DISK_SIZE_GB",
    "OS_DISK_STORAGE_TYPE",
    "PROVISIONING_STEP_COUNT",
    "SSH_PORT",
    "UBUNTU_2204_IMAGE",
    "VM_SIZE",
    "ProvisioningError",
    "VMConfig",
    "VMDetails",
    "VMProvisioner",
    "ValidationError",
]
