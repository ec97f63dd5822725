"""Unit tests for the azprov CLI.

Azure is never contacted: the credential, subscription listing and the
provisioning sequence are patched.
"""

import io
import logging
from unittest.mock import Mock, patch

import pytest
from azure.core.exceptions import HttpResponseError
from click.testing import CliRunner

from azprov.cli import main
from azprov.commands.provisioning import run_provisioning
from azprov.config_manager import ConfigManager
from azprov.modules.progress import ProgressDisplay
from azprov.subscription_selector import Subscription, SubscriptionSelectionError
from azprov.vm_provisioning import ProvisioningError, VMDetails, VMProvisioner

PASSWORD = "Sup3r-Secret-Pass!"  # noqa: S105 - test value
PROD = Subscription("11111111-1111-1111-1111-111111111111", "Production")
SANDBOX = Subscription("22222222-2222-2222-2222-222222222222", "Sandbox")

DETAILS = VMDetails(
    name="demo-vm",
    resource_group="demo-rg",
    location="eastus",
    size="Standard_B2s",
    admin_username="azureuser",
    public_ip="20.1.2.3",
    private_ip="10.0.0.4",
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def azure(isolated_config, monkeypatch):
    """Patch every Azure touchpoint used by the CLI."""
    monkeypatch.delenv("AZPROV_ADMIN_PASSWORD", raising=False)
    with (
        patch("azprov.commands.cli_helpers.create_credential") as mock_credential,
        patch("azprov.commands.provisioning.list_subscriptions") as mock_list,
        patch("azprov.commands.subscriptions.list_subscriptions", new=mock_list),
        patch.object(VMProvisioner, "provision", return_value=DETAILS) as mock_provision,
    ):
        mock_credential.return_value = Mock()
        mock_list.return_value = [PROD]
        yield Mock(
            credential=mock_credential,
            list_subscriptions=mock_list,
            provision=mock_provision,
            config_path=isolated_config,
        )


class TestMainGroup:
    """Tests for the top-level command group."""

    def test_no_args_shows_help(self, runner):
        result = runner.invoke(main, [])

        assert result.exit_code == 0
        assert "create" in result.output
        assert "subscriptions" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_unknown_command_shows_help(self, runner):
        result = runner.invoke(main, ["destroy"])

        assert result.exit_code != 0
        assert "Usage" in result.output

    def test_bad_subcommand_option_shows_subcommand_help(self, runner):
        result = runner.invoke(main, ["create", "--no-such-option"])

        assert result.exit_code == 2
        assert "No such option" in result.output
        assert "Provision a Ubuntu 22.04 VM" in result.output


class TestCreateCommand:
    """Tests for `azprov create`."""

    def test_interactive_run(self, runner, azure):
        user_input = "\n".join(
            [
                "eastus",  # region
                "demo-rg",  # resource group
                "demo-vm",  # VM name
                "",  # admin username (default)
                PASSWORD,
                PASSWORD,  # confirmation
                "y",
            ]
        )

        result = runner.invoke(main, ["create"], input=user_input + "\n")

        assert result.exit_code == 0, result.output
        assert "ssh azureuser@20.1.2.3" in result.output
        assert "Standard_B2s" in result.output

        vm_config = azure.provision.call_args.args[0]
        assert vm_config.name == "demo-vm"
        assert vm_config.resource_group == "demo-rg"
        assert vm_config.location == "eastus"
        assert vm_config.subscription_id == PROD.subscription_id
        assert vm_config.admin_username == "azureuser"

    def test_non_interactive_run_saves_defaults(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)

        result = runner.invoke(
            main,
            ["create", "-r", "westeurope", "--rg", "demo-rg", "-n", "demo-vm", "-u", "ops", "--yes"],
        )

        assert result.exit_code == 0, result.output
        azure.provision.assert_called_once()

        saved = ConfigManager.load_config()
        assert saved.default_region == "westeurope"
        assert saved.default_resource_group == "demo-rg"
        assert saved.default_admin_username == "ops"
        assert saved.default_subscription == PROD.subscription_id
        assert saved.last_vm_name == "demo-vm"
        assert PASSWORD not in azure.config_path.read_text()

    def test_password_never_printed(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)

        result = runner.invoke(
            main, ["create", "-r", "eastus", "--rg", "demo-rg", "-n", "demo-vm", "-u", "azureuser", "--yes"]
        )

        assert result.exit_code == 0, result.output
        assert PASSWORD not in result.output

    def test_prompts_for_subscription_when_several(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)
        azure.list_subscriptions.return_value = [PROD, SANDBOX]

        result = runner.invoke(
            main,
            ["create", "-r", "eastus", "--rg", "demo-rg", "-n", "demo-vm", "-u", "azureuser", "--yes"],
            input="2\n",
        )

        assert result.exit_code == 0, result.output
        assert "Select Azure subscription" in result.output
        assert azure.provision.call_args.args[0].subscription_id == SANDBOX.subscription_id

    def test_explicit_subscription_by_name(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)
        azure.list_subscriptions.return_value = [PROD, SANDBOX]

        result = runner.invoke(
            main,
            ["create", "-s", "sandbox", "-r", "eastus", "--rg", "rg", "-n", "vm1", "-u", "azureuser", "--yes"],
        )

        assert result.exit_code == 0, result.output
        assert azure.provision.call_args.args[0].subscription_id == SANDBOX.subscription_id

    def test_remembered_subscription_skips_prompt(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)
        azure.list_subscriptions.return_value = [PROD, SANDBOX]
        ConfigManager.update_config(default_subscription=SANDBOX.subscription_id)

        result = runner.invoke(
            main, ["create", "-r", "eastus", "--rg", "rg", "-n", "vm1", "-u", "azureuser", "--yes"]
        )

        assert result.exit_code == 0, result.output
        assert "Select Azure subscription" not in result.output
        assert azure.provision.call_args.args[0].subscription_id == SANDBOX.subscription_id

    def test_stale_remembered_subscription_prompts(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)
        azure.list_subscriptions.return_value = [PROD, SANDBOX]
        ConfigManager.update_config(default_subscription="33333333-3333-3333-3333-333333333333")

        result = runner.invoke(
            main,
            ["create", "-r", "eastus", "--rg", "rg", "-n", "vm1", "-u", "azureuser", "--yes"],
            input="1\n",
        )

        assert result.exit_code == 0, result.output
        assert "Select Azure subscription" in result.output
        assert azure.provision.call_args.args[0].subscription_id == PROD.subscription_id

    def test_declining_confirmation_cancels(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)

        result = runner.invoke(
            main, ["create", "-r", "eastus", "--rg", "demo-rg", "-n", "demo-vm", "-u", "azureuser"], input="n\n"
        )

        assert result.exit_code == 0
        assert "Cancelled." in result.output
        azure.provision.assert_not_called()
        assert not azure.config_path.exists()

    def test_invalid_password_exits_with_error(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", "short")

        result = runner.invoke(
            main, ["create", "-r", "eastus", "--rg", "demo-rg", "-n", "demo-vm", "-u", "azureuser", "--yes"]
        )

        assert result.exit_code == 1
        assert "Error: Admin password must be 12-72 characters long" in result.output
        azure.provision.assert_not_called()

    def test_invalid_vm_name_exits_with_error(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)

        result = runner.invoke(
            main, ["create", "-r", "eastus", "--rg", "demo-rg", "-n", "bad_name", "-u", "azureuser", "--yes"]
        )

        assert result.exit_code == 1
        assert "Invalid VM name" in result.output

    def test_provisioning_failure_exits_with_error(self, runner, azure, monkeypatch):
        monkeypatch.setenv("AZPROV_ADMIN_PASSWORD", PASSWORD)
        azure.provision.side_effect = ProvisioningError(
            "Failed to create public IP demo-vm-ip: quota exceeded",
            step="create public IP demo-vm-ip",
        )

        result = runner.invoke(
            main, ["create", "-r", "eastus", "--rg", "demo-rg", "-n", "demo-vm", "-u", "azureuser", "--yes"]
        )

        assert result.exit_code == 1
        assert "Error: Failed to create public IP demo-vm-ip" in result.output
        assert not azure.config_path.exists()

    def test_no_subscriptions_exits_with_error(self, runner, azure):
        azure.list_subscriptions.return_value = []

        result = runner.invoke(main, ["create"])

        assert result.exit_code == 1
        assert "No enabled Azure subscriptions" in result.output

    def test_ctrl_c_exits_130(self, runner, azure):
        with patch(
            "azprov.commands.provisioning.CLIInteractionHandler.prompt_text",
            side_effect=KeyboardInterrupt,
        ):
            result = runner.invoke(main, ["create"])

        assert result.exit_code == 130
        assert "Cancelled." in result.output

    def test_unknown_auth_method_is_usage_error(self, runner, azure):
        result = runner.invoke(main, ["create", "--auth", "certificate"])

        assert result.exit_code == 2
        azure.credential.assert_not_called()


class TestSubscriptionsCommand:
    """Tests for `azprov subscriptions`."""

    def test_lists_subscriptions(self, runner, azure):
        azure.list_subscriptions.return_value = [PROD, SANDBOX]

        result = runner.invoke(main, ["subscriptions"])

        assert result.exit_code == 0, result.output
        assert "Production" in result.output
        assert "Sandbox" in result.output

    def test_no_subscriptions(self, runner, azure):
        azure.list_subscriptions.return_value = []

        result = runner.invoke(main, ["subscriptions"])

        assert result.exit_code == 0
        assert "az login" in result.output

    def test_listing_failure(self, runner, azure):
        azure.list_subscriptions.side_effect = SubscriptionSelectionError("token expired")

        result = runner.invoke(main, ["subscriptions"])

        assert result.exit_code == 1
        assert "Error: token expired" in result.output


class TestLogging:
    """Tests for log level handling on each command run."""

    @pytest.fixture(autouse=True)
    def restore_levels(self):
        root = logging.getLogger()
        azure_logger = logging.getLogger("azure")
        saved = (root.level, azure_logger.level)
        yield
        root.setLevel(saved[0])
        azure_logger.setLevel(saved[1])

    def test_default_keeps_azure_sdk_quiet(self, runner, azure):
        result = runner.invoke(main, ["subscriptions"])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("azure").level == logging.WARNING

    def test_verbose_enables_debug(self, runner, azure):
        result = runner.invoke(main, ["subscriptions", "-v"])

        assert result.exit_code == 0, result.output
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("azure").level == logging.DEBUG


class TestRunProvisioning:
    """Tests for progress output around the provisioning sequence."""

    def test_each_resource_gets_a_timed_step(self, provisioner, vm_config):
        output = io.StringIO()

        details = run_provisioning(provisioner, vm_config, ProgressDisplay(output_file=output))

        assert details.public_ip == "20.1.2.3"
        text = output.getvalue()
        assert "✓ [1/7] Resource group: demo-rg (" in text
        assert "✓ [7/7] Virtual machine: demo-vm" in text
        assert text.splitlines()[-1].startswith("✓ VM demo-vm provisioned (")

    def test_failed_step_is_marked(self, provisioner, vm_config, azure_clients):
        azure_clients.network.public_ip_addresses.begin_create_or_update.side_effect = (
            HttpResponseError(message="PublicIPCountLimitReached")
        )
        output = io.StringIO()

        with pytest.raises(ProvisioningError):
            run_provisioning(provisioner, vm_config, ProgressDisplay(output_file=output))

        assert "✗ [5/7] Public IP: demo-vm-ip (" in output.getvalue()
