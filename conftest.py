"""Pytest configuration and fixtures for azprov tests.

Protects the operator's real configuration from test modifications.
"""

import os
import shutil
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_production_config():
    """Protect ~/.azprov/config.toml from being modified by tests.

    Backs up the real config before the session and restores it afterwards.
    """
    config_path = Path.home() / ".azprov" / "config.toml"
    backup_path = Path.home() / ".azprov" / ".config.toml.pytest-backup"

    config_existed = config_path.exists()
    if config_existed:
        shutil.copy2(config_path, backup_path)

    yield

    if config_existed and backup_path.exists():
        shutil.copy2(backup_path, config_path)
        backup_path.unlink()
    elif backup_path.exists():
        backup_path.unlink()


@pytest.fixture(scope="session", autouse=True)
def prevent_real_azure_operations():
    """Mark test mode and keep the admin password env var out of tests."""
    os.environ["AZPROV_TEST_MODE"] = "true"
    saved_password = os.environ.pop("AZPROV_ADMIN_PASSWORD", None)

    yield

    os.environ.pop("AZPROV_TEST_MODE", None)
    if saved_password is not None:
        os.environ["AZPROV_ADMIN_PASSWORD"] = saved_password
