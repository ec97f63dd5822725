"""Configuration management module.

This module handles persistent operator defaults using TOML format.
Stores the last-used subscription, region, resource group and admin username
so the next run can offer them as prompt defaults.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
- Passwords are never written to the config file
"""

import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for older Python versions
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

logger = logging.getLogger(__name__)

DEFAULT_REGION = "eastus"
DEFAULT_ADMIN_USERNAME = "azureuser"


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class AzprovConfig:
    """azprov configuration data."""

    default_subscription: str | None = None
    default_region: str = DEFAULT_REGION
    default_resource_group: str | None = None
    default_admin_username: str = DEFAULT_ADMIN_USERNAME
    last_vm_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AzprovConfig":
        """Create from dictionary, ignoring unknown keys."""
        return cls(
            default_subscription=data.get("default_subscription"),
            default_region=data.get("default_region", DEFAULT_REGION),
            default_resource_group=data.get("default_resource_group"),
            default_admin_username=data.get("default_admin_username", DEFAULT_ADMIN_USERNAME),
            last_vm_name=data.get("last_vm_name"),
        )


class ConfigManager:
    """Manage the azprov configuration file.

    Configuration is stored at ~/.azprov/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".azprov"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    # Never persisted, whatever the caller passes
    FORBIDDEN_KEYS = frozenset({"admin_password", "password"})

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path.

        The path must live under ~/.azprov/, the current working directory or
        the system temporary directory.

        Args:
            path: Path to validate

        Returns:
            Resolved path

        Raises:
            ConfigError: If path is outside allowed directories
        """
        resolved_path = path.resolve()

        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            try:
                resolved_path.relative_to(allowed_dir)
                return resolved_path
            except ValueError:
                continue

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file

        Raises:
            ConfigError: If path is outside allowed directories
        """
        if custom_path:
            return cls._validate_config_path(Path(custom_path).expanduser())
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with owner-only permissions."""
        try:
            cls.DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            os.chmod(cls.DEFAULT_CONFIG_DIR, 0o700)
            logger.debug(f"Config directory ready: {cls.DEFAULT_CONFIG_DIR}")
            return cls.DEFAULT_CONFIG_DIR
        except OSError as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> AzprovConfig:
        """Load configuration from file.

        A missing file yields the defaults.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            AzprovConfig object

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return AzprovConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return AzprovConfig.from_dict(data)

        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: AzprovConfig, custom_path: str | None = None) -> None:
        """Save configuration to file atomically.

        Existing comments and formatting are preserved via tomlkit.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)

        Raises:
            ConfigError: If saving fails
        """
        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = cls.get_config_path(custom_path)
                config_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                cls.ensure_config_dir()
                config_path = cls.DEFAULT_CONFIG_FILE

            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")

        except ConfigError:
            raise
        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def update_config(cls, custom_path: str | None = None, **updates: Any) -> AzprovConfig:
        """Update configuration values and save.

        None values are skipped so an unset CLI option never clears a default.

        Args:
            custom_path: Custom config file path (optional)
            **updates: Configuration values to update

        Returns:
            Updated AzprovConfig

        Raises:
            ConfigError: If update fails or a secret is passed
        """
        forbidden = cls.FORBIDDEN_KEYS.intersection(updates)
        if forbidden:
            raise ConfigError(f"Refusing to store secret value(s): {', '.join(sorted(forbidden))}")

        config = cls.load_config(custom_path)

        for key, value in updates.items():
            if value is None:
                continue
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")

        cls.save_config(config, custom_path)
        return config


__all__ = ["AzprovConfig", "ConfigError", "ConfigManager"]
