"""
Vault Configuration Manager.

Centralized configuration with:
- Schema-driven validation
- Environment variable fallback
- Optional JSON overrides in data/config.json (read-only)
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from vault.shared.gate import GateLogger

_log = GateLogger.get("Config")

from vault.Config.schema import (
    CONFIG_SCHEMA,
    ConfigField,
    ConfigType,
    ConfigCategory,
    get_schema_by_key,
)
from vault.Config.accounts import (
    Role,
    UserAccount,
    build_accounts,
    parse_role_overrides,
)


# Config file paths
PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = PROJECT_ROOT / ".env"
CONFIG_JSON = PROJECT_ROOT / "data" / "config.json"


class ConfigManager:
    """
    Manages Vault configuration.

    Priority order:
    1. Environment variables
    2. config.json
    3. Schema defaults
    """

    def __init__(self, config_json: Optional[Path] = None):
        self._cache: Dict[str, Any] = {}
        self._config_json = Path(config_json) if config_json else CONFIG_JSON
        self._loaded = False
        self._load()

    def _load(self):
        """Load configuration from all sources."""
        load_dotenv(ENV_FILE)

        json_config = {}
        if self._config_json.exists():
            try:
                with open(self._config_json, encoding="utf-8") as f:
                    json_config = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                _log.warning(f"Ignoring unreadable {self._config_json}: {e}")

        for field in CONFIG_SCHEMA:
            # Priority: env var > json config > default
            value = os.environ.get(field.env_var)

            if value is None and field.key in json_config:
                value = json_config[field.key]

            if value is None:
                value = field.default

            self._cache[field.key] = self._convert_type(value, field.config_type)

        self._loaded = True

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        """Convert value to appropriate type."""
        if value is None:
            return None

        try:
            if config_type == ConfigType.INTEGER:
                return int(value)
            elif config_type == ConfigType.FLOAT:
                return float(value)
            elif config_type == ConfigType.BOOLEAN:
                if isinstance(value, bool):
                    return value
                return str(value).lower() in ("true", "1", "yes", "on")
            elif config_type == ConfigType.LIST:
                if isinstance(value, list):
                    return list(value)
                return [v.strip() for v in str(value).split(",") if v.strip()]
            else:
                return str(value) if value else None
        except (ValueError, TypeError):
            return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if not self._loaded:
            self._load()
        value = self._cache.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> bool:
        """
        Set a configuration value for this process.

        Returns:
            True if the key is known
        """
        field = get_schema_by_key(key)
        if not field:
            return False

        self._cache[key] = self._convert_type(value, field.config_type)
        return True

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate configuration.

        Returns:
            (is_valid, list of error messages)
        """
        errors = []

        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)

            if field.required and (value is None or value == "" or value == []):
                errors.append(f"Required config missing: {field.key}")
                continue

            if value and field.validation and not re.match(field.validation, str(value)):
                errors.append(f"Invalid format for {field.key}")

            if value and field.options and value not in field.options:
                errors.append(f"Invalid option for {field.key}: {value}")

        return len(errors) == 0, errors

    def get_user_accounts(self) -> List[UserAccount]:
        """Build the recognized account list from the USERS* keys."""
        default_role = self.get("DEFAULT_ROLE", "user")
        try:
            default_role = Role.parse(default_role)
        except ValueError:
            _log.warning(f"Unknown DEFAULT_ROLE {default_role!r}, using 'user'")
            default_role = Role.USER

        return build_accounts(
            self.get("USERS", []),
            admin_username=self.get("ADMIN_USERNAME", "ADMIN"),
            guest_usernames=self.get("GUEST_USERNAMES", []),
            role_overrides=parse_role_overrides(self.get("USER_ROLES", [])),
            default_role=default_role,
        )


# Global instance
_manager: Optional[ConfigManager] = None


def get_manager() -> ConfigManager:
    """Get or create the global ConfigManager."""
    global _manager
    if _manager is None:
        _manager = ConfigManager()
    return _manager


def reload():
    """Reload configuration from the environment and files."""
    global _manager
    _manager = ConfigManager()


# Convenience functions
def get(key: str, default: Any = None) -> Any:
    """Get a config value."""
    return get_manager().get(key, default)


def set(key: str, value: Any) -> bool:
    """Set a config value."""
    return get_manager().set(key, value)


def validate() -> Tuple[bool, List[str]]:
    """Validate configuration."""
    return get_manager().validate()


def get_user_accounts() -> List[UserAccount]:
    """Get the recognized user accounts."""
    return get_manager().get_user_accounts()


__all__ = [
    "ConfigManager",
    "ConfigField",
    "ConfigType",
    "ConfigCategory",
    "CONFIG_SCHEMA",
    "Role",
    "UserAccount",
    "get_manager",
    "reload",
    "get",
    "set",
    "validate",
    "get_user_accounts",
]
