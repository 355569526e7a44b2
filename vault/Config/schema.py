"""
Configuration schema for Vault.

Defines all configurable options with metadata for validation
and documentation.
"""

from enum import Enum
from typing import Optional, List, Any
from dataclasses import dataclass


class ConfigType(Enum):
    """Configuration value types."""
    STRING = "string"
    SECRET = "secret"      # Never logged
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    PATH = "path"          # File system path
    URL = "url"
    LIST = "list"          # Comma-separated values


class ConfigCategory(Enum):
    """Configuration categories for grouping."""
    STORAGE = "storage"
    USERS = "users"
    AUTH = "auth"
    ASSISTANT = "assistant"
    SERVER = "server"


@dataclass
class ConfigField:
    """Definition of a configuration field."""
    key: str
    description: str
    config_type: ConfigType
    category: ConfigCategory
    required: bool = False
    default: Any = None
    env_var: str = None          # Override env var name (defaults to key)
    validation: str = None       # Regex pattern
    options: List[str] = None    # For enumerated types

    def __post_init__(self):
        if self.env_var is None:
            self.env_var = self.key


# ==================== Schema Definition ====================

CONFIG_SCHEMA: List[ConfigField] = [
    # === Storage ===
    ConfigField(
        key="STORAGE_PATH",
        description="Base storage directory (users/ and public/ live beneath it)",
        config_type=ConfigType.PATH,
        category=ConfigCategory.STORAGE,
        default="./public_storage",
    ),
    ConfigField(
        key="BACKUP_DIR",
        description="Directory for backup archives and the last-backup sidecar",
        config_type=ConfigType.PATH,
        category=ConfigCategory.STORAGE,
        default="./backups",
    ),
    ConfigField(
        key="TOTAL_STORAGE_GB",
        description="Total storage quota shown on the admin dashboard (not enforced)",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.STORAGE,
        default=500,
    ),
    ConfigField(
        key="ADMIN_EMAIL",
        description="Recipient for backup notifications",
        config_type=ConfigType.STRING,
        category=ConfigCategory.STORAGE,
        validation=r"^[^@\s]+@[^@\s]+$",
    ),

    # === Users ===
    ConfigField(
        key="USERS",
        description="Comma-separated recognized usernames (passwords in USER_<name>)",
        config_type=ConfigType.LIST,
        category=ConfigCategory.USERS,
        required=True,
        default=[],
    ),
    ConfigField(
        key="USER_ROLES",
        description="Comma-separated name:role overrides (admin, moderator, user, guest)",
        config_type=ConfigType.LIST,
        category=ConfigCategory.USERS,
        default=[],
    ),
    ConfigField(
        key="ADMIN_USERNAME",
        description="Reserved administrator username and folder",
        config_type=ConfigType.STRING,
        category=ConfigCategory.USERS,
        default="ADMIN",
    ),
    ConfigField(
        key="GUEST_USERNAMES",
        description="Usernames that receive the guest role",
        config_type=ConfigType.LIST,
        category=ConfigCategory.USERS,
        default=["INVITADO"],
    ),
    ConfigField(
        key="DEFAULT_ROLE",
        description="Role for recognized users without an explicit role",
        config_type=ConfigType.STRING,
        category=ConfigCategory.USERS,
        default="user",
        options=["user", "moderator"],
    ),

    # === Auth ===
    ConfigField(
        key="JWT_SECRET",
        description="HMAC secret used to sign session tokens",
        config_type=ConfigType.SECRET,
        category=ConfigCategory.AUTH,
        required=True,
        validation=r"^.{16,}$",
    ),
    ConfigField(
        key="JWT_EXPIRE_MINUTES",
        description="Session token lifetime in minutes",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.AUTH,
        default=720,
    ),

    # === Assistant ===
    ConfigField(
        key="LLM_API_KEY",
        description="API key for the reasoning service (falls back to OPENAI_API_KEY)",
        config_type=ConfigType.SECRET,
        category=ConfigCategory.ASSISTANT,
    ),
    ConfigField(
        key="OPENAI_API_KEY",
        description="OpenAI API key",
        config_type=ConfigType.SECRET,
        category=ConfigCategory.ASSISTANT,
        validation=r"^sk-.*",
    ),
    ConfigField(
        key="LLM_API_URL",
        description="OpenAI-compatible chat completions endpoint",
        config_type=ConfigType.URL,
        category=ConfigCategory.ASSISTANT,
        default="https://api.openai.com/v1/chat/completions",
        validation=r"^https?://.*",
    ),
    ConfigField(
        key="DEFAULT_MODEL",
        description="Model used by the storage assistant",
        config_type=ConfigType.STRING,
        category=ConfigCategory.ASSISTANT,
        default="gpt-4o-mini",
    ),
    ConfigField(
        key="AGENT_MAX_ITERATIONS",
        description="Maximum reasoning iterations per chat message",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.ASSISTANT,
        default=3,
    ),
    ConfigField(
        key="CHAT_HISTORY_LIMIT",
        description="Messages kept per chat session",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.ASSISTANT,
        default=20,
    ),

    # === Server ===
    ConfigField(
        key="HOST",
        description="Server bind address",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="0.0.0.0",
    ),
    ConfigField(
        key="PORT",
        description="Server port",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.SERVER,
        default=3000,
    ),
    ConfigField(
        key="LOG_LEVEL",
        description="Logging level",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="INFO",
        options=["DEBUG", "INFO", "WARNING", "ERROR"],
    ),
]


def get_schema_by_key(key: str) -> Optional[ConfigField]:
    """Get schema field by key."""
    for field in CONFIG_SCHEMA:
        if field.key == key:
            return field
    return None

