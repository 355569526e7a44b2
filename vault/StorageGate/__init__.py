"""
StorageGate - Multi-tenant file storage for Vault.

Provides:
- Role-aware path resolution with tenant isolation and traversal checks
- List, mkdir, upload, download, delete, rename and move
- Usage statistics and recent-file queries over the users root
- Single-flight full/incremental zip backups

Usage:
    from vault.StorageGate import StorageGate, Identity, Role

    # Initialize (call on startup; unset arguments come from Config)
    StorageGate.initialize()

    alice = Identity(username="ALICE", role=Role.USER)

    # List files
    entries = StorageGate.list_dir(alice, "ALICE/docs", sort_by="date", order="desc")

    # Start a backup
    started = StorageGate.create_backup(incremental=True)
"""

import os
from typing import Any, Callable, Dict, List, Optional

from vault import Config, NotificationGate
from vault.shared.gate import GateLogger, PathUtils, build_health_status

from .models import (
    Identity,
    Role,
    UserAccount,
    StorageSettings,
    Entry,
    UsageStats,
    RecentFile,
    BackupState,
    UNASSIGNED_BUCKET,
    UNKNOWN_EXTENSION,
)
from .security import (
    normalize_path,
    resolve_path,
    resolve_root,
    can_access,
)
from .operations import (
    list_directory as op_list_directory,
    create_folder as op_create_folder,
    upload_file as op_upload_file,
    download_file as op_download_file,
    delete_path as op_delete_path,
    rename_path as op_rename_path,
    move_path as op_move_path,
)
from .usage import (
    get_global_stats as op_get_global_stats,
    get_recent_files as op_get_recent_files,
    get_disk_usage as op_get_disk_usage,
    find_documents_by_name as op_find_documents_by_name,
    build_dashboard,
)
from .backup import BackupManager

# Logger for this gate
_log = GateLogger.get("StorageGate")

# Module-level state
_settings: Optional[StorageSettings] = None
_backup_manager: Optional[BackupManager] = None
_initialized: bool = False

USERS_SUBDIR = "users"
PUBLIC_SUBDIR = "public"


class StorageGate:
    """
    Main interface for Vault's storage.

    All methods are class methods for easy access throughout the application.
    """

    @classmethod
    def initialize(
        cls,
        storage_path: Optional[str] = None,
        backup_dir: Optional[str] = None,
        accounts: Optional[List[UserAccount]] = None,
        admin_username: Optional[str] = None,
        total_storage_gb: Optional[int] = None,
        admin_email: Optional[str] = None,
        notifier: Optional[Callable[[str, str, str], Any]] = None,
    ) -> bool:
        """
        Initialize the storage gate.

        Args:
            storage_path: Base directory holding ``users/`` and ``public/``
            backup_dir: Directory for archives and the timestamp sidecar
            accounts: Recognized accounts (default: from Config)
            admin_username: Reserved administrator name
            total_storage_gb: Informational quota
            admin_email: Backup notification recipient
            notifier: Email sender (default: NotificationGate.send_email)

        Returns:
            True if initialization successful
        """
        global _settings, _backup_manager, _initialized

        try:
            storage_path = normalize_path(storage_path or Config.get("STORAGE_PATH", "./public_storage"))
            backup_dir = normalize_path(backup_dir or Config.get("BACKUP_DIR", "./backups"))

            _settings = StorageSettings(
                users_root=os.path.join(storage_path, USERS_SUBDIR),
                public_root=os.path.join(storage_path, PUBLIC_SUBDIR),
                backup_dir=backup_dir,
                accounts=accounts if accounts is not None else Config.get_user_accounts(),
                admin_username=admin_username or Config.get("ADMIN_USERNAME", "ADMIN"),
                total_storage_gb=total_storage_gb if total_storage_gb is not None
                else Config.get("TOTAL_STORAGE_GB", 500),
                admin_email=admin_email or Config.get("ADMIN_EMAIL"),
            )

            PathUtils.ensure_dirs(_settings.users_root, _settings.public_root, _settings.backup_dir)

            _backup_manager = BackupManager(
                _settings.users_root,
                _settings.backup_dir,
                notifier=notifier or NotificationGate.send_email,
                recipient=_settings.admin_email,
            )

            _initialized = True
            _log.info(f"Initialized at {storage_path} ({len(_settings.accounts)} accounts)")
            return True

        except Exception as e:
            _log.error(f"Initialization failed: {e}")
            return False

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the gate is initialized."""
        return _initialized

    @classmethod
    def get_settings(cls) -> StorageSettings:
        """Get current settings, initializing if needed."""
        if _settings is None:
            if not cls.initialize():
                raise RuntimeError("StorageGate initialization failed. Check storage paths and permissions.")
        return _settings

    @classmethod
    def get_backup_manager(cls) -> BackupManager:
        """Get backup manager, initializing if needed."""
        if _backup_manager is None:
            cls.get_settings()
        return _backup_manager

    # ==================== Health Checks ====================

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Get detailed health information."""
        checks = {}
        details = {}

        if _initialized:
            settings = cls.get_settings()
            checks["users_root"] = os.access(settings.users_root, os.R_OK | os.W_OK)
            checks["public_root"] = os.access(settings.public_root, os.R_OK | os.W_OK)
            checks["backup_dir"] = os.access(settings.backup_dir, os.W_OK)
            details["accounts"] = len(settings.accounts)
            details["backup_in_progress"] = cls.get_backup_manager().is_backup_in_progress()

        return build_health_status(
            gate_name="StorageGate",
            initialized=_initialized,
            dependencies=["filesystem"],
            checks=checks,
            details=details,
        )

    # ==================== Accounts ====================

    @classmethod
    def get_account(cls, username: str) -> Optional[UserAccount]:
        return cls.get_settings().get_account(username)

    @classmethod
    def ensure_user_home(cls, username: str) -> str:
        """Create ``<users root>/<username>`` if missing and return it."""
        settings = cls.get_settings()
        identity = Identity(username=username, role=Role.USER)
        home = resolve_path(identity, username, settings, "ensure_home")
        if not os.path.isdir(home):
            os.makedirs(home, exist_ok=True)
            _log.info(f"Created home folder for {username}")
        return home

    # ==================== File Operations ====================

    @classmethod
    def list_dir(
        cls,
        identity: Identity,
        relative_path: str = "",
        sort_by: str = "name",
        order: str = "asc",
    ) -> List[Entry]:
        """List a directory; missing targets yield an empty list."""
        return op_list_directory(identity, relative_path, cls.get_settings(), sort_by, order)

    @classmethod
    def create_folder(cls, identity: Identity, relative_path: str, name: str) -> str:
        return op_create_folder(identity, relative_path, name, cls.get_settings())

    @classmethod
    def upload(cls, identity: Identity, relative_path: str, original_name: str, temp_path: str) -> str:
        """Move a received temp file into place; returns the final filename."""
        return op_upload_file(identity, relative_path, original_name, temp_path, cls.get_settings())

    @classmethod
    def download(cls, identity: Identity, relative_path: str) -> str:
        return op_download_file(identity, relative_path, cls.get_settings())

    @classmethod
    def delete(cls, identity: Identity, relative_path: str) -> None:
        op_delete_path(identity, relative_path, cls.get_settings())

    @classmethod
    def rename(cls, identity: Identity, relative_path: str, new_name: str) -> str:
        return op_rename_path(identity, relative_path, new_name, cls.get_settings())

    @classmethod
    def move(cls, identity: Identity, source_path: str, destination_dir: str) -> str:
        return op_move_path(identity, source_path, destination_dir, cls.get_settings())

    @classmethod
    def resolve(cls, identity: Identity, relative_path: str, operation: str = "access") -> str:
        """Resolve and guard a path without touching the filesystem."""
        return resolve_path(identity, relative_path, cls.get_settings(), operation)

    # ==================== Usage ====================

    @classmethod
    def get_global_stats(cls) -> UsageStats:
        return op_get_global_stats(cls.get_settings().users_root)

    @classmethod
    def get_dashboard_stats(cls) -> Dict[str, Any]:
        """Global stats plus quota figures for the admin dashboard."""
        settings = cls.get_settings()
        return build_dashboard(op_get_global_stats(settings.users_root), settings.total_storage_gb)

    @classmethod
    def get_recent_files(cls, days: float = 7) -> List[RecentFile]:
        return op_get_recent_files(cls.get_settings().users_root, days)

    @classmethod
    def get_disk_usage(cls) -> Dict[str, int]:
        return op_get_disk_usage(cls.get_settings().users_root)

    @classmethod
    def find_documents(cls, identity: Identity, name: str) -> List[str]:
        """
        Search file names beneath the caller's root.

        Results are limited to paths the caller may open.
        """
        settings = cls.get_settings()
        root = resolve_root(identity, settings)
        return [
            rel for rel in op_find_documents_by_name(root, name)
            if can_access(identity, rel, settings)
        ]

    # ==================== Backup ====================

    @classmethod
    def create_backup(cls, incremental: bool = False) -> bool:
        """Start a backup; False means one is already running."""
        return cls.get_backup_manager().create_backup(incremental)

    @classmethod
    def is_backup_in_progress(cls) -> bool:
        return cls.get_backup_manager().is_backup_in_progress()

    @classmethod
    def get_last_backup_timestamp(cls) -> Optional[float]:
        return cls.get_backup_manager().get_last_backup_timestamp()

    @classmethod
    def get_latest_backup_path(cls) -> Optional[str]:
        return cls.get_backup_manager().get_latest_backup_path()

    @classmethod
    def get_backup_status(cls) -> Dict[str, Any]:
        return cls.get_backup_manager().get_status()


# ==================== Module-level convenience functions ====================


def initialize(**kwargs) -> bool:
    """Initialize the storage gate."""
    return StorageGate.initialize(**kwargs)


def is_initialized() -> bool:
    """Check if the gate is initialized."""
    return StorageGate.is_initialized()


def get_health_status() -> Dict[str, Any]:
    """Get detailed health information."""
    return StorageGate.get_health_status()


def list_dir(identity: Identity, relative_path: str = "", sort_by: str = "name", order: str = "asc") -> List[Entry]:
    """List a directory."""
    return StorageGate.list_dir(identity, relative_path, sort_by, order)


def create_backup(incremental: bool = False) -> bool:
    """Start a backup."""
    return StorageGate.create_backup(incremental)


__all__ = [
    # Class
    "StorageGate",
    # Lifecycle
    "initialize",
    "is_initialized",
    "get_health_status",
    # Operations
    "list_dir",
    "create_backup",
    # Models
    "Identity",
    "Role",
    "UserAccount",
    "StorageSettings",
    "Entry",
    "UsageStats",
    "RecentFile",
    "BackupState",
    "BackupManager",
    "UNASSIGNED_BUCKET",
    "UNKNOWN_EXTENSION",
]
