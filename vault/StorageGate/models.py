"""
StorageGate Pydantic models.

Defines identities, storage settings, directory entries and usage records.
"""

import os
from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from vault.Config.accounts import Role, UserAccount


IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".ogg", ".mov"})

# Bucket for files sitting directly in the users root
UNASSIGNED_BUCKET = "unassigned"
# Bucket for files without an extension
UNKNOWN_EXTENSION = "unknown"


class Identity(BaseModel):
    """Authenticated caller, as supplied by the auth layer."""
    username: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_privileged(self) -> bool:
        """Admins and moderators see the whole users root."""
        return self.role in (Role.ADMIN, Role.MODERATOR)


class StorageSettings(BaseModel):
    """Resolved storage configuration (derived from Config at initialize)."""
    users_root: str = Field(description="Absolute path of the shared users root")
    public_root: str = Field(description="Absolute path of the guest root")
    backup_dir: str = Field(description="Absolute path of the backup directory")
    accounts: List[UserAccount] = Field(default_factory=list)
    admin_username: str = "ADMIN"
    total_storage_gb: int = 500
    admin_email: Optional[str] = None

    @property
    def known_usernames(self) -> List[str]:
        return [a.username for a in self.accounts]

    def get_account(self, username: str) -> Optional[UserAccount]:
        for account in self.accounts:
            if account.username == username:
                return account
        return None


class Entry(BaseModel):
    """A directory listing record."""
    name: str
    is_directory: bool
    size: int = 0
    modified_at: datetime
    extension: str = ""
    is_image: bool = False
    is_video: bool = False

    @classmethod
    def from_stat(cls, name: str, is_directory: bool, stat: os.stat_result) -> "Entry":
        ext = "" if is_directory else os.path.splitext(name)[1].lower()
        return cls(
            name=name,
            is_directory=is_directory,
            size=0 if is_directory else stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime),
            extension=ext,
            is_image=ext in IMAGE_EXTENSIONS,
            is_video=ext in VIDEO_EXTENSIONS,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")


class UsageStats(BaseModel):
    """Aggregate usage over the users root."""
    total_size: int = 0
    total_files: int = 0
    file_types: Dict[str, int] = Field(default_factory=dict)
    user_usage: Dict[str, int] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class RecentFile(BaseModel):
    """A file modified within the requested window."""
    name: str
    path: str = Field(description="Path relative to the users root, '/' separated")
    size: int
    modified_at: datetime
    extension: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class BackupState(BaseModel):
    """Sidecar contents persisted after each successful backup."""
    timestamp: Optional[float] = Field(
        default=None, description="Completion time in milliseconds since the epoch"
    )


__all__ = [
    "Role",
    "UserAccount",
    "Identity",
    "StorageSettings",
    "Entry",
    "UsageStats",
    "RecentFile",
    "BackupState",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "UNASSIGNED_BUCKET",
    "UNKNOWN_EXTENSION",
]
