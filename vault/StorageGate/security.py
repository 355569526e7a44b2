"""
StorageGate security module.

Maps an identity and a caller-supplied relative path onto its permitted
root, enforcing segment ownership (tenant isolation) and containment
(traversal safety).
"""

import os
import re
from typing import List, Optional

from vault import AuditGate
from vault.shared.errors import AccessDenied
from vault.shared.gate import GateLogger

from .models import Identity, Role, StorageSettings

_log = GateLogger.get("StorageGate")

_SEPARATORS = re.compile(r"[\\/]+")


def normalize_path(path: str) -> str:
    """
    Normalize a path to an absolute form.

    Args:
        path: Raw path string

    Returns:
        Normalized absolute path
    """
    path = os.path.expanduser(path)
    path = os.path.normpath(path)
    return os.path.abspath(path)


def split_segments(relative_path: Optional[str]) -> List[str]:
    """
    Split a relative path on either separator, dropping empty and '.' segments.

    Raises:
        AccessDenied: if a '..' segment or a NUL byte is present
    """
    if not relative_path:
        return []
    if "\x00" in relative_path:
        raise AccessDenied("Path contains a NUL byte")

    segments = [s for s in _SEPARATORS.split(relative_path) if s and s != "."]
    if ".." in segments:
        raise AccessDenied("Parent directory references are not allowed")
    return segments


def resolve_root(identity: Identity, settings: StorageSettings) -> str:
    """Permitted root for an identity: guests get the public root, everyone else the users root."""
    if identity.role == Role.GUEST:
        return normalize_path(settings.public_root)
    return normalize_path(settings.users_root)


def check_segment_ownership(
    identity: Identity,
    segments: List[str],
    settings: StorageSettings,
) -> Optional[str]:
    """
    Apply the first-segment ownership rule.

    Returns:
        An error message when access must be denied, else None
    """
    if identity.is_admin or not segments:
        return None

    first = segments[0]
    known = settings.known_usernames

    if identity.role == Role.MODERATOR:
        if first == settings.admin_username:
            return f"'{first}' is reserved for the administrator"
        return None

    if identity.role == Role.GUEST:
        if first in known:
            return "Guests cannot address user folders"
        return None

    # Ordinary user: a lone segment may name anything except another user,
    # deeper paths must live under the user's own folder.
    if len(segments) == 1:
        if first in known and first != identity.username:
            return f"'{first}' belongs to another user"
        return None

    if first != identity.username:
        return f"Path must start with '{identity.username}'"
    return None


def is_within_root(target: str, root: str) -> bool:
    """Textual containment: target equals root or sits beneath it."""
    root = root.rstrip(os.sep) or os.sep
    if target == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return target.startswith(prefix)


def resolve_path(
    identity: Identity,
    relative_path: Optional[str],
    settings: StorageSettings,
    operation: str = "access",
) -> str:
    """
    Resolve a caller path to an absolute, validated target.

    Args:
        identity: Authenticated caller
        relative_path: Path relative to the caller's root
        settings: Storage settings
        operation: Operation name for audit logging

    Returns:
        Absolute path beneath the permitted root

    Raises:
        AccessDenied: on traversal, containment or ownership violations
    """
    try:
        segments = split_segments(relative_path)
        root = resolve_root(identity, settings)

        error = check_segment_ownership(identity, segments, settings)
        if error:
            raise AccessDenied(error)

        target = normalize_path(os.path.join(root, *segments)) if segments else root
        if not is_within_root(target, root):
            raise AccessDenied(f"Path escapes storage root: {relative_path}")

        return target

    except AccessDenied as e:
        _log.warning(
            f"Denied {operation} for {identity.username} ({identity.role.value}) "
            f"on {relative_path!r}: {e.message}"
        )
        AuditGate.record(
            AuditGate.ACCESS_DENIED,
            identity.username,
            f"{operation} {relative_path!r}: {e.message}",
            role=identity.role.value,
        )
        raise


def can_access(identity: Identity, relative_path: str, settings: StorageSettings) -> bool:
    """Side-effect free variant of the ownership check, used to filter search results."""
    try:
        segments = split_segments(relative_path)
    except AccessDenied:
        return False
    return check_segment_ownership(identity, segments, settings) is None


def is_hidden_at_root(identity: Identity, name: str, settings: StorageSettings) -> bool:
    """
    Post-filter for root-level listings.

    Non-privileged callers do not see sibling user folders; moderators do
    not see the administrator folder. Folders that match no known user stay
    visible to everyone.
    """
    if identity.is_admin:
        return False
    if identity.role == Role.MODERATOR:
        return name == settings.admin_username
    if name not in settings.known_usernames:
        return False
    return identity.role == Role.GUEST or name != identity.username


def validate_entry_name(name: Optional[str]) -> str:
    """
    Validate a single path component supplied for mkdir/rename.

    Raises:
        AccessDenied: if the name is empty, dotted or contains separators
    """
    if not name or name in (".", "..") or "\x00" in name or _SEPARATORS.search(name):
        raise AccessDenied(f"Invalid name: {name!r}")
    return name


def sanitize_filename(filename: str) -> str:
    """
    Sanitize an uploaded filename.

    Args:
        filename: Raw filename from the upload transport

    Returns:
        Sanitized filename

    Raises:
        AccessDenied: if nothing usable remains
    """
    # Remove path components from either separator style
    filename = _SEPARATORS.split(filename or "")[-1]

    # Remove null bytes and other control characters
    filename = re.sub(r'[\x00-\x1f\x7f]', '', filename)

    # Remove other dangerous characters
    filename = re.sub(r'[<>:"|?*]', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        max_name_len = 255 - len(ext)
        filename = name[:max_name_len] + ext

    if not filename or filename in (".", ".."):
        raise AccessDenied("Invalid upload filename")

    return filename
