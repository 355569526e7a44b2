"""
StorageGate usage aggregation.

Full recursive walks over the users root. Nothing is cached: every call
rescans the tree.
"""

import os
import time
from datetime import datetime
from stat import S_ISREG
from typing import Any, Dict, Iterator, List, Optional, Tuple

from vault.shared.gate import GateLogger

from .models import RecentFile, UsageStats, UNASSIGNED_BUCKET, UNKNOWN_EXTENSION

_log = GateLogger.get("StorageGate")

BYTES_PER_MB = 1024 * 1024
BYTES_PER_GB = 1024 * 1024 * 1024


def walk_files(root: str, skip_hidden: bool = False) -> Iterator[Tuple[str, str, os.stat_result]]:
    """
    Yield (absolute path, root-relative posix path, stat) for every regular file.

    Symlinks are not followed, so nothing outside the root is counted or
    archived. Unreadable directories and vanished files are skipped.
    """
    if not os.path.isdir(root):
        return

    def on_error(e: OSError):
        _log.debug(f"Skipping unreadable directory: {e}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        if skip_hidden:
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]

        for filename in filenames:
            if skip_hidden and filename.startswith("."):
                continue
            full_path = os.path.join(dirpath, filename)
            try:
                stat = os.lstat(full_path)
            except OSError:
                continue
            if not S_ISREG(stat.st_mode):
                continue
            rel = os.path.relpath(full_path, root).replace(os.sep, "/")
            yield full_path, rel, stat


def _extension_bucket(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    return ext if ext else UNKNOWN_EXTENSION


def get_global_stats(users_root: str) -> UsageStats:
    """
    Aggregate size, file count, extension histogram and per-owner usage.

    The first path component beneath the root names the owner; files sitting
    directly in the root count towards the unassigned bucket.
    """
    stats = UsageStats()

    for _, rel, stat in walk_files(users_root):
        parts = rel.split("/")
        owner = parts[0] if len(parts) > 1 else UNASSIGNED_BUCKET
        ext = _extension_bucket(parts[-1])

        stats.total_size += stat.st_size
        stats.total_files += 1
        stats.file_types[ext] = stats.file_types.get(ext, 0) + 1
        stats.user_usage[owner] = stats.user_usage.get(owner, 0) + stat.st_size

    return stats


def get_recent_files(users_root: str, days: float = 7, now: Optional[float] = None) -> List[RecentFile]:
    """Files whose modification time is strictly newer than ``now - days``."""
    now = time.time() if now is None else now
    cutoff = now - days * 86400

    recent = []
    for _, rel, stat in walk_files(users_root):
        if stat.st_mtime > cutoff:
            name = rel.rsplit("/", 1)[-1]
            recent.append(RecentFile(
                name=name,
                path=rel,
                size=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime),
                extension=os.path.splitext(name)[1].lower(),
            ))

    return recent


def get_disk_usage(users_root: str) -> Dict[str, int]:
    """Projection of the global stats total."""
    return {"total_bytes": get_global_stats(users_root).total_size}


def find_documents_by_name(root: str, name: str) -> List[str]:
    """
    Case-insensitive substring search over file names.

    Hidden files and folders are skipped.

    Returns:
        Root-relative posix paths of the matches
    """
    needle = (name or "").lower()
    if not needle:
        return []
    return [rel for _, rel, _ in walk_files(root, skip_hidden=True)
            if needle in rel.rsplit("/", 1)[-1].lower()]


def build_dashboard(stats: UsageStats, total_storage_gb: int) -> Dict[str, Any]:
    """Stats payload for the admin dashboard, with quota percentages."""
    capacity = total_storage_gb * BYTES_PER_GB
    usage_percent = (stats.total_size / capacity) * 100 if capacity > 0 else 0.0

    payload = stats.to_dict()
    payload.update({
        "total_storage_gb": total_storage_gb,
        "total_size_mb": round(stats.total_size / BYTES_PER_MB, 2),
        "usage_percent": round(min(usage_percent, 100.0), 2),
    })
    return payload
