"""
StorageGate file operations.

Provides list, mkdir, upload, download, delete, rename and move. Every
path argument goes through the security module before the filesystem is
touched.
"""

import os
import shutil
from contextlib import contextmanager
from typing import Iterator, List

from vault.shared.errors import AccessDenied, Conflict, InternalError, NotFound
from vault.shared.gate import GateLogger

from .models import Entry, Identity, StorageSettings
from .security import (
    is_hidden_at_root,
    is_within_root,
    resolve_path,
    resolve_root,
    sanitize_filename,
    split_segments,
    validate_entry_name,
)

_log = GateLogger.get("StorageGate")

SORT_KEYS = ("name", "date")
SORT_ORDERS = ("asc", "desc")

DUPLICATE_MARKER = "_duplicado"


@contextmanager
def _os_errors(operation: str, path: str) -> Iterator[None]:
    """Re-raise unclassified OS failures as InternalError."""
    try:
        yield
    except OSError as e:
        _log.error(f"{operation} failed on {path}: {e}")
        raise InternalError(f"Failed to {operation}: {e.strerror or e}") from e


def _join(*parts: str) -> str:
    return "/".join(p for p in parts if p)


def sort_entries(entries: List[Entry], sort_by: str = "name", order: str = "asc") -> List[Entry]:
    """
    Order entries: directories first, then files.

    Within each group, ``name`` sorts lexicographically and ``date`` by
    modification time; ``desc`` yields the exact reverse of ``asc``.
    """
    if sort_by == "date":
        key = lambda e: (e.modified_at, e.name)
    else:
        key = lambda e: e.name

    directories = sorted((e for e in entries if e.is_directory), key=key)
    files = sorted((e for e in entries if not e.is_directory), key=key)

    if order == "desc":
        directories.reverse()
        files.reverse()

    return directories + files


def list_directory(
    identity: Identity,
    relative_path: str,
    settings: StorageSettings,
    sort_by: str = "name",
    order: str = "asc",
) -> List[Entry]:
    """
    List a directory.

    A missing target yields an empty list; only access violations fail.
    """
    target = resolve_path(identity, relative_path, settings, "list")

    if not os.path.isdir(target):
        return []

    at_root = not split_segments(relative_path)
    entries: List[Entry] = []

    with _os_errors("list directory", target):
        with os.scandir(target) as it:
            for item in it:
                try:
                    is_dir = item.is_dir()
                    stat = item.stat()
                except OSError:
                    # Vanished or unreadable entry
                    continue

                if is_dir and at_root and is_hidden_at_root(identity, item.name, settings):
                    continue

                entries.append(Entry.from_stat(item.name, is_dir, stat))

    return sort_entries(entries, sort_by, order)


def create_folder(
    identity: Identity,
    relative_path: str,
    name: str,
    settings: StorageSettings,
) -> str:
    """
    Create ``relative_path/name`` including intermediate directories.

    Idempotent: an existing target is left untouched.

    Returns:
        The folder path relative to the caller's root
    """
    validate_entry_name(name)
    folder_rel = _join(*split_segments(relative_path), name)
    target = resolve_path(identity, folder_rel, settings, "mkdir")

    if os.path.exists(target):
        return folder_rel

    with _os_errors("create folder", target):
        os.makedirs(target, exist_ok=True)

    _log.info(f"{identity.username} created folder {folder_rel}")
    return folder_rel


def unique_upload_name(target_dir: str, filename: str) -> str:
    """
    Probe for a free name in ``target_dir``.

    ``report.pdf`` -> ``report_duplicado.pdf`` -> ``report_duplicado2.pdf`` -> ...
    """
    stem, ext = os.path.splitext(filename)
    candidate = filename
    counter = 1

    while os.path.lexists(os.path.join(target_dir, candidate)):
        suffix = str(counter) if counter > 1 else ""
        candidate = f"{stem}{DUPLICATE_MARKER}{suffix}{ext}"
        counter += 1

    return candidate


def upload_file(
    identity: Identity,
    relative_path: str,
    original_name: str,
    temp_path: str,
    settings: StorageSettings,
) -> str:
    """
    Move an already-received temporary file into ``relative_path``.

    Args:
        identity: Authenticated caller
        relative_path: Destination directory relative to the caller's root
        original_name: Client-side filename
        temp_path: Readable path of the received bytes
        settings: Storage settings

    Returns:
        The final filename used after collision handling
    """
    filename = sanitize_filename(original_name)
    target_dir = resolve_path(identity, relative_path, settings, "upload")

    if not os.path.isfile(temp_path):
        raise NotFound("Uploaded file is no longer available")

    if os.path.exists(target_dir) and not os.path.isdir(target_dir):
        raise Conflict(f"Upload target is not a folder: {relative_path}")

    with _os_errors("create upload folder", target_dir):
        os.makedirs(target_dir, exist_ok=True)

    final_name = unique_upload_name(target_dir, filename)
    final_rel = _join(*split_segments(relative_path), final_name)
    final_path = resolve_path(identity, final_rel, settings, "upload")

    with _os_errors("store upload", final_path):
        shutil.move(temp_path, final_path)

    _log.info(f"{identity.username} uploaded {final_rel}")
    return final_name


def download_file(identity: Identity, relative_path: str, settings: StorageSettings) -> str:
    """Resolve an existing, non-directory file for download."""
    target = resolve_path(identity, relative_path, settings, "download")

    if not os.path.exists(target) or os.path.isdir(target):
        raise NotFound(f"File not found: {relative_path}")

    return target


def delete_path(identity: Identity, relative_path: str, settings: StorageSettings) -> None:
    """Recursively remove a file or folder (force semantics beneath it)."""
    target = resolve_path(identity, relative_path, settings, "delete")

    if target == resolve_root(identity, settings):
        raise AccessDenied("Cannot delete the storage root")

    if not os.path.lexists(target):
        raise NotFound(f"Item not found: {relative_path}")

    with _os_errors("delete", target):
        if os.path.isdir(target) and not os.path.islink(target):
            shutil.rmtree(target, ignore_errors=True)
            if os.path.lexists(target):
                raise InternalError(f"Failed to delete {relative_path}")
        else:
            os.remove(target)

    _log.info(f"{identity.username} deleted {relative_path}")


def rename_path(
    identity: Identity,
    relative_path: str,
    new_name: str,
    settings: StorageSettings,
) -> str:
    """
    Rename an item within its parent directory.

    An existing sibling named ``new_name`` is a conflict, including the item
    itself when the name is unchanged.

    Returns:
        The new path relative to the caller's root
    """
    validate_entry_name(new_name)
    source = resolve_path(identity, relative_path, settings, "rename")

    if source == resolve_root(identity, settings):
        raise AccessDenied("Cannot rename the storage root")

    new_rel = _join(*split_segments(relative_path)[:-1], new_name)
    destination = resolve_path(identity, new_rel, settings, "rename")

    if not os.path.lexists(source):
        raise NotFound(f"Item not found: {relative_path}")

    if os.path.lexists(destination):
        raise Conflict(f"Target name already exists: {new_name}")

    with _os_errors("rename", source):
        os.rename(source, destination)

    _log.info(f"{identity.username} renamed {relative_path} -> {new_rel}")
    return new_rel


def move_path(
    identity: Identity,
    source_path: str,
    destination_dir: str,
    settings: StorageSettings,
) -> str:
    """
    Move an item into another directory, keeping its name.

    Returns:
        The new path relative to the caller's root
    """
    source = resolve_path(identity, source_path, settings, "move")

    if source == resolve_root(identity, settings):
        raise AccessDenied("Cannot move the storage root")

    name = split_segments(source_path)[-1]
    new_rel = _join(*split_segments(destination_dir), name)
    final_path = resolve_path(identity, new_rel, settings, "move")
    dest_dir = os.path.dirname(final_path)

    if not os.path.lexists(source):
        raise NotFound(f"Source item not found: {source_path}")

    if not os.path.isdir(dest_dir):
        raise NotFound(f"Destination folder does not exist: {destination_dir}")

    if os.path.lexists(final_path):
        raise Conflict(f"An item named {name} already exists in the destination")

    if os.path.isdir(source) and is_within_root(final_path, source):
        raise Conflict("Cannot move a folder into itself")

    with _os_errors("move", source):
        shutil.move(source, final_path)

    _log.info(f"{identity.username} moved {source_path} -> {new_rel}")
    return new_rel
