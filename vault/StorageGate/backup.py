"""
StorageGate backup management.

Full and incremental zip archives of the users root, run one at a time on a
background thread. The completion timestamp survives restarts through a
small JSON sidecar next to the archives.
"""

import os
import re
import threading
import time
import zipfile
from typing import Any, Callable, Dict, List, Optional

from vault.shared.gate import ConfigLoader, GateErrorHandler, GateLogger

from .models import BackupState
from .usage import walk_files

_log = GateLogger.get("StorageGate")

SIDECAR_NAME = "last_backup.json"
ARCHIVE_PATTERN = re.compile(r"^backup-(full|incremental)-(\d+)\.zip$")

# (recipient, subject, body)
Notifier = Callable[[str, str, str], Any]
BackupListener = Callable[[Dict[str, Any]], Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


class BackupManager:
    """Single-flight backup runner for the users root."""

    def __init__(
        self,
        users_root: str,
        backup_dir: str,
        notifier: Optional[Notifier] = None,
        recipient: Optional[str] = None,
    ):
        """
        Initialize the backup manager.

        Args:
            users_root: Directory to archive
            backup_dir: Directory holding archives and the sidecar
            notifier: Callable used to announce completed backups
            recipient: Notification recipient (usually the admin email)
        """
        self.users_root = users_root
        self.backup_dir = backup_dir
        self.sidecar_path = os.path.join(backup_dir, SIDECAR_NAME)
        self.notifier = notifier
        self.recipient = recipient

        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[BackupListener] = []
        self._last_error: Optional[str] = None
        self._last_timestamp = self._load_timestamp()

    def _load_timestamp(self) -> Optional[float]:
        state = ConfigLoader.load(self.sidecar_path, BackupState)
        return state.timestamp if state else None

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    def is_backup_in_progress(self) -> bool:
        with self._lock:
            return self._running

    def get_last_backup_timestamp(self) -> Optional[float]:
        """Completion time of the last successful backup, in epoch milliseconds."""
        return self._last_timestamp

    def get_status(self) -> Dict[str, Any]:
        latest = self.get_latest_backup_path()
        return {
            "in_progress": self.is_backup_in_progress(),
            "last_backup_timestamp": self._last_timestamp,
            "latest_backup": os.path.basename(latest) if latest else None,
            "last_error": self._last_error,
        }

    def get_latest_backup_path(self) -> Optional[str]:
        """Newest archive by the timestamp embedded in its filename."""
        if not os.path.isdir(self.backup_dir):
            return None

        best_name = None
        best_stamp = -1
        for name in os.listdir(self.backup_dir):
            match = ARCHIVE_PATTERN.match(name)
            if not match:
                continue
            stamp = int(match.group(2))
            if stamp > best_stamp:
                best_name, best_stamp = name, stamp

        return os.path.join(self.backup_dir, best_name) if best_name else None

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: BackupListener) -> None:
        """Register a callback receiving backup lifecycle events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: BackupListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, **data: Any) -> None:
        payload = {"event": event, "timestamp": _now_ms(), **data}
        for listener in list(self._listeners):
            GateErrorHandler.wrap("StorageGate", f"backup listener for {event}")(listener)(payload)

    # -------------------------------------------------------------------------
    # Backup lifecycle
    # -------------------------------------------------------------------------

    def create_backup(self, incremental: bool = False) -> bool:
        """
        Start a backup on a background thread.

        Returns:
            True if the job was accepted, False if one is already running
        """
        with self._lock:
            if self._running:
                _log.info("Backup requested while another is running; not started")
                return False
            self._running = True

        kind = "incremental" if incremental else "full"
        thread = threading.Thread(
            target=self._run,
            args=(incremental,),
            name=f"vault-backup-{kind}",
            daemon=True,
        )
        self._thread = thread

        self._emit("backup_started", kind=kind)
        try:
            thread.start()
        except RuntimeError:
            with self._lock:
                self._running = False
            raise

        _log.info(f"Accepted {kind} backup of {self.users_root}")
        return True

    def wait_for_completion(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the current backup thread finishes.

        Returns:
            True if no backup is running afterwards
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return not self.is_backup_in_progress()

    def _run(self, incremental: bool) -> None:
        kind = "incremental" if incremental else "full"
        archive_path = None
        file_count = 0

        try:
            archive_path, file_count = self._write_archive(incremental)
        except Exception as e:
            # The caller already returned; log and fall back to idle
            self._last_error = str(e)
            _log.error(f"{kind.capitalize()} backup failed: {e}")
        finally:
            if archive_path:
                self._last_timestamp = _now_ms()
                self._last_error = None
                ConfigLoader.save(self.sidecar_path, BackupState(timestamp=self._last_timestamp))
            with self._lock:
                self._running = False

        if archive_path:
            _log.info(f"{kind.capitalize()} backup completed: {archive_path} ({file_count} files)")
            self._notify(kind, archive_path, file_count)
            self._emit(
                "backup_completed",
                kind=kind,
                archive=os.path.basename(archive_path),
                files=file_count,
            )
        else:
            self._emit("backup_failed", kind=kind, error=self._last_error)

    def _write_archive(self, incremental: bool):
        """
        Write one archive.

        Returns:
            (archive path, number of files written)
        """
        os.makedirs(self.backup_dir, exist_ok=True)

        if not incremental:
            self._purge_archives()

        since_ms = (self._last_timestamp or 0) if incremental else None
        kind = "incremental" if incremental else "full"
        archive_path = os.path.join(self.backup_dir, f"backup-{kind}-{_now_ms()}.zip")
        tmp_path = archive_path + ".part"

        count = 0
        try:
            with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for full_path, rel, stat in walk_files(self.users_root):
                    if since_ms is not None and stat.st_mtime * 1000 <= since_ms:
                        continue
                    zf.write(full_path, rel)
                    count += 1
            os.replace(tmp_path, archive_path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

        return archive_path, count

    def _purge_archives(self) -> None:
        """Delete every prior archive before a full backup."""
        for name in os.listdir(self.backup_dir):
            if name.endswith(".zip"):
                os.remove(os.path.join(self.backup_dir, name))
                _log.debug(f"Removed previous archive {name}")

    def _notify(self, kind: str, archive_path: str, file_count: int) -> None:
        if not self.notifier or not self.recipient:
            _log.debug("No notification recipient configured")
            return

        subject = f"Vault {kind} backup completed"
        body = (
            f"The {kind} backup finished successfully.\n"
            f"Archive: {os.path.basename(archive_path)}\n"
            f"Files: {file_count}\n"
        )
        GateErrorHandler.wrap("StorageGate", "backup notification")(self.notifier)(
            self.recipient, subject, body
        )


__all__ = ["BackupManager", "SIDECAR_NAME", "ARCHIVE_PATTERN"]
