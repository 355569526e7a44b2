"""
Pytest configuration and fixtures for Vault tests.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from vault.Config.accounts import Role, UserAccount
from vault.StorageGate.models import Identity

# Check for pytest-asyncio
try:
    import pytest_asyncio
    HAS_PYTEST_ASYNCIO = True
except ImportError:
    HAS_PYTEST_ASYNCIO = False


def pytest_collection_modifyitems(config, items):
    """Skip async tests if pytest-asyncio is not installed."""
    if HAS_PYTEST_ASYNCIO:
        return

    import asyncio
    skip_asyncio = pytest.mark.skip(
        reason="pytest-asyncio not installed - async tests require pytest-asyncio"
    )
    for item in items:
        if asyncio.iscoroutinefunction(item.function):
            item.add_marker(skip_asyncio)


PASSWORDS = {
    "ADMIN": "admin-pass",
    "ALICE": "alice-pass",
    "BOB": "bob-pass",
    "MOD": "mod-pass",
    "INVITADO": "guest-pass",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def accounts() -> List[UserAccount]:
    """One account per role."""
    return [
        UserAccount(username="ADMIN", password=PASSWORDS["ADMIN"], role=Role.ADMIN),
        UserAccount(username="ALICE", password=PASSWORDS["ALICE"], role=Role.USER),
        UserAccount(username="BOB", password=PASSWORDS["BOB"], role=Role.USER),
        UserAccount(username="MOD", password=PASSWORDS["MOD"], role=Role.MODERATOR),
        UserAccount(username="INVITADO", password=PASSWORDS["INVITADO"], role=Role.GUEST),
    ]


@pytest.fixture
def admin() -> Identity:
    return Identity(username="ADMIN", role=Role.ADMIN)


@pytest.fixture
def alice() -> Identity:
    return Identity(username="ALICE", role=Role.USER)


@pytest.fixture
def bob() -> Identity:
    return Identity(username="BOB", role=Role.USER)


@pytest.fixture
def moderator() -> Identity:
    return Identity(username="MOD", role=Role.MODERATOR)


@pytest.fixture
def guest() -> Identity:
    return Identity(username="INVITADO", role=Role.GUEST)


@pytest.fixture
def storage(temp_dir: Path, accounts):
    """
    Initialized StorageGate over a small tree:

        users/ALICE/docs/report.txt
        users/ALICE/photo.png
        users/BOB/notes.md
        users/ADMIN/secret.txt
        users/shared/readme
        users/loose.txt
        public/welcome.txt
    """
    from vault.StorageGate import StorageGate

    base = temp_dir / "storage"
    users = base / "users"
    public = base / "public"

    (users / "ALICE" / "docs").mkdir(parents=True)
    (users / "BOB").mkdir(parents=True)
    (users / "ADMIN").mkdir(parents=True)
    (users / "shared").mkdir(parents=True)
    public.mkdir(parents=True)

    (users / "ALICE" / "docs" / "report.txt").write_text("Quarterly report")
    (users / "ALICE" / "photo.png").write_bytes(b"\x89PNG" + b"\x00" * 96)
    (users / "BOB" / "notes.md").write_text("# Bob notes")
    (users / "ADMIN" / "secret.txt").write_text("admin only")
    (users / "shared" / "readme").write_text("shared folder")
    (users / "loose.txt").write_text("no owner")
    (public / "welcome.txt").write_text("Welcome guest")

    result = StorageGate.initialize(
        storage_path=str(base),
        backup_dir=str(temp_dir / "backups"),
        accounts=accounts,
        admin_username="ADMIN",
        total_storage_gb=1,
        admin_email="admin@example.com",
    )
    assert result is True

    return StorageGate.get_settings()


TEST_JWT_SECRET = "test-secret-0123456789abcdef"


@pytest.fixture(autouse=True)
def session_secret(monkeypatch):
    """Every test runs with a signing secret configured."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    import vault.Config as config_module
    config_module._manager = None
    return TEST_JWT_SECRET


@pytest.fixture(autouse=True)
def reset_module_state():
    """Reset module-level state between tests."""
    yield

    # Reset StorageGate
    try:
        import vault.StorageGate as storage_gate
        manager = storage_gate._backup_manager
        if manager is not None:
            manager.wait_for_completion(timeout=10)
        storage_gate._settings = None
        storage_gate._backup_manager = None
        storage_gate._initialized = False
    except (ImportError, AttributeError):
        pass

    # Reset ToolGate
    try:
        import vault.ToolGate as tool_gate
        tool_gate._initialized = False
    except (ImportError, AttributeError):
        pass

    # Reset ChatGate
    try:
        from vault import ChatGate
        ChatGate.get_store().clear()
    except (ImportError, AttributeError):
        pass

    # Reset AuditGate and NotificationGate
    try:
        from vault import AuditGate, NotificationGate
        AuditGate.clear()
        NotificationGate.clear_outbox()
    except (ImportError, AttributeError):
        pass

    # Reset Config
    try:
        import vault.Config as config_module
        config_module._manager = None
    except (ImportError, AttributeError):
        pass

