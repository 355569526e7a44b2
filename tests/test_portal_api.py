"""
Tests for the portal HTTP and WebSocket surface.
"""

import io
import json
import os
import zipfile
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from vault import AuditGate, ChatGate
from vault.StorageGate import StorageGate

from portal.app import create_app
from portal.auth import create_access_token, decode_access_token
from portal.api.files import parent_of
from portal.lifecycle import check_config
from portal.services.events import file_event_scope, is_visible

from conftest import PASSWORDS


def final(message):
    return json.dumps({"type": "final", "message": message})


@pytest.fixture
def reasoner():
    return AsyncMock(return_value=final("Here you go."))


@pytest.fixture
def client(storage, reasoner):
    with TestClient(create_app(reasoner=reasoner)) as test_client:
        yield test_client


def login(client, username):
    response = client.post("/auth/login", json={"username": username, "password": PASSWORDS[username]})
    assert response.status_code == 200
    return response.json()["token"]


class TestTokens:
    """Tests for session tokens."""

    def test_round_trip(self, alice):
        identity = decode_access_token(create_access_token(alice))
        assert identity == alice

    def test_forged_token_rejected(self):
        assert decode_access_token("not.a.token") is None
        assert decode_access_token(None) is None


class TestAuthRoutes:
    """Tests for login, logout and session checks."""

    def test_api_requires_session(self, client):
        response = client.get("/api/files/list")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_health_is_public(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["gates"]["StorageGate"] is True

    def test_public_paths_match_exactly(self, client):
        assert client.get("/api/health").status_code == 200
        assert client.get("/api/healthz").status_code == 401
        assert client.get("/api/health/extra").status_code == 401

    def test_login_sets_cookie(self, client):
        response = client.post("/auth/login", json={"username": "ALICE", "password": PASSWORDS["ALICE"]})

        assert response.status_code == 200
        assert response.json()["user"] == {"username": "ALICE", "role": "user"}
        assert "jwt" in response.cookies

        me = client.get("/api/auth/me")
        assert me.json() == {"username": "ALICE", "role": "user"}

    def test_login_is_case_insensitive_on_username(self, client):
        response = client.post("/auth/login", json={"username": "alice", "password": PASSWORDS["ALICE"]})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "ALICE"

    def test_bad_password_audited(self, client):
        response = client.post("/auth/login", json={"username": "ALICE", "password": "wrong"})

        assert response.status_code == 401
        events = AuditGate.get_suspicious_activity()
        assert events[-1]["kind"] == AuditGate.LOGIN_FAILED
        assert events[-1]["username"] == "ALICE"

    def test_login_creates_home_folder(self, client, storage):
        assert not os.path.exists(os.path.join(storage.users_root, "MOD"))
        login(client, "MOD")
        assert os.path.isdir(os.path.join(storage.users_root, "MOD"))

    def test_guest_gets_no_home_folder(self, client, storage):
        login(client, "INVITADO")
        assert not os.path.exists(os.path.join(storage.users_root, "INVITADO"))

    def test_bearer_header(self, client, alice):
        token = create_access_token(alice)
        client.cookies.clear()
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["username"] == "ALICE"

    def test_logout(self, client):
        login(client, "ALICE")
        client.post("/auth/logout")
        assert client.get("/api/auth/me").status_code == 401


class TestFileRoutes:
    """Tests for the file API."""

    def test_list(self, client):
        login(client, "ALICE")
        response = client.get("/api/files/list", params={"path": "ALICE"})

        data = response.json()
        assert response.status_code == 200
        assert data["parent_path"] == ""
        assert [i["name"] for i in data["items"]] == ["docs", "photo.png"]

    def test_list_other_user_forbidden(self, client):
        login(client, "ALICE")
        response = client.get("/api/files/list", params={"path": "BOB"})

        assert response.status_code == 403
        assert response.json()["error"] == "access_denied"

    def test_parent_reference_rejected(self, client):
        login(client, "ADMIN")
        response = client.get("/api/files/list", params={"path": "ALICE/../BOB"})

        assert response.status_code == 403
        assert AuditGate.get_suspicious_activity()[-1]["username"] == "ADMIN"

    def test_invalid_sort_rejected(self, client):
        login(client, "ALICE")
        response = client.get("/api/files/list", params={"path": "ALICE", "sort": "size"})
        assert response.status_code == 422

    def test_mkdir_emits_event(self, client, storage):
        login(client, "ALICE")
        response = client.post("/api/files/mkdir", json={"path": "ALICE", "name": "music"})

        assert response.json() == {"success": True, "path": "ALICE/music"}
        assert os.path.isdir(os.path.join(storage.users_root, "ALICE", "music"))

        events = client.get("/api/events/recent", params={"type": "files"}).json()["events"]
        assert events[-1]["data"]["operation"] == "mkdir"

    def test_upload_with_duplicates(self, client, storage):
        login(client, "ALICE")
        files = [
            ("files", ("report.txt", io.BytesIO(b"v2"), "text/plain")),
            ("files", ("report.txt", io.BytesIO(b"v3"), "text/plain")),
        ]
        response = client.post("/api/files/upload", data={"path": "ALICE/docs"}, files=files)

        assert response.status_code == 200
        names = [f["name"] for f in response.json()["files"]]
        assert names == ["report_duplicado.txt", "report_duplicado2.txt"]
        with open(os.path.join(storage.users_root, "ALICE", "docs", "report_duplicado2.txt"), "rb") as f:
            assert f.read() == b"v3"

    def test_upload_limit(self, client):
        login(client, "ALICE")
        files = [("files", (f"f{i}.txt", io.BytesIO(b"x"), "text/plain")) for i in range(11)]
        response = client.post("/api/files/upload", data={"path": "ALICE"}, files=files)
        assert response.status_code == 400

    def test_download(self, client):
        login(client, "ALICE")
        response = client.get("/api/files/download", params={"path": "ALICE/docs/report.txt"})

        assert response.status_code == 200
        assert response.content == b"Quarterly report"

    def test_download_missing(self, client):
        login(client, "ALICE")
        response = client.get("/api/files/download", params={"path": "ALICE/nothing.txt"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_rename_conflict(self, client):
        login(client, "ALICE")
        response = client.post("/api/files/rename", json={"path": "ALICE/photo.png", "new_name": "photo.png"})
        assert response.status_code == 409

    def test_rename_and_move(self, client, storage):
        login(client, "ALICE")
        renamed = client.post("/api/files/rename", json={"path": "ALICE/photo.png", "new_name": "cat.png"})
        assert renamed.json()["path"] == "ALICE/cat.png"

        moved = client.post("/api/files/move", json={"source": "ALICE/cat.png", "destination": "ALICE/docs"})
        assert moved.json()["path"] == "ALICE/docs/cat.png"
        assert os.path.isfile(os.path.join(storage.users_root, "ALICE", "docs", "cat.png"))

    def test_delete(self, client, storage):
        login(client, "ALICE")
        response = client.delete("/api/files/delete", params={"path": "ALICE/docs"})

        assert response.status_code == 200
        assert not os.path.exists(os.path.join(storage.users_root, "ALICE", "docs"))

    def test_guest_sees_public_only(self, client):
        login(client, "INVITADO")
        items = client.get("/api/files/list").json()["items"]
        assert [i["name"] for i in items] == ["welcome.txt"]

    def test_parent_of(self):
        assert parent_of("") is None
        assert parent_of("ALICE") == ""
        assert parent_of("ALICE/docs/2024") == "ALICE/docs"


class TestAdminRoutes:
    """Tests for admin-only routes."""

    def test_stats_forbidden_for_users(self, client):
        login(client, "ALICE")
        assert client.get("/api/admin/stats").status_code == 403

    def test_stats(self, client):
        login(client, "ADMIN")
        stats = client.get("/api/admin/stats").json()["stats"]

        assert stats["total_files"] == 6
        assert stats["total_storage_gb"] == 1

    def test_backup_lifecycle(self, client):
        login(client, "ADMIN")

        response = client.post("/api/admin/backup")
        assert response.status_code == 202
        assert response.json()["started"] is True

        assert StorageGate.get_backup_manager().wait_for_completion(timeout=10)

        status = client.get("/api/admin/backup").json()
        assert status["in_progress"] is False
        assert status["last_backup_timestamp"] is not None

        latest = client.get("/api/admin/backup/latest")
        assert latest.status_code == 200
        with zipfile.ZipFile(io.BytesIO(latest.content)) as zf:
            assert "ALICE/docs/report.txt" in zf.namelist()

    def test_backup_conflict_while_running(self, client, monkeypatch):
        login(client, "ADMIN")
        monkeypatch.setattr(StorageGate.get_backup_manager(), "_running", True)

        response = client.post("/api/admin/backup", params={"incremental": True})
        assert response.status_code == 409
        assert response.json()["started"] is False

    def test_latest_missing(self, client):
        login(client, "ADMIN")
        assert client.get("/api/admin/backup/latest").status_code == 404


class TestChatRoutes:
    """Tests for the assistant endpoints."""

    def test_http_chat(self, client):
        login(client, "ALICE")
        response = client.post("/api/chat", json={"message": "How much space do I use?"})

        data = response.json()
        assert data["type"] == "reply"
        assert data["message"] == "Here you go."
        assert data["completed"] is True

        assert ChatGate.get_store().count() == 0

    def test_websocket_keeps_history(self, client):
        token = login(client, "ALICE")
        with client.websocket_connect(f"/ws/chat?token={token}") as ws:
            hello = ws.receive_json()
            assert hello["type"] == "connected"
            assert ChatGate.get_store().count() == 1

            ws.send_text(json.dumps({"message": "first"}))
            assert ws.receive_json()["message"] == "Here you go."

            ws.send_text("second")
            ws.receive_json()

            session = ChatGate.get_session(hello["session_id"])
            assert [m["content"] for m in session.history] == [
                "first", "Here you go.", "second", "Here you go.",
            ]

    def test_websocket_requires_token(self, client):
        client.cookies.clear()
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/chat") as ws:
                ws.receive_json()


class TestEventRoutes:
    """Tests for which events each caller can see."""

    def test_other_users_file_events_hidden(self, client):
        login(client, "BOB")
        client.post("/api/files/mkdir", json={"path": "BOB", "name": "medical-records"})
        client.delete("/api/files/delete", params={"path": "BOB/notes.md"})

        client.cookies.clear()
        login(client, "ALICE")
        client.post("/api/files/mkdir", json={"path": "ALICE", "name": "music"})
        events = client.get("/api/events/recent", params={"count": 100}).json()["events"]

        dumped = json.dumps(events)
        assert "BOB" not in dumped
        assert "medical-records" not in dumped
        assert any(e["data"].get("paths") == ["ALICE/music"] for e in events)

    def test_admin_sees_all_file_events(self, client):
        login(client, "BOB")
        client.post("/api/files/mkdir", json={"path": "BOB", "name": "medical-records"})

        client.cookies.clear()
        login(client, "ADMIN")
        events = client.get("/api/events/recent", params={"type": "files"}).json()["events"]
        assert events[-1]["data"]["paths"] == ["BOB/medical-records"]

    def test_guest_sees_no_user_events(self, client):
        login(client, "ALICE")
        client.post("/api/files/mkdir", json={"path": "ALICE", "name": "music"})

        client.cookies.clear()
        login(client, "INVITADO")
        events = client.get("/api/events/recent", params={"count": 100}).json()["events"]
        assert all(e["type"] == "system" or e["data"].get("user") == "INVITADO" for e in events)


class TestEventVisibility:
    """Tests for the per-subscriber event filter."""

    def event(self, event_type, **data):
        return {"type": event_type, "data": data, "timestamp": 0}

    def test_file_event_follows_ownership(self, storage, alice, bob):
        event = self.event("files", **file_event_scope(bob, "BOB/notes.md"))

        assert is_visible(event, bob, storage)
        assert not is_visible(event, alice, storage)

    def test_every_touched_path_checked(self, storage, alice):
        event = self.event("files", user="ALICE", area="users", paths=["ALICE/a.txt", "BOB/a.txt"])
        assert not is_visible(event, alice, storage)

    def test_area_must_match(self, storage, guest):
        event = self.event("files", user="ALICE", area="users", paths=["welcome.txt"])
        assert not is_visible(event, guest, storage)

    def test_backup_events_for_admins(self, storage, admin, alice):
        event = self.event("backup_completed", kind="full")

        assert is_visible(event, admin, storage)
        assert not is_visible(event, alice, storage)

    def test_actor_only_events(self, storage, alice, bob):
        event = self.event("auth", message="BOB logged in", user="BOB")

        assert is_visible(event, bob, storage)
        assert not is_visible(event, alice, storage)
        assert is_visible(self.event("system", message="Vault portal started"), alice, storage)


class TestStartup:
    """Tests for startup configuration checks."""

    def test_refuses_short_secret(self, storage, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "change-me")
        import vault.Config as config_module
        config_module._manager = None

        with pytest.raises(RuntimeError, match="JWT_SECRET"):
            check_config()

        with pytest.raises(RuntimeError):
            with TestClient(create_app()):
                pass

    def test_accepts_configured_secret(self, storage):
        check_config()
