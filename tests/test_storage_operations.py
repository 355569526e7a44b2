"""
Tests for StorageGate file operations.
"""

import os
import time

import pytest

from vault.shared.errors import AccessDenied, Conflict, NotFound
from vault.StorageGate import StorageGate
from vault.StorageGate.operations import sort_entries, unique_upload_name


def _names(entries):
    return [e.name for e in entries]


def _spool(temp_dir, content=b"payload", name="incoming.tmp"):
    path = temp_dir / name
    path.write_bytes(content)
    return str(path)


class TestListDirectory:
    """Tests for listing."""

    def test_admin_sees_every_top_level_entry(self, storage, admin):
        names = _names(StorageGate.list_dir(admin, ""))
        assert names == ["ADMIN", "ALICE", "BOB", "shared", "loose.txt"]

    def test_user_root_hides_other_users(self, storage, alice):
        names = _names(StorageGate.list_dir(alice, ""))
        assert "BOB" not in names
        assert "ADMIN" not in names
        assert "ALICE" in names
        assert "shared" in names
        assert "loose.txt" in names

    def test_moderator_root_hides_admin_only(self, storage, moderator):
        names = _names(StorageGate.list_dir(moderator, ""))
        assert "ADMIN" not in names
        assert {"ALICE", "BOB"} <= set(names)

    def test_guest_lists_public_root(self, storage, guest):
        assert _names(StorageGate.list_dir(guest, "")) == ["welcome.txt"]

    def test_missing_folder_lists_empty(self, storage, alice):
        assert StorageGate.list_dir(alice, "ALICE/nope") == []

    def test_file_target_lists_empty(self, storage, alice):
        assert StorageGate.list_dir(alice, "ALICE/photo.png") == []

    def test_entry_metadata(self, storage, alice):
        entries = {e.name: e for e in StorageGate.list_dir(alice, "ALICE")}
        assert entries["docs"].is_directory is True
        assert entries["docs"].size == 0
        assert entries["photo.png"].is_image is True
        assert entries["photo.png"].extension == ".png"
        assert entries["photo.png"].size == 100

    def test_listing_other_user_denied(self, storage, alice):
        with pytest.raises(AccessDenied):
            StorageGate.list_dir(alice, "BOB")

    def test_date_sort_desc_is_reverse_of_asc(self, storage, alice):
        folder = os.path.join(storage.users_root, "ALICE", "docs")
        now = time.time()
        for i, name in enumerate(["c.txt", "a.txt", "b.txt"]):
            path = os.path.join(folder, name)
            with open(path, "w") as f:
                f.write(name)
            os.utime(path, (now - 100 + i, now - 100 + i))
        os.utime(os.path.join(folder, "report.txt"), (now - 500, now - 500))

        asc = _names(StorageGate.list_dir(alice, "ALICE/docs", sort_by="date", order="asc"))
        desc = _names(StorageGate.list_dir(alice, "ALICE/docs", sort_by="date", order="desc"))

        assert asc == ["report.txt", "c.txt", "a.txt", "b.txt"]
        assert desc == list(reversed(asc))


class TestSortEntries:
    """Tests for entry ordering."""

    def test_directories_first_in_both_orders(self, storage, admin):
        entries = StorageGate.list_dir(admin, "")
        for order in ("asc", "desc"):
            ordered = sort_entries(entries, "name", order)
            kinds = [e.is_directory for e in ordered]
            assert kinds == sorted(kinds, reverse=True)


class TestCreateFolder:
    """Tests for mkdir."""

    def test_creates_nested_folder(self, storage, alice):
        rel = StorageGate.create_folder(alice, "ALICE/docs", "2024")
        assert rel == "ALICE/docs/2024"
        assert os.path.isdir(os.path.join(storage.users_root, "ALICE", "docs", "2024"))

    def test_idempotent(self, storage, alice):
        StorageGate.create_folder(alice, "ALICE", "music")
        marker = os.path.join(storage.users_root, "ALICE", "music", "keep.txt")
        with open(marker, "w") as f:
            f.write("x")

        StorageGate.create_folder(alice, "ALICE", "music")
        assert os.path.exists(marker)

    def test_creates_intermediate_directories(self, storage, alice):
        StorageGate.create_folder(alice, "ALICE/a/b", "c")
        assert os.path.isdir(os.path.join(storage.users_root, "ALICE", "a", "b", "c"))

    def test_rejects_other_user_folder(self, storage, alice):
        with pytest.raises(AccessDenied):
            StorageGate.create_folder(alice, "BOB", "intrusion")

    def test_rejects_separator_in_name(self, storage, alice):
        with pytest.raises(AccessDenied):
            StorageGate.create_folder(alice, "ALICE", "x/../../BOB")


class TestUpload:
    """Tests for upload placement and collision naming."""

    def test_upload_places_file(self, storage, alice, temp_dir):
        name = StorageGate.upload(alice, "ALICE/docs", "plan.pdf", _spool(temp_dir))
        assert name == "plan.pdf"
        with open(os.path.join(storage.users_root, "ALICE", "docs", "plan.pdf"), "rb") as f:
            assert f.read() == b"payload"

    def test_duplicate_names(self, storage, alice, temp_dir):
        first = StorageGate.upload(alice, "ALICE/docs", "report.txt", _spool(temp_dir, name="1"))
        second = StorageGate.upload(alice, "ALICE/docs", "report.txt", _spool(temp_dir, name="2"))
        third = StorageGate.upload(alice, "ALICE/docs", "report.txt", _spool(temp_dir, name="3"))

        assert first == "report_duplicado.txt"
        assert second == "report_duplicado2.txt"
        assert third == "report_duplicado3.txt"

        with open(os.path.join(storage.users_root, "ALICE", "docs", "report.txt")) as f:
            assert f.read() == "Quarterly report"

    def test_creates_missing_target_folder(self, storage, alice, temp_dir):
        StorageGate.upload(alice, "ALICE/new/place", "a.txt", _spool(temp_dir))
        assert os.path.isfile(os.path.join(storage.users_root, "ALICE", "new", "place", "a.txt"))

    def test_strips_client_directories(self, storage, alice, temp_dir):
        name = StorageGate.upload(alice, "ALICE", "../../BOB/evil.txt", _spool(temp_dir))
        assert name == "evil.txt"
        assert os.path.isfile(os.path.join(storage.users_root, "ALICE", "evil.txt"))
        assert not os.path.exists(os.path.join(storage.users_root, "BOB", "evil.txt"))

    def test_missing_temp_file(self, storage, alice, temp_dir):
        with pytest.raises(NotFound):
            StorageGate.upload(alice, "ALICE", "a.txt", str(temp_dir / "gone"))

    def test_target_is_a_file(self, storage, alice, temp_dir):
        with pytest.raises(Conflict):
            StorageGate.upload(alice, "ALICE/photo.png", "a.txt", _spool(temp_dir))

    def test_guest_uploads_to_public(self, storage, guest, temp_dir):
        StorageGate.upload(guest, "", "hello.txt", _spool(temp_dir))
        assert os.path.isfile(os.path.join(storage.public_root, "hello.txt"))

    def test_unique_upload_name_without_extension(self, temp_dir):
        (temp_dir / "README").write_text("x")
        assert unique_upload_name(str(temp_dir), "README") == "README_duplicado"


class TestDownload:
    """Tests for download resolution."""

    def test_download_file(self, storage, alice):
        path = StorageGate.download(alice, "ALICE/docs/report.txt")
        assert os.path.isfile(path)

    def test_download_directory_is_not_found(self, storage, alice):
        with pytest.raises(NotFound):
            StorageGate.download(alice, "ALICE/docs")

    def test_download_missing(self, storage, alice):
        with pytest.raises(NotFound):
            StorageGate.download(alice, "ALICE/missing.txt")

    def test_download_other_user_denied(self, storage, alice):
        with pytest.raises(AccessDenied):
            StorageGate.download(alice, "BOB/notes.md")


class TestDelete:
    """Tests for recursive delete."""

    def test_delete_file(self, storage, alice):
        StorageGate.delete(alice, "ALICE/photo.png")
        assert not os.path.exists(os.path.join(storage.users_root, "ALICE", "photo.png"))

    def test_delete_folder_recursively(self, storage, alice):
        StorageGate.delete(alice, "ALICE/docs")
        assert not os.path.exists(os.path.join(storage.users_root, "ALICE", "docs"))

    def test_delete_missing(self, storage, alice):
        with pytest.raises(NotFound):
            StorageGate.delete(alice, "ALICE/nothing")

    def test_delete_root_denied(self, storage, admin):
        with pytest.raises(AccessDenied):
            StorageGate.delete(admin, "")
        assert os.path.isdir(storage.users_root)

    def test_delete_other_user_denied(self, storage, alice):
        with pytest.raises(AccessDenied):
            StorageGate.delete(alice, "BOB")
        assert os.path.isdir(os.path.join(storage.users_root, "BOB"))


class TestRename:
    """Tests for rename."""

    def test_rename_file(self, storage, alice):
        new_rel = StorageGate.rename(alice, "ALICE/docs/report.txt", "q1.txt")
        assert new_rel == "ALICE/docs/q1.txt"
        assert os.path.isfile(os.path.join(storage.users_root, "ALICE", "docs", "q1.txt"))
        assert not os.path.exists(os.path.join(storage.users_root, "ALICE", "docs", "report.txt"))

    def test_rename_onto_existing_is_conflict(self, storage, alice):
        StorageGate.create_folder(alice, "ALICE", "other")
        with pytest.raises(Conflict):
            StorageGate.rename(alice, "ALICE/docs", "other")

    def test_rename_to_same_name_is_conflict(self, storage, alice):
        with pytest.raises(Conflict):
            StorageGate.rename(alice, "ALICE/photo.png", "photo.png")

    def test_rename_missing(self, storage, alice):
        with pytest.raises(NotFound):
            StorageGate.rename(alice, "ALICE/ghost.txt", "x.txt")

    def test_rename_cannot_take_another_users_name(self, storage, alice):
        # A top-level entry renamed to a user's name would hand it to that user
        with pytest.raises(AccessDenied):
            StorageGate.rename(alice, "loose.txt", "BOB")


class TestMove:
    """Tests for move."""

    def test_move_file(self, storage, alice):
        new_rel = StorageGate.move(alice, "ALICE/photo.png", "ALICE/docs")
        assert new_rel == "ALICE/docs/photo.png"
        assert os.path.isfile(os.path.join(storage.users_root, "ALICE", "docs", "photo.png"))

    def test_move_to_missing_destination(self, storage, alice):
        with pytest.raises(NotFound):
            StorageGate.move(alice, "ALICE/photo.png", "ALICE/nowhere")

    def test_move_missing_source(self, storage, alice):
        with pytest.raises(NotFound):
            StorageGate.move(alice, "ALICE/ghost.png", "ALICE/docs")

    def test_move_onto_existing_name(self, storage, alice):
        StorageGate.create_folder(alice, "ALICE/docs", "sub")
        StorageGate.create_folder(alice, "ALICE", "sub")
        with pytest.raises(Conflict):
            StorageGate.move(alice, "ALICE/sub", "ALICE/docs")

    def test_move_folder_into_itself(self, storage, alice):
        StorageGate.create_folder(alice, "ALICE/docs", "inner")
        with pytest.raises(Conflict):
            StorageGate.move(alice, "ALICE/docs", "ALICE/docs/inner")

    def test_move_into_other_user_denied(self, storage, alice):
        with pytest.raises(AccessDenied):
            StorageGate.move(alice, "ALICE/photo.png", "BOB")

    def test_admin_moves_between_users(self, storage, admin):
        StorageGate.move(admin, "BOB/notes.md", "ALICE")
        assert os.path.isfile(os.path.join(storage.users_root, "ALICE", "notes.md"))
