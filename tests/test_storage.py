"""Tests for the key-value stores and LedgerRepository."""

import json

import pytest

from conftest import TODAY, make_income
from kanakku.models.finance import IncomeStatus
from kanakku.models.profile import LocalBackup, Theme, UserProfile
from kanakku.services.storage import (
    CorruptDataError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    LedgerRepository,
    StorageError,
)
from kanakku.services.storage.repository import (
    STORAGE_KEY_AUTH,
    STORAGE_KEY_INCOMES,
    STORAGE_KEY_PROFILES_ENCRYPTED,
    STORAGE_KEY_THEME,
)


class TestInMemoryStore:

    def test_values_are_copied(self):
        store = InMemoryKeyValueStore()
        value = {"items": [1, 2]}
        store.set("k", value)
        value["items"].append(3)

        fetched = store.get("k")
        fetched["items"].append(4)

        assert store.get("k") == {"items": [1, 2]}

    def test_delete_absent_key(self):
        store = InMemoryKeyValueStore({"a": 1})
        store.delete("missing")
        store.delete("a")
        assert store.keys() == []


class TestJsonFileStore:
    """Single-document JSON store on disk."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "data" / "kanakku.json"
        JsonFileKeyValueStore(path).set("kanakku_theme", "dark")

        assert JsonFileKeyValueStore(path).get("kanakku_theme") == "dark"
        assert json.loads(path.read_text(encoding="utf-8")) == {"kanakku_theme": "dark"}

    def test_no_temp_files_left_behind(self, tmp_path):
        path = tmp_path / "kanakku.json"
        store = JsonFileKeyValueStore(path)
        store.set("a", 1)
        store.set("b", "₹")
        store.delete("a")

        assert [p.name for p in tmp_path.iterdir()] == ["kanakku.json"]
        assert JsonFileKeyValueStore(path).keys() == ["b"]

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "absent.json")
        assert store.get("anything") is None
        assert store.keys() == []

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "kanakku.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CorruptDataError):
            JsonFileKeyValueStore(path).get("kanakku_incomes")

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "kanakku.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(CorruptDataError):
            JsonFileKeyValueStore(path).keys()

    def test_unreadable_path(self, tmp_path):
        # A directory where the file should be
        path = tmp_path / "kanakku.json"
        path.mkdir()
        with pytest.raises(StorageError):
            JsonFileKeyValueStore(path).get("x")

    def test_failed_write_keeps_previous_values(self, tmp_path, monkeypatch):
        path = tmp_path / "kanakku.json"
        store = JsonFileKeyValueStore(path)
        store.set("kanakku_theme", "light")

        def fail(payload):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write", fail)
        with pytest.raises(StorageError):
            store.set("kanakku_theme", "dark")
        with pytest.raises(StorageError):
            store.delete("kanakku_theme")

        assert store.get("kanakku_theme") == "light"
        assert JsonFileKeyValueStore(path).get("kanakku_theme") == "light"


class TestLedgerRepository:

    def test_incomes_roundtrip(self, repository):
        incomes = [make_income(TODAY), make_income(TODAY, status=IncomeStatus.RECEIVED)]
        repository.save_incomes(incomes)
        assert repository.load_incomes() == incomes

    def test_unknown_status_is_corrupt(self, store, repository):
        record = make_income(TODAY).to_storage()
        record["status"] = "Pending"
        store.set(STORAGE_KEY_INCOMES, [record])

        with pytest.raises(CorruptDataError):
            repository.load_incomes()

    def test_non_list_is_corrupt(self, store, repository):
        store.set(STORAGE_KEY_INCOMES, {"id": "x"})
        with pytest.raises(CorruptDataError):
            repository.load_incomes()

    def test_unknown_theme_is_corrupt(self, store, repository):
        store.set(STORAGE_KEY_THEME, "sepia")
        with pytest.raises(CorruptDataError):
            repository.get_theme()

    def test_theme_default_and_update(self, repository):
        assert repository.get_theme() == Theme.LIGHT
        repository.set_theme(Theme.DARK)
        assert repository.get_theme() == Theme.DARK

    def test_profiles_encrypted_with_default_key(self, store, codec, repository):
        profile = UserProfile(id="u-1", name="Asha", email="asha@example.com")
        repository.put_profile(profile)

        blob = store.get(STORAGE_KEY_PROFILES_ENCRYPTED)
        assert codec.decrypt(blob) == {"u-1": profile.to_storage()}
        assert repository.get_profile("u-1") == profile
        assert repository.get_profile("u-2") is None

    def test_undecryptable_profiles_are_corrupt(self, store, repository):
        store.set(STORAGE_KEY_PROFILES_ENCRYPTED, "garbage")
        with pytest.raises(CorruptDataError):
            repository.load_profiles()

    def test_identity_index(self, repository):
        repository.link_identifiers("u-1", ["9876543210", "", "asha@example.com"])
        assert repository.resolve_identifier("asha@example.com") == "u-1"
        assert repository.resolve_identifier("") is None
        assert repository.load_identity_map() == {
            "9876543210": "u-1",
            "asha@example.com": "u-1",
        }

    def test_session_flag_not_in_persistent_store(self, store, codec, repository):
        repository.set_session_authenticated()

        assert repository.is_session_authenticated()
        assert STORAGE_KEY_AUTH not in store.keys()
        assert not LedgerRepository(store, codec).is_session_authenticated()

    def test_session_flag_in_supplied_session_store(self, store, codec):
        session_store = InMemoryKeyValueStore()
        LedgerRepository(store, codec, session_store).set_session_authenticated()
        assert LedgerRepository(store, codec, session_store).is_session_authenticated()

    def test_current_user_id(self, repository):
        assert repository.get_current_user_id() is None
        repository.set_current_user_id("u-1")
        assert repository.get_current_user_id() == "u-1"
        repository.clear_current_user_id()
        assert repository.get_current_user_id() is None

    def test_local_backups(self, repository):
        backups = [LocalBackup(date="2024-06-15T00:00:00+00:00", user_name="Asha", content="abc", size=3)]
        repository.save_local_backups(backups)
        assert repository.load_local_backups() == backups
