"""
Tests for the credential store and its storage backends.
"""

import json

from authsession.auth.credential_store import CredentialStore, JsonFileStorage, MemoryStorage
from authsession.run_config import SessionConfig


class TestMemoryBackedStore:

    def test_token_roundtrip_and_clear(self):
        store = CredentialStore()
        assert store.get_token() is None
        store.set_token("abc")
        assert store.get_token() == "abc"
        store.clear_token()
        assert store.get_token() is None

    def test_welcome_flag(self):
        store = CredentialStore()
        assert store.get_welcome_flag() is False
        store.set_welcome_flag()
        store.set_welcome_flag()
        assert store.get_welcome_flag() is True
        store.clear_welcome_flag()
        assert store.get_welcome_flag() is False

    def test_scopes_are_separate(self):
        durable, ephemeral = MemoryStorage(), MemoryStorage()
        store = CredentialStore(durable, ephemeral)
        store.set_token("abc")
        store.set_welcome_flag()
        assert durable.get("authToken") == "abc"
        assert ephemeral.get("hasWelcomed") is not None
        assert ephemeral.get("authToken") is None

    def test_custom_keys(self):
        durable = MemoryStorage()
        store = CredentialStore(durable, token_key="tok")
        store.set_token("x")
        assert durable.get("tok") == "x"

    def test_clearing_missing_values_is_harmless(self):
        store = CredentialStore()
        store.clear_token()
        store.clear_welcome_flag()
        assert store.get_token() is None


class TestJsonFileStorage:

    def test_token_survives_new_store_instance(self, tmp_path):
        path = tmp_path / "state" / "auth_state.json"
        CredentialStore(JsonFileStorage(str(path))).set_token("persisted")

        reloaded = CredentialStore(JsonFileStorage(str(path)))
        assert reloaded.get_token() == "persisted"
        assert json.loads(path.read_text(encoding="utf-8")) == {"authToken": "persisted"}

    def test_clear_keeps_unrelated_keys(self, tmp_path):
        path = tmp_path / "auth_state.json"
        path.write_text(json.dumps({"authToken": "t", "other": "keep"}), encoding="utf-8")

        CredentialStore(JsonFileStorage(str(path))).clear_token()
        assert json.loads(path.read_text(encoding="utf-8")) == {"other": "keep"}

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "auth_state.json"
        path.write_text("{not json", encoding="utf-8")

        store = CredentialStore(JsonFileStorage(str(path)))
        assert store.get_token() is None
        store.set_token("fresh")
        assert store.get_token() == "fresh"

    def test_non_object_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "auth_state.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        assert JsonFileStorage(str(path)).get("authToken") is None

    def test_missing_file(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "nope.json"))
        assert storage.get("authToken") is None
        storage.remove("authToken")
        assert not (tmp_path / "nope.json").exists()


def test_from_config_flag_is_not_durable(tmp_path):
    cfg = SessionConfig(state_file=str(tmp_path / "auth_state.json"))
    first = CredentialStore.from_config(cfg)
    first.set_token("abc")
    first.set_welcome_flag()

    second = CredentialStore.from_config(cfg)
    assert second.get_token() == "abc"
    assert second.get_welcome_flag() is False
