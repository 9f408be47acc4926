"""Tests for the keyring-backed secret store."""

import json
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from keyring.errors import PasswordDeleteError

from zoh.errors import KeyringUnavailable, LockTimeout, NotFound, SecretStoreError
from zoh.internal._locking import locked
from zoh.internal.secrets._base import SERVICE_NAME
from zoh.internal.secrets._keyring import INDEX_KEY, KeyringStore, open_keyring


class FakeKeyring:
    """In-memory stand-in for the keyring module."""

    def __init__(self):
        self.entries = {}

    def get_password(self, service, key):
        return self.entries.get((service, key))

    def set_password(self, service, key, value):
        self.entries[(service, key)] = value

    def delete_password(self, service, key):
        if (service, key) not in self.entries:
            raise PasswordDeleteError("not found")
        del self.entries[(service, key)]


class OpenKeyringTest(unittest.TestCase):
    def test_usable_backend(self):
        mock_kr = mock.MagicMock()
        mock_kr.get_keyring.return_value = mock.MagicMock()
        with mock.patch.dict("sys.modules", {"keyring": mock_kr}):
            self.assertIs(open_keyring(), mock_kr)

    def test_fail_backend(self):
        class FailKeyring:
            pass

        mock_kr = mock.MagicMock()
        mock_kr.get_keyring.return_value = FailKeyring()
        with mock.patch.dict("sys.modules", {"keyring": mock_kr}):
            with self.assertRaises(KeyringUnavailable):
                open_keyring()

    def test_get_keyring_error(self):
        mock_kr = mock.MagicMock()
        mock_kr.get_keyring.side_effect = RuntimeError("dbus is gone")
        with mock.patch.dict("sys.modules", {"keyring": mock_kr}):
            with self.assertRaises(KeyringUnavailable) as ctx:
                open_keyring()
        self.assertIn("dbus is gone", ctx.exception.message)

    def test_keyring_not_installed(self):
        with mock.patch.dict("sys.modules", {"keyring": None}):
            with self.assertRaises(KeyringUnavailable):
                open_keyring()

    def test_constructor_opens_keyring(self):
        with mock.patch("zoh.internal.secrets._keyring.open_keyring", side_effect=KeyringUnavailable("nope")):
            with self.assertRaises(KeyringUnavailable):
                KeyringStore()


class KeyringStoreTest(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.lock_path = Path(tmp.name) / "keyring-index.lock"
        self.kr = FakeKeyring()
        self.store = self.make_store()

    def make_store(self, keyring_module=None):
        kr = keyring_module if keyring_module is not None else self.kr
        return KeyringStore(keyring_module=kr, index_lock_path=self.lock_path, lock_timeout=5.0)

    def test_set_then_get(self):
        for key, value in {"refresh_token_us": "tok", "me@host.example": "", "a.b": "c"}.items():
            self.store.set(key, value)
            self.assertEqual(self.store.get(key), value)

    def test_namespaced_under_service(self):
        self.store.set("refresh_token_us", "tok")
        self.assertEqual(self.kr.entries[(SERVICE_NAME, "refresh_token_us")], "tok")

    def test_get_missing(self):
        with self.assertRaises(NotFound):
            self.store.get("missing")

    def test_delete_missing(self):
        with self.assertRaises(NotFound):
            self.store.delete("missing")

    def test_set_delete_get(self):
        self.store.set("k", "v")
        self.store.delete("k")
        with self.assertRaises(NotFound):
            self.store.get("k")

    def test_list_tracks_keys(self):
        self.assertEqual(self.store.list(), set())
        self.store.set("a", "1")
        self.store.set("b", "2")
        self.store.set("a", "3")
        self.assertEqual(self.store.list(), {"a", "b"})
        self.store.delete("a")
        self.assertEqual(self.store.list(), {"b"})

    def test_index_entry_is_hidden(self):
        self.store.set("a", "1")
        self.assertIn((SERVICE_NAME, INDEX_KEY), self.kr.entries)
        self.assertNotIn(INDEX_KEY, self.store.list())

    def test_corrupt_index_starts_over(self):
        self.kr.entries[(SERVICE_NAME, INDEX_KEY)] = "not json"
        self.assertEqual(self.store.list(), set())
        self.store.set("a", "1")
        self.assertEqual(json.loads(self.kr.entries[(SERVICE_NAME, INDEX_KEY)]), ["a"])

    def test_backend_errors_are_wrapped(self):
        kr = mock.MagicMock()
        kr.get_password.side_effect = Exception("locked")
        kr.set_password.side_effect = Exception("locked")
        kr.delete_password.side_effect = Exception("locked")
        store = self.make_store(kr)
        with self.assertRaises(SecretStoreError):
            store.get("k")
        with self.assertRaises(SecretStoreError):
            store.set("k", "v")
        with self.assertRaises(SecretStoreError):
            store.delete("k")
        with self.assertRaises(SecretStoreError):
            store.list()

    def test_concurrent_index_updates_keep_both_keys(self):
        # another store adds its key while this one sits between index read and write
        other = self.make_store()
        other_set = threading.Thread(target=other.set, args=("refresh_token_eu", "r-eu"))
        read_index = self.store._read_index

        def read_then_let_other_store_run():
            keys = read_index()
            other_set.start()
            other_set.join(timeout=0.3)
            return keys

        with mock.patch.object(self.store, "_read_index", side_effect=read_then_let_other_store_run):
            self.store.set("refresh_token_us", "r-us")
        other_set.join(timeout=5)

        self.assertFalse(other_set.is_alive())
        self.assertEqual(self.store.list(), {"refresh_token_us", "refresh_token_eu"})
        self.assertEqual(other.get("refresh_token_eu"), "r-eu")

    def test_concurrent_delete_keeps_other_key(self):
        self.store.set("refresh_token_us", "r-us")
        other = self.make_store()
        other_set = threading.Thread(target=other.set, args=("refresh_token_eu", "r-eu"))
        read_index = self.store._read_index

        def read_then_let_other_store_run():
            keys = read_index()
            if other_set.ident is None:
                other_set.start()
                other_set.join(timeout=0.3)
            return keys

        with mock.patch.object(self.store, "_read_index", side_effect=read_then_let_other_store_run):
            self.store.delete("refresh_token_us")
        other_set.join(timeout=5)

        self.assertEqual(self.store.list(), {"refresh_token_eu"})

    def test_index_updates_take_the_index_lock(self):
        with mock.patch("zoh.internal.secrets._keyring.locked", wraps=locked) as lock:
            self.store.set("a", "1")
            self.store.delete("a")
        self.assertEqual(lock.call_count, 2)
        lock.assert_called_with(self.lock_path, timeout=5.0)

    def test_index_lock_timeout_propagates(self):
        with mock.patch("zoh.internal.secrets._keyring.locked", side_effect=LockTimeout("busy")):
            with self.assertRaises(LockTimeout):
                self.store.set("a", "1")

    def test_not_found_is_not_wrapped_as_generic(self):
        with self.assertRaises(NotFound):
            self.store.get("nope")


if __name__ == "__main__":
    unittest.main()
