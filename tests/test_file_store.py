"""Tests for the encrypted file secret store."""

import os
import stat
import sys
import tempfile
import unittest
from pathlib import Path

from zoh.errors import DecryptionFailed, NotFound
from zoh.internal.secrets._file import NONCE_SIZE, FileStore, decrypt, derive_key, encrypt

KEY = bytes(range(32))
OTHER_KEY = bytes(range(1, 33))


class EncryptionTest(unittest.TestCase):
    def test_round_trip(self):
        for plaintext in (b"", b"x", b'{"refresh_token_us": "1000.abc"}', os.urandom(4096)):
            self.assertEqual(decrypt(KEY, encrypt(KEY, plaintext)), plaintext)

    def test_fresh_nonce_per_call(self):
        first = encrypt(KEY, b"same plaintext")
        second = encrypt(KEY, b"same plaintext")
        self.assertNotEqual(first, second)
        self.assertNotEqual(first[:NONCE_SIZE], second[:NONCE_SIZE])

    def test_layout_is_nonce_then_ciphertext_and_tag(self):
        blob = encrypt(KEY, b"0123456789")
        self.assertEqual(len(blob), NONCE_SIZE + 10 + 16)

    def test_wrong_key_fails(self):
        with self.assertRaises(DecryptionFailed):
            decrypt(OTHER_KEY, encrypt(KEY, b"secret"))

    def test_truncated_ciphertext_fails(self):
        blob = encrypt(KEY, b"secret")
        with self.assertRaises(DecryptionFailed):
            decrypt(KEY, blob[:-1])
        with self.assertRaises(DecryptionFailed):
            decrypt(KEY, blob[: NONCE_SIZE - 1])

    def test_tampered_ciphertext_fails(self):
        blob = bytearray(encrypt(KEY, b"secret"))
        blob[NONCE_SIZE] ^= 0x01
        with self.assertRaises(DecryptionFailed):
            decrypt(KEY, bytes(blob))


class DeriveKeyTest(unittest.TestCase):
    def test_deterministic_and_32_bytes(self):
        key = derive_key("correct horse")
        self.assertEqual(len(key), 32)
        self.assertEqual(key, derive_key("correct horse"))

    def test_different_passphrases_differ(self):
        self.assertNotEqual(derive_key("one"), derive_key("two"))


class FileStoreTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.path = self.dir / "zoh" / "credentials.enc"
        self.store = FileStore(self.path, key=KEY)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_is_empty_store(self):
        self.assertFalse(self.path.exists())
        self.assertEqual(self.store.list(), set())

    def test_empty_file_is_empty_store(self):
        self.path.write_bytes(b"")
        self.assertEqual(self.store.list(), set())

    def test_set_then_get(self):
        cases = {
            "refresh_token_us": "1000.abc.def",
            "user@example.com": "v",
            "a.b.c": "",
            "": "empty key",
            "unicode-ключ": "значение",
        }
        for key, value in cases.items():
            self.store.set(key, value)
            self.assertEqual(self.store.get(key), value)
        self.assertEqual(self.store.list(), set(cases))

    def test_set_overwrites(self):
        self.store.set("k", "v1")
        self.store.set("k", "v2")
        self.assertEqual(self.store.get("k"), "v2")
        self.assertEqual(self.store.list(), {"k"})

    def test_get_missing_raises_not_found(self):
        with self.assertRaises(NotFound) as ctx:
            self.store.get("missing")
        self.assertEqual(ctx.exception.key, "missing")

    def test_delete_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.store.delete("missing")

    def test_set_delete_get(self):
        self.store.set("k", "v")
        self.store.delete("k")
        with self.assertRaises(NotFound):
            self.store.get("k")
        self.assertEqual(self.store.list(), set())

    def test_values_are_not_stored_in_plaintext(self):
        self.store.set("refresh_token_eu", "super-secret-value")
        raw = self.path.read_bytes()
        self.assertNotIn(b"super-secret-value", raw)
        self.assertNotIn(b"refresh_token_eu", raw)

    def test_shared_between_instances(self):
        self.store.set("k", "v")
        other = FileStore(self.path, key=KEY)
        self.assertEqual(other.get("k"), "v")

    def test_wrong_key_is_hard_error_not_empty(self):
        self.store.set("k", "v")
        other = FileStore(self.path, key=OTHER_KEY)
        with self.assertRaises(DecryptionFailed):
            other.list()
        with self.assertRaises(DecryptionFailed):
            other.set("x", "y")
        # The original content survives the failed write
        self.assertEqual(self.store.get("k"), "v")

    def test_corrupt_file_is_hard_error(self):
        self.path.write_bytes(b"garbage that is long enough to hold a nonce")
        with self.assertRaises(DecryptionFailed):
            self.store.get("k")

    def test_non_map_payload_is_rejected(self):
        self.path.write_bytes(encrypt(KEY, b'["not", "a", "map"]'))
        with self.assertRaises(DecryptionFailed):
            self.store.list()

    def test_no_temporary_files_left_behind(self):
        for i in range(5):
            self.store.set(f"k{i}", "v")
        names = sorted(p.name for p in self.path.parent.iterdir())
        self.assertEqual(names, ["credentials.enc", "credentials.enc.lock"])

    @unittest.skipIf(sys.platform.startswith("win"), "POSIX permissions")
    def test_file_is_private(self):
        self.store.set("k", "v")
        self.assertEqual(stat.S_IMODE(self.path.stat().st_mode), 0o600)
        self.assertEqual(stat.S_IMODE(self.path.parent.stat().st_mode), 0o700)

    def test_password_store_round_trip(self):
        store = FileStore(self.path, password="hunter2")
        self.assertFalse(store.uses_machine_key)
        store.set("k", "v")
        self.assertEqual(FileStore(self.path, password="hunter2").get("k"), "v")
        with self.assertRaises(DecryptionFailed):
            FileStore(self.path, password="wrong").get("k")

    def test_machine_key_when_no_password(self):
        store = FileStore(self.path)
        self.assertTrue(store.uses_machine_key)
        store.set("k", "v")
        self.assertEqual(FileStore(self.path).get("k"), "v")

    def test_rejects_bad_key_size(self):
        with self.assertRaises(ValueError):
            FileStore(self.path, key=b"short")


if __name__ == "__main__":
    unittest.main()
