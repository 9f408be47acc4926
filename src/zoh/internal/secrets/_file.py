"""Secret store backed by a single AES-256-GCM encrypted file.

File layout: 12-byte random nonce followed by the GCM ciphertext and tag of the
JSON-encoded key/value map. A new nonce is drawn on every write.
"""

from __future__ import annotations

import getpass
import json
import logging
import os
import socket
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from zoh import DEFAULT_DATA_DIR
from zoh.errors import DecryptionFailed, NotFound, StorageIOFailure
from zoh.internal._fs import atomic_write_bytes, ensure_private_dir
from zoh.internal._locking import DEFAULT_LOCK_TIMEOUT, locked
from zoh.internal.secrets._base import Store

log = logging.getLogger(__name__)

DEFAULT_STORE_PATH = DEFAULT_DATA_DIR / "credentials.enc"

KEY_SIZE = 32
NONCE_SIZE = 12

# scrypt parameters: 16 MiB of memory per derivation
KDF_SALT = b"zoh/secrets/file-store/v1"
KDF_N = 2**14
KDF_R = 8
KDF_P = 1


def machine_secret() -> str:
    """``username@hostname`` used as the passphrase when none is configured."""
    try:
        username = getpass.getuser()
    except Exception:
        username = os.environ.get("USER") or os.environ.get("USERNAME") or ""
    return f"{username}@{socket.gethostname()}"


def derive_key(passphrase: str) -> bytes:
    kdf = Scrypt(salt=KDF_SALT, length=KEY_SIZE, n=KDF_N, r=KDF_R, p=KDF_P)
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(key: bytes, blob: bytes) -> bytes:
    if len(blob) < NONCE_SIZE:
        raise DecryptionFailed("Failed to decrypt credentials: ciphertext too short")
    nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise DecryptionFailed(
            "Failed to decrypt credentials: wrong passphrase or corrupted file"
        ) from None


class FileStore(Store):
    """Store backed by an encrypted JSON file on disk.

    Every operation re-reads the whole file; mutations rewrite it atomically
    while holding a sibling lock file.
    """

    name = "encrypted file"

    def __init__(
        self,
        path: Path = DEFAULT_STORE_PATH,
        *,
        key: Optional[bytes] = None,
        password: Optional[str] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> None:
        self.uses_machine_key = key is None and not password
        if key is None:
            key = derive_key(password if password else machine_secret())
        if len(key) != KEY_SIZE:
            raise ValueError(f"Encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._key = key
        self._lock_timeout = lock_timeout
        ensure_private_dir(self.path.parent)

    def __repr__(self) -> str:
        return f"FileStore(path={str(self.path)!r})"

    def _read_all(self) -> dict[str, str]:
        try:
            blob = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageIOFailure(f"Failed to read credentials file {self.path}: {e}") from e
        if not blob:
            return {}

        plaintext = decrypt(self._key, blob)
        try:
            data = json.loads(plaintext)
        except ValueError:
            raise DecryptionFailed("Failed to parse decrypted credentials") from None
        if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
            raise DecryptionFailed("Decrypted credentials are not a key/value map")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        plaintext = json.dumps(data).encode("utf-8")
        atomic_write_bytes(self.path, encrypt(self._key, plaintext))

    def get(self, key: str) -> str:
        with locked(self.lock_path, timeout=self._lock_timeout):
            data = self._read_all()
        if key not in data:
            raise NotFound(key)
        return data[key]

    def set(self, key: str, value: str) -> None:
        with locked(self.lock_path, timeout=self._lock_timeout):
            data = self._read_all()
            data[key] = value
            self._write_all(data)
        log.debug("Stored %s in %s", key, self.path)

    def delete(self, key: str) -> None:
        with locked(self.lock_path, timeout=self._lock_timeout):
            data = self._read_all()
            if key not in data:
                raise NotFound(key)
            del data[key]
            self._write_all(data)
        log.debug("Deleted %s from %s", key, self.path)

    def list(self) -> set[str]:
        with locked(self.lock_path, timeout=self._lock_timeout):
            return set(self._read_all())
