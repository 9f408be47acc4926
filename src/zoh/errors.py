"""Error types raised by zoh and the process exit codes they map to.

Library code raises these; only the CLI turns them into messages and exit codes.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

LOGIN_HINT = "Run: zoh auth login"
RETRY_HINT = "This is usually transient, retry the command."


class ExitCode(IntEnum):
    # sysexits.h style, kept stable for scripts
    OK = 0
    GENERAL = 1
    USAGE = 2
    AUTH = 3
    NOT_FOUND = 4
    CONFLICT = 5
    FORBIDDEN = 6
    TIMEOUT = 8
    API_ERROR = 9
    CONFIG = 10
    NETWORK = 11
    RATE_LIMIT = 75


class ZohError(Exception):
    """Base class for all errors with a defined exit code."""

    exit_code: ExitCode = ExitCode.GENERAL
    default_hint: Optional[str] = None

    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint if hint is not None else self.default_hint


class ConfigError(ZohError):
    exit_code = ExitCode.CONFIG


class LoginError(ZohError):
    exit_code = ExitCode.AUTH


# Secret store


class SecretStoreError(ZohError):
    pass


class NotFound(SecretStoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Key not found: {key}")
        self.key = key


class DecryptionFailed(SecretStoreError):
    default_hint = (
        "Check that ZOH_STORE_PASSWORD is set to the passphrase the credentials were stored with, "
        "or remove the credentials file and log in again."
    )


class StorageIOFailure(SecretStoreError):
    pass


class KeyringUnavailable(SecretStoreError):
    default_hint = "Set ZOH_SECRET_BACKEND=file to use the encrypted file store instead."


# Token cache


class TokenError(ZohError):
    pass


class NotAuthenticated(TokenError):
    exit_code = ExitCode.AUTH
    default_hint = LOGIN_HINT


class TokenRevoked(TokenError):
    exit_code = ExitCode.AUTH
    default_hint = LOGIN_HINT


class RefreshFailed(TokenError):
    exit_code = ExitCode.API_ERROR

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LockTimeout(TokenError):
    default_hint = RETRY_HINT


class RequestTimeout(TokenError):
    exit_code = ExitCode.TIMEOUT
    default_hint = RETRY_HINT


class NetworkError(TokenError):
    exit_code = ExitCode.NETWORK
    default_hint = "Check your network connection and retry."
