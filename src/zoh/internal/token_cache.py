"""Per-region OAuth2 token cache shared by concurrent CLI processes.

The short-lived access token lives in a JSON file in the cache directory, the
refresh token lives in the secret store. Every operation runs under an
exclusive lock file, so when several processes find an expired token only the
first one refreshes and the others read its result.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import requests

from zoh import DEFAULT_CACHE_DIR
from zoh.errors import (
    NetworkError,
    NotAuthenticated,
    NotFound,
    RefreshFailed,
    RequestTimeout,
    TokenRevoked,
)
from zoh.internal._fs import atomic_write_bytes, ensure_private_dir, remove_if_exists
from zoh.internal._locking import DEFAULT_LOCK_TIMEOUT, DEFAULT_POLL_INTERVAL, locked
from zoh.internal.secrets import Store, refresh_token_key
from zoh.regions import Region, get_region

if TYPE_CHECKING:
    from zoh.config import Config

log = logging.getLogger(__name__)

# Cached tokens are refreshed this long before their actual expiry,
# to avoid using a token that expires mid-request.
REFRESH_MARGIN = timedelta(minutes=5)

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_EXPIRES_IN = 3600
REVOKED_ERROR_CODES = ("invalid_grant", "invalid_code")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OAuthToken:
    access_token: str = field(repr=False)
    token_type: str
    expiry: datetime
    refresh_token: Optional[str] = field(default=None, repr=False)

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """True if the token is valid for longer than the refresh margin."""
        return self.expiry - (now or _now()) > REFRESH_MARGIN

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def to_cache_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expiry": self.expiry.astimezone(timezone.utc).isoformat(),
        }

    @classmethod
    def from_cache_dict(cls, data: dict) -> OAuthToken:
        expiry = datetime.fromisoformat(data["expiry"].replace("Z", "+00:00"))
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type") or "Bearer"),
            expiry=expiry,
        )


def _error_code(resp: requests.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None


class TokenCache:
    """Hands out valid access tokens for one region, refreshing when needed."""

    def __init__(
        self,
        region: Region,
        client_id: str,
        client_secret: str,
        store: Store,
        *,
        cache_dir: Path = DEFAULT_CACHE_DIR,
        session: Optional[requests.Session] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.region = region
        self.client_id = client_id
        self.client_secret = client_secret
        self.store = store
        self.cache_path = Path(cache_dir) / f"token-{region.code}.json"
        self.lock_path = self.cache_path.with_name(self.cache_path.name + ".lock")
        self.refresh_token_key = refresh_token_key(region.code)
        self._session = session
        self._lock_timeout = lock_timeout
        self._poll_interval = poll_interval
        self._request_timeout = request_timeout
        ensure_private_dir(self.cache_path.parent)

    @classmethod
    def from_config(cls, config: Config, store: Store, **kwargs) -> TokenCache:
        return cls(
            get_region(config.resolved_region()),
            config.client_id,
            config.client_secret,
            store,
            **kwargs,
        )

    def _locked(self):
        return locked(self.lock_path, timeout=self._lock_timeout, poll_interval=self._poll_interval)

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def token(self) -> OAuthToken:
        """Return a valid access token, refreshing it if it is missing or about to expire."""
        with self._locked():
            cached = self._read_cached_token()
            if cached is not None and cached.is_fresh():
                log.debug("Using cached token for region=%s (expiry=%s)", self.region.code, cached.expiry)
                return cached

            token = self._refresh()
            try:
                self._write_cached_token(token)
            except Exception:
                log.warning("Failed to cache access token for region=%s", self.region.code, exc_info=True)
            return token

    def save_initial_tokens(self, token: OAuthToken) -> None:
        """Seed the store and cache after a successful login."""
        if not token.refresh_token:
            raise ValueError("Login did not return a refresh token")
        with self._locked():
            self.store.set(self.refresh_token_key, token.refresh_token)
            self._write_cached_token(token)
        log.debug("Saved initial tokens for region=%s", self.region.code)

    def clear_tokens(self) -> None:
        """Remove the refresh token, the cached access token and the lock file."""
        with self._locked():
            try:
                self.store.delete(self.refresh_token_key)
            except NotFound:
                log.debug("No refresh token stored for region=%s", self.region.code)
            remove_if_exists(self.cache_path)
        # Removed after release so the lock can still be unlocked on every platform
        remove_if_exists(self.lock_path)
        log.debug("Cleared tokens for region=%s", self.region.code)

    def invalidate(self) -> None:
        """Drop the cached access token so the next token() call refreshes."""
        with self._locked():
            remove_if_exists(self.cache_path)

    def _read_cached_token(self) -> Optional[OAuthToken]:
        try:
            return OAuthToken.from_cache_dict(json.loads(self.cache_path.read_text()))
        except FileNotFoundError:
            return None
        except Exception:
            log.debug("Ignoring unreadable token cache %s", self.cache_path, exc_info=True)
            return None

    def _write_cached_token(self, token: OAuthToken) -> None:
        data = json.dumps(token.to_cache_dict(), indent=2).encode("utf-8")
        atomic_write_bytes(self.cache_path, data)

    def _refresh(self) -> OAuthToken:
        try:
            refresh_token = self.store.get(self.refresh_token_key)
        except NotFound:
            raise NotAuthenticated(
                f"No refresh token found for region {self.region.code}. Run: zoh auth login"
            ) from None

        log.debug("Refreshing access token for region=%s", self.region.code)
        try:
            resp = self.session.post(
                self.region.token_url,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                },
                headers={"Accept": "application/json"},
                timeout=self._request_timeout,
            )
        except requests.Timeout:
            raise RequestTimeout(
                f"Token refresh timed out after {self._request_timeout:g}s ({self.region.token_url})"
            ) from None
        except requests.RequestException as e:
            raise NetworkError(f"Token refresh request failed: {e}") from e

        if resp.status_code != 200:
            if _error_code(resp) == "invalid_grant":
                raise TokenRevoked("Refresh token expired or revoked. Run: zoh auth login")
            raise RefreshFailed(f"Token refresh failed: HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError:
            raise RefreshFailed("Token refresh returned an unparseable response", status_code=200) from None
        if not isinstance(payload, dict):
            raise RefreshFailed("Token refresh returned an unexpected response", status_code=200)

        # Zoho reports some failures as HTTP 200 with an error field
        if not payload.get("access_token"):
            error = payload.get("error")
            if error in REVOKED_ERROR_CODES:
                raise TokenRevoked("Refresh token expired or revoked. Run: zoh auth login")
            raise RefreshFailed(f"Token refresh failed: {error or 'no access_token in response'}", status_code=200)

        try:
            expires_in = int(payload.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError):
            raise RefreshFailed(
                f"Token refresh returned an invalid expires_in: {payload.get('expires_in')!r}", status_code=200
            ) from None

        new_refresh = payload.get("refresh_token")
        if new_refresh and new_refresh != refresh_token:
            try:
                self.store.set(self.refresh_token_key, new_refresh)
                log.debug("Stored rotated refresh token for region=%s", self.region.code)
            except Exception:
                log.warning("Failed to update refresh token for region=%s", self.region.code, exc_info=True)

        token = OAuthToken(
            access_token=payload["access_token"],
            token_type=payload.get("token_type") or "Bearer",
            expiry=_now() + timedelta(seconds=expires_in),
        )
        log.info("Got new token for region=%s, expires %s", self.region.code, token.expiry.isoformat())
        return token
