"""requests Session and base client for the Zoho REST APIs."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

import requests
from requests.adapters import HTTPAdapter, Retry

from zoh._user_agent import get_user_agent
from zoh.internal.token_cache import TokenCache
from zoh.requests.bearer_auth import ZohoBearerAuth

logger = logging.getLogger(__name__)

# Gateway errors are retried, everything else surfaces to the caller
DEFAULT_RETRY = Retry(total=3, backoff_factor=0.5, status_forcelist=(502, 503, 504))
DEFAULT_TIMEOUT = 30.0


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if not isinstance(body, dict):
        return str(body)
    # Zoho wraps failures as {"status": {"code": ..., "description": ...}, "data": {...}}
    status = body.get("status")
    if isinstance(status, dict) and status.get("description"):
        return status["description"]
    return body.get("message") or str(body)


def _check_response(resp: requests.Response) -> None:
    """raise_for_status, with the API's own error description in the message."""
    try:
        resp.raise_for_status()
    except requests.HTTPError as e:
        raise requests.HTTPError(
            f"{resp.request.method if resp.request else 'Request'} {resp.url} failed with "
            f"status={resp.status_code}: {_error_detail(resp)}",
            response=resp,
            request=resp.request,
        ) from e


class ZohoSession(requests.Session):
    """Session resolving relative paths against ``base_url`` and raising on HTTP errors."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__()
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout

    def _resolve(self, url: str) -> str:
        if not self.base_url or url.startswith(("http://", "https://")):
            return url
        if url.startswith("/"):
            raise ValueError(f"Path must be relative to {self.base_url}, got {url}")
        return f"{self.base_url}/{url}"

    def request(self, method, url, *args, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        resp = super().request(method, self._resolve(url), *args, **kwargs)
        _check_response(resp)
        return resp


def create_session(
    token_cache: TokenCache,
    *,
    base_url: Optional[str] = None,
    client_name: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> ZohoSession:
    """Session authenticated from ``token_cache``, with retries for gateway errors."""
    session = ZohoSession(base_url, timeout)
    session.auth = ZohoBearerAuth(token_cache)
    session.headers.update(
        {
            "User-Agent": get_user_agent(f"requests/{requests.__version__}", client_name),
            "Accept": "application/json",
        }
    )
    adapter = HTTPAdapter(max_retries=DEFAULT_RETRY)
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    return session


class BaseApiClient:
    """Base class for the Zoho REST clients.

    ``base_url`` defaults to the Mail API of the token cache's region.

    Example:
        class MailClient(BaseApiClient):
            def accounts(self):
                return self.session.get("accounts").json()["data"]
    """

    def __init__(
        self,
        token_cache: TokenCache,
        *,
        base_url: Optional[str] = None,
        client_name: Optional[str] = "auto",
    ):
        self.token_cache = token_cache
        self.base_url = base_url or f"{token_cache.region.mail_base}/api"
        self.client_name = type(self).__name__ if client_name == "auto" else client_name
        self._session: Optional[ZohoSession] = None
        self._session_lock = Lock()

    @property
    def session(self) -> ZohoSession:
        """Created on first use, shared afterwards."""
        with self._session_lock:
            if self._session is None:
                logger.debug("Creating session for %s (%s)", self.client_name, self.base_url)
                self._session = create_session(
                    self.token_cache, base_url=self.base_url, client_name=self.client_name
                )
            return self._session
