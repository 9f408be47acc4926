"""Token cache auth for httpx clients."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Generator, Optional

import httpx

from zoh._user_agent import get_user_agent

if TYPE_CHECKING:
    from zoh.internal.token_cache import TokenCache

logger = logging.getLogger(__name__)


class ZohoHttpxAuth(httpx.Auth):
    """Attaches the TokenCache access token, refreshing and retrying once on 401."""

    def __init__(self, token_cache: TokenCache) -> None:
        self._token_cache = token_cache

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self._token_cache.token().authorization
        response = yield request
        if response.status_code == 401:
            logger.debug("Got 401 from %s, refreshing token and retrying", request.url)
            self._token_cache.invalidate()
            request.headers["Authorization"] = self._token_cache.token().authorization
            yield request


def create_client(
    token_cache: TokenCache,
    *,
    base_url: str = "",
    client_name: Optional[str] = None,
    **kwargs,
) -> httpx.Client:
    """Create an httpx Client authenticated with the TokenCache.

    Extra keyword arguments are passed to httpx.Client (e.g. timeout, verify).
    """
    kwargs.setdefault("transport", httpx.HTTPTransport(retries=3))
    headers = kwargs.pop("headers", {})
    headers.setdefault("User-Agent", get_user_agent(f"python-httpx/{httpx.__version__}", client_name))
    return httpx.Client(auth=ZohoHttpxAuth(token_cache), base_url=base_url, headers=headers, **kwargs)
