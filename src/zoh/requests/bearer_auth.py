from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests
from requests.auth import AuthBase

if TYPE_CHECKING:
    from zoh.internal.token_cache import TokenCache

logger = logging.getLogger(__name__)


class ZohoBearerAuth(AuthBase):
    """Sets ``Authorization`` from a TokenCache on every request.

    A 401 means the cached access token was revoked or expired early: the cache
    entry is dropped and the request is sent once more with a new token.
    """

    def __init__(self, token_cache: TokenCache) -> None:
        self._token_cache = token_cache

    def _authorize(self, request: requests.PreparedRequest) -> None:
        request.headers["Authorization"] = self._token_cache.token().authorization

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        self._authorize(r)
        r.register_hook("response", self._handle_401)
        return r

    def _handle_401(self, r: requests.Response, **kwargs) -> requests.Response:
        if r.status_code != 401:
            return r
        logger.debug("Got 401 from %s, retrying with a new token", r.url)
        self._token_cache.invalidate()
        r.content  # release the connection back to the pool
        retry = r.request.copy()
        self._authorize(retry)
        retried = r.connection.send(retry, **kwargs)
        retried.history.append(r)
        return retried
