"""OAuth2 authorization-code login flows (browser and manual paste).

Zoho needs ``access_type=offline`` and ``prompt=consent`` to issue a refresh
token, client credentials go in the request body, and scopes are comma
separated.
"""

from __future__ import annotations

import logging
import secrets
import sys
import webbrowser
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from urllib.parse import urlparse

import requests
from authlib.integrations.requests_client import OAuth2Session, OAuthError

from zoh.callback_server import DEFAULT_PORT, CallbackResult, CallbackServer, parse_callback_query
from zoh.config import Config
from zoh.errors import ConfigError, LoginError
from zoh.internal.token_cache import DEFAULT_EXPIRES_IN, OAuthToken
from zoh.scopes import scope_string

log = logging.getLogger(__name__)

LOGIN_TIMEOUT = 300
MANUAL_REDIRECT_URI = f"http://localhost:{DEFAULT_PORT}/callback"


def _require_client_credentials(config: Config) -> None:
    if not config.has_client_credentials():
        raise ConfigError(
            "Client ID and Client Secret required.",
            hint="Run: zoh config set client_id <id> && zoh config set client_secret <secret>\n"
            "Get credentials at: https://api-console.zoho.com/",
        )


def _generate_state() -> str:
    return secrets.token_urlsafe(16)


def make_oauth_session(config: Config, redirect_uri: str) -> OAuth2Session:
    return OAuth2Session(
        client_id=config.client_id,
        client_secret=config.client_secret,
        scope=scope_string(),
        redirect_uri=redirect_uri,
        token_endpoint_auth_method="client_secret_post",
    )


def make_auth_url(oauth: OAuth2Session, config: Config, state: str) -> str:
    url, _ = oauth.create_authorization_url(
        config.region_config().auth_url,
        state=state,
        access_type="offline",
        prompt="consent",
    )
    return url


def _to_oauth_token(token: dict) -> OAuthToken:
    if not token.get("access_token"):
        raise LoginError("Token exchange returned no access token")
    expires_at = token.get("expires_at")
    if expires_at:
        expiry = datetime.fromtimestamp(int(expires_at), tz=timezone.utc)
    else:
        expiry = datetime.now(timezone.utc) + timedelta(seconds=int(token.get("expires_in") or DEFAULT_EXPIRES_IN))
    return OAuthToken(
        access_token=token["access_token"],
        token_type=token.get("token_type") or "Bearer",
        expiry=expiry,
        refresh_token=token.get("refresh_token"),
    )


def _exchange(oauth: OAuth2Session, config: Config, result: CallbackResult, state: str) -> OAuthToken:
    if result.error:
        raise LoginError(f"Authentication failed: {result.error}")
    if result.state != state:
        raise LoginError("State mismatch (possible CSRF attack)")
    try:
        token = oauth.fetch_token(config.region_config().token_url, code=result.code)
    except OAuthError as e:
        raise LoginError(f"Token exchange failed: {e.error}: {e.description or ''}".rstrip(": ")) from e
    except requests.RequestException as e:
        raise LoginError(f"Token exchange failed: {e}") from e
    return _to_oauth_token(token)


def interactive_login(
    config: Config,
    *,
    open_browser: Callable[[str], bool] = webbrowser.open,
    timeout: float = LOGIN_TIMEOUT,
    port: int = DEFAULT_PORT,
) -> OAuthToken:
    """Log in through the browser, receiving the redirect on a local callback server."""
    _require_client_credentials(config)

    with CallbackServer(port=port) as server:
        oauth = make_oauth_session(config, server.redirect_uri)
        state = _generate_state()
        auth_url = make_auth_url(oauth, config, state)

        print("Opening browser for authentication...", file=sys.stderr)
        print(f"If the browser doesn't open, visit this URL:\n{auth_url}\n", file=sys.stderr)
        try:
            opened = open_browser(auth_url)
        except Exception:
            log.debug("Failed to open browser", exc_info=True)
            opened = False
        if not opened:
            print("Failed to open browser. Please visit the URL above manually.", file=sys.stderr)

        result = server.wait(timeout)

    if result is None:
        raise LoginError(f"Authentication timeout ({timeout:g} seconds)")
    return _exchange(oauth, config, result, state)


def manual_login(config: Config, *, read_line: Optional[Callable[[str], str]] = None) -> OAuthToken:
    """Log in by pasting the URL the browser was redirected to."""
    _require_client_credentials(config)
    if read_line is None:
        read_line = input

    oauth = make_oauth_session(config, MANUAL_REDIRECT_URI)
    state = _generate_state()
    auth_url = make_auth_url(oauth, config, state)

    print("\n=== Manual OAuth2 Flow ===\n", file=sys.stderr)
    print(f"1. Visit this URL in your browser:\n\n{auth_url}\n", file=sys.stderr)
    print("2. After authorizing, you'll be redirected to a page that won't load.", file=sys.stderr)
    print("3. Copy the FULL URL from your browser's address bar and paste it here.\n", file=sys.stderr)

    try:
        pasted = read_line("Paste the redirect URL: ").strip()
    except EOFError:
        raise LoginError("No redirect URL provided") from None

    parsed = urlparse(pasted)
    if not parsed.query:
        raise LoginError("No authorization code found in URL")
    token = _exchange(oauth, config, parse_callback_query(parsed.query), state)
    print("\nAuthentication successful!", file=sys.stderr)
    return token
