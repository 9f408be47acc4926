from __future__ import annotations

import argparse
import logging

from zoh.cli._output import OUTPUT_FORMATS, print_items, status
from zoh.config import Config, load_config
from zoh.errors import ZohError
from zoh.flows import interactive_login, manual_login
from zoh.internal.secrets import make_store, refresh_token_key
from zoh.internal.token_cache import TokenCache
from zoh.regions import get_region, valid_regions

COMMAND = "auth"

log = logging.getLogger(__name__)

_REFRESH_PREFIX = refresh_token_key("")


def register_parser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(COMMAND, help="Log in, log out and inspect stored credentials")
    subs = parser.add_subparsers(dest="auth_action")

    login_p = subs.add_parser("login", help="Authenticate with Zoho via OAuth2")
    login_p.add_argument(
        "-m",
        "--manual",
        action="store_true",
        default=False,
        help="Manual paste mode (no browser or local callback server)",
    )

    logout_p = subs.add_parser("logout", help="Remove stored credentials")
    logout_p.add_argument("-a", "--all", action="store_true", default=False, help="Log out of every region")

    list_p = subs.add_parser("list", help="List regions with stored credentials")
    list_p.add_argument(
        "-c", "--check", action="store_true", default=False, help="Validate stored tokens (may refresh them)"
    )
    list_p.add_argument("-o", "--output", choices=OUTPUT_FORMATS, default="table", help="Output format")

    subs.add_parser("token", help="Print a valid access token for the current region")

    return parser


def _load(parsed: argparse.Namespace) -> Config:
    config = load_config(parsed.config_path)
    if parsed.region:
        config.region = parsed.region
    return config


def _token_cache(config: Config, store, region: str) -> TokenCache:
    return TokenCache(get_region(region), config.client_id, config.client_secret, store)


def run(parsed: argparse.Namespace) -> int:
    if parsed.auth_action == "login":
        return _run_login(parsed)
    if parsed.auth_action == "logout":
        return _run_logout(parsed)
    if parsed.auth_action == "list":
        return _run_list(parsed)
    if parsed.auth_action == "token":
        return _run_token(parsed)
    return 0


def _run_login(parsed: argparse.Namespace) -> int:
    config = _load(parsed)
    region = config.resolved_region()
    store = make_store()
    cache = _token_cache(config, store, region)

    token = manual_login(config) if parsed.manual else interactive_login(config)
    cache.save_initial_tokens(token)

    if parsed.region:
        try:
            file_config = load_config(parsed.config_path, apply_env=False)
            file_config.region = parsed.region
            file_config.save(parsed.config_path)
        except (OSError, ZohError):
            log.warning("Failed to save region to config", exc_info=True)

    status("Authenticated successfully")
    status(f"Region: {region}")
    status(f"Token expires: {token.expiry.isoformat()}")
    status(f"Credentials stored in {store.name}")
    return 0


def _run_logout(parsed: argparse.Namespace) -> int:
    config = _load(parsed)
    store = make_store()

    if parsed.all:
        for region in valid_regions():
            try:
                _token_cache(config, store, region).clear_tokens()
            except ZohError:
                log.warning("Failed to clear tokens for region %s", region, exc_info=True)
        status("Logged out all accounts")
    else:
        region = config.resolved_region()
        _token_cache(config, store, region).clear_tokens()
        status(f"Logged out from region: {region}")

    status("Credentials removed")
    return 0


def _run_list(parsed: argparse.Namespace) -> int:
    config = _load(parsed)
    store = make_store()
    active = config.resolved_region()

    accounts = []
    for key in sorted(store.list()):
        if not key.startswith(_REFRESH_PREFIX):
            continue
        region = key[len(_REFRESH_PREFIX) :]
        account = {"region": region, "status": "active" if region == active else ""}
        if parsed.check:
            try:
                token = _token_cache(config, store, region).token()
                account["valid"] = "yes"
                account["expiry"] = token.expiry.isoformat()
            except ZohError as e:
                log.debug("Token check failed for region %s: %s", region, e.message)
                account["valid"] = "no"
                account["expiry"] = "n/a"
        accounts.append(account)

    if not accounts:
        status("No stored accounts found")
        status("Run 'zoh auth login' to authenticate")
        return 0

    print_items(accounts, output_format=parsed.output)
    return 0


def _run_token(parsed: argparse.Namespace) -> int:
    config = _load(parsed)
    cache = _token_cache(config, make_store(), config.resolved_region())
    print(cache.token().access_token)
    return 0
