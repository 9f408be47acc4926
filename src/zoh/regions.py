"""Zoho data center endpoints."""

from __future__ import annotations

from dataclasses import dataclass

from zoh.errors import ConfigError

TOKEN_ENDPOINT_RELPATH = "/oauth/v2/token"
AUTH_ENDPOINT_RELPATH = "/oauth/v2/auth"


@dataclass(frozen=True)
class Region:
    code: str
    accounts_server: str
    api_base: str
    mail_base: str

    @property
    def token_url(self) -> str:
        return self.accounts_server + TOKEN_ENDPOINT_RELPATH

    @property
    def auth_url(self) -> str:
        return self.accounts_server + AUTH_ENDPOINT_RELPATH


REGIONS = {
    r.code: r
    for r in (
        Region("us", "https://accounts.zoho.com", "https://www.zohoapis.com", "https://mail.zoho.com"),
        Region("eu", "https://accounts.zoho.eu", "https://www.zohoapis.eu", "https://mail.zoho.eu"),
        Region("in", "https://accounts.zoho.in", "https://www.zohoapis.in", "https://mail.zoho.in"),
        Region("au", "https://accounts.zoho.com.au", "https://www.zohoapis.com.au", "https://mail.zoho.com.au"),
        Region("jp", "https://accounts.zoho.jp", "https://www.zohoapis.jp", "https://mail.zoho.jp"),
        Region("ca", "https://accounts.zohocloud.ca", "https://www.zohoapis.ca", "https://mail.zohocloud.ca"),
        Region("sa", "https://accounts.zoho.sa", "https://www.zohoapis.sa", "https://mail.zoho.sa"),
        Region("uk", "https://accounts.zoho.uk", "https://www.zohoapis.uk", "https://mail.zoho.uk"),
    )
}


def get_region(code: str) -> Region:
    try:
        return REGIONS[code]
    except KeyError:
        raise ConfigError(
            f"Unknown region: {code!r}", hint=f"Valid regions: {', '.join(valid_regions())}"
        ) from None


def valid_regions() -> list[str]:
    return sorted(REGIONS)
