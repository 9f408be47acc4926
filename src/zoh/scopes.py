"""OAuth2 scopes requested at login.

Zoho separates scopes with commas, not the spaces standard OAuth2 uses.
"""

DEFAULT_SCOPES = [
    # Mail
    "ZohoMail.messages.ALL",
    "ZohoMail.folders.ALL",
    "ZohoMail.tags.ALL",
    "ZohoMail.accounts.ALL",
    # Organization admin
    "ZohoMail.organization.accounts.ALL",
    "ZohoMail.organization.domains.ALL",
    "ZohoMail.organization.groups.ALL",
    "ZohoMail.organization.spam.ALL",
    "ZohoMail.organization.policy.ALL",
    "ZohoMail.organization.audit.READ",
]


def scope_string(scopes=None) -> str:
    return ",".join(DEFAULT_SCOPES if scopes is None else scopes)
