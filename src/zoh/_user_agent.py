import platform
from typing import Optional

from zoh import APP_NAME, __version__


def get_user_agent(http_lib_version: str, client_name: Optional[str] = None) -> str:
    """``zoh/<version> python/<version> <http lib>/<version>``, plus the client name if given.

    e.g. "zoh/0.1.0 python/3.12.1 requests/2.32.3 MailClient"
    """
    parts = [f"{APP_NAME}/{__version__}", f"python/{platform.python_version()}", http_lib_version]
    if client_name:
        parts.append(client_name)
    return " ".join(parts)
