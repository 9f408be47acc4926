import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Union

from zoh import DEFAULT_CONFIG_PATH, DEFAULT_REGION
from zoh.errors import ConfigError
from zoh.regions import Region, get_region

log = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "region": "ZOH_REGION",
    "client_id": "ZOH_CLIENT_ID",
    "client_secret": "ZOH_CLIENT_SECRET",
}


@dataclass
class Config:
    region: str = ""
    client_id: str = ""
    client_secret: str = ""
    org_id: str = ""
    account_id: str = ""
    default_output: str = ""

    def resolved_region(self) -> str:
        """Configured region, or the default when none is set."""
        return self.region or DEFAULT_REGION

    def region_config(self) -> Region:
        return get_region(self.resolved_region())

    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get(self, key: str) -> str:
        _check_key(key)
        return getattr(self, key)

    def set(self, key: str, value: str) -> None:
        _check_key(key)
        if key == "region":
            get_region(value)
        setattr(self, key, value)

    def unset(self, key: str) -> None:
        _check_key(key)
        setattr(self, key, "")

    def save(self, path: Union[str, os.PathLike] = DEFAULT_CONFIG_PATH) -> None:
        target = Path(path).expanduser()
        target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        target.write_text(json.dumps(asdict(self), indent=2))
        target.chmod(0o600)
        log.debug("Saved config to %s", target)


def config_keys() -> list[str]:
    return [f.name for f in fields(Config)]


def _check_key(key: str) -> None:
    if key not in config_keys():
        raise ConfigError(f"Unknown config key: {key}", hint=f"Valid keys: {', '.join(config_keys())}")


def load_config(path: Union[str, os.PathLike] = DEFAULT_CONFIG_PATH, *, apply_env: bool = True) -> Config:
    """Load config from JSON file. Returns defaults if the file doesn't exist.

    Values from ZOH_REGION, ZOH_CLIENT_ID and ZOH_CLIENT_SECRET take precedence
    over the file when ``apply_env`` is set.
    """
    expanded = Path(path).expanduser()
    config = Config()
    if expanded.exists():
        try:
            data = json.loads(expanded.read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse config at {expanded}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config at {expanded} must be a JSON object")
        known = set(config_keys())
        for key, value in data.items():
            if key in known and value is not None:
                setattr(config, key, str(value))

    if apply_env:
        for key, env_var in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                setattr(config, key, value)

    return config
