import logging
import os
from importlib.metadata import PackageNotFoundError, version
from logging import NullHandler
from pathlib import Path

logging.getLogger(__name__).addHandler(NullHandler())

try:
    __version__ = version("zoh")
except PackageNotFoundError:
    __version__ = "0.0.0"

APP_NAME = "zoh"

DEFAULT_REGION = "us"

DEFAULT_CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / APP_NAME
DEFAULT_CACHE_DIR = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache")) / APP_NAME
DEFAULT_DATA_DIR = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")) / APP_NAME

DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"
