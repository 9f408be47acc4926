"""Detect environments where the OS keyring cannot be relied on."""

from __future__ import annotations

import os
import sys
from pathlib import Path

PROC_VERSION = Path("/proc/version")


def is_wsl() -> bool:
    """True when running under Windows Subsystem for Linux."""
    if not sys.platform.startswith("linux"):
        return False
    try:
        version = PROC_VERSION.read_text().lower()
    except OSError:
        return False
    return "microsoft" in version or "wsl" in version


def is_headless() -> bool:
    """True on Linux sessions without an X11 or Wayland display.

    macOS and Windows are assumed to always have a usable keychain.
    """
    if not sys.platform.startswith("linux"):
        return False
    return not os.environ.get("DISPLAY") and not os.environ.get("WAYLAND_DISPLAY")


def keyring_supported() -> bool:
    return not (is_wsl() or is_headless())
