from __future__ import annotations

import argparse

from zoh.cli._output import status
from zoh.config import config_keys, load_config

COMMAND = "config"

_SECRET_KEYS = ("client_secret",)


def register_parser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(COMMAND, help="Read and change CLI configuration")
    subs = parser.add_subparsers(dest="config_action")

    get_p = subs.add_parser("get", help="Print a config value")
    get_p.add_argument("key", choices=config_keys())

    set_p = subs.add_parser("set", help="Set a config value")
    set_p.add_argument("key", choices=config_keys())
    set_p.add_argument("value")

    unset_p = subs.add_parser("unset", help="Clear a config value")
    unset_p.add_argument("key", choices=config_keys())

    subs.add_parser("path", help="Print the config file path")

    return parser


def run(parsed: argparse.Namespace) -> int:
    if parsed.config_action == "path":
        print(parsed.config_path)
        return 0

    # Only the file is edited, so environment overrides must not leak into it
    config = load_config(parsed.config_path, apply_env=parsed.config_action == "get")

    if parsed.config_action == "get":
        print(config.get(parsed.key))
        return 0
    if parsed.config_action == "set":
        config.set(parsed.key, parsed.value)
        config.save(parsed.config_path)
        shown = "********" if parsed.key in _SECRET_KEYS else parsed.value
        status(f"Set {parsed.key} = {shown}")
        return 0
    if parsed.config_action == "unset":
        config.unset(parsed.key)
        config.save(parsed.config_path)
        status(f"Unset {parsed.key}")
        return 0
    return 0
