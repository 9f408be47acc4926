from __future__ import annotations

import argparse
import logging
import sys
from types import ModuleType

from zoh import DEFAULT_CONFIG_PATH
from zoh.cli import auth, config_cmd
from zoh.errors import ExitCode, ZohError
from zoh.regions import valid_regions

_SUBCOMMANDS: list[ModuleType] = [auth, config_cmd]

log = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zoh",
        description="Zoho Mail and organization admin CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Enable debug logging")
    parser.add_argument(
        "--region",
        choices=valid_regions(),
        default=None,
        help="Zoho data center (default: configured region, or us). Also read from ZOH_REGION.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=str(DEFAULT_CONFIG_PATH),
        metavar="FILE",
        help=f"Config file path (default: {DEFAULT_CONFIG_PATH})",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for subcommand in _SUBCOMMANDS:
        subcommand.register_parser(subparsers)

    return parser


def _configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logging.getLogger("zoh").addHandler(handler)
    logging.getLogger("zoh").setLevel(logging.DEBUG if verbose else logging.WARNING)


def report_error(err: ZohError) -> int:
    print(f"Error: {err.message}", file=sys.stderr)
    if err.hint:
        print(f"Hint: {err.hint}", file=sys.stderr)
    return int(err.exit_code)


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)
    _configure_logging(verbose=parsed.verbose)

    for subcommand in _SUBCOMMANDS:
        if parsed.command == subcommand.COMMAND:
            try:
                return subcommand.run(parsed)
            except ZohError as e:
                log.debug("Command failed", exc_info=True)
                return report_error(e)
            except ValueError as e:
                print(f"Error: {e}", file=sys.stderr)
                return int(ExitCode.GENERAL)
            except KeyboardInterrupt:
                print("Interrupted", file=sys.stderr)
                return 130

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
