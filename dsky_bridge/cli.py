"""Command-line interface for dsky-bridge."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import DskyBridgeApp
from .config import DskyBridgeConfig, load_config
from .telemetry import ExportFileReader

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dsky-bridge",
        description="Bridge ReEntry DSKY telemetry to hardware DSKY replicas",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "start",
        help=f"Serve hardware DSKYs on ws://{constants.BRIDGE_HOST}:{constants.BRIDGE_PORT}/",
    )
    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )
    subparsers.add_parser(
        "check-exports",
        help="Read the ReEntry export files once and report what was found",
    )

    return parser


def _show_config(config: DskyBridgeConfig) -> int:
    print(f"Configuration loaded from {config.path!s}\n")
    for section in config.raw.sections():
        print(f"[{section}]")
        for key, value in config.raw[section].items():
            print(f"{key} = {value}")
        print()
    return 0


def _check_exports(config: DskyBridgeConfig) -> int:
    reader = ExportFileReader(config.telemetry.export_dir)
    print(f"Export directory: {reader.export_dir}")

    command = reader.read_command()
    print(
        f"  command module: {reader.command_path.name} "
        f"{'ok' if command is not None else 'missing or unreadable'}"
    )
    if command is not None:
        print(f"    in command module: {'yes' if command.is_in_cm else 'no'}")

    lunar_path = reader.lunar_path
    lunar = reader.read_lunar()
    lunar_name = lunar_path.name if lunar_path is not None else "/".join(
        constants.LUNAR_MODULE_EXPORTS
    )
    print(
        f"  lunar module: {lunar_name} "
        f"{'ok' if lunar is not None else 'missing or unreadable'}"
    )

    return 0 if command is not None and lunar is not None else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "start":
        DskyBridgeApp.start(config)
        return 0

    if args.command == "show-config":
        return _show_config(config)

    if args.command == "check-exports":
        return _check_exports(config)

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
