"""atticd CLI: serve, check-config and init entry points.

Usage:
    atticd serve                    # Start the server (runs first-run setup if needed)
    atticd serve -f server.toml     # Start with an explicit config file
    atticd check-config             # Validate the config and print it (secret hidden)
    atticd init                     # Write a starter config to the user config dir
"""

import argparse
import asyncio
import logging
import sys

from .errors import ConfigError
from .oobe import write_initial_config
from .server.config import dump_config, get_xdg_config_path, load_config


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_serve(args: argparse.Namespace) -> int:
    """Resolve the configuration and start the HTTP server."""
    _configure_logging(args.log_level)

    from .server.app import run_server

    config = asyncio.run(
        load_config(args.config, allow_oobe=not args.no_oobe)
    )
    run_server(config, log_level=args.log_level, listen=args.listen)
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    """Resolve and validate the configuration without starting anything."""
    _configure_logging(args.log_level)

    config = asyncio.run(load_config(args.config, allow_oobe=False))

    if args.dump:
        print(dump_config(config), end="")
    else:
        print(repr(config))
    print("✅ Configuration is valid", file=sys.stderr)
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Write a starter config to the per-user config directory."""
    config_path = get_xdg_config_path()

    if not write_initial_config(config_path, force=args.force):
        print(f"⚠️  Config already exists: {config_path}")
        print("   Use --force to overwrite.")
        return 1

    print(f"✅ Config written: {config_path}")
    print()
    print("🚀 Start the server:")
    print("   atticd serve")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atticd",
        description="atticd: self-hosted Nix binary cache server",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    log_levels = ["debug", "info", "warning", "error"]

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--config", "-f", type=str, default=None,
                              help="Path to server.toml (default: standard user config path)")
    serve_parser.add_argument("--listen", type=str, default=None,
                              help="Override the listen address, e.g. [::]:8080")
    serve_parser.add_argument("--no-oobe", action="store_true",
                              help="Never run first-run setup, fail if no config exists")
    serve_parser.add_argument("--log-level", type=str, default="info", choices=log_levels)

    # check-config
    check_parser = subparsers.add_parser(
        "check-config", help="Validate the configuration and print it"
    )
    check_parser.add_argument("--config", "-f", type=str, default=None)
    check_parser.add_argument("--dump", action="store_true",
                              help="Print the effective config as TOML (secret omitted)")
    check_parser.add_argument("--log-level", type=str, default="warning", choices=log_levels)

    # init
    init_parser = subparsers.add_parser(
        "init", help="Write a starter config to the user config directory"
    )
    init_parser.add_argument("--force", action="store_true",
                             help="Overwrite existing config")

    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "serve": cmd_serve,
        "check-config": cmd_check_config,
        "init": cmd_init,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(command(args))
    except ConfigError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
