"""CLI entry point for Tedee Hub."""

import argparse
import asyncio
import sys
from pathlib import Path


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tedee-hub",
        description="Tedee Hub - Tedee smart locks with Claude integration",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the MCP server")
    serve_parser.add_argument(
        "--config-dir",
        type=str,
        help="Path to config directory",
    )

    # discover command
    discover_parser = subparsers.add_parser("discover", help="List the locks of your Tedee account")
    discover_parser.add_argument(
        "--config-dir",
        type=str,
        help="Path to config directory holding secrets.yaml",
    )
    discover_parser.add_argument(
        "--room",
        type=str,
        help="Default room ID to assign to discovered locks",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Configuration utilities")
    config_subparsers = config_parser.add_subparsers(dest="config_action", help="Config action")

    # config validate
    validate_parser = config_subparsers.add_parser("validate", help="Validate configuration")
    validate_parser.add_argument(
        "--config-dir",
        type=str,
        help="Path to config directory",
    )

    # config init
    init_parser = config_subparsers.add_parser("init", help="Create example config files")
    init_parser.add_argument(
        "--config-dir",
        type=str,
        default="./config",
        help="Path to config directory (default: ./config)",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        from main import main as serve_main
        config_dir = Path(args.config_dir) if args.config_dir else None
        asyncio.run(serve_main(config_dir))

    elif args.command == "discover":
        found = asyncio.run(run_discovery(args))
        if not found:
            sys.exit(1)

    elif args.command == "config":
        if args.config_action is None:
            config_parser.print_help()
            sys.exit(1)
        if not run_config_command(args):
            sys.exit(1)


async def run_discovery(args: argparse.Namespace) -> list:
    """Run lock discovery."""
    from config import find_config_dir, load_secrets
    from discovery.tedee import discover_tedee

    config_dir = Path(args.config_dir) if args.config_dir else find_config_dir()
    secrets = load_secrets(config_dir)
    return await discover_tedee(secrets, default_room=args.room)


def run_config_command(args: argparse.Namespace) -> bool:
    """Run config commands."""
    if args.config_action == "validate":
        from discovery.config_utils import validate_config
        return validate_config(args.config_dir)

    elif args.config_action == "init":
        from discovery.config_utils import init_config
        init_config(args.config_dir)
        return True

    return False


if __name__ == "__main__":
    main()
