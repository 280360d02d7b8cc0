"""Main entry point for Tedee Hub MCP server."""

import asyncio
import logging
import sys
from pathlib import Path

from config import load_config, load_secrets
from devices import register_all_factories
from devices.manager import DeviceManager
from mcp_server.server import create_server

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)


async def main(config_dir: Path | None = None) -> None:
    """Main entry point."""
    logger.info("Starting Tedee Hub MCP server...")

    try:
        config = load_config(config_dir)
        secrets = load_secrets(config_dir)
        logger.info(f"Loaded config for: {config.house.name}")
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    device_manager = DeviceManager(config, secrets)
    register_all_factories(device_manager)

    try:
        await device_manager.initialize()
        logger.info(f"Initialized {len(device_manager.get_devices())} devices")
    except ValueError as e:
        logger.error(f"Failed to initialize devices: {e}")
        sys.exit(1)

    server = create_server(config, device_manager)

    try:
        logger.info("MCP server running...")
        await server.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        await device_manager.shutdown()
        logger.info("Shutdown complete")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
