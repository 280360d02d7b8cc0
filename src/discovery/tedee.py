"""Tedee lock discovery through the Tedee cloud API."""

import sys
from dataclasses import dataclass
from typing import Any

import yaml

from client import TedeeClient, create_client
from config import SecretsConfig
from models.lock import state_name
from utils.errors import TedeeError


@dataclass
class DiscoveredLock:
    """A lock found on the Tedee account."""

    tedee_id: int
    name: str
    serial_number: str | None = None
    state: str | None = None
    is_connected: bool | None = None
    connected_via_bridge: bool = False
    pull_spring_enabled: bool = False


def slugify(name: str) -> str:
    """Convert a name to a slug suitable for device IDs."""
    return name.lower().replace(" ", "_").replace("-", "_")


def to_device_config(lock: DiscoveredLock, default_room: str | None = None) -> dict[str, Any]:
    """Build a config.yaml device entry for a discovered lock."""
    entry: dict[str, Any] = {
        "id": f"tedee_{slugify(lock.name)}",
        "name": lock.name,
        "type": "tedee",
    }
    if default_room:
        entry["room"] = default_room
    entry["config"] = {"tedee_id": lock.tedee_id}
    if lock.pull_spring_enabled:
        entry["config"]["pull_spring_enabled"] = True
    return entry


async def find_locks(client: TedeeClient) -> list[DiscoveredLock]:
    """List the locks of the account."""
    discovered = []
    for details in await client.get_locks():
        settings = details.settings
        discovered.append(
            DiscoveredLock(
                tedee_id=details.id,
                name=details.name or f"Lock {details.id}",
                serial_number=details.serial_number,
                state=state_name(details.state) if details.state is not None else None,
                is_connected=details.is_connected,
                connected_via_bridge=bool(details.connected_to_id),
                pull_spring_enabled=bool(settings and settings.pull_spring_enabled),
            )
        )
    return discovered


async def discover_tedee(
    secrets: SecretsConfig,
    default_room: str | None = None,
    client: TedeeClient | None = None,
) -> list[DiscoveredLock]:
    """Discover Tedee locks and print a config snippet.

    Args:
        secrets: Secrets holding the Tedee credentials
        default_room: Default room ID to suggest in config output
        client: Client to use instead of one built from secrets

    Returns:
        List of discovered locks
    """
    owns_client = client is None
    if client is None:
        try:
            client = create_client(secrets)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            print("Add a personal_key under 'tedee:' in config/secrets.yaml", file=sys.stderr)
            return []

    print("Fetching locks from the Tedee cloud...")
    print()

    try:
        discovered = await find_locks(client)
    except TedeeError as e:
        print(f"Error: {e.message} ({e.detail})", file=sys.stderr)
        return []
    finally:
        if owns_client:
            await client.close()

    if not discovered:
        print("No Tedee locks found.")
        print()
        print("Troubleshooting tips:")
        print("  - Check that the personal key has the 'Devices read' scope")
        print("  - Make sure the lock is added to your account in the Tedee app")
        return []

    print(f"Found {len(discovered)} Tedee lock(s):")
    print()

    for d in discovered:
        print(f"  {d.name}")
        print(f"    ID:     {d.tedee_id}")
        if d.serial_number:
            print(f"    Serial: {d.serial_number}")
        if d.state:
            print(f"    State:  {d.state}")
        connection = "bridge" if d.connected_via_bridge else "direct"
        print(f"    Connected: {d.is_connected} ({connection})")
        print()

    print("-" * 60)
    print("Config snippet (add to config/config.yaml under 'devices:'):")
    print("-" * 60)
    print()
    snippet = [to_device_config(d, default_room) for d in discovered]
    print(yaml.safe_dump(snippet, sort_keys=False, default_flow_style=False))

    return discovered
