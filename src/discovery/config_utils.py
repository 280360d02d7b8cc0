"""Configuration utilities for Tedee Hub."""

from pathlib import Path

EXAMPLE_CONFIG = """\
# Tedee Hub Configuration

house:
  name: "My Home"
  language: en   # en or nl

# Run 'tedee-hub discover' to list the locks of your account
devices: []
  # - id: front_door
  #   name: Front Door
  #   type: tedee
  #   room: hallway
  #   config:
  #     tedee_id: 12345

# Polling after a command until the lock has settled
monitor:
  poll_interval: 0.9
  operation_max_tries: 5
  state_max_tries: 6
  cycle_timeout: 15

# Periodic refresh of idle locks
sync:
  enabled: true
  interval: 300
"""

EXAMPLE_SECRETS = """\
# Tedee Hub Secrets
# This file contains sensitive credentials - DO NOT COMMIT TO GIT
# Add this file to .gitignore

# Tedee personal access key (Tedee portal > Personal Access Keys)
tedee: {}
  # personal_key: "xxxxxxxx.xxxxxxxxxxxxxxxx"
"""


def validate_config(config_dir: str | None = None) -> bool:
    """Validate configuration files.

    Args:
        config_dir: Path to config directory

    Returns:
        True if valid, False otherwise
    """
    from config import find_config_dir, load_config, load_secrets

    if config_dir:
        cfg_path = Path(config_dir)
    else:
        cfg_path = find_config_dir()

    print(f"Validating configuration in: {cfg_path}")
    print()

    errors = []
    warnings = []

    config_file = cfg_path / "config.yaml"
    if not config_file.exists():
        errors.append(f"config.yaml not found at {config_file}")
    else:
        print("✓ Found config.yaml")

        try:
            config = load_config(cfg_path)
            print("✓ config.yaml is valid")
            print(f"  House: {config.house.name} ({config.house.language})")
            print(f"  Devices: {len(config.devices)}")
            print(f"  Sync: {'every ' + str(config.sync.interval) + 's' if config.sync.enabled else 'disabled'}")

            if not config.devices:
                warnings.append("No devices defined - run 'tedee-hub discover' to find locks")

            seen = set()
            for device in config.devices:
                if device.id in seen:
                    errors.append(f"Duplicate device id '{device.id}'")
                seen.add(device.id)

                if device.type != "tedee":
                    warnings.append(f"Device '{device.id}' has unsupported type '{device.type}'")
                elif "tedee_id" not in device.config:
                    errors.append(f"Device '{device.id}' has no tedee_id")

        except Exception as e:
            errors.append(f"Failed to parse config.yaml: {e}")

    print()

    secrets_file = cfg_path / "secrets.yaml"
    if not secrets_file.exists():
        errors.append(f"secrets.yaml not found at {secrets_file}")
    else:
        print("✓ Found secrets.yaml")

        try:
            secrets = load_secrets(cfg_path)
            print("✓ secrets.yaml is valid")

            if secrets.tedee.get("personal_key"):
                print("  Tedee: personal key configured")
            elif secrets.tedee.get("access_token"):
                print("  Tedee: access token configured")
            else:
                errors.append("No Tedee personal_key or access_token in secrets.yaml")

        except Exception as e:
            errors.append(f"Failed to parse secrets.yaml: {e}")

    print()

    if errors:
        print("Errors:")
        for e in errors:
            print(f"  ✗ {e}")
        print()

    if warnings:
        print("Warnings:")
        for w in warnings:
            print(f"  ⚠ {w}")
        print()

    if not errors:
        print("✓ Configuration is valid")
        return True
    else:
        print("✗ Configuration has errors")
        return False


def init_config(config_dir: str = "./config") -> None:
    """Create example configuration files.

    Args:
        config_dir: Path to config directory
    """
    cfg_path = Path(config_dir)

    print(f"Initializing configuration in: {cfg_path}")
    print()

    if not cfg_path.exists():
        cfg_path.mkdir(parents=True)
        print(f"✓ Created directory: {cfg_path}")

    config_file = cfg_path / "config.yaml"
    if config_file.exists():
        print("⚠ config.yaml already exists, skipping")
    else:
        config_file.write_text(EXAMPLE_CONFIG)
        print("✓ Created config.yaml")

    secrets_file = cfg_path / "secrets.yaml"
    if secrets_file.exists():
        print("⚠ secrets.yaml already exists, skipping")
    else:
        secrets_file.write_text(EXAMPLE_SECRETS)
        print("✓ Created secrets.yaml")

    gitignore = cfg_path.parent / ".gitignore"
    secrets_pattern = "config/secrets.yaml"

    if gitignore.exists():
        content = gitignore.read_text()
        if secrets_pattern not in content and "secrets.yaml" not in content:
            print()
            print("⚠ Warning: secrets.yaml should be in .gitignore")
            print(f"  Add this line to .gitignore: {secrets_pattern}")
    else:
        print()
        print("⚠ Warning: No .gitignore found")
        print(f"  Create one and add: {secrets_pattern}")

    print()
    print("Next steps:")
    print("  1. Add your Tedee personal key to config/secrets.yaml")
    print("  2. Run 'tedee-hub discover' to list your locks")
    print("  3. Add the printed devices to config/config.yaml")
    print("  4. Run 'tedee-hub config validate' to check your config")
