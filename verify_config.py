#!/usr/bin/env python3
"""Check a configuration file without touching the environment or database.

Usage:
    python verify_config.py [path/to/config.yaml]
"""

import sys
from pathlib import Path

import yaml

from qalam.config import validate_config_file
from qalam.config.validators import check_for_warnings


def verify(config_path: Path) -> bool:
    if not config_path.exists():
        print(f"{config_path} not found")
        return False

    if not validate_config_file(config_path):
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    for message in check_for_warnings(raw):
        print(f"  warning: {message}")

    processing = raw.get("processing") or {}
    print(f"  - Base URL: {raw.get('app_base_url', 'https://example.com (default)')}")
    print(f"  - Processing interval: {processing.get('interval', '5m (default)')}")
    return True


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.example.yaml")
    sys.exit(0 if verify(path) else 1)
