"""Configuration utilities for friendsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import click

ENV_CONFIG_DIR = "FRIENDSYNC_CONFIG_DIR"


def get_config_dir() -> Path:
    """Get the configuration directory for friendsync.

    Returns:
        Path from FRIENDSYNC_CONFIG_DIR, or ~/.friendsync.
    """
    configured = os.environ.get(ENV_CONFIG_DIR)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".friendsync"


def get_config_file(config_dir: Path) -> Path:
    """Get the path to the config file."""
    return config_dir / "config.json"


def load_config(config_dir: Path) -> dict[str, str]:
    """Load configuration from config file.

    Raises:
        click.ClickException: If the file is not a JSON object.
    """
    config_file = get_config_file(config_dir)
    if not config_file.exists():
        return {}
    try:
        config = json.loads(config_file.read_text())
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot read config file {config_file}: {e}") from e
    if not isinstance(config, dict):
        raise click.ClickException(f"Config file {config_file} must hold a JSON object")
    return config


def save_config(config_dir: Path, config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file(config_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))
