"""Command-line interface for friendsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- subscribe: Subscribe to a peer's shared sub-folder
- subscriptions: List subscriptions
- unsubscribe: Delete a subscription
- reset: Remove all subscriptions
- configure: Choose the store backend and location

The console only manages the subscription store. Sending a change query by
hand needs a live peer connection, so it is left to the host embedding
ChangeExchange (see ChangeExchange.send_query).
"""

from __future__ import annotations

import logging
import os

import click

from friendsync.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from friendsync.cli.subscriptions import (
    configure,
    reset,
    subscribe,
    subscriptions,
    unsubscribe,
)
from friendsync.core.config import BACKENDS, ENV_BACKEND, ENV_PATH, StoreConfig
from friendsync.core.logs import setup_logging


@click.group()
@click.version_option(package_name="friendsync")
@click.option(
    "--backend",
    type=click.Choice(BACKENDS),
    default=None,
    help="Store backend (overrides config and FRIENDSYNC_STORE_BACKEND).",
)
@click.option(
    "--store-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Store file (overrides config and FRIENDSYNC_STORE_PATH).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def cli(ctx: click.Context, backend: str | None, store_path: str | None, verbose: bool) -> None:
    """friendsync - fetch new files from peers' shared folders."""
    if verbose:
        setup_logging(logging.DEBUG)

    environ = dict(os.environ)
    if backend:
        environ[ENV_BACKEND] = backend
    if store_path:
        environ[ENV_PATH] = store_path

    config_dir = get_config_dir()
    try:
        ctx.obj = StoreConfig.from_dict(load_config(config_dir), config_dir, environ)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


cli.add_command(subscribe)
cli.add_command(subscriptions)
cli.add_command(unsubscribe)
cli.add_command(reset)
cli.add_command(configure)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
