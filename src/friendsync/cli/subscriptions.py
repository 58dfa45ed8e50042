"""Subscription commands for friendsync CLI.

Commands:
- subscribe: Create a subscription to a peer's shared sub-folder
- subscriptions: List subscriptions
- unsubscribe: Delete a subscription
- reset: Remove the whole subscription store
- configure: Choose the store backend and location
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from friendsync.cli.config import get_config_dir, load_config, save_config
from friendsync.core.config import BACKENDS, StoreConfig
from friendsync.core.types import Subscription
from friendsync.store import (
    DuplicateKeyError,
    StoreError,
    SubscriptionNotFoundError,
    open_store,
    reset_store,
)


@click.command()
@click.argument("peer_id", type=int)
@click.argument("share_base")
@click.argument("sub_path")
@click.argument("local_destination", type=click.Path(file_okay=False))
@click.option(
    "--since",
    type=int,
    default=0,
    show_default=True,
    help="Initial watermark in milliseconds; only files modified later are fetched.",
)
@click.pass_obj
def subscribe(
    store_config: StoreConfig,
    peer_id: int,
    share_base: str,
    sub_path: str,
    local_destination: str,
    since: int,
) -> None:
    """Subscribe to changes in a peer's shared folder.

    PEER_ID is the peer's numeric id, SHARE_BASE the name of its share,
    SUB_PATH the folder below that share (end it with "/") and
    LOCAL_DESTINATION the directory receiving changed files.

    Example:

        friendsync subscribe 1643718002 photos family/2024/ ~/Pictures/family
    """
    subscription = Subscription(
        peer_id=peer_id,
        share_base=share_base,
        sub_path=sub_path,
        local_destination=str(Path(local_destination).expanduser().resolve()),
        watermark=since,
    )

    try:
        with open_store(store_config) as store:
            store.create(subscription)
    except DuplicateKeyError:
        click.echo(
            f"Error: already subscribed to peer {peer_id} share '{share_base}' sub-path '{sub_path}'.",
            err=True,
        )
        sys.exit(1)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Subscribed: {subscription}")


@click.command()
@click.option("--peer", "peer_id", type=int, default=None, help="Only show this peer's subscriptions.")
@click.pass_obj
def subscriptions(store_config: StoreConfig, peer_id: int | None) -> None:
    """List subscriptions."""
    try:
        with open_store(store_config) as store:
            if peer_id is None:
                subs = store.list_all()
            else:
                subs = store.list_for_peer(peer_id)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"You have {len(subs)} subscription(s).")
    for sub in subs:
        click.echo(f"  {sub}")


@click.command()
@click.argument("peer_id", type=int)
@click.argument("share_base")
@click.argument("sub_path")
@click.pass_obj
def unsubscribe(store_config: StoreConfig, peer_id: int, share_base: str, sub_path: str) -> None:
    """Delete a subscription."""
    try:
        with open_store(store_config) as store:
            store.remove(peer_id, share_base, sub_path)
    except SubscriptionNotFoundError:
        click.echo(
            f"Error: no subscription for peer {peer_id} share '{share_base}' sub-path '{sub_path}'.",
            err=True,
        )
        sys.exit(1)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Subscription removed.")


@click.command()
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.pass_obj
def reset(store_config: StoreConfig, yes: bool) -> None:
    """Remove all subscriptions.

    Deletes the subscription store; it is recreated empty on next use.
    """
    if not yes:
        click.confirm(f"Delete all subscriptions in {store_config.path}?", abort=True)

    try:
        removed = reset_store(store_config)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if removed:
        click.echo(f"Removed subscription store: {store_config.path}")
    else:
        click.echo("Nothing to reset.")


@click.command()
@click.option("--backend", type=click.Choice(BACKENDS), default=None, help="Store backend.")
@click.option(
    "--store-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Store file location (default: inside the config directory).",
)
def configure(backend: str | None, store_path: str | None) -> None:
    """Save the store backend and location in config.json."""
    config_dir = get_config_dir()
    config = load_config(config_dir)

    if backend:
        config["store_backend"] = backend
    if store_path:
        config["store_path"] = str(Path(store_path).expanduser().resolve())

    save_config(config_dir, config)
    click.echo(f"Backend: {config.get('store_backend', 'sqlite')}")
    click.echo(f"Store: {config.get('store_path', '(default)')}")
