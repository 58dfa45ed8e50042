"""Core module - Shared types, configuration and logging."""

from friendsync.core.config import (
    BACKEND_SNAPSHOT,
    BACKEND_SQLITE,
    StoreConfig,
)
from friendsync.core.logs import setup_logging
from friendsync.core.types import PeerState, Subscription, SubscriptionKey

__all__ = [
    # Config
    "BACKEND_SNAPSHOT",
    "BACKEND_SQLITE",
    "StoreConfig",
    # Logging
    "setup_logging",
    # Types
    "PeerState",
    "Subscription",
    "SubscriptionKey",
]
