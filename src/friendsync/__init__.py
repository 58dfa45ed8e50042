"""friendsync - pull changed files from subscribed folders of peers."""

from friendsync.core import PeerState, StoreConfig, Subscription, SubscriptionKey, setup_logging
from friendsync.exchange import (
    ChangeExchange,
    ChangesQuery,
    ChangesReply,
    DecodeError,
    PeerHost,
    ScanResult,
    ScanTargetMissingError,
    ShareIndexRegistry,
    TranslationError,
    decode_message,
    encode_message,
    scan,
)
from friendsync.store import (
    DuplicateKeyError,
    PersistenceError,
    SnapshotWatermarkStore,
    SQLiteWatermarkStore,
    StoreError,
    SubscriptionNotFoundError,
    WatermarkStore,
    open_store,
    reset_store,
)

__version__ = "0.1.0"

__all__ = [
    "ChangeExchange",
    "ChangesQuery",
    "ChangesReply",
    "DecodeError",
    "DuplicateKeyError",
    "PeerHost",
    "PeerState",
    "PersistenceError",
    "SQLiteWatermarkStore",
    "ScanResult",
    "ScanTargetMissingError",
    "ShareIndexRegistry",
    "SnapshotWatermarkStore",
    "StoreConfig",
    "StoreError",
    "Subscription",
    "SubscriptionKey",
    "SubscriptionNotFoundError",
    "TranslationError",
    "WatermarkStore",
    "decode_message",
    "encode_message",
    "open_store",
    "reset_store",
    "scan",
    "setup_logging",
]
