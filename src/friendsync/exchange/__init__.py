"""Change exchange package.

This package provides:
- scan: recursive change detection below a watermark
- ChangesQuery / ChangesReply: wire messages and their codec
- ShareIndexRegistry: share-base name <-> index translation per peer
- ChangeExchange: the per-peer exchange state machine
"""

from friendsync.exchange.codec import (
    MESSAGE_FAMILY,
    PROTOCOL_VERSION,
    QUERY_TAG,
    REPLY_TAG,
    ChangesQuery,
    ChangesReply,
    DecodeError,
    WireMessage,
    decode_message,
    encode_message,
)
from friendsync.exchange.orchestrator import (
    ChangeExchange,
    PeerHost,
    PeerSession,
    remote_file_path,
)
from friendsync.exchange.registry import NOT_FOUND, ShareIndexRegistry, TranslationError
from friendsync.exchange.scanner import ScanResult, ScanTargetMissingError, scan

__all__ = [
    # Codec
    "MESSAGE_FAMILY",
    "PROTOCOL_VERSION",
    "QUERY_TAG",
    "REPLY_TAG",
    "ChangesQuery",
    "ChangesReply",
    "DecodeError",
    "WireMessage",
    "decode_message",
    "encode_message",
    # Orchestrator
    "ChangeExchange",
    "PeerHost",
    "PeerSession",
    "remote_file_path",
    # Registry
    "NOT_FOUND",
    "ShareIndexRegistry",
    "TranslationError",
    # Scanner
    "ScanResult",
    "ScanTargetMissingError",
    "scan",
]
