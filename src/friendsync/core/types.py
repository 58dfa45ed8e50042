"""Shared types for friendsync.

This module defines the subscription record and the per-peer exchange
state used by both the watermark store and the exchange orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import NamedTuple


class PeerState(str, Enum):
    """Exchange state of one connected peer.

    Used by ChangeExchange to decide whether the peer's share list
    still has to be requested before subscriptions can be queried.
    """

    UNKNOWN = "unknown"
    SHARES_REQUESTED = "shares_requested"
    SHARES_KNOWN = "shares_known"


class SubscriptionKey(NamedTuple):
    """Unique key of a subscription."""

    peer_id: int
    share_base: str
    sub_path: str


@dataclass(frozen=True)
class Subscription:
    """A watch on a sub-path of a peer's share-base.

    Attributes:
        peer_id: Identifier of the remote peer.
        share_base: Name of the remote share-base (never sent on the wire).
        sub_path: Path below the share-base, usually ending with "/".
        local_destination: Local directory where changed files are downloaded.
        watermark: Last modification time (ms) already accounted for.
    """

    peer_id: int
    share_base: str
    sub_path: str
    local_destination: str
    watermark: int = 0

    @property
    def key(self) -> SubscriptionKey:
        """Get the unique key of this subscription."""
        return SubscriptionKey(self.peer_id, self.share_base, self.sub_path)

    def with_watermark(self, watermark: int) -> Subscription:
        """Return a copy with the watermark replaced."""
        return replace(self, watermark=watermark)

    def __str__(self) -> str:
        return (
            f"peer {self.peer_id} share '{self.share_base}' "
            f"sub-path '{self.sub_path}' into {self.local_destination} "
            f"(watermark {self.watermark})"
        )
