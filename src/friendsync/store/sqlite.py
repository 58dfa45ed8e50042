"""SQLite-backed watermark store.

The subscription key is the table's primary key, so the database itself
rejects duplicates. WAL mode lets external tools inspect the table while
the host is running.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from friendsync.core.types import Subscription
from friendsync.store.base import (
    DuplicateKeyError,
    PersistenceError,
    SubscriptionNotFoundError,
    WatermarkStore,
)

logger = logging.getLogger(__name__)

_COLUMNS = "peer_id, share_base, sub_path, local_destination, watermark"


def _from_row(row: sqlite3.Row) -> Subscription:
    """Create Subscription from database row."""
    return Subscription(
        peer_id=row["peer_id"],
        share_base=row["share_base"],
        sub_path=row["sub_path"],
        local_destination=row["local_destination"],
        watermark=row["watermark"],
    )


class SQLiteWatermarkStore(WatermarkStore):
    """Transactional table backend for friend subscriptions."""

    def __init__(self, db_path: Path) -> None:
        """Open (and create if needed) the subscription database.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            PersistenceError: If the database cannot be opened.
        """
        self._db_path = Path(db_path)
        self._lock = threading.RLock()
        self._closed = False

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                isolation_level=None,  # Autocommit; explicit BEGIN for multi-statement work
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open subscription database {self._db_path}: {e}") from e

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS friend_subscriptions (
                peer_id INTEGER NOT NULL,
                share_base TEXT NOT NULL,
                sub_path TEXT NOT NULL,
                local_destination TEXT NOT NULL,
                watermark INTEGER NOT NULL,
                PRIMARY KEY (peer_id, share_base, sub_path)
            );

            CREATE INDEX IF NOT EXISTS idx_friend_subscriptions_peer
                ON friend_subscriptions(peer_id);
        """)

    @property
    def location(self) -> str:
        """Return the database path."""
        return f"SQLite database: {self._db_path}"

    def _execute(self, sql: str, params: tuple[object, ...] = ()) -> sqlite3.Cursor:
        """Run a statement, wrapping driver errors."""
        if self._closed:
            raise PersistenceError("Subscription database is closed")
        try:
            return self._conn.execute(sql, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise PersistenceError(f"Subscription database error: {e}") from e

    def create(self, subscription: Subscription) -> None:
        """Insert a new subscription."""
        with self._lock:
            try:
                self._execute(
                    f"INSERT INTO friend_subscriptions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                    (
                        subscription.peer_id,
                        subscription.share_base,
                        subscription.sub_path,
                        subscription.local_destination,
                        subscription.watermark,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateKeyError(f"Subscription already exists: {subscription}") from e
        logger.info("Created subscription: %s", subscription)

    def list_all(self) -> list[Subscription]:
        """List all subscriptions ordered by key."""
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM friend_subscriptions "
                "ORDER BY peer_id, share_base, sub_path"
            ).fetchall()
        return [_from_row(row) for row in rows]

    def list_for_peer(self, peer_id: int) -> list[Subscription]:
        """List subscriptions of one peer."""
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM friend_subscriptions "
                "WHERE peer_id = ? ORDER BY share_base, sub_path",
                (peer_id,),
            ).fetchall()
        return [_from_row(row) for row in rows]

    def find(self, peer_id: int, share_base: str, sub_path: str) -> Subscription | None:
        """Find a subscription by key."""
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM friend_subscriptions "
                "WHERE peer_id = ? AND share_base = ? AND sub_path = ? LIMIT 2",
                (peer_id, share_base, sub_path),
            ).fetchall()
        if not rows:
            return None
        if len(rows) > 1:
            logger.warning(
                "Multiple subscriptions for peer %s, share '%s', sub-path '%s'; using the first",
                peer_id, share_base, sub_path,
            )
        return _from_row(rows[0])

    def advance_watermark(
        self,
        peer_id: int,
        share_base: str,
        sub_path: str,
        timestamp: int,
    ) -> None:
        """Set the watermark of one subscription in a single UPDATE."""
        with self._lock:
            cursor = self._execute(
                "UPDATE friend_subscriptions SET watermark = ? "
                "WHERE peer_id = ? AND share_base = ? AND sub_path = ?",
                (timestamp, peer_id, share_base, sub_path),
            )
            if cursor.rowcount == 0:
                raise SubscriptionNotFoundError(
                    f"No subscription for peer {peer_id}, share '{share_base}', sub-path '{sub_path}'"
                )
        logger.debug(
            "Advanced watermark for peer %s, share '%s', sub-path '%s' to %s",
            peer_id, share_base, sub_path, timestamp,
        )

    def remove(self, peer_id: int, share_base: str, sub_path: str) -> None:
        """Delete a subscription."""
        with self._lock:
            cursor = self._execute(
                "DELETE FROM friend_subscriptions "
                "WHERE peer_id = ? AND share_base = ? AND sub_path = ?",
                (peer_id, share_base, sub_path),
            )
            if cursor.rowcount == 0:
                raise SubscriptionNotFoundError(
                    f"No subscription for peer {peer_id}, share '{share_base}', sub-path '{sub_path}'"
                )
        logger.info(
            "Removed subscription for peer %s, share '%s', sub-path '%s'",
            peer_id, share_base, sub_path,
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._conn.close()
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to close subscription database: {e}") from e
