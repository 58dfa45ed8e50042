"""Shared configuration classes for friendsync.

This module defines the watermark store configuration used by the CLI
and by hosts embedding the change exchange.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

BACKEND_SQLITE = "sqlite"
BACKEND_SNAPSHOT = "snapshot"
BACKENDS = (BACKEND_SQLITE, BACKEND_SNAPSHOT)

DEFAULT_FILENAMES = {
    BACKEND_SQLITE: "subscriptions.db",
    BACKEND_SNAPSHOT: "subscriptions.json",
}

ENV_BACKEND = "FRIENDSYNC_STORE_BACKEND"
ENV_PATH = "FRIENDSYNC_STORE_PATH"


@dataclass
class StoreConfig:
    """Configuration for opening a watermark store.

    Attributes:
        path: Location of the store file (SQLite database or JSON snapshot).
        backend: Either "sqlite" (transactional table) or "snapshot"
            (whole-file snapshot rewritten on close).
    """

    path: Path
    backend: str = BACKEND_SQLITE

    def __post_init__(self) -> None:
        """Validate backend and normalize path."""
        self.backend = self.backend.strip().lower()
        if self.backend not in BACKENDS:
            raise ValueError(
                f"Unknown store backend: {self.backend!r} (expected one of {', '.join(BACKENDS)})"
            )
        self.path = Path(self.path).expanduser()

    @classmethod
    def from_dict(
        cls,
        config: Mapping[str, str],
        config_dir: Path,
        environ: Mapping[str, str] | None = None,
    ) -> StoreConfig:
        """Build a store configuration from the CLI config file.

        Environment variables take precedence over the config file.

        Args:
            config: Parsed config.json content.
            config_dir: Directory holding the default store file.
            environ: Environment to read overrides from (default os.environ).

        Returns:
            StoreConfig instance.
        """
        env = os.environ if environ is None else environ

        backend = env.get(ENV_BACKEND) or config.get("store_backend") or BACKEND_SQLITE
        backend = backend.strip().lower()
        path = env.get(ENV_PATH) or config.get("store_path")
        if not path:
            filename = DEFAULT_FILENAMES.get(backend, DEFAULT_FILENAMES[BACKEND_SQLITE])
            path = str(Path(config_dir) / filename)

        return cls(path=Path(path), backend=backend)

    @property
    def is_snapshot(self) -> bool:
        """Check if the snapshot-file backend is selected."""
        return self.backend == BACKEND_SNAPSHOT
