"""Change scanner for subscribed folders.

Walks a directory tree and reports every regular file modified after a
watermark, together with the newest modification time seen.

Directory modification times are folded into that maximum even though
directories are never reported themselves, so renames and deletions
inside a watched folder still advance the watermark.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


class ScanTargetMissingError(Exception):
    """Raised when the subscribed path does not exist on disk."""


@dataclass
class ScanResult:
    """Result of one scan.

    Attributes:
        max_modified: Newest modification time seen (ms).
        changed: Paths relative to the scan root, "/"-separated, sorted.
    """

    max_modified: int
    changed: list[str] = field(default_factory=list)


def mtime_ms(st: os.stat_result) -> int:
    """Modification time of a stat result in integer milliseconds."""
    return st.st_mtime_ns // 1_000_000


def _is_utf8(name: str) -> bool:
    """Check that a file name can be sent to peers.

    Names that are not valid UTF-8 on disk come back from the OS with
    surrogate escapes and cannot be encoded.
    """
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def scan(root: Path, since: int) -> ScanResult:
    """Find files under root modified after a watermark.

    Args:
        root: Directory (or single file) to scan.
        since: Watermark in milliseconds; only strictly newer files count.

    Returns:
        ScanResult with the changed paths and the newest modification time.

    Raises:
        ScanTargetMissingError: If root doesn't exist or is neither a file
            nor a directory.
    """
    root = Path(root)
    try:
        root_stat = root.stat()
    except (OSError, ValueError) as e:
        # ValueError: embedded null byte
        raise ScanTargetMissingError(f"Scan target not found: {root!r}") from e

    if stat.S_ISREG(root_stat.st_mode):
        modified = mtime_ms(root_stat)
        logger.debug("Scanned single file %r: mtime %s, since %s", root, modified, since)
        if not _is_utf8(root.name):
            logger.warning("Skipping file with a non-UTF-8 name: %r", root)
            return ScanResult(max_modified=modified)
        return ScanResult(
            max_modified=modified,
            changed=[root.name] if modified > since else [],
        )

    if not stat.S_ISDIR(root_stat.st_mode):
        raise ScanTargetMissingError(f"Scan target is neither a file nor a directory: {root}")

    changed: list[str] = []
    visited = {(root_stat.st_dev, root_stat.st_ino)}
    max_modified = _scan_dir(root, "", root_stat, since, changed, visited)
    changed.sort()

    logger.debug(
        "Scanned %s since %s: %d changed file(s), newest %s",
        root, since, len(changed), max_modified,
    )
    return ScanResult(max_modified=max_modified, changed=changed)


def _scan_dir(
    directory: Path,
    prefix: str,
    dir_stat: os.stat_result,
    since: int,
    changed: list[str],
    visited: set[tuple[int, int]],
) -> int:
    """Recursively collect changed files below one directory.

    Returns:
        Newest modification time among this directory, its sub-directories
        and its changed files.
    """
    result = mtime_ms(dir_stat)

    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        logger.warning("Cannot list directory %s, skipping: %s", directory, e)
        return result

    for entry in entries:
        if not _is_utf8(entry.name):
            logger.warning("Skipping entry with a non-UTF-8 name: %r", entry.path)
            continue

        relative_path = f"{prefix}{entry.name}"
        try:
            entry_stat = entry.stat()  # follows symlinks
        except OSError:
            logger.info("Skipping unreadable entry (broken link?): %s", entry.path)
            continue

        if stat.S_ISDIR(entry_stat.st_mode):
            identity = (entry_stat.st_dev, entry_stat.st_ino)
            if identity in visited:
                logger.info("Skipping directory already visited (symlink loop): %s", entry.path)
                continue
            visited.add(identity)
            nested = _scan_dir(
                Path(entry.path), f"{relative_path}/", entry_stat, since, changed, visited,
            )
            visited.discard(identity)
            result = max(result, nested)
        elif stat.S_ISREG(entry_stat.st_mode):
            modified = mtime_ms(entry_stat)
            if modified > since:
                logger.debug("Found changed file: %s (mtime %s)", relative_path, modified)
                changed.append(relative_path)
                result = max(result, modified)
        else:
            logger.info("Skipping special file: %s", entry.path)

    return result
