"""Directory scanning: builds a Snapshot from files on disk."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path

from bitrot.config import AppConfig
from bitrot.models import ContentRecord, Snapshot
from bitrot.utils.files import DEFAULT_ALGORITHM, compute_checksum, iter_regular_files

LOGGER = logging.getLogger(__name__)


class ScanError(Exception):
    """A file or directory could not be read; the scan produced no snapshot."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Failed to scan {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


def checksum_record(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> ContentRecord:
    """Hash a single file and capture its modification time."""
    checksum = compute_checksum(path, algorithm)
    stat = path.stat()
    return ContentRecord(
        checksum=checksum,
        mod_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def generate_snapshot(root: Path | str, config: AppConfig | None = None) -> Snapshot:
    """Scan every regular, non-excluded file under root.

    Raises:
        ScanError: if root is not a directory or any entry cannot be read.
    """
    config = config or AppConfig()
    root_path = Path(root)
    if not root_path.is_dir():
        raise ScanError(root_path, "not a directory")

    algorithm = config.hash_algorithm
    if algorithm not in hashlib.algorithms_available or hashlib.new(algorithm).digest_size == 0:
        # Variable-length digests (shake_*) need a length for hexdigest().
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    created_at = datetime.now(timezone.utc)
    entries: dict[str, ContentRecord] = {}
    current: Path = root_path
    try:
        for relative, path in iter_regular_files(root_path, is_excluded=config.is_ignored_path):
            current = path
            entries[relative] = checksum_record(path, algorithm)
            LOGGER.debug("Hashed %s", relative)
    except OSError as exc:
        failed = Path(exc.filename) if exc.filename else current
        LOGGER.error("Scan of %s aborted at %s: %s", root_path, failed, exc)
        raise ScanError(failed, exc.strerror or str(exc)) from exc

    LOGGER.info("Scanned %d files under %s", len(entries), root_path)
    return Snapshot(path=str(root_path), created_at=created_at, entries=entries)
