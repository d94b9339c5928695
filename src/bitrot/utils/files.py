"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Callable, Iterator, Optional

DEFAULT_ALGORITHM = "sha1"


def iter_regular_files(
    root: Path,
    *,
    is_excluded: Optional[Callable[[str], bool]] = None,
    _prefix: str = "",
) -> Iterator[tuple[str, Path]]:
    """Yield ``(relative_path, path)`` for regular files below root.

    Directories are visited in sorted order and symlinks are not followed.
    Excluded directories are pruned without being read. Errors from
    ``os.scandir`` and ``DirEntry`` calls propagate to the caller.
    """
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        relative = f"{_prefix}{entry.name}"
        if is_excluded is not None and is_excluded(relative):
            continue
        if entry.is_dir(follow_symlinks=False):
            yield from iter_regular_files(
                Path(entry.path), is_excluded=is_excluded, _prefix=f"{relative}/"
            )
        elif entry.is_file(follow_symlinks=False):
            yield relative, Path(entry.path)


def compute_checksum(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compute the hex digest of a file with the given hashlib algorithm."""
    digest = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()
