"""Snapshot comparison and change classification."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping

from bitrot.models import ContentRecord, RenamedPair, Snapshot

LOGGER = logging.getLogger(__name__)


class ComparisonState(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class Comparison:
    """Classification of every path seen in two snapshots.

    The comparison runs at most once. The first call to :meth:`compare`, or
    the first read of any result accessor, moves the instance from
    ``PENDING`` to ``COMPLETE``; afterwards the cached collections are
    returned as they are, even if the snapshots change.
    """

    def __init__(self, old: Snapshot, new: Snapshot) -> None:
        self.old = old
        self.new = new
        self._state = ComparisonState.PENDING
        self._lock = threading.Lock()
        self._unchanged: FrozenSet[str] = frozenset()
        self._deleted: FrozenSet[str] = frozenset()
        self._modified: FrozenSet[str] = frozenset()
        self._flagged: FrozenSet[str] = frozenset()
        self._added: FrozenSet[str] = frozenset()
        self._renamed: FrozenSet[RenamedPair] = frozenset()
        self._ambiguous: FrozenSet[str] = frozenset()

    @property
    def state(self) -> ComparisonState:
        return self._state

    def compare(self) -> "Comparison":
        """Classify all paths unless that already happened."""
        with self._lock:
            if self._state is ComparisonState.COMPLETE:
                return self
            self._classify()
            self._state = ComparisonState.COMPLETE
        LOGGER.debug(
            "Compared %s (%d entries) with %s (%d entries)",
            self.old.path,
            len(self.old.entries),
            self.new.path,
            len(self.new.entries),
        )
        return self

    def _classify(self) -> None:
        old_entries = self.old.entries
        new_entries = self.new.entries
        old_paths = set(old_entries)
        new_paths = set(new_entries)

        unchanged: set[str] = set()
        modified: set[str] = set()
        flagged: set[str] = set()
        for path in old_paths & new_paths:
            before = old_entries[path]
            after = new_entries[path]
            if before.checksum == after.checksum:
                unchanged.add(path)
            elif before.mod_time != after.mod_time:
                modified.add(path)
            else:
                flagged.add(path)

        deleted = old_paths - new_paths
        added = new_paths - old_paths

        deleted_by_checksum = _group_by_checksum(deleted, old_entries)
        added_by_checksum = _group_by_checksum(added, new_entries)

        renamed: set[RenamedPair] = set()
        ambiguous: set[str] = set()
        for checksum, old_candidates in deleted_by_checksum.items():
            new_candidates = added_by_checksum.get(checksum)
            if not new_candidates:
                continue
            if len(old_candidates) > 1 or len(new_candidates) > 1:
                ambiguous.add(checksum)
            # Lexicographic pairing; the surplus on either side stays deleted/added.
            for old_path, new_path in zip(sorted(old_candidates), sorted(new_candidates)):
                renamed.add(RenamedPair(old_path=old_path, new_path=new_path))
                deleted.discard(old_path)
                added.discard(new_path)

        self._unchanged = frozenset(unchanged)
        self._modified = frozenset(modified)
        self._flagged = frozenset(flagged)
        self._deleted = frozenset(deleted)
        self._added = frozenset(added)
        self._renamed = frozenset(renamed)
        self._ambiguous = frozenset(ambiguous)

    def _results(self) -> "Comparison":
        if self._state is ComparisonState.PENDING:
            self.compare()
        return self

    @property
    def unchanged_paths(self) -> FrozenSet[str]:
        return self._results()._unchanged

    @property
    def deleted_paths(self) -> FrozenSet[str]:
        return self._results()._deleted

    @property
    def modified_paths(self) -> FrozenSet[str]:
        return self._results()._modified

    @property
    def flagged_paths(self) -> FrozenSet[str]:
        """Paths whose content changed while the modification time did not."""
        return self._results()._flagged

    @property
    def added_paths(self) -> FrozenSet[str]:
        return self._results()._added

    @property
    def renamed_paths(self) -> FrozenSet[RenamedPair]:
        return self._results()._renamed

    @property
    def ambiguous_checksums(self) -> FrozenSet[str]:
        """Checksums shared by several deleted or added paths during rename pairing."""
        return self._results()._ambiguous

    def success(self) -> bool:
        return not self.flagged_paths

    def total_checked(self) -> int:
        """Number of paths accounted for, counting a rename once."""
        return (
            len(self.unchanged_paths)
            + len(self.deleted_paths)
            + len(self.modified_paths)
            + len(self.flagged_paths)
            + len(self.added_paths)
            + len(self.renamed_paths)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unchanged": sorted(self.unchanged_paths),
            "deleted": sorted(self.deleted_paths),
            "modified": sorted(self.modified_paths),
            "flagged": sorted(self.flagged_paths),
            "added": sorted(self.added_paths),
            "renamed": [pair.to_dict() for pair in sorted(self.renamed_paths)],
            "success": self.success(),
            "total_checked": self.total_checked(),
        }


def _group_by_checksum(paths: Iterable[str], entries: Mapping[str, ContentRecord]) -> Dict[str, List[str]]:
    groups: Dict[str, List[str]] = defaultdict(list)
    for path in paths:
        groups[entries[path].checksum].append(path)
    return groups


def classify(old: Snapshot, new: Snapshot) -> Comparison:
    """Compare two snapshots and return the completed classification."""
    return Comparison(old, new).compare()
