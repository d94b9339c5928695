"""Tests for core data models."""

from __future__ import annotations

import json
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from bitrot.models import ContentRecord, RenamedPair, Snapshot

MOD_TIME = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)


class TestContentRecord:
    """Test ContentRecord dataclass."""

    def test_create_record(self) -> None:
        record = ContentRecord(checksum="abc123", mod_time=MOD_TIME)

        assert record.checksum == "abc123"
        assert record.mod_time == MOD_TIME

    def test_record_is_immutable(self) -> None:
        """Should reject attribute assignment."""
        record = ContentRecord(checksum="abc123", mod_time=MOD_TIME)

        with pytest.raises(FrozenInstanceError):
            record.checksum = "other"  # type: ignore[misc]

    def test_dict_round_trip(self) -> None:
        """Should preserve microseconds and timezone."""
        record = ContentRecord(checksum="abc123", mod_time=MOD_TIME)

        restored = ContentRecord.from_dict(record.to_dict())

        assert restored == record


class TestSnapshot:
    """Test Snapshot dataclass."""

    def _snapshot(self) -> Snapshot:
        return Snapshot(
            path="/data/photos",
            created_at=datetime(2024, 1, 3, tzinfo=timezone.utc),
            entries={
                "foo": ContentRecord("87b3fe7479c73ae4246dbe8081550f52e2cf9e59", MOD_TIME),
                "bar/baz/stuff/foo": ContentRecord("87b3fe7479c73ae4246dbe8081550f52e2cf9e59", MOD_TIME),
            },
        )

    def test_entries_are_read_only(self) -> None:
        """Should not allow entries to be mutated after construction."""
        snapshot = self._snapshot()

        with pytest.raises(TypeError):
            snapshot.entries["new"] = ContentRecord("x", MOD_TIME)  # type: ignore[index]

    def test_entries_are_copied(self) -> None:
        """Mutating the source dict should not leak into the snapshot."""
        source = {"a": ContentRecord("x", MOD_TIME)}
        snapshot = Snapshot(path="/r", created_at=MOD_TIME, entries=source)

        source["b"] = ContentRecord("y", MOD_TIME)

        assert set(snapshot.entries) == {"a"}

    def test_len(self) -> None:
        assert len(self._snapshot()) == 2

    def test_json_round_trip(self) -> None:
        """Should survive JSON serialization with every field intact."""
        snapshot = self._snapshot()

        restored = Snapshot.from_dict(json.loads(json.dumps(snapshot.to_dict())))

        assert restored.path == snapshot.path
        assert restored.created_at == snapshot.created_at
        assert dict(restored.entries) == dict(snapshot.entries)

    def test_default_entries_empty(self) -> None:
        snapshot = Snapshot(path="/r", created_at=MOD_TIME)

        assert len(snapshot.entries) == 0


class TestRenamedPair:
    def test_pairs_are_hashable_and_ordered(self) -> None:
        """Should work in sets and sort by old path."""
        pairs = {RenamedPair("b", "c"), RenamedPair("a", "d"), RenamedPair("a", "d")}

        assert sorted(pairs) == [RenamedPair("a", "d"), RenamedPair("b", "c")]

    def test_to_dict(self) -> None:
        assert RenamedPair("old", "new").to_dict() == {"old_path": "old", "new_path": "new"}
