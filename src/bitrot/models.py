"""Core bitrot data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping


@dataclass(frozen=True, slots=True)
class ContentRecord:
    """Observed state of one file at scan time."""

    checksum: str
    mod_time: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"checksum": self.checksum, "mod_time": self.mod_time.isoformat()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContentRecord":
        return cls(
            checksum=str(data["checksum"]),
            mod_time=datetime.fromisoformat(data["mod_time"]),
        )


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One scan of a directory tree.

    ``entries`` maps paths relative to ``path`` to their content record. The
    mapping is copied into a read-only view on construction.
    """

    path: str
    created_at: datetime
    entries: Mapping[str, ContentRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "created_at": self.created_at.isoformat(),
            "entries": {rel: record.to_dict() for rel, record in self.entries.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        entries = data.get("entries") or {}
        return cls(
            path=str(data["path"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            entries={rel: ContentRecord.from_dict(raw) for rel, raw in entries.items()},
        )


@dataclass(frozen=True, slots=True, order=True)
class RenamedPair:
    """A path only in the old snapshot matched to a path only in the new one."""

    old_path: str
    new_path: str

    def to_dict(self) -> Dict[str, str]:
        return {"old_path": self.old_path, "new_path": self.new_path}
