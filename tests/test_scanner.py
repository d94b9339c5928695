"""Tests for directory scanning."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from bitrot.config import AppConfig
from bitrot.scanner import ScanError, checksum_record, generate_snapshot

HELLO_WORLD = "hello! world\n"
HELLO_WORLD_SHA1 = "87b3fe7479c73ae4246dbe8081550f52e2cf9e59"


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(config_dir=tmp_path / "config")


@pytest.fixture
def populated(tmp_path: Path) -> Path:
    root = tmp_path / "data"
    nested = root / "bar" / "baz" / "stuff"
    nested.mkdir(parents=True)
    (root / "foo").write_text(HELLO_WORLD)
    (nested / "foo").write_text(HELLO_WORLD)
    return root


class TestChecksumRecord:
    def test_checksum_and_mod_time(self, tmp_path: Path) -> None:
        """Should capture the digest and the file's mtime."""
        test_file = tmp_path / "foo"
        test_file.write_text(HELLO_WORLD)
        os.utime(test_file, (1_700_000_000.5, 1_700_000_000.5))

        record = checksum_record(test_file)

        assert record.checksum == HELLO_WORLD_SHA1
        assert record.mod_time == datetime.fromtimestamp(1_700_000_000.5, tz=timezone.utc)


class TestGenerateSnapshot:
    """Test generate_snapshot function."""

    def test_snapshot_entries(self, populated: Path, config: AppConfig) -> None:
        """Should record every regular file by relative path."""
        before = datetime.now(timezone.utc)

        snapshot = generate_snapshot(populated, config)

        assert snapshot.path == str(populated)
        assert before <= snapshot.created_at <= datetime.now(timezone.utc)
        assert {rel: rec.checksum for rel, rec in snapshot.entries.items()} == {
            "foo": HELLO_WORLD_SHA1,
            "bar/baz/stuff/foo": HELLO_WORLD_SHA1,
        }

    def test_excluded_names_skipped(self, populated: Path, config: AppConfig) -> None:
        """Should skip metadata files and VCS directories."""
        (populated / ".DS_Store").write_text("finder")
        (populated / ".git").mkdir()
        (populated / ".git" / "HEAD").write_text("ref: refs/heads/main")
        (populated / "bar" / "@eaDir").mkdir()
        (populated / "bar" / "@eaDir" / "thumb").write_text("thumb")

        snapshot = generate_snapshot(populated, config)

        assert set(snapshot.entries) == {"foo", "bar/baz/stuff/foo"}

    def test_alternative_algorithm(self, populated: Path, tmp_path: Path) -> None:
        config = AppConfig(config_dir=tmp_path / "config", hash_algorithm="sha256")

        snapshot = generate_snapshot(populated, config)

        assert all(len(rec.checksum) == 64 for rec in snapshot.entries.values())

    def test_unknown_algorithm(self, populated: Path, tmp_path: Path) -> None:
        config = AppConfig(config_dir=tmp_path / "config", hash_algorithm="nope")

        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            generate_snapshot(populated, config)

    @pytest.mark.parametrize("algorithm", ["shake_128", "shake_256"])
    def test_variable_length_algorithm_rejected(self, populated: Path, tmp_path: Path, algorithm: str) -> None:
        """Digests without a fixed size cannot be hex encoded."""
        config = AppConfig(config_dir=tmp_path / "config", hash_algorithm=algorithm)

        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            generate_snapshot(populated, config)

    def test_missing_root(self, tmp_path: Path, config: AppConfig) -> None:
        with pytest.raises(ScanError, match="not a directory"):
            generate_snapshot(tmp_path / "missing", config)

    def test_unreadable_file_aborts_scan(self, populated: Path, config: AppConfig) -> None:
        """A read failure should raise instead of returning a partial snapshot."""
        failing = populated / "foo"

        def fake_checksum(path: Path, algorithm: str = "sha1") -> str:
            if path == failing:
                raise PermissionError(13, "Permission denied", str(path))
            return "ok"

        with patch("bitrot.scanner.compute_checksum", side_effect=fake_checksum):
            with pytest.raises(ScanError) as excinfo:
                generate_snapshot(populated, config)

        assert excinfo.value.path == failing
        assert excinfo.value.reason == "Permission denied"

    def test_vanishing_file_aborts_scan(self, populated: Path, config: AppConfig) -> None:
        """A file deleted mid-walk should abort the scan."""
        with patch("bitrot.scanner.compute_checksum", side_effect=FileNotFoundError(2, "No such file", "gone")):
            with pytest.raises(ScanError):
                generate_snapshot(populated, config)
