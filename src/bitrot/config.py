"""Application configuration defaults."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Tuple

from bitrot.utils.files import DEFAULT_ALGORITHM

LOGGER = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".bitrot"
DB_FILE_NAME = "bitrot.db"

DEFAULT_EXCLUDED_FILES: Tuple[str, ...] = (
    # macOS Finder metadata
    ".DS_Store",
    # macOS custom folder icon, named "Icon" followed by a carriage return
    "Icon\r",
    ".git",
    ".svn",
    # Synology metadata
    "@eaDir",
    CONFIG_DIR_NAME,
)


def _get_home_dir() -> Path:
    """Return the user's home directory, or the working directory if it cannot be found."""
    try:
        return Path.home()
    except (RuntimeError, KeyError) as exc:
        LOGGER.debug("Home directory unavailable (%s), using working directory", exc)
        return Path.cwd()


def _get_default_config_dir() -> Path:
    return _get_home_dir() / CONFIG_DIR_NAME


@dataclass(slots=True)
class AppConfig:
    config_dir: Path | None = None
    db_path: Path | None = None
    excluded_files: Tuple[str, ...] = DEFAULT_EXCLUDED_FILES
    hash_algorithm: str = DEFAULT_ALGORITHM

    def __post_init__(self) -> None:
        if self.config_dir is None:
            self.config_dir = _get_default_config_dir()
        if self.db_path is None:
            self.db_path = Path(self.config_dir) / DB_FILE_NAME

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = Path(self.config_dir or _get_default_config_dir()) / DB_FILE_NAME
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

    def is_ignored_path(self, relative_path: str) -> bool:
        """True if any component of the relative path is an excluded name."""
        parts = PurePosixPath(relative_path.replace("\\", "/")).parts
        return any(part in self.excluded_files for part in parts)
