"""Queued memo files: pick them up oldest first, move them aside once handled."""

import logging
import shutil
from datetime import datetime
from pathlib import Path

from config.config_loader import InboxConfig

logger = logging.getLogger(__name__)

MEMO_SUFFIXES = (".md", ".yaml", ".yml", ".json")
FAILED_PREFIX = "FAILED_"


class MemoInbox:
    """A folder of memo files plus the archive they are moved to."""

    def __init__(self, directory: Path, archive_dir: Path) -> None:
        self.directory = directory
        self.archive_dir = archive_dir

    @classmethod
    def from_config(cls, config: InboxConfig, directory: Path | None = None) -> "MemoInbox":
        return cls(directory or config.dir, config.archive_dir)

    def prepare(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.archive_dir.mkdir(parents=True, exist_ok=True)

    def pending(self) -> list[Path]:
        """Memo files waiting in the inbox, oldest modification time first."""
        memos = [
            path for path in self.directory.iterdir()
            if path.is_file() and path.suffix.lower() in MEMO_SUFFIXES
        ]
        memos.sort(key=lambda path: path.stat().st_mtime)
        return memos

    def archive(self, memo_path: Path, *, failed: bool = False) -> Path:
        """Move a handled memo into the archive under a timestamped name.

        Failed memos get the FAILED_ prefix. An existing archive entry with
        the same name is never overwritten; a counter is appended instead.
        """
        stamp = datetime.now().strftime("%Y-%m-%dT%H%M")
        stem = f"{FAILED_PREFIX if failed else ''}{stamp}_{memo_path.stem}"
        target = self.archive_dir / f"{stem}{memo_path.suffix}"
        counter = 1
        while target.exists():
            counter += 1
            target = self.archive_dir / f"{stem}-{counter}{memo_path.suffix}"

        shutil.move(str(memo_path), str(target))
        logger.debug("Archived %s -> %s", memo_path.name, target)
        return target
