import os
import re
import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

FRAMES_DIR_NAME = "frames"

@dataclass(frozen=True)
class StagingArea:
    """Private working directory for one conversion attempt"""
    root: Path

    @property
    def frames_dir(self) -> Path:
        return self.root / FRAMES_DIR_NAME

    def video_path(self, file_name: str) -> Path:
        # Only the final path component is kept so the video stays inside the area
        return self.root / Path(file_name).name

    def archive_path(self, archive_name: str) -> Path:
        return self.root / archive_name

class StagingAreaManager:
    """Creates and destroys per-attempt temporary directory trees"""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)

    def new_area(self, user_id: str) -> StagingArea:
        """
        Allocate a staging area keyed by timestamp and user id

        The directory itself is created lazily with create_dir.
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        safe_user = re.sub(r"[^A-Za-z0-9_-]", "_", user_id) or "anonymous"
        name = f"{timestamp}_{safe_user}_{uuid.uuid4().hex[:8]}"
        return StagingArea(root=self.base_dir / name)

    def create_dir(self, path: Union[str, Path]) -> Path:
        """Idempotent recursive directory creation"""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def remove_tree(self, path: Union[str, Path]) -> int:
        """
        Recursively delete a directory tree, depth-first

        Files are removed before the directories containing them. A missing
        root is a no-op. A failure on one entry is logged and the remaining
        entries are still attempted.

        Returns:
            Number of entries that could not be removed
        """
        root = Path(path)
        if not root.exists() and not root.is_symlink():
            logger.debug(f"Staging tree {root} does not exist, nothing to remove")
            return 0

        if root.is_symlink() or not root.is_dir():
            return 0 if self._remove_entry(root, root.unlink) else 1

        failures = 0

        def on_walk_error(error: OSError):
            nonlocal failures
            failures += 1
            logger.error(f"Error reading staging directory {error.filename}: {str(error)}")

        for dirpath, dirnames, filenames in os.walk(root, topdown=False, onerror=on_walk_error):
            current = Path(dirpath)
            for filename in filenames:
                entry = current / filename
                if not self._remove_entry(entry, entry.unlink):
                    failures += 1
            for dirname in dirnames:
                entry = current / dirname
                remove = entry.unlink if entry.is_symlink() else entry.rmdir
                if not self._remove_entry(entry, remove):
                    failures += 1

        if not self._remove_entry(root, root.rmdir):
            failures += 1

        if failures:
            logger.warning(f"Staging tree {root} removed with {failures} failed entries")
        else:
            logger.info(f"Staging tree {root} removed")

        return failures

    def _remove_entry(self, entry: Path, remove) -> bool:
        try:
            remove()
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error(f"Error removing staging entry {entry}: {str(e)}")
            return False
