import asyncio
import zipfile
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..errors import ExternalToolError

logger = logging.getLogger(__name__)

@dataclass
class ArchiveResult:
    path: Path
    entry_count: int
    size_bytes: int

class ArchiveBuilder:
    """Packs the files of a directory into a flat ZIP archive"""

    TOOL_NAME = "archive"

    def __init__(self, compression_level: int = 9):
        self.compression_level = compression_level

    async def build(
        self,
        source_dir: Union[str, Path],
        archive_path: Union[str, Path]
    ) -> ArchiveResult:
        """
        Zip every regular file directly under source_dir into archive_path

        Entries are stored without directory components. The call resolves
        once the archive is fully written and closed.

        Raises:
            ExternalToolError: if the archive could not be written
        """
        source_dir = Path(source_dir)
        archive_path = Path(archive_path)

        try:
            result = await asyncio.to_thread(self._build, source_dir, archive_path)
        except ExternalToolError:
            raise
        except Exception as e:
            logger.error(f"Error building archive {archive_path.name}: {str(e)}")
            raise ExternalToolError(self.TOOL_NAME, str(e)) from e

        logger.info(
            f"Archive {archive_path.name} written with {result.entry_count} entries "
            f"({result.size_bytes} bytes)"
        )
        return result

    def _build(self, source_dir: Path, archive_path: Path) -> ArchiveResult:
        if not source_dir.is_dir():
            raise ExternalToolError(self.TOOL_NAME, f"source directory {source_dir} does not exist")

        files = sorted(p for p in source_dir.iterdir() if p.is_file())
        if not files:
            raise ExternalToolError(self.TOOL_NAME, f"no files to archive in {source_dir}")

        with zipfile.ZipFile(
            archive_path,
            'w',
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compression_level
        ) as zf:
            for file_path in files:
                zf.write(file_path, arcname=file_path.name)

        return ArchiveResult(
            path=archive_path,
            entry_count=len(files),
            size_bytes=archive_path.stat().st_size
        )
