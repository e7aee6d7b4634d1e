import asyncio
import subprocess
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import cv2
from PIL import Image as PILImage

from ..errors import ExternalToolError

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%05d.jpg"

@dataclass
class FrameExtractionResult:
    """Frames written by one extraction run"""
    output_dir: Path
    frames: List[Path] = field(default_factory=list)
    interval_seconds: float = 0.0
    method: str = "ffmpeg"

    @property
    def frame_count(self) -> int:
        return len(self.frames)

class FrameExtractor:
    """Samples still frames from a video at a fixed time interval"""

    TOOL_NAME = "frame extraction"

    def __init__(self, ffmpeg_path: str = "ffmpeg", quality: int = 2):
        self.quality = quality
        self.ffmpeg_path = self._find_ffmpeg(ffmpeg_path)

    def _find_ffmpeg(self, preferred: str) -> Optional[str]:
        """Find FFmpeg executable"""
        common_paths = [
            preferred,
            '/usr/bin/ffmpeg',
            '/usr/local/bin/ffmpeg',
            '/opt/homebrew/bin/ffmpeg'
        ]

        for path in dict.fromkeys(common_paths):
            try:
                result = subprocess.run([path, '-version'],
                                        capture_output=True, text=True, timeout=5)
                if result.returncode == 0:
                    return path
            except (subprocess.TimeoutExpired, FileNotFoundError, PermissionError):
                continue

        logger.warning("FFmpeg not found. Falling back to OpenCV frame extraction.")
        return None

    async def extract(
        self,
        video_path: Union[str, Path],
        output_dir: Union[str, Path],
        interval_seconds: float
    ) -> FrameExtractionResult:
        """
        Extract one frame per interval_seconds of video into output_dir

        Frames are written as sequentially numbered JPEG images. The call
        resolves once the extractor has finished or raises ExternalToolError
        if it failed.

        Args:
            video_path: Path to the source video
            output_dir: Directory receiving the numbered frames
            interval_seconds: Seconds of video between two sampled frames

        Returns:
            FrameExtractionResult with the produced frame paths
        """
        if interval_seconds <= 0:
            raise ExternalToolError(self.TOOL_NAME, f"invalid interval {interval_seconds}")

        video_path = Path(video_path)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        if self.ffmpeg_path:
            await self._extract_ffmpeg(video_path, output_dir, interval_seconds)
            method = "ffmpeg"
        else:
            try:
                await asyncio.to_thread(
                    self._extract_opencv, video_path, output_dir, interval_seconds
                )
            except ExternalToolError:
                raise
            except Exception as e:
                raise ExternalToolError(self.TOOL_NAME, str(e)) from e
            method = "opencv"

        frames = sorted(output_dir.glob("frame_*.jpg"))
        if not frames:
            raise ExternalToolError(self.TOOL_NAME, f"no frames produced from {video_path.name}")

        logger.info(
            f"Extracted {len(frames)} frames from {video_path.name} "
            f"every {interval_seconds:g}s using {method}"
        )

        return FrameExtractionResult(
            output_dir=output_dir,
            frames=frames,
            interval_seconds=interval_seconds,
            method=method
        )

    def build_ffmpeg_command(
        self,
        video_path: Path,
        output_dir: Path,
        interval_seconds: float
    ) -> List[str]:
        return [
            self.ffmpeg_path or 'ffmpeg',
            '-hide_banner',
            '-loglevel', 'error',
            '-y',
            '-i', str(video_path),
            '-vf', f'fps=1/{interval_seconds:g}',
            '-q:v', str(self.quality),
            str(output_dir / FRAME_PATTERN),
        ]

    async def _extract_ffmpeg(
        self,
        video_path: Path,
        output_dir: Path,
        interval_seconds: float
    ):
        """Run FFmpeg and wait for its exit status"""
        cmd = self.build_ffmpeg_command(video_path, output_dir, interval_seconds)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise ExternalToolError(self.TOOL_NAME, f"could not start FFmpeg: {str(e)}") from e

        if process.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            logger.error(f"FFmpeg frame extraction error: {message}")
            raise ExternalToolError(
                self.TOOL_NAME,
                f"FFmpeg exited with code {process.returncode}: {message}",
                {'returncode': process.returncode}
            )

    def _extract_opencv(
        self,
        video_path: Path,
        output_dir: Path,
        interval_seconds: float
    ):
        """Extract frames using OpenCV as fallback"""
        cap = cv2.VideoCapture(str(video_path))

        try:
            if not cap.isOpened():
                raise ExternalToolError(self.TOOL_NAME, 'Could not open video file')

            fps = cap.get(cv2.CAP_PROP_FPS)
            total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
            if fps <= 0 or total_frames <= 0:
                raise ExternalToolError(self.TOOL_NAME, 'Invalid video frame rate or length')

            index = 0
            while True:
                frame_number = int(index * interval_seconds * fps)
                if frame_number >= total_frames:
                    break

                cap.set(cv2.CAP_PROP_POS_FRAMES, frame_number)
                ret, frame = cap.read()
                if not ret:
                    break

                # Convert BGR to RGB
                frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                frame_path = output_dir / (FRAME_PATTERN % (index + 1))
                PILImage.fromarray(frame_rgb).save(frame_path, 'JPEG', quality=95)
                index += 1
        finally:
            cap.release()
