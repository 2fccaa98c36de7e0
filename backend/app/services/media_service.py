"""
Media inspection and normalization for uploaded videos.

Two capabilities are exposed behind narrow protocols so that upload flows
(and tests) depend on behaviour rather than on the ffmpeg binaries:

- Inspector: reports the display aspect ratio of a video file (ffprobe)
- Transcoder: rewrites an MP4 so its metadata sits at the front of the file
  for progressive playback, copying streams without re-encoding (ffmpeg)

Both implementations run the external tool through a shared MediaToolRunner,
which bounds how many tool processes run at once and optionally times them
out. Any tool failure, timeout, malformed output or failed integrity check is
raised as ProcessingError.
"""

import asyncio
import json
import logging
import os

from typing import Protocol

from app.config import Settings
from app.core.errors import ProcessingError
from app.models.video import Orientation


logger = logging.getLogger(__name__)

# Suffix of the sibling file written by the transcoder
PROCESSING_SUFFIX = ".processing"

# Characters of tool stderr kept in log messages
STDERR_LOG_LIMIT = 500

_ORIENTATION_BY_RATIO: dict[str, Orientation] = {
    "16:9": Orientation.LANDSCAPE,
    "9:16": Orientation.PORTRAIT,
}


def classify_orientation(aspect_ratio: str | None) -> Orientation:
    """
    Map a display aspect ratio onto the storage-key namespace.

    "16:9" is landscape, "9:16" is portrait, and anything else (including no
    ratio at all) is other.
    """
    if aspect_ratio is None:
        return Orientation.OTHER
    return _ORIENTATION_BY_RATIO.get(aspect_ratio.strip(), Orientation.OTHER)


class Inspector(Protocol):
    async def get_aspect_ratio(self, path: str) -> str | None: ...


class Transcoder(Protocol):
    async def process_for_fast_start(self, path: str) -> str: ...


class MediaToolRunner:
    """
    Runs external media tools with bounded fan-out.

    Args:
        concurrency: Maximum number of tool processes running at once.
        timeout: Seconds before a run is killed, or None to wait indefinitely.
    """

    def __init__(self, concurrency: int = 4, timeout: float | None = None) -> None:
        self._semaphore = asyncio.Semaphore(concurrency)
        self._timeout = timeout

    async def run(self, *cmd: str) -> bytes:
        """
        Run ``cmd`` and return its stdout.

        Raises:
            ProcessingError: If the tool cannot be started, times out, or
                exits non-zero.
        """
        tool = os.path.basename(cmd[0])
        async with self._semaphore:
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
                )
            except OSError as e:
                logger.exception("Could not start %s", tool)
                raise ProcessingError(f"Could not run {tool}") from e

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
            except TimeoutError as e:
                process.kill()
                await process.wait()
                logger.error("%s timed out after %s seconds", tool, self._timeout)
                raise ProcessingError(f"{tool} timed out") from e

        if process.returncode != 0:
            logger.error(
                "%s exited with status %s: %s",
                tool,
                process.returncode,
                stderr.decode("utf-8", errors="ignore")[:STDERR_LOG_LIMIT],
            )
            raise ProcessingError(f"{tool} failed with exit status {process.returncode}")
        return stdout


class FFprobeInspector:
    """Reads the first stream's ``display_aspect_ratio`` with ffprobe."""

    def __init__(self, runner: MediaToolRunner, ffprobe_path: str = "ffprobe") -> None:
        self._runner = runner
        self._ffprobe_path = ffprobe_path

    async def get_aspect_ratio(self, path: str) -> str | None:
        output = await self._runner.run(
            self._ffprobe_path, "-v", "error", "-print_format", "json", "-show_streams", path
        )
        try:
            probe = json.loads(output)
        except json.JSONDecodeError as e:
            logger.error("ffprobe produced unparsable output for %s", path)
            raise ProcessingError("Error determining aspect ratio") from e

        if not isinstance(probe, dict):
            raise ProcessingError("Error determining aspect ratio")
        streams = probe.get("streams")
        if streams is None:
            return None
        if not isinstance(streams, list):
            raise ProcessingError("Error determining aspect ratio")
        if not streams or not isinstance(streams[0], dict):
            return None

        ratio = streams[0].get("display_aspect_ratio")
        return ratio if isinstance(ratio, str) else None


class FFmpegTranscoder:
    """Moves the MP4 ``moov`` atom to the front with ``-movflags faststart``."""

    def __init__(self, runner: MediaToolRunner, ffmpeg_path: str = "ffmpeg") -> None:
        self._runner = runner
        self._ffmpeg_path = ffmpeg_path

    async def process_for_fast_start(self, path: str) -> str:
        """
        Write a fast-start copy of ``path`` to ``<path>.processing``.

        Returns:
            str: The output path. The caller owns the file and removes it.

        Raises:
            ProcessingError: If ffmpeg fails, or the output is missing or empty.
        """
        output_path = path + PROCESSING_SUFFIX
        await self._runner.run(
            self._ffmpeg_path,
            "-i",
            path,
            "-movflags",
            "faststart",
            "-codec",
            "copy",
            "-f",
            "mp4",
            output_path,
        )

        try:
            size = os.path.getsize(output_path)
        except OSError as e:
            logger.error("ffmpeg reported success but %s is missing", output_path)
            raise ProcessingError("Error processing video: output file missing") from e
        if size == 0:
            logger.error("ffmpeg produced an empty file at %s", output_path)
            raise ProcessingError("Error processing video: output file is empty")
        return output_path


def build_media_tools(settings: Settings) -> tuple[FFprobeInspector, FFmpegTranscoder]:
    """Create an inspector and transcoder sharing one concurrency bound."""
    runner = MediaToolRunner(
        concurrency=settings.media_tool_concurrency,
        timeout=settings.media_tool_timeout_seconds,
    )
    return (
        FFprobeInspector(runner, settings.ffprobe_path),
        FFmpegTranscoder(runner, settings.ffmpeg_path),
    )
