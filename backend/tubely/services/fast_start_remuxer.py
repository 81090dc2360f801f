"""
Fast-start remuxer for uploaded videos.

Rewrites an MP4 so that its index (the ``moov`` atom) sits before the media
data, letting players start progressive playback before the whole file has
downloaded. Streams are copied, never re-encoded.

The output is written next to the input as ``<input>.processing``. A tool
failure or an empty output file is an error, and the partial output is
removed before the error is raised.
"""

import asyncio
import logging
import subprocess

from pathlib import Path
from typing import Protocol


logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processing"


class RemuxError(Exception):
    """Base exception for fast-start remux failures."""


class RemuxExecutionError(RemuxError):
    """ffmpeg could not be started or exited with a non-zero status."""


class EmptyRemuxOutputError(RemuxError):
    """ffmpeg reported success but produced no output bytes."""


class FastStartRemuxer(Protocol):
    """Anything that can produce a fast-start copy of a local media file."""

    async def remux(self, path: str | Path) -> Path: ...


def processed_path_for(path: str | Path) -> Path:
    """Return the sibling path the remuxed output is written to."""
    path = Path(path)
    return path.with_name(path.name + PROCESSED_SUFFIX)


class FFmpegFastStartRemuxer:
    """FastStartRemuxer backed by the ffmpeg executable."""

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self.ffmpeg_path = ffmpeg_path

    def build_command(self, input_path: str | Path, output_path: str | Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-i",
            str(input_path),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            str(output_path),
        ]

    def _run(self, input_path: Path, output_path: Path) -> None:
        cmd = self.build_command(input_path, output_path)
        try:
            subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, text=True, check=True)
        except FileNotFoundError as e:
            raise RemuxExecutionError(f"Error processing video: {e}") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise RemuxExecutionError(
                f"Error processing video: exit status {e.returncode}: {stderr}"
            ) from e

        try:
            size = output_path.stat().st_size
        except FileNotFoundError as e:
            raise EmptyRemuxOutputError("Processed file was not created") from e
        if size == 0:
            raise EmptyRemuxOutputError("Processed file is empty")

    async def remux(self, path: str | Path) -> Path:
        """
        Produce a fast-start copy of ``path``.

        Returns:
            Path: Location of the processed file. The caller owns it and must
                delete it.

        Raises:
            RemuxExecutionError: ffmpeg missing or failed
            EmptyRemuxOutputError: output missing or zero-length
        """
        input_path = Path(path)
        output_path = processed_path_for(input_path)
        try:
            await asyncio.to_thread(self._run, input_path, output_path)
        except RemuxError:
            output_path.unlink(missing_ok=True)
            raise

        logger.info(
            "Remuxed video for fast start",
            extra={"path": str(input_path), "output_path": str(output_path)},
        )
        return output_path
