"""
Geometry prober for uploaded videos.

Runs ``ffprobe`` against a staged file, reads the width and height of the
first video stream and classifies the aspect ratio as landscape, portrait
or other. The comparison is an exact equality on truncated integer division
(``w == 16 * h // 9``), so 1920x1080 is landscape while 1918x1080 is other.

Each failure is reported with its own exception; none of them falls back to
``other``.
"""

import asyncio
import json
import logging
import subprocess

from pathlib import Path
from typing import Protocol

from tubely.models.video import GeometryClassification


logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """Base exception for geometry probing failures."""


class ProbeExecutionError(ProbeError):
    """ffprobe could not be started or exited with a non-zero status."""


class ProbeOutputError(ProbeError):
    """ffprobe output was not the expected JSON document."""


class NoStreamsError(ProbeError):
    """ffprobe reported no video streams for the file."""


class GeometryProber(Protocol):
    """Anything that can classify a local media file."""

    async def probe(self, path: str | Path) -> GeometryClassification: ...


def classify_aspect_ratio(width: int, height: int) -> GeometryClassification:
    """
    Classify integer dimensions.

    Example:
        ```python
        classify_aspect_ratio(1280, 720)   # GeometryClassification.LANDSCAPE
        classify_aspect_ratio(1080, 1920)  # GeometryClassification.PORTRAIT
        classify_aspect_ratio(1918, 1080)  # GeometryClassification.OTHER
        ```
    """
    if width == 16 * height // 9:
        return GeometryClassification.LANDSCAPE
    if height == 16 * width // 9:
        return GeometryClassification.PORTRAIT
    return GeometryClassification.OTHER


def parse_stream_dimensions(output: str | bytes) -> tuple[int, int]:
    """
    Extract ``(width, height)`` of the first video stream from ffprobe JSON output.

    Raises:
        ProbeOutputError: If the output is not JSON or the dimensions are not integers.
        NoStreamsError: If no video stream is reported.
    """
    try:
        document = json.loads(output)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProbeOutputError(f"Failed to parse ffprobe output: {e}") from e

    if not isinstance(document, dict):
        raise ProbeOutputError("Failed to parse ffprobe output: expected a JSON object")

    streams = document.get("streams") or []
    if not isinstance(streams, list) or not all(isinstance(s, dict) for s in streams):
        raise ProbeOutputError("Failed to parse ffprobe output: 'streams' is not a list of objects")

    # Streams without a codec_type are taken as video
    video_streams = [s for s in streams if s.get("codec_type", "video") == "video"]
    if not video_streams:
        raise NoStreamsError("No video streams found")

    first = video_streams[0]
    width = first.get("width")
    height = first.get("height")
    if type(width) is not int or type(height) is not int:
        raise ProbeOutputError(
            f"Failed to parse ffprobe output: invalid dimensions {width!r}x{height!r}"
        )
    return width, height


class FFprobeGeometryProber:
    """
    GeometryProber backed by the ffprobe executable.

    The child process is blocking and has no timeout; it runs in a worker
    thread so the event loop keeps serving other requests.
    """

    def __init__(self, ffprobe_path: str = "ffprobe") -> None:
        self.ffprobe_path = ffprobe_path

    def build_command(self, path: str | Path) -> list[str]:
        return [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]

    def _run(self, path: str | Path) -> str:
        cmd = self.build_command(path)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise ProbeExecutionError(f"Failed to run ffprobe: {e}") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ProbeExecutionError(
                f"Failed to run ffprobe: exit status {e.returncode}: {stderr}"
            ) from e
        return result.stdout

    async def probe(self, path: str | Path) -> GeometryClassification:
        """
        Classify the geometry of the media file at ``path``.

        Raises:
            ProbeExecutionError: ffprobe missing or failed
            ProbeOutputError: unparsable output
            NoStreamsError: no streams detected
        """
        output = await asyncio.to_thread(self._run, path)
        width, height = parse_stream_dimensions(output)
        classification = classify_aspect_ratio(width, height)

        logger.info(
            "Probed video geometry %dx%d as %s",
            width,
            height,
            classification.value,
            extra={"path": str(path)},
        )
        return classification
