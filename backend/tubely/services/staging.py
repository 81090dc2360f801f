"""
Request-scoped temporary files for uploads.

A StagedFile is created just before the first write, filled with the
uploaded part chunk by chunk as it arrives, then flushed and rewound to
offset 0 so that later readers (ffprobe, ffmpeg, the object store client)
see the complete content. The ``staged_file`` context manager removes it
when the request leaves the block, whatever the outcome.
"""

import logging
import os
import tempfile

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
import aiofiles.os


logger = logging.getLogger(__name__)


class StagedFile:
    """
    A temporary file owned by one upload request.

    Attributes:
        path: Location on local disk
        size: Bytes written so far
    """

    def __init__(self, path: Path, handle) -> None:
        self.path = path
        self.size = 0
        self._handle = handle

    async def write(self, data: bytes) -> int:
        """Append a chunk of the uploaded part; returns the number of bytes written."""
        written = await self._handle.write(data)
        self.size += written
        return written

    async def rewind(self) -> None:
        """Flush pending writes and return to offset 0 for the next reader."""
        await self._handle.flush()
        await self._handle.seek(0)

    async def read(self, size: int = -1) -> bytes:
        """Read from the current position of the staged file."""
        return await self._handle.read(size)

    async def seek(self, offset: int) -> int:
        return await self._handle.seek(offset)


async def remove_quietly(path: str | Path | None) -> None:
    """
    Delete a temporary file, ignoring files that do not exist.

    Safe to call twice or for a path that was never created. Other OS errors
    are logged but not raised: cleanup must not mask the request's outcome.
    """
    if path is None:
        return
    try:
        await aiofiles.os.remove(path)
        logger.debug("Removed temporary file: %s", path)
    except FileNotFoundError:
        pass
    except OSError as cleanup_error:
        logger.warning("Failed to remove temporary file '%s': %s", path, cleanup_error)


@asynccontextmanager
async def staged_file(
    suffix: str = "",
    prefix: str = "tubely-upload-",
    directory: str | None = None,
) -> AsyncIterator[StagedFile]:
    """
    Create a StagedFile and guarantee its removal.

    Example:
        ```python
        async with staged_file(suffix=".mp4") as staged:
            for chunk in chunks:
                await staged.write(chunk)
            await staged.rewind()
            classification = await prober.probe(staged.path)
        # staged.path no longer exists here
        ```
    """
    fd, name = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        async with aiofiles.open(path, "w+b") as handle:
            yield StagedFile(path, handle)
    finally:
        await remove_quietly(path)
