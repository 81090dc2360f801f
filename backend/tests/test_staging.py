"""
Staged File Test Suite
"""

from pathlib import Path

import pytest

from tubely.services.staging import remove_quietly, staged_file


@pytest.mark.asyncio
async def test_chunks_are_written_in_order_and_rewound(tmp_path: Path) -> None:
    chunks = [b"0123456789" * 10, b"abc", b"", b"xyz" * 50]

    async with staged_file(suffix=".mp4", directory=str(tmp_path)) as staged:
        for chunk in chunks:
            await staged.write(chunk)
        await staged.rewind()

        assert staged.size == sum(len(c) for c in chunks)
        assert staged.path.suffix == ".mp4"
        assert staged.path.read_bytes() == b"".join(chunks)
        assert await staged.read() == b"".join(chunks)


@pytest.mark.asyncio
async def test_write_reports_bytes_written(tmp_path: Path) -> None:
    async with staged_file(directory=str(tmp_path)) as staged:
        assert await staged.write(b"hello") == 5
        assert staged.size == 5


@pytest.mark.asyncio
async def test_seek_allows_rereading(tmp_path: Path) -> None:
    async with staged_file(directory=str(tmp_path)) as staged:
        await staged.write(b"abcdef")
        await staged.rewind()
        await staged.read()
        await staged.seek(2)

        assert await staged.read(2) == b"cd"


@pytest.mark.asyncio
async def test_file_removed_after_block(tmp_path: Path) -> None:
    async with staged_file(directory=str(tmp_path)) as staged:
        await staged.write(b"data")
        path = staged.path

    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_file_removed_when_block_raises(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        async with staged_file(directory=str(tmp_path)) as staged:
            path = staged.path
            raise RuntimeError("probe failed")

    assert not path.exists()


@pytest.mark.asyncio
async def test_remove_quietly_tolerates_missing_and_none(tmp_path: Path) -> None:
    await remove_quietly(None)
    await remove_quietly(tmp_path / "never-created.mp4.processing")

    leftover = tmp_path / "leftover"
    leftover.write_bytes(b"x")
    await remove_quietly(leftover)
    await remove_quietly(leftover)

    assert not leftover.exists()
