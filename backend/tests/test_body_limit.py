"""
Request Body Ceiling Test Suite

Drives ``limit_request_body`` with a hand-built ASGI receive channel so the
exact byte boundary can be checked without an HTTP client.
"""

import pytest

from starlette.requests import Request

from tubely.utils.body_limit import (
    BodySizeLimitExceeded,
    check_content_length,
    limit_request_body,
)


def _request(chunks: list[bytes], headers: dict[str, str] | None = None) -> Request:
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        return messages.pop(0)

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope, receive=receive)


class TestLimitRequestBody:
    @pytest.mark.asyncio
    async def test_body_at_limit_is_accepted(self) -> None:
        request = limit_request_body(_request([b"a" * 4, b"b" * 4, b"c" * 2]), max_bytes=10)

        assert await request.body() == b"aaaabbbbcc"

    @pytest.mark.asyncio
    async def test_one_byte_over_limit_is_rejected(self) -> None:
        request = limit_request_body(_request([b"a" * 4, b"b" * 4, b"c" * 3]), max_bytes=10)

        with pytest.raises(BodySizeLimitExceeded) as exc_info:
            await request.body()

        assert exc_info.value.limit == 10
        assert exc_info.value.received == 11

    @pytest.mark.asyncio
    async def test_stops_at_first_chunk_over_limit(self) -> None:
        seen: list[bytes] = []
        request = limit_request_body(_request([b"x" * 8, b"y" * 8, b"z" * 8]), max_bytes=10)

        with pytest.raises(BodySizeLimitExceeded):
            async for chunk in request.stream():
                seen.append(chunk)

        assert seen == [b"x" * 8]


class TestCheckContentLength:
    def test_declared_length_over_limit(self) -> None:
        with pytest.raises(BodySizeLimitExceeded) as exc_info:
            check_content_length(_request([b""], {"Content-Length": "11"}), max_bytes=10)

        assert exc_info.value.received == 11

    def test_declared_length_at_limit(self) -> None:
        check_content_length(_request([b""], {"Content-Length": "10"}), max_bytes=10)

    def test_missing_header_is_left_to_stream_check(self) -> None:
        check_content_length(_request([b""]), max_bytes=10)

    def test_invalid_header_is_ignored(self) -> None:
        check_content_length(_request([b""], {"Content-Length": "lots"}), max_bytes=10)
