"""
Request body ceilings for upload endpoints.

Two layers enforce a ceiling on the *whole* request body:

- ``check_content_length`` rejects a declared Content-Length above the limit
  before the transfer starts.
- ``limit_request_body`` wraps the ASGI receive channel so that the message
  which would take the body past the limit raises instead of being handed to
  the streaming multipart reader. Chunked or mis-declared bodies are therefore stopped
  too, and nothing beyond the limit ever reaches disk.
"""

import logging

from starlette.requests import Request
from starlette.types import Message


logger = logging.getLogger(__name__)


class BodySizeLimitExceeded(Exception):
    """Raised when a request body is larger than the allowed ceiling."""

    def __init__(self, limit: int, received: int | None = None) -> None:
        self.limit = limit
        self.received = received
        super().__init__(f"Request body exceeds {limit} bytes")


def check_content_length(request: Request, max_bytes: int) -> None:
    """
    Validate the Content-Length header against ``max_bytes``.

    An invalid header is ignored here; the streaming check still applies.

    Raises:
        BodySizeLimitExceeded: If the declared length is above the ceiling.
    """
    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        declared = int(content_length)
    except ValueError:
        logger.warning("Ignoring invalid Content-Length header: %r", content_length)
        return
    if declared > max_bytes:
        raise BodySizeLimitExceeded(max_bytes, declared)


def limit_request_body(request: Request, max_bytes: int) -> Request:
    """
    Return a view of ``request`` whose body stream stops at ``max_bytes``.

    A body of exactly ``max_bytes`` is accepted; one more byte raises
    BodySizeLimitExceeded from inside ``request.stream()``.

    Example:
        ```python
        capped = limit_request_body(request, 10 << 20)
        async for chunk in capped.stream():
            ...
        ```
    """
    receive = request.receive
    received = 0

    async def capped_receive() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise BodySizeLimitExceeded(max_bytes, received)
        return message

    return Request(request.scope, receive=capped_receive)
