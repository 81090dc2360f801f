"""
Streaming reader for one file part of a multipart/form-data body.

``Request.form()`` spools every file part into a temporary file before the
handler sees it. Upload endpoints instead feed ``request.stream()`` to
python-multipart's ``MultipartParser`` and hand the wanted part's headers to
the caller as soon as they are parsed. The caller decides whether to accept
the part (and where to write it) before any byte of its content is stored.

Parts other than the requested file part are discarded.
"""

import logging

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import Request


logger = logging.getLogger(__name__)

MULTIPART_FORM_DATA = b"multipart/form-data"


class MultipartStreamError(Exception):
    """Raised when the multipart body is malformed or ends inside the file part."""


@dataclass(frozen=True)
class FilePartInfo:
    """Headers of a file part, available before its content is read."""

    field_name: str
    filename: str
    content_type: str | None


class PartSink(Protocol):
    """Destination for the content of the accepted file part."""

    async def write(self, data: bytes) -> int: ...


@dataclass(frozen=True)
class ReceivedFilePart:
    info: FilePartInfo
    sink: PartSink
    size: int


def _decode(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


class MultipartFileReader:
    """
    Extract the first file part named ``field_name`` from a request body.

    Parser callbacks are synchronous, so they only queue events; the events
    are applied with ``await`` after each chunk, the same way Starlette's own
    form parser writes file data.

    Example:
        ```python
        async def open_sink(info: FilePartInfo) -> PartSink:
            check_allowed(info.content_type)  # raise to reject the part
            return await stack.enter_async_context(staged_file())

        part = await MultipartFileReader("video").read(request, open_sink)
        ```
    """

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        self._header_name = b""
        self._header_value = b""
        self._part_headers: dict[bytes, bytes] = {}
        self._in_target = False
        self._target_seen = False
        self._events: list[tuple[str, object]] = []

    # -------------------------------------------------------------------------
    # Parser callbacks
    # -------------------------------------------------------------------------

    def on_part_begin(self) -> None:
        self._part_headers = {}
        self._in_target = False

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._part_headers[self._header_name.lower()] = self._header_value
        self._header_name = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self._part_headers.get(b"content-disposition"))
        if b"name" not in options:
            raise MultipartStreamError('The Content-Disposition header field "name" must be provided.')

        if self._target_seen or b"filename" not in options:
            return
        if _decode(options[b"name"]) != self.field_name:
            return

        content_type = self._part_headers.get(b"content-type")
        info = FilePartInfo(
            field_name=self.field_name,
            filename=_decode(options[b"filename"]),
            content_type=_decode(content_type) if content_type is not None else None,
        )
        self._in_target = True
        self._target_seen = True
        self._events.append(("open", info))

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._in_target:
            self._events.append(("data", data[start:end]))

    def on_part_end(self) -> None:
        if self._in_target:
            self._events.append(("close", None))
            self._in_target = False

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    async def read(
        self,
        request: Request,
        open_sink: Callable[[FilePartInfo], Awaitable[PartSink]],
    ) -> ReceivedFilePart | None:
        """
        Stream the body, writing the requested file part into the sink returned
        by ``open_sink``.

        Returns:
            ReceivedFilePart, or None when the body is not multipart/form-data
            or has no file part named ``field_name``.

        Raises:
            MultipartStreamError: Malformed body, or a body that ends before the
                file part is complete.
            Exception: Whatever ``open_sink``, ``sink.write`` or the request
                stream raise, unchanged.
        """
        content_type, params = parse_options_header(request.headers.get("content-type"))
        if content_type != MULTIPART_FORM_DATA:
            return None
        boundary = params.get(b"boundary")
        if not boundary:
            raise MultipartStreamError("Missing boundary in multipart.")

        parser = MultipartParser(
            boundary,
            {
                "on_part_begin": self.on_part_begin,
                "on_part_data": self.on_part_data,
                "on_part_end": self.on_part_end,
                "on_header_field": self.on_header_field,
                "on_header_value": self.on_header_value,
                "on_header_end": self.on_header_end,
                "on_headers_finished": self.on_headers_finished,
            },
        )

        info: FilePartInfo | None = None
        sink: PartSink | None = None
        size = 0
        complete = False

        async for chunk in request.stream():
            try:
                parser.write(chunk)
            except MultipartParseError as e:
                raise MultipartStreamError(f"Couldn't parse multipart body: {e}") from e

            for kind, payload in self._events:
                if kind == "open":
                    info = payload
                    sink = await open_sink(info)
                elif kind == "data":
                    size += await sink.write(payload)
                else:
                    complete = True
            self._events.clear()

        parser.finalize()

        if info is None:
            return None
        if not complete:
            raise MultipartStreamError(f"Body ended inside file part '{self.field_name}'")

        logger.debug(
            "Received file part",
            extra={"field": info.field_name, "filename": info.filename, "size": size},
        )
        return ReceivedFilePart(info=info, sink=sink, size=size)
