"""Streaming multipart parser for report submissions.

We parse the raw body ourselves (instead of `request.form()`) because the
framework decodes text parts leniently; report fields must be rejected when
they are not valid UTF-8. Nothing is written to disk.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from python_multipart import MultipartParser
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from app.domain.exceptions import MalformedFieldError, MalformedFormError, UploadTooLargeError
from app.reports.schemas import ReportFile, ReportRequest

REPORT_TYPE_FIELD = "report_type"
DENIAL_TEXT_FIELD = "denial_text"
FILES_FIELD = "files[]"
DEFAULT_FILENAME = "file.txt"

_TEXT_FIELDS = (REPORT_TYPE_FIELD, DENIAL_TEXT_FIELD)


class _ReportFormCollector:
    """Collects the parts we care about from python-multipart callbacks."""

    def __init__(self, *, max_upload_bytes: int):
        self._max_upload_bytes = max_upload_bytes
        self._text_parts: dict[str, bytes] = {}
        self._files: list[ReportFile] = []
        self._buffered_bytes_total = 0
        self.too_large = False
        self.complete = False

        self._header_field = bytearray()
        self._header_value = bytearray()
        self._part_headers: dict[bytes, bytes] = {}
        self._part_name: str | None = None
        self._part_filename: str | None = None
        self._part_data = bytearray()

    def callbacks(self) -> dict[str, Any]:
        return {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_end": self._on_end,
        }

    def _on_part_begin(self) -> None:
        self._part_headers = {}
        self._part_name = None
        self._part_filename = None
        self._part_data = bytearray()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._part_headers[bytes(self._header_field).lower()] = bytes(self._header_value)
        self._header_field = bytearray()
        self._header_value = bytearray()

    def _on_headers_finished(self) -> None:
        # parse_options_header keeps only the last component of Windows-style paths
        # (C:\notes\visit.txt -> visit.txt), so client directories never reach the prompt.
        _, options = parse_options_header(self._part_headers.get(b"content-disposition", b""))
        name = options.get(b"name")
        self._part_name = name.decode("utf-8", errors="replace") if name is not None else None
        filename = options.get(b"filename")
        if filename:
            self._part_filename = filename.decode("utf-8", errors="replace")

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._part_name != FILES_FIELD and self._part_name not in _TEXT_FIELDS:
            return
        # Stop buffering once over the cap; the caller raises after this write.
        if self.too_large:
            return
        self._buffered_bytes_total += end - start
        if self._buffered_bytes_total > self._max_upload_bytes:
            self.too_large = True
            return
        self._part_data += data[start:end]

    def _on_part_end(self) -> None:
        if self._part_name == FILES_FIELD:
            self._files.append(
                ReportFile(
                    filename=self._part_filename or DEFAULT_FILENAME,
                    content=bytes(self._part_data),
                )
            )
        elif self._part_name in _TEXT_FIELDS:
            # Repeated text parts: last one wins.
            self._text_parts[self._part_name] = bytes(self._part_data)

    def _on_end(self) -> None:
        self.complete = True

    def build(self) -> ReportRequest:
        text: dict[str, str] = {}
        for field_name in _TEXT_FIELDS:
            raw = self._text_parts.get(field_name, b"")
            try:
                text[field_name] = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedFieldError(field_name) from exc

        return ReportRequest(
            report_type=text[REPORT_TYPE_FIELD],
            denial_text=text[DENIAL_TEXT_FIELD],
            files=tuple(self._files),
        )


async def parse_report_form(
    *,
    content_type: str | None,
    stream: AsyncIterator[bytes],
    max_upload_bytes: int,
) -> ReportRequest:
    """
    Parse a multipart report submission into a ReportRequest.

    Recognized parts: `report_type`, `denial_text` (strict UTF-8) and the
    repeatable `files[]`. Other parts are skipped without being buffered.
    Bytes of all recognized parts count towards `max_upload_bytes`, and the
    body must end with the closing boundary.
    """

    media_type, params = parse_options_header(content_type or "")
    if media_type.strip().lower() != b"multipart/form-data":
        raise MalformedFormError("Expected a multipart/form-data request body.")

    boundary = params.get(b"boundary")
    if not boundary:
        raise MalformedFormError("Multipart boundary is missing.")

    collector = _ReportFormCollector(max_upload_bytes=max_upload_bytes)
    parser = MultipartParser(boundary, collector.callbacks())

    try:
        async for chunk in stream:
            if not chunk:
                continue
            parser.write(chunk)
            if collector.too_large:
                raise UploadTooLargeError(max_upload_bytes)
        parser.finalize()
    except MultipartParseError as exc:
        raise MalformedFormError("Request body is not a valid multipart form.") from exc

    if not collector.complete:
        raise MalformedFormError("Request body ended before the closing multipart boundary.")

    return collector.build()
