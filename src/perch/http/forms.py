"""Form data parsing for URL-encoded and multipart bodies.

``FormData`` offers the same multi-value access as ``Headers`` and
``QueryParams``. URL-encoded bodies use stdlib ``urllib.parse``;
``python-multipart`` is an optional dependency (``pip install perch[forms]``).
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl

from perch.errors import ConfigurationError
from perch.http.multidict import MultiDict, pairs_of

URLENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"

_URLENCODED_RE = re.compile(r"^application/x-www-form-urlencoded\s*(?:;|$)", re.IGNORECASE)
_MULTIPART_RE = re.compile(r"^multipart/form-data\s*(?:;|$)", re.IGNORECASE)


def is_form_content_type(content_type: str | None, *, multipart: bool = True) -> bool:
    """Whether *content_type* is a form encoding a browser submits.

    Parameters after the media type (``; charset=utf-8``) are allowed.
    """
    if not content_type:
        return False
    if _URLENCODED_RE.match(content_type):
        return True
    return multipart and _MULTIPART_RE.match(content_type) is not None


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    The content is held in memory, which suits typical page forms.
    """

    filename: str
    content_type: str
    size: int
    _content: bytes

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self._content

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(MultiDict):
    """Parsed form fields plus uploaded files.

    ``form["name"]`` is the first value; ``get_list`` returns all of them
    (checkboxes, multi-selects).
    """

    __slots__ = ("files",)

    def __init__(
        self,
        fields: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        files: Mapping[str, UploadFile] | None = None,
    ) -> None:
        super().__init__(pairs_of(fields))
        self.files: Mapping[str, UploadFile] = files or {}


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into ``FormData``.

    Raises:
        ValueError: If *content_type* is not a form encoding.
        ConfigurationError: If multipart parsing is needed but
            ``python-multipart`` is not installed.
    """
    if _URLENCODED_RE.match(content_type):
        return FormData(parse_qsl(body.decode("utf-8"), keep_blank_values=True))

    if _MULTIPART_RE.match(content_type):
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    """Parse multipart form data using python-multipart."""
    try:
        from python_multipart.multipart import MultipartParser, parse_options_header
    except ImportError:
        msg = (
            "Multipart form parsing requires the 'python-multipart' package. "
            "Install it with: pip install perch[forms]"
        )
        raise ConfigurationError(msg) from None

    _, options = parse_options_header(content_type)
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    fields: list[tuple[str, str]] = []
    files: dict[str, UploadFile] = {}

    headers: dict[str, str] = {}
    field = bytearray()
    value = bytearray()
    content = bytearray()

    def on_part_begin() -> None:
        headers.clear()
        content.clear()

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        field.extend(chunk[start:end])

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        value.extend(chunk[start:end])

    def on_header_end() -> None:
        headers[field.decode("latin-1").lower()] = value.decode("latin-1")
        field.clear()
        value.clear()

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        content.extend(chunk[start:end])

    def on_part_end() -> None:
        _, params = parse_options_header(headers.get("content-disposition", ""))
        name = params.get(b"name")
        if name is None:
            return
        filename = params.get(b"filename")
        if filename is not None:
            raw = bytes(content)
            files[name.decode("utf-8")] = UploadFile(
                filename=filename.decode("utf-8"),
                content_type=headers.get("content-type", "application/octet-stream"),
                size=len(raw),
                _content=raw,
            )
        else:
            fields.append((name.decode("utf-8"), content.decode("utf-8", errors="replace")))

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()

    return FormData(fields, files)
