"""
multipart/form-data extraction for a single uploaded file.
"""

import logging
from dataclasses import dataclass

from python_multipart import FormParser
from python_multipart.exceptions import FormParserError
from python_multipart.multipart import parse_options_header

logger = logging.getLogger()


class MalformedPayloadError(ValueError):
    """Body could not be parsed as the expected multipart form."""


class PayloadTooLargeError(ValueError):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"File is {size} bytes, limit is {limit}")
        self.size = size
        self.limit = limit


@dataclass
class UploadedFile:
    field_name: str
    file_name: str | None
    data: bytes


def extract_file(
    body: bytes, content_type: str | None, field_name: str, max_size: int
) -> UploadedFile | None:
    """Parse body and return the single file sent in field_name.

    Returns None when the field is absent or empty. Raises
    MalformedPayloadError for anything that is not a well-formed form with at
    most one file, in field_name only.
    """
    if not content_type or _media_type(content_type) != "multipart/form-data":
        raise MalformedPayloadError(f"Unsupported Content-Type: {content_type!r}")

    files = []
    finished = []
    config = {"MAX_MEMORY_FILE_SIZE": max_size + 1}
    _, options = parse_options_header(content_type)

    try:
        parser = FormParser(
            "multipart/form-data",
            _ignore_field,
            files.append,
            on_end=lambda: finished.append(True),
            boundary=options.get(b"boundary"),
            config=config,
        )
    except ValueError as exc:
        raise MalformedPayloadError(str(exc)) from exc

    try:
        parser.write(body)
        parser.finalize()
        if not finished:
            raise MalformedPayloadError("Body ended before the closing boundary")
        return _select_file(files, field_name, max_size)
    except FormParserError as exc:
        raise MalformedPayloadError(str(exc)) from exc
    finally:
        for part in files:
            part.close()


def _select_file(files, field_name: str, max_size: int) -> UploadedFile | None:
    matches = []
    for part in files:
        name = _decode(part.field_name)
        if name != field_name:
            raise MalformedPayloadError(f"Unexpected file field: {name!r}")
        matches.append(part)

    if len(matches) > 1:
        raise MalformedPayloadError(f"Expected one file in {field_name!r}, got {len(matches)}")
    if not matches:
        return None

    part = matches[0]
    if part.size > max_size:
        raise PayloadTooLargeError(part.size, max_size)

    part.file_object.seek(0)
    data = part.file_object.read()
    if not data:
        return None

    logger.info("Extracted %s bytes from field %s", len(data), field_name)
    return UploadedFile(field_name=field_name, file_name=_decode(part.file_name), data=data)


def _ignore_field(field) -> None:
    pass


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def _decode(value):
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
