"""
=============================================================================
MULTIPART/FORM-DATA PARSING
=============================================================================

Turns a multipart request body into form fields and UploadedFile objects.

=============================================================================
MULTIPART BODY STRUCTURE
=============================================================================

    Content-Type: multipart/form-data; boundary=XyZ

    --XyZ\r\n
    Content-Disposition: form-data; name="title"\r\n
    \r\n
    Holiday\r\n                                   ← field "title"
    --XyZ\r\n
    Content-Disposition: form-data; name="photo"; filename="beach.jpg"\r\n
    Content-Type: image/jpeg\r\n
    \r\n
    <binary data>\r\n                             ← file "photo"
    --XyZ--\r\n

The low-level python-multipart parser calls back for every header and
every slice of part data, so file content is written straight into a
spooled temporary stream and never held as one big bytes object.

=============================================================================
"""

import logging
from typing import Any, Dict, Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser as LowLevelParser
from python_multipart.multipart import parse_options_header

from .exceptions import RequestParseError
from .forms import add_value
from .stream import DEFAULT_CHUNK_SIZE, Stream
from .uploaded_file import UploadedFile, UploadErrorCode


logger = logging.getLogger(__name__)


def get_boundary(content_type: str) -> bytes:
    """
    Extract the boundary parameter of a multipart Content-Type.

    Raises:
        RequestParseError: If there is no boundary.
    """
    _, params = parse_options_header(content_type)
    boundary = params.get(b"boundary")
    if not boundary:
        raise RequestParseError("Multipart request is missing a boundary")
    return boundary


class MultipartParser:
    """
    Synchronous multipart/form-data parser producing fields and uploads.

    Usage:
        parser = MultipartParser(boundary, charset="utf-8")
        fields, files = parser.parse(body_stream)
    """

    def __init__(
        self,
        boundary: bytes,
        charset: str = "utf-8",
        spool_size: int = 1024 * 1024,
        max_upload_size: Optional[int] = None,
        upload_dir: Optional[str] = None,
    ):
        if not boundary:
            raise ValueError("Boundary is required for MultipartParser")
        self.boundary = boundary
        self.charset = charset
        self.spool_size = spool_size
        self.max_upload_size = max_upload_size
        self.upload_dir = upload_dir

        self.fields: Dict[str, Any] = {}
        self.files: Dict[str, Any] = {}

        self._callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_begin": self._on_header_begin,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
        }

        # Current header
        self._header_name = bytearray()
        self._header_value = bytearray()

        # Current part
        self._part_headers: Dict[str, str] = {}
        self._part_name: Optional[str] = None
        self._part_filename: Optional[str] = None
        self._part_stream: Optional[Stream] = None
        self._part_value = bytearray()
        self._part_size = 0
        self._part_oversized = False

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def parse(self, body: Stream, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Parse the whole body.

        Args:
            body: Request body stream (read from its current position).
            chunk_size: Bytes fed to the parser per iteration.

        Returns:
            Tuple of (fields, files); both map names to a value or a list
            of values (see forms.add_value).

        Raises:
            RequestParseError: If the body is not valid multipart data.
        """
        self.fields = {}
        self.files = {}
        parser = LowLevelParser(self.boundary, self._callbacks)
        try:
            for chunk in body.iter_chunks(chunk_size):
                parser.write(chunk)
            parser.finalize()
        except MultipartParseError as e:
            self._close_streams()
            raise RequestParseError(f"Malformed multipart body: {e}") from e

        logger.debug(
            f"Parsed multipart body: {len(self.fields)} field(s), "
            f"{len(self.files)} file field(s)"
        )
        return self.fields, self.files

    # =========================================================================
    # HEADER CALLBACKS
    # =========================================================================

    def _on_header_begin(self):
        self._header_name.clear()
        self._header_value.clear()

    def _on_header_field(self, data: bytes, start: int, end: int):
        self._header_name.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int):
        self._header_value.extend(data[start:end])

    def _on_header_end(self):
        # latin-1 round-trips the raw bytes; parameters are decoded with
        # the form charset once they are split out
        name = self._header_name.decode("latin-1").strip().lower()
        value = self._header_value.decode("latin-1").strip()
        if name:
            self._part_headers[name] = value

    def _on_headers_finished(self):
        disposition = self._part_headers.get("content-disposition", "")
        _, params = parse_options_header(disposition)

        name = params.get(b"name")
        self._part_name = name.decode(self.charset, errors="replace") if name else None

        if b"filename" in params:
            self._part_filename = params[b"filename"].decode(self.charset, errors="replace")
            self._part_stream = Stream.temporary(self.spool_size, self.upload_dir)

    # =========================================================================
    # PART CALLBACKS
    # =========================================================================

    def _on_part_begin(self):
        self._part_headers = {}
        self._part_name = None
        self._part_filename = None
        self._part_stream = None
        self._part_value = bytearray()
        self._part_size = 0
        self._part_oversized = False

    def _on_part_data(self, data: bytes, start: int, end: int):
        self._part_size += end - start
        if self._part_stream is None:
            self._part_value.extend(data[start:end])
            return
        if self._part_oversized:
            return
        if self.max_upload_size is not None and self._part_size > self.max_upload_size:
            self._part_oversized = True
            self._part_stream.close()
            return
        self._part_stream.write(data[start:end])

    def _on_part_end(self):
        if self._part_name is None:
            logger.debug("Skipping multipart part without a name")
            if self._part_stream is not None:
                self._part_stream.close()
            return

        if self._part_stream is None:
            value = self._part_value.decode(self.charset, errors="replace")
            add_value(self.fields, self._part_name, value)
            return

        add_value(self.files, self._part_name, self._build_upload())

    def _close_streams(self):
        """Release every spooled file stream of an abandoned parse."""
        if self._part_stream is not None:
            self._part_stream.close()
        for value in self.files.values():
            for upload in value if isinstance(value, list) else [value]:
                if upload.get_error() == UploadErrorCode.OK:
                    upload.get_stream().close()

    def _build_upload(self) -> UploadedFile:
        media_type = self._part_headers.get("content-type")

        if not self._part_filename and self._part_size == 0:
            self._part_stream.close()
            return UploadedFile(
                None, 0, UploadErrorCode.NO_FILE, self._part_filename, media_type
            )

        if self._part_oversized:
            logger.warning(
                f"Upload {self._part_filename!r} exceeds {self.max_upload_size} bytes"
            )
            return UploadedFile(
                None,
                self._part_size,
                UploadErrorCode.INI_SIZE,
                self._part_filename,
                media_type,
            )

        self._part_stream.rewind()
        return UploadedFile(
            self._part_stream,
            self._part_size,
            UploadErrorCode.OK,
            self._part_filename,
            media_type,
        )
