"""
=============================================================================
UPLOADED FILES
=============================================================================

A file received through a multipart/form-data request: the content stream
plus what the client claimed about it (filename, media type).

=============================================================================
UPLOAD LIFECYCLE
=============================================================================

    multipart body            UploadedFile                 application
    ───────────────►  stream (spooled temp file)  ──────►  move_to(path)
                      size, error code                        │
                      client filename / type                  ▼
                                                      file on disk
                                                      (one shot: a
                                                       second move fails)

The client filename and media type are NOT trustworthy. Never use them
to build a target path without sanitizing them first.

=============================================================================
ERROR CODES
=============================================================================

The numeric codes match the ones web servers have used for uploads for
decades, so they can be passed through to clients and logs unchanged:

    0  OK          - upload succeeded
    1  INI_SIZE    - larger than the server-side limit
    2  FORM_SIZE   - larger than the form's declared limit
    3  PARTIAL     - only part of the file arrived
    4  NO_FILE     - the file input was left empty
    6  NO_TMP_DIR  - no temporary directory available
    7  CANT_WRITE  - writing the temporary file failed
    8  EXTENSION   - an extension stopped the upload

=============================================================================
"""

import logging
import os
import shutil
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

from .stream import Stream, StreamError


logger = logging.getLogger(__name__)


class UploadErrorCode(IntEnum):
    """Upload status codes (0 means success)."""

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8

    @property
    def message(self) -> str:
        return _ERROR_MESSAGES[self]


_ERROR_MESSAGES = {
    UploadErrorCode.OK: "The file uploaded successfully",
    UploadErrorCode.INI_SIZE: "The uploaded file exceeds the maximum upload size",
    UploadErrorCode.FORM_SIZE: "The uploaded file exceeds the maximum size declared by the form",
    UploadErrorCode.PARTIAL: "The uploaded file was only partially uploaded",
    UploadErrorCode.NO_FILE: "No file was uploaded",
    UploadErrorCode.NO_TMP_DIR: "Missing a temporary folder",
    UploadErrorCode.CANT_WRITE: "Failed to write file to disk",
    UploadErrorCode.EXTENSION: "A server extension stopped the file upload",
}

UPLOAD_ERR_OK = UploadErrorCode.OK
UPLOAD_ERR_INI_SIZE = UploadErrorCode.INI_SIZE
UPLOAD_ERR_FORM_SIZE = UploadErrorCode.FORM_SIZE
UPLOAD_ERR_PARTIAL = UploadErrorCode.PARTIAL
UPLOAD_ERR_NO_FILE = UploadErrorCode.NO_FILE
UPLOAD_ERR_NO_TMP_DIR = UploadErrorCode.NO_TMP_DIR
UPLOAD_ERR_CANT_WRITE = UploadErrorCode.CANT_WRITE
UPLOAD_ERR_EXTENSION = UploadErrorCode.EXTENSION


class UploadError(RuntimeError):
    """Raised when an uploaded file cannot be accessed or moved."""


class UploadedFile:
    """
    A file uploaded with the request.

    Unlike messages this object is stateful: it remembers whether it has
    been moved, and move_to() works exactly once.
    """

    def __init__(
        self,
        stream: Optional[Stream],
        size: Optional[int],
        error: int = UploadErrorCode.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ):
        """
        Args:
            stream: File content. Required when error is OK.
            size: Size in bytes as received, None if unknown.
            error: One of the UploadErrorCode values.
            client_filename: Filename sent by the client.
            client_media_type: Content-Type sent by the client.

        Raises:
            ValueError: Unknown error code, or no stream for a successful
                        upload.
        """
        try:
            self._error = UploadErrorCode(error)
        except ValueError:
            raise ValueError(f"Invalid upload error code: {error}") from None

        if self._error is UploadErrorCode.OK and not isinstance(stream, Stream):
            raise ValueError("A successful upload requires a Stream")

        self._stream = stream
        self._size = size
        self._client_filename = client_filename
        self._client_media_type = client_media_type
        self._moved = False

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_stream(self) -> Stream:
        """
        Get the stream holding the file content.

        Raises:
            UploadError: If the upload failed or the file was moved.
        """
        if self._error is not UploadErrorCode.OK:
            raise UploadError(
                f"Cannot retrieve stream due to upload error {int(self._error)}: "
                f"{self._error.message}"
            )
        if self._moved:
            raise UploadError("Cannot retrieve stream after the file has been moved")
        return self._stream

    def get_size(self) -> Optional[int]:
        return self._size

    def get_error(self) -> UploadErrorCode:
        return self._error

    def get_client_filename(self) -> Optional[str]:
        return self._client_filename

    def get_client_media_type(self) -> Optional[str]:
        return self._client_media_type

    @property
    def is_moved(self) -> bool:
        return self._moved

    # =========================================================================
    # MOVE
    # =========================================================================

    def move_to(self, target_path: Union[str, Path]) -> None:
        """
        Move the uploaded file to a new location.

        =====================================================================
        STRATEGY
        =====================================================================

            stream backed by a file on disk  →  os.replace/shutil.move
                                                (cheap rename)
            in-memory or spooled stream      →  copy into target file

        =====================================================================

        Args:
            target_path: Destination path (existing files are replaced).

        Raises:
            ValueError: If the target path is empty.
            UploadError: If the upload failed, the file was already moved,
                         the target directory is not writable, or the
                         move/copy fails.
        """
        if not target_path:
            raise ValueError("Target path must not be empty")
        if self._error is not UploadErrorCode.OK:
            raise UploadError(
                f"Cannot move file due to upload error {int(self._error)}: "
                f"{self._error.message}"
            )
        if self._moved:
            raise UploadError("Uploaded file has already been moved")

        target = Path(target_path)
        directory = target.parent
        if not directory.is_dir() or not os.access(directory, os.W_OK):
            raise UploadError(f"The target directory is not writable: {directory}")

        source_path = self._stream.get_metadata("uri")
        try:
            if source_path and os.path.isfile(source_path):
                self._stream.close()
                shutil.move(source_path, target)
            else:
                with open(target, "wb") as destination:
                    copied = self._stream.copy_to(destination)
                logger.debug(f"Copied {copied} bytes into {target}")
                self._stream.close()
        except (OSError, StreamError) as e:
            raise UploadError(f"Failed to move uploaded file to {target}: {e}") from e

        self._moved = True
        logger.info(f"Moved uploaded file {self._client_filename!r} to {target}")

    def __repr__(self) -> str:
        return (
            f"<UploadedFile filename={self._client_filename!r} "
            f"size={self._size} error={int(self._error)}>"
        )
