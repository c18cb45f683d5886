"""
=============================================================================
STREAM - BYTE-ORIENTED BODY RESOURCE
=============================================================================

Wraps a binary file-like object (in-memory buffer, open file, temporary file)
behind a small, predictable API used for every message body.

=============================================================================
STREAM ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          STREAM                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    resource:  io.BytesIO / open(path, "rb") / TemporaryFile         │
    │                                                                      │
    │    ┌──────────────────────────────────────────────────────┐         │
    │    │ H │ e │ l │ l │ o │   │ w │ o │ r │ l │ d │           │         │
    │    └──────────────────────────────────────────────────────┘         │
    │      ▲                   ▲                       ▲                  │
    │      │                   │                       │                  │
    │   rewind()            tell() == 5             eof() is True         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The stream is the only MUTABLE part of an HTTP message. Messages are
copied on every with_*() call, but the copies share the same Stream
instance, exactly like a cloned PSR-7 message shares its body.

=============================================================================
FAILURE MODES
=============================================================================

    detached / closed resource   → StreamError
    seek on unseekable resource  → StreamError
    read on write-only resource  → StreamError
    write on read-only resource  → StreamError
    negative read length         → ValueError
    unknown whence value         → ValueError

str(stream) / bytes(stream) never raise: they return an empty value
when the stream cannot be read.

=============================================================================
"""

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Optional, Union


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 8192

_WHENCE_VALUES = (os.SEEK_SET, os.SEEK_CUR, os.SEEK_END)


class StreamError(RuntimeError):
    """
    Raised when a stream operation cannot be performed.

    Covers misuse of a detached or closed resource as well as
    operations the resource does not support (seek, read, write).
    """


class Stream:
    """
    A readable/writable/seekable view over a binary resource.

    =========================================================================
    CONSTRUCTION
    =========================================================================

        Stream()                          # empty in-memory buffer
        Stream(open("photo.png", "rb"))   # wrap an existing file object
        Stream.from_bytes(b"payload")     # buffer pre-filled and rewound
        Stream.from_file("notes.txt")     # open a path
        Stream.temporary()                # spooled temporary file

    =========================================================================
    CAPABILITIES
    =========================================================================

    Capabilities are probed from the resource itself (readable(),
    writable(), seekable()), falling back to the mode string when the
    resource does not implement the io interface.

    =========================================================================
    """

    def __init__(
        self,
        resource: Optional[BinaryIO] = None,
        mode: Optional[str] = None,
        *,
        size: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """
        Wrap a binary resource.

        Args:
            resource: File-like object. An in-memory buffer is created
                      when omitted.
            mode: Mode string describing the resource ("rb", "w+b", ...).
                  Read from resource.mode when not given.
            size: Known size in bytes, used until the next write.
            metadata: Extra metadata entries returned by get_metadata().
        """
        if resource is None:
            resource = io.BytesIO()
            mode = mode or "w+b"

        self._resource: Optional[BinaryIO] = resource
        self._mode = mode or str(getattr(resource, "mode", ""))
        self._size = size
        self._metadata = dict(metadata or {})
        self._eof = False

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def from_bytes(cls, content: Union[bytes, str] = b"") -> "Stream":
        """
        Create an in-memory stream holding `content`, positioned at 0.

        Strings are encoded as UTF-8.
        """
        stream = cls()
        if content:
            stream.write(content)
            stream.rewind()
        return stream

    @classmethod
    def from_file(cls, path: Union[str, Path], mode: str = "rb") -> "Stream":
        """
        Open a file on disk and wrap it.

        Text modes are not supported; a "b" is added to the mode when
        missing so reads always return bytes.

        Raises:
            StreamError: If the file cannot be opened.
        """
        if "b" not in mode:
            mode += "b"
        try:
            resource = open(path, mode)
        except OSError as e:
            raise StreamError(f"Unable to open {path}: {e}") from e
        return cls(resource, mode, metadata={"uri": str(path)})

    @classmethod
    def temporary(
        cls,
        spool_size: int = 1024 * 1024,
        directory: Optional[str] = None,
    ) -> "Stream":
        """
        Create a spooled temporary stream.

        Data stays in memory until it exceeds `spool_size` bytes, then
        rolls over to a temporary file in `directory` (system default
        when None). This is the php://temp equivalent.
        """
        resource = tempfile.SpooledTemporaryFile(
            max_size=spool_size, mode="w+b", dir=directory
        )
        return cls(resource, "w+b")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def closed(self) -> bool:
        """True once the stream has been detached or its resource closed."""
        if self._resource is None:
            return True
        return bool(getattr(self._resource, "closed", False))

    def _require_resource(self) -> BinaryIO:
        if self._resource is None:
            raise StreamError("Stream is detached")
        if getattr(self._resource, "closed", False):
            raise StreamError("Stream is closed")
        return self._resource

    def _capability(self, probe_name: str, mode_chars: str) -> bool:
        if self.closed:
            return False
        probe = getattr(self._resource, probe_name, None)
        if callable(probe):
            try:
                return bool(probe())
            except (ValueError, OSError):
                return False
        return any(char in self._mode for char in mode_chars)

    def is_readable(self) -> bool:
        return self._capability("readable", "r+")

    def is_writable(self) -> bool:
        return self._capability("writable", "wax+")

    def is_seekable(self) -> bool:
        if self.closed:
            return False
        probe = getattr(self._resource, "seekable", None)
        if callable(probe):
            try:
                return bool(probe())
            except (ValueError, OSError):
                return False
        return hasattr(self._resource, "seek")

    def get_size(self) -> Optional[int]:
        """
        Get the size of the stream in bytes.

        =====================================================================
        SIZE RESOLUTION ORDER
        =====================================================================

            1. Cached size (constructor argument, cleared by write())
            2. In-memory buffer length (BytesIO.getbuffer())
            3. Seek to end and back (seekable resources)
            4. os.fstat() on the file descriptor (pipes, sockets)

        =====================================================================

        Returns:
            Size in bytes, or None when it cannot be determined.
        """
        if self._size is not None:
            return self._size
        if self.closed:
            return None

        resource = self._resource
        if isinstance(resource, io.BytesIO):
            with resource.getbuffer() as view:
                self._size = view.nbytes
            return self._size

        if self.is_seekable():
            try:
                position = resource.tell()
                end = resource.seek(0, os.SEEK_END)
                resource.seek(position)
            except (OSError, ValueError):
                return None
            self._size = end
            return end

        try:
            self._size = os.fstat(resource.fileno()).st_size
        except (AttributeError, OSError, ValueError, io.UnsupportedOperation):
            return None
        return self._size

    def tell(self) -> int:
        """
        Get the current position of the read/write pointer.

        Raises:
            StreamError: If the stream is detached or the position
                         cannot be determined.
        """
        resource = self._require_resource()
        try:
            return resource.tell()
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to determine stream position: {e}") from e

    def eof(self) -> bool:
        """
        Check whether the pointer is at the end of the stream.

        A detached stream is always at EOF. Otherwise EOF is reached once a
        read came back empty, or when the position is at or past the known
        size.
        """
        if self.closed:
            return True
        if self._eof:
            return True
        size = self.get_size()
        if size is None or not self.is_seekable():
            return False
        return self.tell() >= size

    # =========================================================================
    # POSITIONING
    # =========================================================================

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        """
        Move the pointer.

        Args:
            offset: Byte offset.
            whence: os.SEEK_SET, os.SEEK_CUR or os.SEEK_END.

        Raises:
            ValueError: If whence is not one of the three SEEK_* values.
            StreamError: If the stream is detached, unseekable, or the
                         seek fails.
        """
        if whence not in _WHENCE_VALUES:
            raise ValueError(f"Invalid whence value: {whence}")
        resource = self._require_resource()
        if not self.is_seekable():
            raise StreamError("Stream is not seekable")
        try:
            resource.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise StreamError(
                f"Unable to seek to offset {offset} (whence={whence}): {e}"
            ) from e
        self._eof = False

    def rewind(self) -> None:
        """Seek to the beginning of the stream."""
        self.seek(0)

    # =========================================================================
    # READ / WRITE
    # =========================================================================

    def read(self, length: int) -> bytes:
        """
        Read up to `length` bytes.

        Fewer bytes may come back than asked for, even before the end.
        Only an empty read marks the stream as at EOF.

        Raises:
            ValueError: If length is negative.
            StreamError: If the stream is detached, unreadable or the
                         read fails.
        """
        if length < 0:
            raise ValueError(f"Length must be non-negative, got {length}")
        resource = self._require_resource()
        if not self.is_readable():
            raise StreamError("Stream is not readable")
        if length == 0:
            return b""
        try:
            data = resource.read(length)
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to read from stream: {e}") from e
        data = _as_bytes(data)
        if not data:
            self._eof = True
        return data

    def write(self, content: Union[bytes, str]) -> int:
        """
        Write bytes at the current position.

        Args:
            content: Bytes to write. Strings are encoded as UTF-8.

        Returns:
            Number of bytes written.

        Raises:
            StreamError: If the stream is detached, unwritable or the
                         write fails.
        """
        resource = self._require_resource()
        if not self.is_writable():
            raise StreamError("Stream is not writable")
        data = _as_bytes(content)
        try:
            written = resource.write(data)
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to write to stream: {e}") from e
        self._size = None
        return len(data) if written is None else written

    def get_contents(self) -> bytes:
        """
        Read everything from the current position to the end.

        Raises:
            StreamError: If the stream is detached, unreadable or the
                         read fails.
        """
        resource = self._require_resource()
        if not self.is_readable():
            raise StreamError("Stream is not readable")
        try:
            data = resource.read()
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to read stream contents: {e}") from e
        self._eof = True
        return _as_bytes(data)

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the remaining content in chunks of at most `chunk_size` bytes."""
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def copy_to(self, destination: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """
        Copy the whole stream (from the beginning when seekable) into
        another binary file object.

        Returns:
            Number of bytes copied.
        """
        if self.is_seekable():
            self.rewind()
        copied = 0
        for chunk in self.iter_chunks(chunk_size):
            destination.write(chunk)
            copied += len(chunk)
        return copied

    # =========================================================================
    # METADATA
    # =========================================================================

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Get stream metadata as a dict, or a single entry.

        Keys: uri, mode, seekable, closed, stream_type (plus anything
        passed to the constructor).

        Returns:
            The full dict when key is None, else the value or None.
            A detached stream has no metadata.
        """
        if self._resource is None:
            return {} if key is None else None

        name = getattr(self._resource, "name", None)
        metadata: Dict[str, Any] = {
            "uri": name if isinstance(name, str) else None,
            "mode": self._mode,
            "seekable": self.is_seekable(),
            "closed": self.closed,
            "stream_type": type(self._resource).__name__,
        }
        metadata.update(self._metadata)

        if key is None:
            return metadata
        return metadata.get(key)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def detach(self) -> Optional[BinaryIO]:
        """
        Separate the underlying resource from the stream.

        After detaching, the stream is unusable: every operation that
        needs the resource raises StreamError.

        Returns:
            The underlying resource, or None if already detached.
        """
        resource = self._resource
        self._resource = None
        self._size = None
        self._mode = ""
        self._metadata = {}
        if resource is not None:
            logger.debug(f"Detached {type(resource).__name__} from stream")
        return resource

    def close(self) -> None:
        """Close the underlying resource and detach it."""
        resource = self.detach()
        if resource is not None:
            resource.close()

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # CONVERSION
    # =========================================================================

    def __bytes__(self) -> bytes:
        """
        Read the whole stream from the beginning.

        Returns b"" instead of raising when the stream is unusable.
        """
        try:
            if self.is_seekable():
                self.rewind()
            return self.get_contents()
        except StreamError as e:
            logger.debug(f"Stream could not be converted to bytes: {e}")
            return b""

    def __str__(self) -> str:
        return bytes(self).decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        if self._resource is None:
            return "<Stream detached>"
        return f"<Stream {type(self._resource).__name__} mode={self._mode!r}>"


def _as_bytes(data: Union[bytes, bytearray, str, None]) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)
