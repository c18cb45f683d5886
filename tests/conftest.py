"""
pytest configuration and fixtures.
"""

import io
from typing import Callable, Dict, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trellis import TrellisConfig


BOUNDARY = "----TrellisBoundary7MA4YWxk"


@pytest.fixture
def make_environ() -> Callable[..., Dict]:
    """
    Factory for WSGI environs.

    Usage:
        environ = make_environ("POST", "/users", body=b"...",
                               content_type="application/json")
    """

    def _make(
        method: str = "GET",
        path: str = "/",
        query: str = "",
        body: bytes = b"",
        content_type: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **extra,
    ) -> Dict:
        environ = {
            "REQUEST_METHOD": method,
            "SCRIPT_NAME": "",
            "PATH_INFO": path,
            "QUERY_STRING": query,
            "SERVER_NAME": "localhost",
            "SERVER_PORT": "8080",
            "SERVER_PROTOCOL": "HTTP/1.1",
            "REMOTE_ADDR": "127.0.0.1",
            "HTTP_HOST": "localhost:8080",
            "HTTP_USER_AGENT": "pytest",
            "wsgi.url_scheme": "http",
            "wsgi.input": io.BytesIO(body),
            "wsgi.errors": io.StringIO(),
            "wsgi.version": (1, 0),
        }
        if body:
            environ["CONTENT_LENGTH"] = str(len(body))
        if content_type:
            environ["CONTENT_TYPE"] = content_type
        for name, value in (headers or {}).items():
            environ["HTTP_" + name.upper().replace("-", "_")] = value
        environ.update(extra)
        return environ

    return _make


@pytest.fixture
def multipart_body() -> Dict:
    """
    A multipart/form-data body with two fields and two files.

    Returns:
        Dict with "content_type" and "body".
    """
    parts = [
        f"--{BOUNDARY}\r\n"
        'Content-Disposition: form-data; name="title"\r\n'
        "\r\n"
        "Holiday\r\n",
        f"--{BOUNDARY}\r\n"
        'Content-Disposition: form-data; name="tags[]"\r\n'
        "\r\n"
        "beach\r\n",
        f"--{BOUNDARY}\r\n"
        'Content-Disposition: form-data; name="photo"; filename="beach.txt"\r\n'
        "Content-Type: text/plain\r\n"
        "\r\n"
        "sand and sea\r\n",
        f"--{BOUNDARY}\r\n"
        'Content-Disposition: form-data; name="empty"; filename=""\r\n'
        "Content-Type: application/octet-stream\r\n"
        "\r\n"
        "\r\n",
        f"--{BOUNDARY}--\r\n",
    ]
    return {
        "content_type": f"multipart/form-data; boundary={BOUNDARY}",
        "body": "".join(parts).encode("utf-8"),
    }


@pytest.fixture
def config() -> TrellisConfig:
    """Default test configuration."""
    return TrellisConfig()


class TrickleReader(io.RawIOBase):
    """Unseekable raw reader that hands out at most `step` bytes per call."""

    def __init__(self, data: bytes, step: int = 3):
        self._data = data
        self._step = step

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        chunk = self._data[: min(self._step, len(buffer))]
        self._data = self._data[len(chunk):]
        buffer[: len(chunk)] = chunk
        return len(chunk)


@pytest.fixture
def trickle_stream() -> Callable[..., "Stream"]:
    """
    Factory for Streams over a reader that returns short reads.

    Usage:
        stream = trickle_stream(b"hello world", step=2)
    """
    from trellis.http.stream import Stream

    def _make(data: bytes, step: int = 3) -> Stream:
        return Stream(TrickleReader(data, step))

    return _make
