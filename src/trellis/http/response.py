"""
=============================================================================
HTTP RESPONSE
=============================================================================

An immutable HTTP response (status code, reason phrase, headers and a
body Stream) and the three ways of handing it to a client.

=============================================================================
OUTPUT FORMS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  render()           CGI output on stdout                            │
    │                                                                      │
    │      Status: 200 OK\r\n                                             │
    │      Content-Type: text/html; charset=utf-8\r\n                     │
    │      Content-Length: 20\r\n                                         │
    │      \r\n                                                            │
    │      <h1>Hello world</h1>                                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │  response(environ, start_response)     WSGI (PEP 3333)              │
    │                                                                      │
    │      start_response("200 OK", [("Content-Type", ...), ...])         │
    │      → iterable of body chunks                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │  to_bytes()         raw HTTP/1.x message                            │
    │                                                                      │
    │      HTTP/1.1 200 OK\r\n                                            │
    │      Content-Length / Date / Server added when missing              │
    └─────────────────────────────────────────────────────────────────────┘

Content-Length is added whenever the body size is known, except for
responses that must not carry a body (1xx, 204, 304).

=============================================================================
"""

import json
import logging
import sys
from dataclasses import InitVar, dataclass
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from .message import Message
from .status_codes import HTTPStatus, is_valid_status
from .status_codes import reason_phrase as standard_reason_phrase
from .stream import Stream


logger = logging.getLogger(__name__)


Content = Union[str, bytes, Stream, None]
StartResponse = Callable[..., Any]

_BODYLESS_STATUSES = {204, 304}


@dataclass(frozen=True, eq=False)
class Response(Message):
    """
    An HTTP response.

    Attributes:
        content: Initial body content. A Stream becomes the body; str or
                 bytes are written into the body, which is then rewound.
        status_code: 100-599.
        reason_phrase: Explicit reason phrase, "" for the standard one.

    Example:
        >>> response = Response("<h1>Hi</h1>", status_code=201)
        >>> response.get_reason_phrase()
        'Created'
    """

    content: InitVar[Content] = None
    status_code: int = 200
    reason_phrase: str = ""

    def __post_init__(self, content: Content):
        super().__post_init__()
        _validate_status(self.status_code)
        _validate_reason_phrase(self.reason_phrase)
        object.__setattr__(self, "status_code", int(self.status_code))

        if isinstance(content, Stream):
            object.__setattr__(self, "body", content)
        elif content is not None:
            if not isinstance(content, (str, bytes)):
                raise TypeError(
                    f"Response content must be str, bytes or Stream, "
                    f"got {type(content).__name__}"
                )
            self.body.write(content)
            self.body.rewind()

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status_code(self) -> int:
        return self.status_code

    def get_reason_phrase(self) -> str:
        """Explicit phrase, else the standard one, else ""."""
        return self.reason_phrase or standard_reason_phrase(self.status_code)

    def with_status(self, code: int, reason_phrase: str = "") -> "Response":
        """
        Return a copy with another status.

        Args:
            code: 100-599.
            reason_phrase: "" to use the standard phrase for `code`.

        Raises:
            ValueError: If the code is out of range or the phrase contains
                        CR or LF.
        """
        _validate_status(code)
        _validate_reason_phrase(reason_phrase)
        return self._clone(status_code=int(code), reason_phrase=reason_phrase)

    @property
    def status_line(self) -> str:
        """'404 Not Found' (just '599' for an unregistered code)."""
        return f"{self.status_code} {self.get_reason_phrase()}".rstrip()

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def render(self, output: Optional[BinaryIO] = None) -> None:
        """
        Emit the response as CGI output.

        Args:
            output: Binary file object (sys.stdout.buffer by default).
        """
        if output is None:
            output = sys.stdout.buffer

        lines = [f"Status: {self.status_line}"]
        lines.extend(f"{name}: {value}" for name, value in self._header_items())
        output.write(("\r\n".join(lines) + "\r\n\r\n").encode("utf-8"))

        sent = 0
        if self._may_have_body():
            for chunk in self._body_chunks():
                output.write(chunk)
                sent += len(chunk)
        output.flush()
        logger.debug(f"Rendered {self.status_line} ({sent} body bytes)")

    def __call__(self, environ: dict, start_response: StartResponse) -> Iterable[bytes]:
        """
        WSGI application interface: the response answers any request with
        itself. HEAD requests get the headers only.
        """
        # PEP 3333 needs "NNN " even without a reason phrase
        start_response(
            f"{self.status_code} {self.get_reason_phrase()}", self._header_items()
        )
        if environ.get("REQUEST_METHOD", "GET").upper() == "HEAD":
            return []
        if not self._may_have_body():
            return []
        return self._body_chunks()

    def to_bytes(self, server_name: str = "Trellis/1.0") -> bytes:
        """
        Serialize as a complete HTTP/1.x message.

        Content-Length, Date and Server are added when missing.

        Args:
            server_name: Value for the Server header.
        """
        headers = self._header_items()
        present = {name.lower() for name, _ in headers}
        body = bytes(self.body) if self._may_have_body() else b""

        if "content-length" not in present and self._may_have_body():
            headers.append(("Content-Length", str(len(body))))
        if "date" not in present:
            headers.append(("Date", format_http_date(datetime.now(timezone.utc))))
        if "server" not in present:
            headers.append(("Server", server_name))

        lines = [f"HTTP/{self.protocol_version} {self.status_line}"]
        lines.extend(f"{name}: {value}" for name, value in headers)
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + body

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _may_have_body(self) -> bool:
        return self.status_code >= 200 and self.status_code not in _BODYLESS_STATUSES

    def _header_items(self) -> List[Tuple[str, str]]:
        """
        Flatten headers into (name, value) pairs, one per value, adding
        Content-Length when the body size is known.
        """
        items = [
            (name, value)
            for name, values in self.headers.items()
            for value in values
        ]
        if self._may_have_body() and not self.has_header("Content-Length"):
            size = self.body.get_size()
            if size is not None:
                items.append(("Content-Length", str(size)))
        return items

    def _body_chunks(self) -> Iterator[bytes]:
        if self.body.closed or not self.body.is_readable():
            return iter(())
        if self.body.is_seekable():
            self.body.rewind()
        return self.body.iter_chunks()


def _validate_status(code: int) -> None:
    if not is_valid_status(code):
        raise ValueError(f"Invalid HTTP status code: {code!r} (must be 100-599)")


def _validate_reason_phrase(reason_phrase: str) -> None:
    if not isinstance(reason_phrase, str):
        raise TypeError(f"Reason phrase must be a str, got {type(reason_phrase).__name__}")
    if "\r" in reason_phrase or "\n" in reason_phrase:
        raise ValueError("Reason phrase must not contain CR or LF")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_http_date(dt: Optional[datetime] = None) -> str:
    """
    Format a datetime as an HTTP-date: "Wed, 01 Jan 2026 12:00:00 GMT".

    Aware datetimes are converted to UTC; naive ones are taken as UTC.
    """
    if dt is None:
        dt = datetime.now(timezone.utc)
    elif dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok({"message": "Success"})
#     return not_found("User not found")
#     return redirect("/login")
#
# dict and list bodies become JSON, str bodies text/plain unless a
# content type is given.
#
# =============================================================================

def _build(
    status: int,
    body: Union[str, bytes, dict, list, None] = None,
    content_type: Optional[str] = None,
    headers: Optional[dict] = None,
) -> Response:
    headers = dict(headers or {})
    if isinstance(body, (dict, list)):
        body = json.dumps(body, ensure_ascii=False)
        content_type = content_type or "application/json; charset=utf-8"
    elif isinstance(body, str) and body:
        content_type = content_type or "text/plain; charset=utf-8"
    if content_type:
        headers["Content-Type"] = content_type
    return Response(body, status_code=status, headers=headers)


def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> Response:
    """200 OK with a body of any supported type."""
    return _build(HTTPStatus.OK, body, content_type)


def created(body: Union[str, bytes, dict, list] = "", location: Optional[str] = None) -> Response:
    """
    201 Created, usually after a POST.

    Args:
        body: Representation of the created resource.
        location: URL of the created resource (Location header).
    """
    headers = {"Location": location} if location else None
    return _build(HTTPStatus.CREATED, body, headers=headers)


def no_content() -> Response:
    return Response(status_code=HTTPStatus.NO_CONTENT)


def redirect(location: str, permanent: bool = False) -> Response:
    """301 when `permanent`, otherwise 302, with a Location header."""
    status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
    return Response(status_code=status, headers={"Location": location})


def error_response(status_code: int, message: Optional[str] = None) -> Response:
    """
    JSON error body {"error": message} for any status code.

    The message defaults to the reason phrase of the code.
    """
    _validate_status(status_code)
    return _build(
        status_code, {"error": message or standard_reason_phrase(status_code)}
    )


def bad_request(message: str = "Bad Request") -> Response:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> Response:
    return error_response(HTTPStatus.NOT_FOUND, message)


def internal_error(message: str = "Internal Server Error") -> Response:
    """500 response. Keep the message generic; it is sent to the client."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
