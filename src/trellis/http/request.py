"""
=============================================================================
HTTP REQUEST
=============================================================================

An outgoing or generic HTTP request: a Message plus method, URI and
request target.

=============================================================================
REQUEST LINE
=============================================================================

    GET /api/users?page=1 HTTP/1.1
    ─┬─ ────────┬──────── ────┬───
     │          │             │
   method  request target  protocol version

The request target is derived from the URI (path + "?" + query) unless an
explicit one was set, e.g. "*" for "OPTIONS * HTTP/1.1" or an
absolute-form target for proxies.

=============================================================================
THE HOST HEADER
=============================================================================

HTTP/1.1 requires a Host header. A request created with a URI that has a
host gets a matching Host header (first in the header order) unless one
was given. with_uri() keeps it in sync:

    with_uri(uri)                      →  Host replaced by uri's host
    with_uri(uri, preserve_host=True)  →  Host kept if it is non-empty,
                                          otherwise taken from uri

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .message import Message, TOKEN_PATTERN
from .uri import Uri


_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True, eq=False)
class Request(Message):
    """
    An HTTP request.

    Attributes:
        method: Request method, case preserved ("GET", "POST", ...).
        uri: Target URI. A string is parsed with Uri.parse().
        request_target: Explicit request target, or None to derive it.
    """

    method: str = "GET"
    uri: Uri = field(default_factory=Uri)
    request_target: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        if isinstance(self.uri, str):
            object.__setattr__(self, "uri", Uri.parse(self.uri))
        elif not isinstance(self.uri, Uri):
            raise TypeError(f"uri must be a Uri or str, got {type(self.uri).__name__}")
        _validate_method(self.method)
        if self.request_target is not None:
            _validate_request_target(self.request_target)
        if not self.has_header("Host") and self.uri.host:
            object.__setattr__(self, "headers", _with_host_first(self.headers, self.uri))

    # =========================================================================
    # REQUEST TARGET
    # =========================================================================

    def get_request_target(self) -> str:
        """
        Get the request target as it appears on the request line.

        Returns:
            The explicit target, else "path?query" ("/" for an empty path).
        """
        if self.request_target:
            return self.request_target
        target = self.uri.path or "/"
        if self.uri.query:
            target += f"?{self.uri.query}"
        return target

    def with_request_target(self, request_target: str) -> "Request":
        """
        Raises:
            ValueError: If the target contains whitespace.
        """
        _validate_request_target(request_target)
        return self._clone(request_target=request_target)

    # =========================================================================
    # METHOD
    # =========================================================================

    def get_method(self) -> str:
        return self.method

    def with_method(self, method: str) -> "Request":
        """
        Return a copy with another method. Case is preserved.

        Raises:
            ValueError: If the method is not an RFC 7230 token.
        """
        _validate_method(method)
        return self._clone(method=method)

    # =========================================================================
    # URI
    # =========================================================================

    def get_uri(self) -> Uri:
        return self.uri

    def with_uri(self, uri: Union[Uri, str], preserve_host: bool = False) -> "Request":
        """
        Return a copy targeting another URI.

        Args:
            uri: New URI (a string is parsed).
            preserve_host: Keep a non-empty existing Host header.

        Returns:
            New request; its Host header follows the rules in the module
            docstring.
        """
        if isinstance(uri, str):
            uri = Uri.parse(uri)
        elif not isinstance(uri, Uri):
            raise TypeError(f"uri must be a Uri or str, got {type(uri).__name__}")

        headers = self.headers
        if uri.host and not (preserve_host and self.get_header_line("Host")):
            headers = _with_host_first(self.headers, uri)
        return self._clone(uri=uri, headers=headers)


def host_header_value(uri: Uri) -> str:
    """Host header for a URI: host, plus ":port" when not the default."""
    port = uri.get_port()
    if port is None:
        return uri.host
    return f"{uri.host}:{port}"


def _with_host_first(headers: Dict[str, list[str]], uri: Uri) -> Dict[str, list[str]]:
    result = {"Host": [host_header_value(uri)]}
    for name, values in headers.items():
        if name.lower() != "host":
            result[name] = list(values)
    return result


def _validate_method(method: str) -> None:
    if not isinstance(method, str) or not TOKEN_PATTERN.match(method):
        raise ValueError(f"Invalid HTTP method: {method!r}")


def _validate_request_target(request_target: str) -> None:
    if not request_target or _WHITESPACE.search(request_target):
        raise ValueError(
            f"Invalid request target: {request_target!r} (empty or contains whitespace)"
        )
