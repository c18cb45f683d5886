"""
=============================================================================
SERVER REQUEST FACTORY
=============================================================================

Builds ServerRequest objects from a WSGI environ (PEP 3333), the Python
equivalent of the server globals a CGI-style runtime hands to a script.

=============================================================================
ENVIRON → SERVER REQUEST
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  WSGI environ                          ServerRequest                │
    ├─────────────────────────────────────────────────────────────────────┤
    │  REQUEST_METHOD               ───►     method                       │
    │  wsgi.url_scheme, HTTP_HOST,  ───►     uri                          │
    │  SERVER_*, PATH_INFO,                                               │
    │  QUERY_STRING                                                        │
    │  SERVER_PROTOCOL "HTTP/1.1"   ───►     protocol_version "1.1"       │
    │  HTTP_*, CONTENT_TYPE,        ───►     headers                      │
    │  CONTENT_LENGTH                                                      │
    │  wsgi.input                   ───►     body (spooled Stream)        │
    │  QUERY_STRING                 ───►     query_params                 │
    │  HTTP_COOKIE                  ───►     cookie_params                │
    │  body + Content-Type          ───►     parsed_body, uploaded_files  │
    │  string entries               ───►     server_params                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECURITY CONSIDERATIONS
=============================================================================

1. SIZE LIMITS - bodies above max_body_size are rejected with 413 before
   a single byte is read.

2. EXACT LENGTH - only CONTENT_LENGTH bytes are read from wsgi.input;
   a short body is a 400, never a partial request.

3. UPLOAD LIMITS - an oversized file becomes an upload error on that
   file, the rest of the form still parses.

=============================================================================
"""

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from python_multipart.multipart import parse_options_header

from ..config import TrellisConfig
from .exceptions import RequestParseError
from .forms import parse_cookies, parse_urlencoded
from .message import PROTOCOL_VERSION_PATTERN, TOKEN_PATTERN, normalize_headers
from .multipart import MultipartParser, get_boundary
from .server_request import ServerRequest
from .stream import Stream
from .uri import Uri


logger = logging.getLogger(__name__)


FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
MULTIPART_MEDIA_TYPE = "multipart/form-data"
CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")


class ServerRequestFactory:
    """
    Creates ServerRequest objects from WSGI environs.

    One factory can be shared by every request of an application; it only
    holds configuration.
    """

    def __init__(self, config: Optional[TrellisConfig] = None):
        self.config = config or TrellisConfig()

    def from_environ(self, environ: Mapping[str, Any]) -> ServerRequest:
        """
        Build a ServerRequest from a WSGI environ.

        Args:
            environ: PEP 3333 environ dict.

        Returns:
            Fully populated ServerRequest; its body is rewound.

        Raises:
            RequestParseError: Invalid Content-Length (400), body too large
                               (413), truncated body (400), malformed JSON
                               or multipart body (400).
        """
        # =====================================================================
        # STEP 1: Request line equivalents
        # =====================================================================
        method = environ.get("REQUEST_METHOD") or "GET"
        if not TOKEN_PATTERN.match(method):
            raise RequestParseError(f"Invalid request method: {method!r}")
        try:
            uri = Uri.from_environ(environ)
        except ValueError as e:
            raise RequestParseError(f"Invalid request URI: {e}") from e
        protocol_version = self._protocol_version(environ.get("SERVER_PROTOCOL", ""))

        # =====================================================================
        # STEP 2: Headers
        # =====================================================================
        try:
            headers = normalize_headers(headers_from_environ(environ))
        except (TypeError, ValueError) as e:
            raise RequestParseError(f"Invalid request header: {e}") from e

        # =====================================================================
        # STEP 3: Body (bounded by Content-Length and max_body_size)
        # =====================================================================
        content_length = self._content_length(environ.get("CONTENT_LENGTH", ""))
        body = self._read_body(environ.get("wsgi.input"), content_length)

        # =====================================================================
        # STEP 4: Derived views
        # =====================================================================
        query_params = parse_urlencoded(environ.get("QUERY_STRING", ""), self.config.charset)
        cookie_params = parse_cookies(environ.get("HTTP_COOKIE", ""))
        parsed_body, uploaded_files = self._parse_body(
            environ.get("CONTENT_TYPE", ""), body
        )
        server_params = {
            key: value for key, value in environ.items() if isinstance(value, str)
        }

        request = ServerRequest(
            method=method,
            uri=uri,
            protocol_version=protocol_version,
            headers=headers,
            body=body,
            server_params=server_params,
            query_params=query_params,
            cookie_params=cookie_params,
            parsed_body=parsed_body,
            uploaded_files=uploaded_files,
        )
        logger.debug(
            f"Built ServerRequest {method} {request.get_request_target()} "
            f"HTTP/{protocol_version} ({content_length} body bytes)"
        )
        return request

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _protocol_version(self, server_protocol: str) -> str:
        """'HTTP/1.1' → '1.1', falling back to the configured default."""
        _, _, version = server_protocol.partition("/")
        if PROTOCOL_VERSION_PATTERN.match(version):
            return version
        return self.config.default_protocol_version

    def _content_length(self, value: str) -> int:
        value = value.strip()
        if not value:
            return 0
        if not CONTENT_LENGTH_PATTERN.fullmatch(value):
            raise RequestParseError(f"Invalid Content-Length: {value!r}")

        length = int(value)
        if length > self.config.max_body_size:
            raise RequestParseError(
                f"Request body too large: {length} bytes "
                f"(limit {self.config.max_body_size})",
                status_code=413,  # 413 Payload Too Large
            )
        return length

    def _read_body(self, wsgi_input, content_length: int) -> Stream:
        """
        Copy exactly `content_length` bytes from wsgi.input into a spooled
        stream, then rewind it.
        """
        body = Stream.temporary(self.config.spool_size, self.config.upload_dir)
        remaining = content_length
        while remaining > 0 and wsgi_input is not None:
            chunk = wsgi_input.read(min(self.config.chunk_size, remaining))
            if not chunk:
                break
            body.write(chunk)
            remaining -= len(chunk)

        if remaining > 0:
            body.close()
            raise RequestParseError(
                f"Incomplete body: expected {content_length} bytes, "
                f"got {content_length - remaining}"
            )

        body.rewind()
        return body

    def _parse_body(self, content_type: str, body: Stream) -> Tuple[Any, Dict[str, Any]]:
        """
        Deserialize the body according to its media type.

        Returns:
            Tuple of (parsed_body, uploaded_files).
        """
        media_type, params = parse_options_header(content_type)
        media_type = media_type.decode("latin-1").lower()
        charset = params.get(b"charset", b"").decode("latin-1") or self.config.charset

        if media_type == FORM_MEDIA_TYPE:
            text = bytes(body).decode(charset, errors="replace")
            body.rewind()
            return parse_urlencoded(text, charset), {}

        if media_type == MULTIPART_MEDIA_TYPE:
            parser = MultipartParser(
                get_boundary(content_type),
                charset=charset,
                spool_size=self.config.spool_size,
                max_upload_size=self.config.max_upload_size,
                upload_dir=self.config.upload_dir,
            )
            fields, files = parser.parse(body, self.config.chunk_size)
            body.rewind()
            return fields, files

        if media_type == "application/json" or media_type.endswith("+json"):
            return self._parse_json(body, charset), {}

        return None, {}

    def _parse_json(self, body: Stream, charset: str) -> Any:
        raw = bytes(body)
        body.rewind()
        if not raw.strip():
            return None
        try:
            data = json.loads(raw.decode(charset))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RequestParseError(f"Invalid JSON body: {e}") from e
        if not isinstance(data, (dict, list)):
            logger.debug(f"Ignoring scalar JSON body of type {type(data).__name__}")
            return None
        return data


def headers_from_environ(environ: Mapping[str, Any]) -> Dict[str, str]:
    """
    Collect request headers from a WSGI environ.

    HTTP_ACCEPT_LANGUAGE → Accept-Language; CONTENT_TYPE and
    CONTENT_LENGTH are included when non-empty.
    """
    headers: Dict[str, str] = {}
    for key, value in environ.items():
        if not isinstance(value, str):
            continue
        if key.startswith("HTTP_"):
            name = key[5:]
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
            name = key
        else:
            continue
        if name in ("CONTENT_TYPE", "CONTENT_LENGTH") and key.startswith("HTTP_"):
            continue
        headers["-".join(part.capitalize() for part in name.split("_"))] = value
    return headers


def server_request_from_environ(
    environ: Mapping[str, Any],
    config: Optional[TrellisConfig] = None,
) -> ServerRequest:
    """
    Convenience function to build a ServerRequest in one call.

    Use ServerRequestFactory directly to reuse one configuration for many
    requests.
    """
    return ServerRequestFactory(config).from_environ(environ)
