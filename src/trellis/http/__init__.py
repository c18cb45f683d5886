"""
=============================================================================
HTTP MESSAGES
=============================================================================

Immutable value objects for HTTP messages. Every with_*() method returns
a new object and leaves the original untouched.

=============================================================================
MODULE COMPONENTS
=============================================================================

    Message                       protocol version, headers, body
    ├── Request                   + method, URI, request target
    │   └── ServerRequest         + server/query/cookie params, parsed
    │                               body, uploaded files, attributes
    └── Response                  + status code, reason phrase, render()

    Uri                           RFC 3986 URI
    Stream                        seekable byte stream for bodies
    UploadedFile                  one file from a multipart upload
    ServerRequestFactory          WSGI environ → ServerRequest

=============================================================================
"""

from .exceptions import RequestParseError
from .factory import ServerRequestFactory, server_request_from_environ
from .message import Message
from .request import Request
from .response import (
    Response,
    format_http_date,
    # Convenience functions for common responses
    ok,             # 200 OK
    created,        # 201 Created
    no_content,     # 204 No Content
    redirect,       # 301/302 Redirect
    bad_request,    # 400 Bad Request
    not_found,      # 404 Not Found
    internal_error,      # 500 Internal Server Error
    error_response,      # any status, JSON error body
)
from .server_request import ServerRequest
from .status_codes import HTTPStatus, is_valid_status, reason_phrase
from .stream import Stream, StreamError
from .uploaded_file import (
    UPLOAD_ERR_CANT_WRITE,
    UPLOAD_ERR_EXTENSION,
    UPLOAD_ERR_FORM_SIZE,
    UPLOAD_ERR_INI_SIZE,
    UPLOAD_ERR_NO_FILE,
    UPLOAD_ERR_NO_TMP_DIR,
    UPLOAD_ERR_OK,
    UPLOAD_ERR_PARTIAL,
    UploadedFile,
    UploadError,
    UploadErrorCode,
)
from .uri import Uri

__all__ = [
    # Messages
    "Message",
    "Request",
    "ServerRequest",
    "Response",

    # Building blocks
    "Uri",
    "Stream",
    "StreamError",
    "UploadedFile",
    "UploadError",
    "UploadErrorCode",
    "UPLOAD_ERR_OK",
    "UPLOAD_ERR_INI_SIZE",
    "UPLOAD_ERR_FORM_SIZE",
    "UPLOAD_ERR_PARTIAL",
    "UPLOAD_ERR_NO_FILE",
    "UPLOAD_ERR_NO_TMP_DIR",
    "UPLOAD_ERR_CANT_WRITE",
    "UPLOAD_ERR_EXTENSION",

    # Request construction
    "ServerRequestFactory",
    "server_request_from_environ",
    "RequestParseError",

    # Response convenience functions
    "format_http_date",
    "ok",
    "created",
    "no_content",
    "redirect",
    "bad_request",
    "not_found",
    "internal_error",
    "error_response",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
    "is_valid_status",
]
