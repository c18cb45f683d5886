"""
=============================================================================
SERVER-SIDE REQUEST
=============================================================================

A request as received by the server, enriched with everything the runtime
derived from it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ServerRequest                                                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │  Request data     method, uri, headers, body, protocol version      │
    │  server_params    string entries of the WSGI environ                │
    │  query_params     {"page": "2", "tag": ["a", "b"]}                  │
    │  cookie_params    {"session": "abc123"}                             │
    │  parsed_body      form fields / decoded JSON / None                 │
    │  uploaded_files   {"avatar": UploadedFile, "docs": [UploadedFile]}  │
    │  attributes       anything the application attaches (route params,  │
    │                   authenticated user, ...)                          │
    └─────────────────────────────────────────────────────────────────────┘

Like every message, a ServerRequest is immutable: with_attribute() and
friends return copies.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .request import Request
from .uploaded_file import UploadedFile


_MISSING = object()


@dataclass(frozen=True, eq=False, kw_only=True)
class ServerRequest(Request):
    """
    Server-side HTTP request.

    Build one from a WSGI environ with ServerRequest.from_environ(), or
    directly for tests and internal sub-requests.
    """

    server_params: Dict[str, Any] = field(default_factory=dict)
    query_params: Dict[str, Any] = field(default_factory=dict)
    cookie_params: Dict[str, str] = field(default_factory=dict)
    parsed_body: Any = None
    uploaded_files: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        super().__post_init__()
        _validate_parsed_body(self.parsed_body)
        validate_uploaded_files(self.uploaded_files)
        for name in ("server_params", "query_params", "cookie_params",
                     "uploaded_files", "attributes"):
            object.__setattr__(self, name, dict(getattr(self, name)))

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any], config=None) -> "ServerRequest":
        """
        Build a ServerRequest from a WSGI environ.

        See trellis.http.factory for the details of what is read.

        Raises:
            RequestParseError: If the body or its declared length is invalid.
        """
        from .factory import ServerRequestFactory

        return ServerRequestFactory(config).from_environ(environ)

    # =========================================================================
    # SERVER PARAMETERS
    # =========================================================================

    def get_server_params(self) -> Dict[str, Any]:
        return dict(self.server_params)

    # =========================================================================
    # QUERY / COOKIES
    # =========================================================================

    def get_query_params(self) -> Dict[str, Any]:
        return dict(self.query_params)

    def with_query_params(self, query: Mapping[str, Any]) -> "ServerRequest":
        """
        Return a copy with other query parameters.

        The URI is NOT changed; this only replaces the parsed view.
        """
        return self._clone(query_params=dict(query))

    def get_cookie_params(self) -> Dict[str, str]:
        return dict(self.cookie_params)

    def with_cookie_params(self, cookies: Mapping[str, str]) -> "ServerRequest":
        return self._clone(cookie_params=dict(cookies))

    # =========================================================================
    # PARSED BODY
    # =========================================================================

    def get_parsed_body(self) -> Any:
        """
        Get the deserialized body.

        Returns:
            Form fields (dict) for urlencoded and multipart requests,
            decoded JSON for application/json, None otherwise.
        """
        return self.parsed_body

    def with_parsed_body(self, data: Any) -> "ServerRequest":
        """
        Return a copy with another parsed body.

        Args:
            data: None, a mapping, a sequence, or an object.

        Raises:
            TypeError: If data is a scalar (str, bytes, number, bool).
        """
        _validate_parsed_body(data)
        return self._clone(parsed_body=data)

    # =========================================================================
    # UPLOADED FILES
    # =========================================================================

    def get_uploaded_files(self) -> Dict[str, Any]:
        return dict(self.uploaded_files)

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> "ServerRequest":
        """
        Return a copy with another uploaded-file tree.

        Raises:
            ValueError: If a leaf of the tree is not an UploadedFile.
        """
        validate_uploaded_files(uploaded_files)
        return self._clone(uploaded_files=dict(uploaded_files))

    # =========================================================================
    # ATTRIBUTES
    # =========================================================================

    def get_attributes(self) -> Dict[str, Any]:
        return dict(self.attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        """Get a single attribute, or `default` when it is not set."""
        return self.attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> "ServerRequest":
        attributes = dict(self.attributes)
        attributes[name] = value
        return self._clone(attributes=attributes)

    def without_attribute(self, name: str) -> "ServerRequest":
        if self.attributes.get(name, _MISSING) is _MISSING:
            return self._clone()
        attributes = dict(self.attributes)
        del attributes[name]
        return self._clone(attributes=attributes)


def validate_uploaded_files(uploaded_files: Any, path: Optional[str] = None) -> None:
    """
    Check that every leaf of an uploaded-file tree is an UploadedFile.

    Nested mappings and lists are allowed:
        {"avatar": UploadedFile, "docs": [UploadedFile, UploadedFile],
         "profile": {"cv": UploadedFile}}

    Raises:
        ValueError: Naming the first invalid leaf.
    """
    if isinstance(uploaded_files, UploadedFile):
        return
    if isinstance(uploaded_files, Mapping):
        for key, value in uploaded_files.items():
            validate_uploaded_files(value, key if path is None else f"{path}[{key}]")
        return
    if isinstance(uploaded_files, (list, tuple)):
        for index, value in enumerate(uploaded_files):
            validate_uploaded_files(value, f"{path}[{index}]")
        return
    raise ValueError(
        f"Invalid uploaded file at {path or '<root>'}: "
        f"expected UploadedFile, got {type(uploaded_files).__name__}"
    )


def _validate_parsed_body(data: Any) -> None:
    if isinstance(data, (str, bytes, bytearray, int, float, bool)):
        raise TypeError(
            f"Parsed body must be None, a mapping, a sequence or an object, "
            f"got {type(data).__name__}"
        )
