"""
=============================================================================
HTTP MESSAGE BASE
=============================================================================

Common state of requests and responses: protocol version, headers, body.

=============================================================================
IMMUTABILITY (COPY-ON-WRITE)
=============================================================================

Messages are frozen dataclasses. Nothing changes an existing message;
every with_*() method returns a modified copy:

    original = Message(headers={"Accept": "text/html"})
    changed = original.with_header("Accept", "application/json")

        original.get_header("Accept")  →  ["text/html"]
        changed.get_header("Accept")   →  ["application/json"]

    ┌──────────────┐   with_header()   ┌──────────────┐
    │  original    │ ────────────────► │  copy        │
    │  headers ──► dict A              │  headers ──► dict B (new)
    │  body ─────┐ │                   │  body ─────┐ │
    └────────────┼─┘                   └────────────┼─┘
                 └──────────► Stream ◄──────────────┘
                         (shared, mutable)

Copies skip __init__, so construction-time behaviour (defaults, Host
header insertion on requests) runs once, when the message is created.

=============================================================================
HEADER RULES (RFC 7230)
=============================================================================

    - Names are tokens:  !#$%&'*+-.^_`|~ plus letters and digits
    - Lookup is case-insensitive, the original case is preserved
    - Each header holds a list of values, joined with ", " on one line
    - Values cannot contain CR, LF or NUL (header injection)

=============================================================================
"""

import copy
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .stream import Stream


TOKEN_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+\Z")
PROTOCOL_VERSION_PATTERN = re.compile(r"^\d+(?:\.\d+)?\Z")

HeaderValue = Union[str, int, Iterable[Union[str, int]]]


def validate_header_name(name: str) -> str:
    """
    Check that a header name is an RFC 7230 token.

    Raises:
        ValueError: If the name is empty or contains separators/whitespace.
    """
    if not isinstance(name, str) or not TOKEN_PATTERN.match(name):
        raise ValueError(f"Invalid header name: {name!r}")
    return name


def normalize_header_values(name: str, value: HeaderValue) -> list[str]:
    """
    Turn a header value (string, number, or iterable of those) into a
    list of trimmed strings.

    Raises:
        ValueError: If the list is empty or a value contains CR/LF/NUL.
        TypeError: If a value is not a string or number (bytes included).
    """
    if isinstance(value, (bytes, bytearray)):
        raise TypeError(f"Header {name!r} value must be str, got {type(value).__name__}")
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        values = [value]
    else:
        values = list(value)

    if not values:
        raise ValueError(f"Header {name!r} must have at least one value")

    normalized = []
    for item in values:
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            raise TypeError(
                f"Header {name!r} values must be strings, got {type(item).__name__}"
            )
        text = str(item)
        if any(char in text for char in "\r\n\0"):
            raise ValueError(f"Header {name!r} value contains CR, LF or NUL")
        normalized.append(text.strip(" \t"))
    return normalized


@dataclass(frozen=True, eq=False, kw_only=True)
class Message:
    """
    An HTTP message: protocol version, headers and body.

    Attributes:
        protocol_version: "1.0", "1.1", "2", ...
        headers: Header name → list of values, original name case kept.
        body: Stream holding the message body.
    """

    protocol_version: str = "1.1"
    headers: Dict[str, list[str]] = field(default_factory=dict)
    body: Stream = field(default_factory=Stream)

    def __post_init__(self):
        _validate_protocol_version(self.protocol_version)
        if not isinstance(self.body, Stream):
            raise TypeError(
                f"Body must be a Stream, got {type(self.body).__name__}"
            )
        object.__setattr__(self, "headers", normalize_headers(self.headers))

    # =========================================================================
    # COPY-ON-WRITE
    # =========================================================================

    def _clone(self, **changes: Any):
        """
        Copy with some fields replaced; __init__ is not re-run.

        Dicts and lists are copied so the clone never shares them with this
        message. Their leaves (and the body stream) are shared.
        """
        clone = copy.copy(self)
        for f in fields(self):
            if f.name not in changes:
                object.__setattr__(clone, f.name, _copy_containers(getattr(self, f.name)))
        for name, value in changes.items():
            object.__setattr__(clone, name, value)
        return clone

    def _header_key(self, name: str) -> Optional[str]:
        """Stored name matching `name` case-insensitively, if any."""
        wanted = name.lower()
        for existing in self.headers:
            if existing.lower() == wanted:
                return existing
        return None

    # =========================================================================
    # PROTOCOL VERSION
    # =========================================================================

    def get_protocol_version(self) -> str:
        return self.protocol_version

    def with_protocol_version(self, version: str):
        """
        Return a copy with another protocol version.

        Raises:
            ValueError: If the version is not like "1.1" or "2".
        """
        _validate_protocol_version(version)
        return self._clone(protocol_version=version)

    # =========================================================================
    # HEADERS
    # =========================================================================

    def get_headers(self) -> Dict[str, list[str]]:
        """All headers as a new dict of name → list of values."""
        return {name: list(values) for name, values in self.headers.items()}

    def has_header(self, name: str) -> bool:
        return self._header_key(name) is not None

    def get_header(self, name: str) -> list[str]:
        """
        Get all values of a header (case-insensitive).

        Returns:
            List of values, empty when the header is missing.
        """
        key = self._header_key(name)
        if key is None:
            return []
        return list(self.headers[key])

    def get_header_line(self, name: str) -> str:
        """
        Get a header's values as one comma-separated string.

        Example:
            Accept: text/html
            Accept: application/json
            →  get_header_line("accept") == "text/html, application/json"

        Returns:
            Joined values, or "" when the header is missing.
        """
        return ", ".join(self.get_header(name))

    def with_header(self, name: str, value: HeaderValue):
        """
        Return a copy where `name` is replaced by the given value(s).

        Any existing header with the same name in another case is
        replaced too; its position in the header order is kept.

        Raises:
            ValueError: Invalid name or value.
        """
        validate_header_name(name)
        values = normalize_header_values(name, value)
        key = self._header_key(name)

        headers: Dict[str, list[str]] = {}
        for existing, existing_values in self.headers.items():
            if existing == key:
                headers[name] = values
            else:
                headers[existing] = list(existing_values)
        if key is None:
            headers[name] = values
        return self._clone(headers=headers)

    def with_added_header(self, name: str, value: HeaderValue):
        """
        Return a copy with value(s) appended to a header.

        The header is created when missing; when it exists, the values
        are appended under the name already stored.
        """
        validate_header_name(name)
        values = normalize_header_values(name, value)
        headers = self.get_headers()
        key = self._header_key(name)
        if key is None:
            headers[name] = values
        else:
            headers[key].extend(values)
        return self._clone(headers=headers)

    def without_header(self, name: str):
        """Return a copy without the header (case-insensitive)."""
        key = self._header_key(name)
        if key is None:
            return self._clone()
        headers = self.get_headers()
        del headers[key]
        return self._clone(headers=headers)

    # =========================================================================
    # BODY
    # =========================================================================

    def get_body(self) -> Stream:
        return self.body

    def with_body(self, body: Stream):
        """
        Return a copy with another body stream.

        Raises:
            TypeError: If body is not a Stream.
        """
        if not isinstance(body, Stream):
            raise TypeError(f"Body must be a Stream, got {type(body).__name__}")
        return self._clone(body=body)


def _validate_protocol_version(version: str) -> None:
    if not isinstance(version, str) or not PROTOCOL_VERSION_PATTERN.match(version):
        raise ValueError(f"Invalid HTTP protocol version: {version!r}")


def normalize_headers(headers: Mapping[str, HeaderValue]) -> Dict[str, list[str]]:
    """
    Validate a header mapping and merge names that differ only by case.

    The first spelling of a name wins; later case-variants are appended.
    """
    normalized: Dict[str, list[str]] = {}
    lowered: Dict[str, str] = {}
    for name, value in dict(headers).items():
        validate_header_name(name)
        values = normalize_header_values(name, value)
        key = lowered.setdefault(name.lower(), name)
        normalized.setdefault(key, []).extend(values)
    return normalized


def _copy_containers(value: Any) -> Any:
    """Copy nested dicts and lists, keeping every other object as is."""
    if isinstance(value, dict):
        return {key: _copy_containers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_containers(item) for item in value]
    return value
