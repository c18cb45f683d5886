"""
Helpers for flat "name=value" data: query strings, urlencoded bodies and
the Cookie header.

Values are collected the way form handlers traditionally expose them:

    "page=2"                 →  {"page": "2"}
    "tag=a&tag=b"            →  {"tag": ["a", "b"]}
    "ids[]=1"                →  {"ids": ["1"]}
"""

from typing import Any, Dict, Iterable, Tuple
from urllib.parse import parse_qsl, unquote


def add_value(target: Dict[str, Any], name: str, value: Any) -> None:
    """
    Add one value to a collected mapping.

    A "name[]" key always produces a list; a repeated plain key turns the
    existing value into a list.
    """
    if name.endswith("[]"):
        key = name[:-2]
        existing = target.get(key)
        if existing is None:
            target[key] = [value]
        elif isinstance(existing, list):
            existing.append(value)
        else:
            target[key] = [existing, value]
        return

    if name not in target:
        target[name] = value
    elif isinstance(target[name], list):
        target[name].append(value)
    else:
        target[name] = [target[name], value]


def collect_pairs(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    collected: Dict[str, Any] = {}
    for name, value in pairs:
        add_value(collected, name, value)
    return collected


def parse_urlencoded(text: str, charset: str = "utf-8") -> Dict[str, Any]:
    """
    Parse a query string or application/x-www-form-urlencoded body.

    Blank values are kept ("a=" → {"a": ""}).
    """
    pairs = parse_qsl(text, keep_blank_values=True, encoding=charset, errors="replace")
    return collect_pairs(pairs)


def parse_cookies(header: str) -> Dict[str, str]:
    """
    Parse a Cookie header into name → value.

    Cookie values are percent-decoded. A pair without "=" is a cookie
    with an empty value; the first occurrence of a name wins.
    """
    cookies: Dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        name, _, value = pair.partition("=")
        name = name.strip()
        if name and name not in cookies:
            cookies[name] = unquote(value.strip().strip('"'))
    return cookies
