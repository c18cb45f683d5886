"""
Unit tests for Request.
"""

import pytest

from trellis.http.request import Request
from trellis.http.uri import Uri


class TestRequestBasics:
    """Tests for method, URI and request target."""

    def test_defaults(self):
        request = Request()

        assert request.get_method() == "GET"
        assert request.get_request_target() == "/"
        assert request.get_protocol_version() == "1.1"
        assert not request.has_header("Host")

    def test_string_uri_is_parsed(self):
        request = Request(uri="http://example.com/api/users?page=1")

        assert isinstance(request.get_uri(), Uri)
        assert request.get_request_target() == "/api/users?page=1"

    def test_invalid_uri_type(self):
        with pytest.raises(TypeError):
            Request(uri=42)

    def test_method_case_is_preserved(self):
        request = Request().with_method("patch")

        assert request.get_method() == "patch"

    @pytest.mark.parametrize("method", ["", "GE T", "GET\r\n", "(GET)"])
    def test_invalid_method(self, method):
        with pytest.raises(ValueError):
            Request().with_method(method)

    def test_explicit_request_target(self):
        request = Request(uri="http://example.com/").with_request_target("*")

        assert request.get_request_target() == "*"

    def test_request_target_rejects_whitespace(self):
        with pytest.raises(ValueError):
            Request().with_request_target("/a b")

    def test_with_method_is_immutable(self):
        original = Request()
        original.with_method("POST")

        assert original.get_method() == "GET"


class TestRequestHostHeader:
    """Tests for keeping the Host header in sync with the URI."""

    def test_host_added_first(self):
        request = Request(
            uri="http://example.com:8080/",
            headers={"Accept": "text/html"},
        )

        assert list(request.get_headers()) == ["Host", "Accept"]
        assert request.get_header_line("Host") == "example.com:8080"

    def test_explicit_host_kept(self):
        request = Request(uri="http://example.com/", headers={"host": "proxy.local"})

        assert request.get_header("Host") == ["proxy.local"]

    def test_with_uri_replaces_host(self):
        request = Request(uri="http://example.com/").with_uri("http://other.org/path")

        assert request.get_header_line("Host") == "other.org"
        assert request.get_request_target() == "/path"

    def test_with_uri_preserve_host(self):
        request = Request(uri="http://example.com/")
        updated = request.with_uri(Uri.parse("http://other.org/"), preserve_host=True)

        assert updated.get_header_line("Host") == "example.com"
        assert updated.get_uri().get_host() == "other.org"

    def test_preserve_host_without_existing_host(self):
        request = Request(uri="/relative")
        updated = request.with_uri("http://other.org/", preserve_host=True)

        assert updated.get_header_line("Host") == "other.org"

    def test_with_uri_without_host_keeps_header(self):
        request = Request(uri="http://example.com/")
        updated = request.with_uri("/only-path")

        assert updated.get_header_line("Host") == "example.com"

    def test_original_unchanged_after_with_uri(self):
        request = Request(uri="http://example.com/")
        request.with_uri("http://other.org/")

        assert request.get_header_line("Host") == "example.com"
        assert request.get_uri().get_host() == "example.com"
