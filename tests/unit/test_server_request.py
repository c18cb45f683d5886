"""
Unit tests for ServerRequest.
"""

import pytest

from trellis.http.server_request import ServerRequest
from trellis.http.stream import Stream
from trellis.http.uploaded_file import UploadedFile


def make_upload(content: bytes = b"data") -> UploadedFile:
    return UploadedFile(Stream.from_bytes(content), len(content), client_filename="a.txt")


class TestServerRequestParams:
    """Tests for server, query and cookie parameters."""

    def test_defaults_are_empty(self):
        request = ServerRequest()

        assert request.get_server_params() == {}
        assert request.get_query_params() == {}
        assert request.get_cookie_params() == {}
        assert request.get_parsed_body() is None
        assert request.get_uploaded_files() == {}
        assert request.get_attributes() == {}

    def test_with_query_params_does_not_touch_uri(self):
        request = ServerRequest(uri="http://example.com/?a=1")
        updated = request.with_query_params({"b": "2"})

        assert updated.get_query_params() == {"b": "2"}
        assert updated.get_uri().get_query() == "a=1"
        assert request.get_query_params() == {}

    def test_with_cookie_params(self):
        request = ServerRequest().with_cookie_params({"session": "abc"})

        assert request.get_cookie_params() == {"session": "abc"}

    def test_getters_return_copies(self):
        request = ServerRequest(server_params={"REQUEST_METHOD": "GET"})
        request.get_server_params()["REQUEST_METHOD"] = "POST"

        assert request.get_server_params() == {"REQUEST_METHOD": "GET"}

    def test_constructor_copies_mappings(self):
        params = {"a": "1"}
        request = ServerRequest(query_params=params)
        params["a"] = "changed"

        assert request.get_query_params() == {"a": "1"}


class TestServerRequestParsedBody:
    """Tests for the parsed body."""

    @pytest.mark.parametrize("data", [None, {"a": 1}, [1, 2], object()])
    def test_accepted_values(self, data):
        assert ServerRequest().with_parsed_body(data).get_parsed_body() is data

    @pytest.mark.parametrize("data", ["text", b"bytes", 1, 1.5, True])
    def test_scalars_rejected(self, data):
        with pytest.raises(TypeError):
            ServerRequest().with_parsed_body(data)

    def test_constructor_rejects_scalar(self):
        with pytest.raises(TypeError):
            ServerRequest(parsed_body="text")


class TestServerRequestUploadedFiles:
    """Tests for the uploaded-file tree."""

    def test_flat_tree(self):
        upload = make_upload()
        request = ServerRequest().with_uploaded_files({"avatar": upload})

        assert request.get_uploaded_files()["avatar"] is upload

    def test_nested_tree(self):
        tree = {
            "docs": [make_upload(), make_upload()],
            "profile": {"cv": make_upload()},
        }
        request = ServerRequest().with_uploaded_files(tree)

        assert len(request.get_uploaded_files()["docs"]) == 2

    def test_invalid_leaf_rejected(self):
        with pytest.raises(ValueError, match=r"profile\[cv\]"):
            ServerRequest().with_uploaded_files({"profile": {"cv": "not a file"}})


class TestServerRequestAttributes:
    """Tests for request attributes."""

    def test_with_and_get_attribute(self):
        request = ServerRequest().with_attribute("user_id", 42)

        assert request.get_attribute("user_id") == 42
        assert request.get_attributes() == {"user_id": 42}

    def test_get_attribute_default(self):
        assert ServerRequest().get_attribute("missing", "fallback") == "fallback"

    def test_without_attribute(self):
        request = ServerRequest().with_attribute("a", 1).with_attribute("b", 2)
        updated = request.without_attribute("a")

        assert updated.get_attributes() == {"b": 2}
        assert request.get_attributes() == {"a": 1, "b": 2}

    def test_without_missing_attribute_is_a_copy(self):
        request = ServerRequest()
        updated = request.without_attribute("missing")

        assert updated is not request
        assert updated.get_attributes() == {}

    def test_none_attribute_value_can_be_removed(self):
        request = ServerRequest().with_attribute("flag", None)

        assert request.without_attribute("flag").get_attributes() == {}


class TestServerRequestCloneIsolation:
    """Clones must not share mutable containers with the original."""

    def test_attributes(self):
        request = ServerRequest(attributes={"user": "ada"})
        clone = request.with_method("POST")

        clone.attributes["user"] = "mallory"

        assert request.get_attribute("user") == "ada"

    def test_server_params(self):
        request = ServerRequest(server_params={"REMOTE_ADDR": "10.0.0.1"})
        clone = request.with_attribute("a", 1)

        clone.server_params["REMOTE_ADDR"] = "6.6.6.6"

        assert request.get_server_params() == {"REMOTE_ADDR": "10.0.0.1"}

    def test_query_params_and_nested_lists(self):
        request = ServerRequest(query_params={"tag": ["a", "b"]})
        clone = request.with_attribute("a", 1)

        clone.query_params["tag"].append("c")
        clone.query_params["page"] = "2"

        assert request.get_query_params() == {"tag": ["a", "b"]}

    def test_cookie_params(self):
        request = ServerRequest(cookie_params={"session": "abc"})
        clone = request.with_attribute("a", 1)

        clone.cookie_params["session"] = "stolen"

        assert request.get_cookie_params() == {"session": "abc"}

    def test_uploaded_files(self):
        upload = make_upload()
        request = ServerRequest(uploaded_files={"docs": [upload]})
        clone = request.with_attribute("a", 1)

        clone.uploaded_files["docs"].append(make_upload(b"extra"))
        clone.uploaded_files["avatar"] = make_upload()

        assert request.get_uploaded_files() == {"docs": [upload]}
        assert clone.get_uploaded_files()["docs"][0] is upload

    def test_parsed_body(self):
        request = ServerRequest(parsed_body={"name": "ada"})
        clone = request.with_attribute("a", 1)

        clone.parsed_body["name"] = "mallory"

        assert request.get_parsed_body() == {"name": "ada"}


class TestServerRequestFromEnviron:
    """Tests for the from_environ shortcut."""

    def test_from_environ(self, make_environ):
        request = ServerRequest.from_environ(make_environ("DELETE", "/items/7"))

        assert request.get_method() == "DELETE"
        assert request.get_uri().get_path() == "/items/7"
