"""
Unit tests for Stream.
"""

import io
import os

import pytest

from trellis.http.stream import Stream, StreamError


class TestStreamConstruction:
    """Tests for creating streams."""

    def test_default_is_empty_memory_buffer(self):
        stream = Stream()

        assert stream.get_size() == 0
        assert stream.is_readable()
        assert stream.is_writable()
        assert stream.is_seekable()
        assert stream.get_metadata("stream_type") == "BytesIO"

    def test_from_bytes_is_rewound(self):
        stream = Stream.from_bytes(b"hello")

        assert stream.tell() == 0
        assert stream.get_contents() == b"hello"

    def test_from_bytes_encodes_str(self):
        stream = Stream.from_bytes("héllo")

        assert bytes(stream) == "héllo".encode("utf-8")

    def test_from_file_records_uri(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"notes")

        with Stream.from_file(path, "r") as stream:
            assert stream.get_metadata("uri") == str(path)
            assert stream.get_metadata("mode") == "rb"
            assert stream.read(5) == b"notes"

    def test_from_file_missing_raises(self, tmp_path):
        with pytest.raises(StreamError):
            Stream.from_file(tmp_path / "missing.bin")

    def test_temporary_stream_roundtrip(self):
        stream = Stream.temporary(spool_size=4)
        stream.write(b"more than four bytes")
        stream.rewind()

        assert stream.get_contents() == b"more than four bytes"
        assert stream.get_size() == 20


class TestStreamCapabilities:
    """Tests for readable/writable/seekable probing."""

    def test_read_only_file(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"abc")

        with Stream.from_file(path) as stream:
            assert stream.is_readable()
            assert not stream.is_writable()

            with pytest.raises(StreamError):
                stream.write(b"x")

    def test_mode_fallback_for_plain_objects(self):
        class Reader:
            def read(self, length=-1):
                return b""

        stream = Stream(Reader(), "rb")

        assert stream.is_readable()
        assert not stream.is_writable()
        assert not stream.is_seekable()

    def test_unseekable_seek_raises(self):
        class Reader:
            def read(self, length=-1):
                return b""

        with pytest.raises(StreamError):
            Stream(Reader(), "rb").seek(0)


class TestStreamReadWrite:
    """Tests for reading, writing and positioning."""

    def test_write_returns_byte_count(self):
        stream = Stream()

        assert stream.write("é") == 2

    def test_write_invalidates_cached_size(self):
        stream = Stream(io.BytesIO(), "w+b", size=0)
        stream.write(b"abcd")

        assert stream.get_size() == 4

    def test_reading_to_end_sets_eof(self):
        stream = Stream.from_bytes(b"abc")

        assert stream.read(2) == b"ab"
        assert not stream.eof()
        assert stream.read(10) == b"c"
        assert stream.eof()

    def test_seek_resets_eof(self):
        stream = Stream.from_bytes(b"abc")
        stream.get_contents()
        assert stream.eof()

        stream.seek(1)
        assert not stream.eof()
        assert stream.read(2) == b"bc"

    def test_seek_relative_and_from_end(self):
        stream = Stream.from_bytes(b"0123456789")

        stream.seek(2)
        stream.seek(3, os.SEEK_CUR)
        assert stream.tell() == 5

        stream.seek(-2, os.SEEK_END)
        assert stream.read(2) == b"89"

    def test_invalid_whence(self):
        with pytest.raises(ValueError):
            Stream.from_bytes(b"abc").seek(0, 7)

    def test_negative_read_length(self):
        with pytest.raises(ValueError):
            Stream.from_bytes(b"abc").read(-1)

    def test_empty_stream_is_at_eof(self):
        assert Stream().eof()

    def test_iter_chunks(self):
        stream = Stream.from_bytes(b"abcdefg")

        assert list(stream.iter_chunks(3)) == [b"abc", b"def", b"g"]

    def test_short_read_is_not_eof(self, trickle_stream):
        stream = trickle_stream(b"abcdefgh")

        assert stream.read(8) == b"abc"
        assert not stream.eof()

        while stream.read(8):
            pass
        assert stream.eof()

    def test_iter_chunks_continues_after_short_reads(self, trickle_stream):
        stream = trickle_stream(b"abcdefgh", step=2)

        assert b"".join(stream.iter_chunks(8)) == b"abcdefgh"

    def test_copy_to_after_short_reads(self, trickle_stream):
        destination = io.BytesIO()

        assert trickle_stream(b"abcdefgh").copy_to(destination) == 8
        assert destination.getvalue() == b"abcdefgh"

    def test_copy_to_starts_from_beginning(self):
        stream = Stream.from_bytes(b"payload")
        stream.read(3)
        destination = io.BytesIO()

        assert stream.copy_to(destination) == 7
        assert destination.getvalue() == b"payload"


class TestStreamLifecycle:
    """Tests for detach, close and conversion."""

    def test_detach_returns_resource(self):
        resource = io.BytesIO(b"abc")
        stream = Stream(resource)

        assert stream.detach() is resource
        assert stream.detach() is None
        assert stream.closed

    def test_detached_stream(self):
        stream = Stream.from_bytes(b"abc")
        stream.detach()

        assert stream.get_size() is None
        assert stream.get_metadata() == {}
        assert stream.get_metadata("mode") is None
        assert stream.eof()
        assert not stream.is_readable()
        assert bytes(stream) == b""
        assert str(stream) == ""

        with pytest.raises(StreamError):
            stream.read(1)
        with pytest.raises(StreamError):
            stream.tell()

    def test_close_closes_resource(self):
        resource = io.BytesIO(b"abc")
        stream = Stream(resource)
        stream.close()

        assert resource.closed
        assert stream.closed

    def test_str_reads_whole_stream(self):
        stream = Stream.from_bytes(b"hello world")
        stream.read(6)

        assert str(stream) == "hello world"

    def test_metadata_keys(self):
        metadata = Stream().get_metadata()

        assert set(metadata) >= {"uri", "mode", "seekable", "closed", "stream_type"}
        assert metadata["seekable"] is True
        assert metadata["closed"] is False
