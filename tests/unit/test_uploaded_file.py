"""
Unit tests for UploadedFile.
"""

import pytest

from trellis.http.stream import Stream
from trellis.http.uploaded_file import (
    UPLOAD_ERR_NO_FILE,
    UPLOAD_ERR_OK,
    UploadedFile,
    UploadError,
    UploadErrorCode,
)


class TestUploadedFileConstruction:
    """Tests for construction and accessors."""

    def test_accessors(self):
        stream = Stream.from_bytes(b"content")
        upload = UploadedFile(stream, 7, UPLOAD_ERR_OK, "notes.txt", "text/plain")

        assert upload.get_stream() is stream
        assert upload.get_size() == 7
        assert upload.get_error() == UPLOAD_ERR_OK
        assert upload.get_client_filename() == "notes.txt"
        assert upload.get_client_media_type() == "text/plain"
        assert not upload.is_moved

    def test_invalid_error_code(self):
        with pytest.raises(ValueError):
            UploadedFile(Stream(), 0, error=5)

    def test_ok_requires_stream(self):
        with pytest.raises(ValueError):
            UploadedFile(None, 0)

    @pytest.mark.parametrize("code", [c for c in UploadErrorCode if c is not UploadErrorCode.OK])
    def test_error_codes_accepted_without_stream(self, code):
        upload = UploadedFile(None, 0, code)

        assert upload.get_error() == code
        assert upload.get_error().message

    def test_stream_unavailable_on_error(self):
        upload = UploadedFile(None, 0, UPLOAD_ERR_NO_FILE)

        with pytest.raises(UploadError):
            upload.get_stream()


class TestUploadedFileMove:
    """Tests for move_to()."""

    def test_move_memory_stream_copies(self, tmp_path):
        upload = UploadedFile(Stream.from_bytes(b"memory data"), 11, client_filename="m.txt")
        target = tmp_path / "moved.txt"

        upload.move_to(target)

        assert target.read_bytes() == b"memory data"
        assert upload.is_moved

    def test_move_file_stream_renames(self, tmp_path):
        source = tmp_path / "upload.tmp"
        source.write_bytes(b"disk data")
        upload = UploadedFile(Stream.from_file(source), 9)
        target = tmp_path / "final.bin"

        upload.move_to(str(target))

        assert target.read_bytes() == b"disk data"
        assert not source.exists()

    def test_move_partially_read_stream_copies_everything(self, tmp_path):
        stream = Stream.from_bytes(b"0123456789")
        stream.read(4)
        upload = UploadedFile(stream, 10)
        target = tmp_path / "full.bin"

        upload.move_to(target)

        assert target.read_bytes() == b"0123456789"

    def test_second_move_fails(self, tmp_path):
        upload = UploadedFile(Stream.from_bytes(b"x"), 1)
        upload.move_to(tmp_path / "first")

        with pytest.raises(UploadError):
            upload.move_to(tmp_path / "second")

    def test_stream_unavailable_after_move(self, tmp_path):
        upload = UploadedFile(Stream.from_bytes(b"x"), 1)
        upload.move_to(tmp_path / "moved")

        with pytest.raises(UploadError):
            upload.get_stream()

    def test_empty_target_path(self):
        with pytest.raises(ValueError):
            UploadedFile(Stream.from_bytes(b"x"), 1).move_to("")

    def test_missing_target_directory(self, tmp_path):
        upload = UploadedFile(Stream.from_bytes(b"x"), 1)

        with pytest.raises(UploadError):
            upload.move_to(tmp_path / "no" / "such" / "dir" / "file")
        assert not upload.is_moved

    def test_move_with_upload_error(self, tmp_path):
        upload = UploadedFile(None, 0, UPLOAD_ERR_NO_FILE)

        with pytest.raises(UploadError):
            upload.move_to(tmp_path / "never")
