from pathlib import Path

import pytest

from clipvault.blobs import FileBlobSink


@pytest.fixture
def sink(tmp_path):
    return FileBlobSink(tmp_path / "content")


class TestWrite:
    def test_creates_directory(self, tmp_path):
        FileBlobSink(tmp_path / "nested" / "content")
        assert (tmp_path / "nested" / "content").is_dir()

    def test_bytes_written_exactly(self, sink):
        data = bytes(range(256))
        path = sink.write(data, ".png")
        assert Path(path).read_bytes() == data

    def test_extension_applied(self, sink):
        assert sink.write(b"x", ".jpg").endswith(".jpg")
        assert sink.write(b"x", "gif").endswith(".gif")

    def test_unique_names_for_same_bytes(self, sink):
        assert sink.write(b"same", ".png") != sink.write(b"same", ".png")

    def test_written_inside_directory(self, sink):
        path = Path(sink.write(b"x", ".png"))
        assert path.parent == sink.directory

    def test_no_partial_files_left(self, sink):
        sink.write(b"x", ".png")
        assert list(sink.directory.glob("*.part")) == []


class TestRead:
    def test_read_back(self, sink):
        path = sink.write(b"payload", ".png")
        assert sink.read(path) == b"payload"

    def test_missing_returns_none(self, sink):
        assert sink.read(str(sink.directory / "gone.png")) is None


class TestDelete:
    def test_delete(self, sink):
        path = sink.write(b"x", ".png")
        sink.delete(path)
        assert not Path(path).exists()

    def test_delete_missing_is_noop(self, sink):
        sink.delete(str(sink.directory / "gone.png"))

    def test_refuses_outside_directory(self, sink, tmp_path):
        outside = tmp_path / "user_file.txt"
        outside.write_text("keep me")
        sink.delete(str(outside))
        assert outside.exists()
