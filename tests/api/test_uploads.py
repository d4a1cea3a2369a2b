import io
import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from gemini_gateway.api.dependencies.uploads import stored_upload, safe_unlink


def _upload(data: bytes, filename: str = "clip.wav", content_type: str = "audio/wav") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


class TestStoredUpload:
    def test_writes_copy_and_removes_it(self, tmp_path):
        with stored_upload(_upload(b"RIFF....WAVE"), tmp_path) as stored:
            assert stored.path.parent == tmp_path
            assert stored.path.suffix == ".wav"
            assert stored.path.read_bytes() == b"RIFF....WAVE"
            assert stored.mime_type == "audio/wav"
            assert stored.filename == "clip.wav"
            assert stored.size == 12

        assert not stored.path.exists()

    def test_removed_when_block_raises(self, tmp_path):
        with pytest.raises(RuntimeError):
            with stored_upload(_upload(b"data"), tmp_path) as stored:
                raise RuntimeError("model call failed")

        assert not stored.path.exists()
        assert list(tmp_path.iterdir()) == []

    def test_creates_missing_upload_dir(self, tmp_path):
        target = tmp_path / "nested" / "uploads"
        with stored_upload(_upload(b"data"), target) as stored:
            assert stored.path.exists()
        assert target.is_dir()

    def test_file_already_removed_inside_block(self, tmp_path):
        with stored_upload(_upload(b"data"), tmp_path) as stored:
            stored.path.unlink()
        assert list(tmp_path.iterdir()) == []

    def test_upload_without_filename(self, tmp_path):
        with stored_upload(_upload(b"data", filename=None, content_type=""), tmp_path) as stored:
            assert stored.path.suffix == ""
            assert stored.mime_type == "application/octet-stream"


class TestSafeUnlink:
    def test_ignores_none_and_missing(self, tmp_path):
        safe_unlink(None)
        safe_unlink(tmp_path / "missing.bin")

    def test_removes_file(self, tmp_path):
        target = tmp_path / "upload.bin"
        target.write_bytes(b"x")
        safe_unlink(target)
        assert not target.exists()
