# tests/utils/test_files.py
import io
from pathlib import Path

import pytest
from fastapi import UploadFile

from scandms.utils.files import (
    delete_file,
    get_relative_path,
    guess_mime_type,
    resolve_storage_path,
    safe_file_name,
    save_upload_file,
    unique_file_name,
)


@pytest.fixture
def mock_upload_file():
    async def _create_upload_file(filename: str, content: bytes):
        return UploadFile(filename=filename, file=io.BytesIO(content))
    return _create_upload_file


@pytest.mark.asyncio
async def test_save_upload_file(mock_upload_file, temp_storage_dir):
    """Test saving an uploaded file"""
    upload_file = await mock_upload_file("test.pdf", b"test file content")

    saved_path = await save_upload_file(upload_file, temp_storage_dir / "uploads")

    assert saved_path.exists()
    assert saved_path.read_bytes() == b"test file content"
    assert saved_path.name.endswith("_test.pdf")


@pytest.mark.asyncio
async def test_save_upload_file_creates_directory(mock_upload_file, temp_storage_dir):
    new_dir = temp_storage_dir / "new_directory"

    saved_path = await save_upload_file(await mock_upload_file("test.png", b"content"), new_dir)

    assert new_dir.exists()
    assert saved_path.parent == new_dir


def test_safe_file_name_strips_directories():
    assert safe_file_name("../../etc/passwd") == "passwd"
    assert safe_file_name("my scan (1).pdf") == "my_scan_1_.pdf"
    assert safe_file_name("") == "upload"


def test_unique_file_names_do_not_collide():
    assert unique_file_name("scan.pdf") != unique_file_name("scan.pdf")


def test_guess_mime_type_prefers_declared():
    assert guess_mime_type(Path("a.bin"), "IMAGE/PNG") == "image/png"
    assert guess_mime_type(Path("a.pdf"), "application/octet-stream") == "application/pdf"
    assert guess_mime_type(Path("a.jpg")) == "image/jpeg"


def test_delete_file(tmp_path):
    target = tmp_path / "gone.txt"
    target.write_text("x")

    assert delete_file(target) is True
    assert delete_file(target) is False
    assert delete_file(None) is False


def test_relative_path_round_trip(temp_storage_dir):
    absolute = temp_storage_dir / "documents" / "1" / "pages" / "a.jpg"

    relative = get_relative_path(absolute, temp_storage_dir)

    assert relative == str(Path("documents/1/pages/a.jpg"))
    assert resolve_storage_path(relative, temp_storage_dir) == temp_storage_dir / relative
    assert resolve_storage_path(None, temp_storage_dir) is None


def test_relative_path_outside_storage(tmp_path, temp_storage_dir):
    outside = tmp_path / "elsewhere" / "a.jpg"

    assert get_relative_path(outside, temp_storage_dir) == str(outside.absolute())
