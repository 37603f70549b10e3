# backend/scandms/utils/files.py
import mimetypes
import re
import shutil
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

from .logging import service_logger

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(name: str | None, default: str = "upload") -> str:
    """Strip directory parts and unsafe characters from a client supplied name"""
    base = Path(name or "").name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or default


def unique_file_name(original_name: str | None) -> str:
    """Collision-resistant name: a fresh uuid prefixed to the sanitized original name"""
    return f"{uuid4()}_{safe_file_name(original_name)}"


async def save_upload_file(upload_file: UploadFile, directory: Path) -> Path:
    """Save an uploaded file with a unique name and return the path"""
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / unique_file_name(upload_file.filename)

    with file_path.open("wb") as buffer:
        shutil.copyfileobj(upload_file.file, buffer)

    return file_path


def guess_mime_type(file_path: Path, declared: str | None = None) -> str:
    """Prefer the declared content type, fall back to the file extension"""
    if declared and declared != "application/octet-stream":
        return declared.lower()
    guessed, _ = mimetypes.guess_type(str(file_path))
    return guessed or "application/octet-stream"


def delete_file(file_path: Path | None) -> bool:
    """Delete a file if it exists; failures are logged, not raised"""
    if file_path is None:
        return False
    try:
        if file_path.exists():
            file_path.unlink()
            return True
    except OSError as e:
        service_logger.warning(f"Error deleting file {file_path}: {e}", extra={"file_path": str(file_path)})
    return False


def get_relative_path(absolute_path: Path, base_path: Path) -> str:
    """Convert absolute path to relative path for database storage"""
    absolute_path = Path(absolute_path).absolute()
    base_path = Path(base_path).absolute()
    try:
        return str(absolute_path.relative_to(base_path))
    except ValueError:
        # Outside the storage root; keep the absolute path
        return str(absolute_path)


def resolve_storage_path(stored_path: str | None, base_path: Path) -> Path | None:
    """Inverse of get_relative_path"""
    if not stored_path:
        return None
    path = Path(stored_path)
    return path if path.is_absolute() else base_path / path
