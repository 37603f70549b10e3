# backend/scandms/config.py
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./scandms.db"

    # Storage Paths
    STORAGE_PATH: Path = Path("storage")
    UPLOADS_PATH: Path | None = None  # Will be set based on STORAGE_PATH
    DOCUMENTS_PATH: Path | None = None  # Will be set based on STORAGE_PATH

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Rasterization
    PDF_DENSITY: int = 200
    PDF_FORMAT: Literal["jpeg", "png"] = "jpeg"
    RASTERIZE_TIMEOUT_SECONDS: int = 600

    # Thumbnails
    THUMBNAIL_WIDTH: int = 300
    THUMBNAIL_HEIGHT: int = 400
    THUMBNAIL_QUALITY: int = 80
    THUMBNAIL_BACKGROUND: str = "#ffffff"

    # OCR
    OCR_LANGUAGE: str = "eng"
    OCR_TIMEOUT_SECONDS: int = 60
    TESSERACT_CMD: str = "tesseract"

    # Search
    SEARCH_MIN_QUERY_LENGTH: int = 2
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 100
    ADMIN_PERMISSION: str = "admin_access"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def model_post_init(self, __context) -> None:
        """Post initialization hook to set derived paths"""
        if isinstance(self.STORAGE_PATH, str):
            self.STORAGE_PATH = Path(self.STORAGE_PATH)

        self.UPLOADS_PATH = Path(self.UPLOADS_PATH) if self.UPLOADS_PATH else self.STORAGE_PATH / "uploads"
        self.DOCUMENTS_PATH = Path(self.DOCUMENTS_PATH) if self.DOCUMENTS_PATH else self.STORAGE_PATH / "documents"

        self.create_storage_dirs()

    def create_storage_dirs(self) -> None:
        """Create necessary storage directories if they don't exist"""
        for path in [self.STORAGE_PATH, self.UPLOADS_PATH, self.DOCUMENTS_PATH]:
            path.mkdir(parents=True, exist_ok=True)

    def document_dirs(self, document_id: int) -> tuple[Path, Path]:
        """Return (pages_dir, thumbnails_dir) for a document, creating them"""
        document_dir = self.DOCUMENTS_PATH / str(document_id)
        pages_dir = document_dir / "pages"
        thumbnails_dir = document_dir / "thumbnails"
        for path in (pages_dir, thumbnails_dir):
            path.mkdir(parents=True, exist_ok=True)
        return pages_dir, thumbnails_dir


settings = Settings()
