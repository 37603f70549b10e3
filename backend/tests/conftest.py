# tests/conftest.py
import os
from pathlib import Path
from typing import Callable, List

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scandms.config import settings
from scandms.database import Base, get_db
from scandms.dependencies import get_pipeline
from scandms.errors import RasterizationError
from scandms.main import app
from scandms.models import Document, Project
from scandms.services.ingestion import IngestionPipeline
from scandms.services.locks import DocumentLocks
from scandms.services.ocr import OCRResult, OCRService
from scandms.services.pages import PageDraft, PageService
from scandms.services.rasterizer import PageSplitter
from scandms.services.search_index import SearchIndex
from scandms.services.thumbnails import ThumbnailGenerator
from scandms.utils.files import get_relative_path

# Create test database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


def make_image(path: Path, size=(200, 300), color="white", label: str | None = None) -> Path:
    """Write a small real image with Pillow"""
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color)
    if label:
        ImageDraw.Draw(image).text((10, 10), label, fill="black")
    image.save(path)
    return path


class FakeRenderer:
    """Stands in for poppler: writes one JPEG per requested page"""

    def __init__(self, page_count: int = 1, fail: bool = False):
        self.page_count = page_count
        self.fail = fail
        self.calls = 0

    def render_pdf(self, pdf_path: Path, output_dir: Path) -> List[Path]:
        self.calls += 1
        output_dir.mkdir(parents=True, exist_ok=True)
        if self.fail:
            # Leave a half-written output behind like a crashed renderer would
            make_image(output_dir / "partial-1.jpg")
            raise RasterizationError("Failed to process PDF: Syntax Error: Couldn't read xref table")
        return [
            make_image(output_dir / f"render-{index:03d}.jpg", label=f"page {index}")
            for index in range(1, self.page_count + 1)
        ]


class FakeOCREngine:
    """OCR engine returning queued results; an Exception in the queue is raised"""

    def __init__(self, results: List[OCRResult | Exception] | None = None,
                 default: OCRResult | None = None):
        self.results = list(results or [])
        self.default = default or OCRResult(text="Sample extracted text", confidence=91.5, word_count=3)
        self.calls: List[tuple] = []

    def recognize(self, image_path: Path, language: str) -> OCRResult:
        self.calls.append((Path(image_path), language))
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def engine():
    """Fresh in-memory database per test, FTS table included"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool  # Needed for SQLite in-memory database
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Creates a new database session for a test"""
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def temp_storage_dir(tmp_path):
    """Temporary storage root for test files"""
    storage = tmp_path / "storage"
    for subdir in ["uploads", "documents"]:
        (storage / subdir).mkdir(parents=True, exist_ok=True)
    return storage


@pytest.fixture(autouse=True)
def override_settings(temp_storage_dir):
    """Override settings for testing"""
    original_storage = settings.STORAGE_PATH
    original_uploads = settings.UPLOADS_PATH
    original_documents = settings.DOCUMENTS_PATH

    settings.STORAGE_PATH = temp_storage_dir
    settings.UPLOADS_PATH = temp_storage_dir / "uploads"
    settings.DOCUMENTS_PATH = temp_storage_dir / "documents"

    yield

    settings.STORAGE_PATH = original_storage
    settings.UPLOADS_PATH = original_uploads
    settings.DOCUMENTS_PATH = original_documents


@pytest.fixture
def image_factory() -> Callable:
    return make_image


@pytest.fixture
def search_index():
    return SearchIndex()


@pytest.fixture
def index_text(db_session) -> Callable:
    """Indexed text for a page id, or None when the page has no entry"""
    def read(page_id: int):
        return db_session.execute(
            text("SELECT page_text FROM page_search WHERE rowid = :page_id"), {"page_id": page_id}
        ).scalar()
    return read


@pytest.fixture
def page_service(search_index):
    return PageService(search_index)


@pytest.fixture
def fake_renderer():
    return FakeRenderer(page_count=3)


@pytest.fixture
def fake_ocr_engine():
    return FakeOCREngine()


@pytest.fixture
def ocr_service(fake_ocr_engine):
    return OCRService(fake_ocr_engine, timeout_seconds=5, default_language="eng")


@pytest.fixture
def thumbnail_generator():
    return ThumbnailGenerator(width=120, height=160, quality=70)


@pytest.fixture
def pipeline(fake_renderer, thumbnail_generator, ocr_service, page_service):
    return IngestionPipeline(
        splitter=PageSplitter(fake_renderer),
        thumbnails=thumbnail_generator,
        ocr=ocr_service,
        pages=page_service,
        locks=DocumentLocks()
    )


@pytest.fixture
def client(db_session, pipeline):
    """Test client using the test database and fake engines"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_project(db_session):
    """Create a sample project"""
    project = Project(
        name="Test Project",
        description="Test Description"
    )
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture
def sample_document(db_session, sample_project):
    """Create a sample document"""
    document = Document(
        title="Test Document",
        description="Test Description",
        project_id=sample_project.id
    )
    db_session.add(document)
    db_session.commit()
    db_session.refresh(document)
    return document


@pytest.fixture
def add_page(db_session, page_service) -> Callable:
    """Persist an indexed page with a real image file behind it"""
    def _add_page(document: Document, page_number: int, ocr_text: str | None = None, confidence: float = 88.0):
        pages_dir, _ = settings.document_dirs(document.id)
        image_path = make_image(pages_dir / f"page_{document.id}_{page_number}.png", label=ocr_text)
        ocr = None
        if ocr_text is not None:
            ocr = OCRResult(text=ocr_text, confidence=confidence, word_count=len(ocr_text.split()))
        page = page_service.persist_batch(db_session, document, [PageDraft(
            page_number=page_number,
            file_path=get_relative_path(image_path, settings.STORAGE_PATH),
            file_name=image_path.name,
            file_size=image_path.stat().st_size,
            mime_type="image/png",
            source_file_name=image_path.name,
            ocr=ocr,
            ocr_language="eng" if ocr else None
        )], ocr_language="eng")[0]
        return page
    return _add_page


@pytest.fixture
def sample_page(sample_document, add_page):
    """Create a sample page with OCR text"""
    return add_page(sample_document, 1, "Quarterly report for the northern region")


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_files():
    """Clean up test files after all tests are done"""
    yield
    for file in ["test.db", "test-scandms.db"]:
        if os.path.exists(file):
            os.remove(file)
