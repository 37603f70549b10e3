# backend/scandms/dependencies.py
from functools import lru_cache
from typing import Optional

from fastapi import Header

from .config import settings
from .services.ingestion import IngestionPipeline
from .services.locks import DocumentLocks
from .services.ocr import OCRService, TesseractEngine
from .services.pages import PageService
from .services.rasterizer import PageSplitter, PdfImageRenderer
from .services.search import SearchFilters, SearchService
from .services.search_index import SearchIndex
from .services.thumbnails import ThumbnailGenerator


@lru_cache
def get_search_index() -> SearchIndex:
    return SearchIndex()


@lru_cache
def get_page_service() -> PageService:
    return PageService(get_search_index())


@lru_cache
def get_ocr_service() -> OCRService:
    engine = TesseractEngine(
        tesseract_cmd=settings.TESSERACT_CMD,
        timeout_seconds=settings.OCR_TIMEOUT_SECONDS
    )
    return OCRService(
        engine,
        timeout_seconds=settings.OCR_TIMEOUT_SECONDS,
        default_language=settings.OCR_LANGUAGE
    )


@lru_cache
def get_splitter() -> PageSplitter:
    renderer = PdfImageRenderer(
        density=settings.PDF_DENSITY,
        fmt=settings.PDF_FORMAT,
        timeout_seconds=settings.RASTERIZE_TIMEOUT_SECONDS
    )
    return PageSplitter(renderer)


@lru_cache
def get_thumbnail_generator() -> ThumbnailGenerator:
    return ThumbnailGenerator(
        width=settings.THUMBNAIL_WIDTH,
        height=settings.THUMBNAIL_HEIGHT,
        quality=settings.THUMBNAIL_QUALITY,
        background=settings.THUMBNAIL_BACKGROUND
    )


@lru_cache
def get_document_locks() -> DocumentLocks:
    return DocumentLocks()


@lru_cache
def get_pipeline() -> IngestionPipeline:
    return IngestionPipeline(
        splitter=get_splitter(),
        thumbnails=get_thumbnail_generator(),
        ocr=get_ocr_service(),
        pages=get_page_service(),
        locks=get_document_locks()
    )


@lru_cache
def get_search_service() -> SearchService:
    return SearchService(
        min_query_length=settings.SEARCH_MIN_QUERY_LENGTH,
        default_limit=settings.SEARCH_DEFAULT_LIMIT,
        max_limit=settings.SEARCH_MAX_LIMIT,
        admin_permission=settings.ADMIN_PERMISSION
    )


def _split_header(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def get_search_filters(
        project_id: Optional[int] = None,
        x_user_id: Optional[int] = Header(None),
        x_user_permissions: Optional[str] = Header(None),
        x_project_ids: Optional[str] = Header(None)
) -> SearchFilters:
    """Caller scope from the headers set by the upstream auth proxy.

    Malformed project ids in X-Project-Ids are skipped.
    """
    project_ids = set()
    for raw in _split_header(x_project_ids):
        if raw.isdigit():
            project_ids.add(int(raw))

    return SearchFilters(
        project_id=project_id,
        user_id=x_user_id,
        user_permissions=frozenset(_split_header(x_user_permissions)),
        accessible_project_ids=frozenset(project_ids)
    )
