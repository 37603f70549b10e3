# backend/scandms/services/__init__.py
from .ingestion import IngestionPipeline
from .ocr import OCRResult, OCRService, TesseractEngine
from .pages import PageService
from .rasterizer import PageSplitter, PdfImageRenderer
from .search import SearchFilters, SearchService
from .search_index import SearchIndex
from .thumbnails import ThumbnailGenerator

__all__ = [
    "IngestionPipeline", "OCRResult", "OCRService", "TesseractEngine", "PageService",
    "PageSplitter", "PdfImageRenderer", "SearchFilters", "SearchService", "SearchIndex",
    "ThumbnailGenerator"
]
