# backend/scandms/schemas/__init__.py
from .project import Project, ProjectCreate, ProjectUpdate, ProjectDetail
from .document import Document, DocumentCreate, DocumentUpdate, DocumentDetail
from .page import Page, PageReorderRequest, PageOCRText
from .ingestion import IngestionResult, BatchOCRRequest, BatchOCRResult
from .search import SearchResponse, SuggestionResponse

__all__ = [
    "Project", "ProjectCreate", "ProjectUpdate", "ProjectDetail",
    "Document", "DocumentCreate", "DocumentUpdate", "DocumentDetail",
    "Page", "PageReorderRequest", "PageOCRText",
    "IngestionResult", "BatchOCRRequest", "BatchOCRResult",
    "SearchResponse", "SuggestionResponse"
]
