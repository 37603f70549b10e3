# backend/scandms/schemas/search.py
from typing import List, Optional

from pydantic import BaseModel


class SearchMatch(BaseModel):
    page_id: int
    page_number: int
    file_name: Optional[str] = None
    snippet: str
    relevance: float
    ocr_confidence: Optional[float] = None
    word_count: int = 0


class SearchDocumentResult(BaseModel):
    document_id: int
    title: str
    project_id: int
    project_name: str
    matches: List[SearchMatch] = []
    total_relevance: float = 0.0


class SearchResponse(BaseModel):
    results: List[SearchDocumentResult]
    total: int
    has_more: bool
    query: str
    limit: int
    offset: int


class Suggestion(BaseModel):
    text: str
    type: str = "document"


class SuggestionResponse(BaseModel):
    suggestions: List[Suggestion]


class IndexRebuildResult(BaseModel):
    success: bool = True
    entries: int


class OCRStats(BaseModel):
    total_pages: int
    pages_with_ocr: int
    total_words: int
    avg_confidence: float
    documents_with_ocr: int
    total_documents: int
    index_entries: int
