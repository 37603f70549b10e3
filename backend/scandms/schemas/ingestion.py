# backend/scandms/schemas/ingestion.py
from typing import List, Literal, Optional

from pydantic import BaseModel

from .page import Page


class IngestionResult(BaseModel):
    """Outcome of one uploaded file.

    `total_pages` counts the pages this upload produced; the document's
    running total is `document_total_pages`.
    """
    document_id: int
    file_type: Literal["pdf", "image"]
    pages: List[Page]
    total_pages: int
    document_total_pages: int
    ocr_processed: bool
    ocr_words_found: int
    has_ocr_text: bool
    errors: List[str] = []


class BatchOCRRequest(BaseModel):
    language: Optional[str] = None
    force_reprocess: bool = False


class BatchOCRResult(BaseModel):
    document_id: int
    processed_pages: int
    total_pages: int
    total_words: int
    language: str
    errors: List[str] = []
    message: str = ""


class PageCountRepairResult(BaseModel):
    fixed: int
    failed: int
    errors: List[str] = []
