# backend/scandms/schemas/page.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .base import BaseSchema, TimestampMixin
from ..models.status import RecordStatus


class Page(BaseSchema, TimestampMixin):
    id: int
    document_id: int
    page_number: int
    page_order: int
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    thumbnail_path: Optional[str] = None
    source_file_name: Optional[str] = None
    source_type: str
    status: RecordStatus
    has_ocr: bool = False
    ocr_text: Optional[str] = None
    ocr_confidence: Optional[float] = None
    ocr_processed_at: Optional[datetime] = None
    ocr_language: Optional[str] = None
    word_count: int = 0


class PageOCRText(BaseSchema):
    id: int
    document_id: int
    page_number: int
    file_name: str
    ocr_text: str = ""
    ocr_processed: bool = False
    ocr_confidence: Optional[float] = None
    ocr_processed_at: Optional[datetime] = None
    ocr_language: Optional[str] = None
    word_count: int = 0


class PageOCRRequest(BaseModel):
    language: Optional[str] = None


class PageOrderItem(BaseModel):
    page_id: int
    new_page_number: int


class PageReorderRequest(BaseModel):
    pages: List[PageOrderItem]


class PageReorderResult(BaseModel):
    document_id: int
    updated_count: int


class PageDeleteResult(BaseModel):
    success: bool = True
    page_id: int
    document_id: int
    remaining_pages: int
