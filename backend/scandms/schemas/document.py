# backend/scandms/schemas/document.py
from datetime import datetime
from typing import List, Optional

from .base import BaseSchema, TimestampMixin
from .page import Page
from ..models.status import RecordStatus


class DocumentBase(BaseSchema):
    title: str
    description: Optional[str] = None


class DocumentCreate(DocumentBase):
    project_id: int


class DocumentUpdate(BaseSchema):
    title: Optional[str] = None
    description: Optional[str] = None


class Document(DocumentBase, TimestampMixin):
    id: int
    project_id: int
    status: RecordStatus
    total_pages: int = 0
    has_ocr_text: bool = False
    ocr_language: Optional[str] = None
    ocr_completed_at: Optional[datetime] = None


class DocumentDetail(Document):
    pages: List[Page] = []


class DocumentDeleteResult(BaseSchema):
    success: bool = True
    document_id: int
    pages_deleted: int


class PageCountFix(BaseSchema):
    document_id: int
    total_pages: int
