# backend/scandms/models/page.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .status import RecordStatus, status_column_type


class Page(Base):
    __tablename__ = "pages"
    __table_args__ = (
        Index("ix_pages_document_status_number", "document_id", "status", "page_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False)
    page_number = Column(Integer, nullable=False)
    page_order = Column(Integer, nullable=False)

    file_path = Column(String(512), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=False)
    thumbnail_path = Column(String(512), nullable=True)
    source_file_name = Column(String(255), nullable=True)
    status = Column(status_column_type(), nullable=False, default=RecordStatus.ACTIVE)

    ocr_text = Column(Text, nullable=True)
    ocr_confidence = Column(Float, nullable=True)
    ocr_processed_at = Column(DateTime(timezone=True), nullable=True)
    ocr_language = Column(String(20), nullable=True)
    word_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    document = relationship("Document", back_populates="pages")

    @property
    def has_ocr(self) -> bool:
        return bool(self.ocr_text and self.ocr_text.strip())

    @property
    def source_type(self) -> str:
        if self.source_file_name and self.source_file_name.lower().endswith(".pdf"):
            return "pdf"
        if self.mime_type and self.mime_type.startswith("image/"):
            return "image"
        return "unknown"
