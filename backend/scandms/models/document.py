# backend/scandms/models/document.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from .status import RecordStatus, status_column_type


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(status_column_type(), nullable=False, default=RecordStatus.ACTIVE)

    # Denormalized counters, maintained by the ingestion pipeline
    total_pages = Column(Integer, nullable=False, default=0, server_default="0")
    has_ocr_text = Column(Boolean, nullable=False, default=False, server_default="0")
    ocr_language = Column(String(20), nullable=True)
    ocr_completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="documents")
    pages = relationship("Page", back_populates="document", order_by="Page.page_order")
