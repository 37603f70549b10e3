# backend/scandms/services/pages.py
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql import func

from ..errors import NotFoundError, PageOrderError
from ..models import Document, Page, RecordStatus
from ..utils.logging import db_logger
from .ocr import OCRResult
from .search_index import SearchIndex


@dataclass(frozen=True)
class PageFilter:
    document_id: int
    status: RecordStatus | None = RecordStatus.ACTIVE
    missing_ocr_only: bool = False


@dataclass
class PageDraft:
    """Everything known about a page before its row exists"""
    page_number: int
    file_path: str
    file_name: str
    file_size: int
    mime_type: str
    source_file_name: str
    thumbnail_path: str | None = None
    ocr: OCRResult | None = None
    ocr_language: str | None = None


@dataclass(frozen=True)
class PageOrder:
    page_id: int
    new_page_number: int


@dataclass(frozen=True)
class SoftDeleteResult:
    document_id: int
    remaining_pages: int


@dataclass(frozen=True)
class PageCountRepair:
    fixed: int
    failed: int
    errors: List[str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def query_pages(db: Session, page_filter: PageFilter) -> Query:
    query = db.query(Page).filter(Page.document_id == page_filter.document_id)
    if page_filter.status is not None:
        query = query.filter(Page.status == page_filter.status)
    if page_filter.missing_ocr_only:
        query = query.filter(or_(Page.ocr_text.is_(None), func.trim(Page.ocr_text) == ""))
    return query.order_by(Page.page_order, Page.page_number)


def count_active_pages(db: Session, document_id: int) -> int:
    return db.query(func.count(Page.id)) \
        .filter(Page.document_id == document_id, Page.status == RecordStatus.ACTIVE) \
        .scalar() or 0


class PageService:
    """Page rows and the document counters derived from them"""

    def __init__(self, index: SearchIndex):
        self.index = index

    def create_page(self, db: Session, document: Document, draft: PageDraft) -> Page:
        """Insert one page and its index entry. The caller owns the transaction."""
        ocr = draft.ocr
        page = Page(
            document_id=document.id,
            page_number=draft.page_number,
            page_order=draft.page_number,
            file_path=draft.file_path,
            file_name=draft.file_name,
            file_size=draft.file_size,
            mime_type=draft.mime_type,
            thumbnail_path=draft.thumbnail_path,
            source_file_name=draft.source_file_name,
            status=RecordStatus.ACTIVE,
            ocr_text=ocr.text if ocr and ocr.has_text else None,
            ocr_confidence=ocr.confidence if ocr else None,
            ocr_processed_at=_utcnow() if ocr else None,
            ocr_language=draft.ocr_language,
            word_count=ocr.word_count if ocr else 0,
        )
        db.add(page)
        db.flush()

        self.index.upsert_page(db, page, document)
        return page

    def persist_batch(
            self,
            db: Session,
            document: Document,
            drafts: Sequence[PageDraft],
            ocr_language: str | None = None
    ) -> List[Page]:
        """Insert a batch in one transaction and bump the document counters"""
        pages = [self.create_page(db, document, draft) for draft in drafts]

        self.increment_page_count(db, document.id, len(pages))
        if any(page.has_ocr for page in pages):
            self.mark_ocr_complete(document, ocr_language)

        db.commit()
        for page in pages:
            db.refresh(page)
        db.refresh(document)

        db_logger.info("Persisted page batch", extra={
            "document_id": document.id,
            "page_ids": [p.id for p in pages],
            "page_numbers": [p.page_number for p in pages],
            "total_pages": document.total_pages
        })
        return pages

    def apply_ocr(self, db: Session, page: Page, document: Document, result: OCRResult, language: str) -> None:
        page.ocr_text = result.text if result.has_text else None
        page.ocr_confidence = result.confidence
        page.ocr_processed_at = _utcnow()
        page.ocr_language = language
        page.word_count = result.word_count
        db.flush()
        self.index.upsert_page(db, page, document)

    @staticmethod
    def increment_page_count(db: Session, document_id: int, increment: int = 1) -> None:
        db.query(Document) \
            .filter(Document.id == document_id) \
            .update({Document.total_pages: Document.total_pages + increment}, synchronize_session=False)

    @staticmethod
    def mark_ocr_complete(document: Document, language: str | None) -> None:
        document.has_ocr_text = True
        document.ocr_language = language
        document.ocr_completed_at = _utcnow()

    @staticmethod
    def refresh_ocr_status(db: Session, document: Document, language: str | None = None) -> bool:
        """Recompute has_ocr_text from the document's active pages"""
        has_text = db.query(
            db.query(Page.id)
            .filter(
                Page.document_id == document.id,
                Page.status == RecordStatus.ACTIVE,
                Page.ocr_text.isnot(None),
                func.trim(Page.ocr_text) != ""
            )
            .exists()
        ).scalar()

        document.has_ocr_text = bool(has_text)
        if has_text and language:
            document.ocr_language = language
            document.ocr_completed_at = _utcnow()
        return bool(has_text)

    def find_pages_needing_ocr(self, db: Session, document_id: int, force_reprocess: bool = False) -> List[Page]:
        return query_pages(db, PageFilter(
            document_id=document_id,
            missing_ocr_only=not force_reprocess
        )).all()

    def reorder_pages(self, db: Session, document_id: int, orders: Sequence[PageOrder]) -> int:
        """Apply new page numbers in one transaction.

        The document id is part of every update predicate, so a pair naming a
        page of another document simply matches no row.
        """
        if not orders:
            raise PageOrderError("Page order list must not be empty")
        for order in orders:
            if order.new_page_number < 1:
                raise PageOrderError(f"Invalid page number {order.new_page_number} for page {order.page_id}")

        updated_count = 0
        try:
            for order in orders:
                updated_count += db.query(Page) \
                    .filter(Page.id == order.page_id, Page.document_id == document_id) \
                    .update(
                        {Page.page_number: order.new_page_number, Page.page_order: order.new_page_number},
                        synchronize_session=False
                    )
            db.query(Document) \
                .filter(Document.id == document_id) \
                .update({Document.updated_at: func.now()}, synchronize_session=False)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db.expire_all()
        db_logger.info("Pages reordered", extra={
            "document_id": document_id,
            "requested": len(orders),
            "updated": updated_count
        })
        return updated_count

    def soft_delete_page(self, db: Session, page_id: int) -> SoftDeleteResult:
        page = db.query(Page).filter(Page.id == page_id, Page.status == RecordStatus.ACTIVE).first()
        if not page:
            raise NotFoundError("Page not found")

        document = page.document
        try:
            page.status = RecordStatus.INACTIVE
            self.index.remove(db, page.id)
            db.flush()

            remaining = count_active_pages(db, document.id)
            document.total_pages = remaining
            self.refresh_ocr_status(db, document)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db_logger.info("Page soft deleted", extra={
            "page_id": page_id,
            "document_id": document.id,
            "remaining_pages": remaining
        })
        return SoftDeleteResult(document_id=document.id, remaining_pages=remaining)

    def soft_delete_document(self, db: Session, document: Document) -> int:
        """Deleted status for the document and all its pages; their index entries go too"""
        try:
            affected = db.query(Page) \
                .filter(Page.document_id == document.id, Page.status != RecordStatus.DELETED) \
                .update({Page.status: RecordStatus.DELETED}, synchronize_session=False)
            self.index.remove_document(db, document.id)
            document.status = RecordStatus.DELETED
            document.total_pages = 0
            document.has_ocr_text = False
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db_logger.info("Document soft deleted", extra={
            "document_id": document.id,
            "pages_deleted": affected
        })
        return affected

    @staticmethod
    def fix_page_count(db: Session, document_id: int) -> int:
        actual_count = count_active_pages(db, document_id)
        db.query(Document) \
            .filter(Document.id == document_id) \
            .update({Document.total_pages: actual_count}, synchronize_session=False)
        db.commit()
        return actual_count

    def fix_all_page_counts(self, db: Session) -> PageCountRepair:
        """Recount every active document; a failure on one does not stop the rest"""
        document_ids = [
            row[0] for row in
            db.query(Document.id).filter(Document.status == RecordStatus.ACTIVE).all()
        ]
        fixed, errors = 0, []
        for document_id in document_ids:
            try:
                self.fix_page_count(db, document_id)
                fixed += 1
            except SQLAlchemyError as e:
                db.rollback()
                errors.append(f"Document {document_id}: {e}")
                db_logger.error("Page count repair failed", extra={
                    "document_id": document_id,
                    "error": str(e)
                })
        return PageCountRepair(fixed=fixed, failed=len(errors), errors=errors)

    def ocr_stats(self, db: Session) -> dict:
        active_pages = db.query(Page).filter(Page.status == RecordStatus.ACTIVE)
        pages_with_ocr = active_pages.filter(Page.ocr_text.isnot(None), func.trim(Page.ocr_text) != "")
        return {
            "total_pages": active_pages.count(),
            "pages_with_ocr": pages_with_ocr.count(),
            "total_words": db.query(func.coalesce(func.sum(Page.word_count), 0))
            .filter(Page.status == RecordStatus.ACTIVE).scalar(),
            "avg_confidence": float(
                db.query(func.avg(Page.ocr_confidence))
                .filter(Page.status == RecordStatus.ACTIVE, Page.ocr_confidence.isnot(None))
                .scalar() or 0.0
            ),
            "documents_with_ocr": db.query(Document)
            .filter(Document.status == RecordStatus.ACTIVE, Document.has_ocr_text.is_(True)).count(),
            "total_documents": db.query(Document).filter(Document.status == RecordStatus.ACTIVE).count(),
            "index_entries": self.index.count(db),
        }
