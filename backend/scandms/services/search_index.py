# backend/scandms/services/search_index.py
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import IndexMaintenanceError
from ..models import Document, Page, RecordStatus
from ..models.search_index import SEARCH_TABLE
from ..utils.logging import db_logger

_DELETE_PAGE = text(f"DELETE FROM {SEARCH_TABLE} WHERE rowid = :page_id")
_DELETE_DOCUMENT = text(f"DELETE FROM {SEARCH_TABLE} WHERE document_id = :document_id")
_DELETE_ALL = text(f"DELETE FROM {SEARCH_TABLE}")
_COUNT = text(f"SELECT COUNT(*) FROM {SEARCH_TABLE}")
_INSERT = text(f"""
    INSERT INTO {SEARCH_TABLE} (rowid, document_id, project_id, document_title, page_text)
    VALUES (:page_id, :document_id, :project_id, :document_title, :page_text)
""")
_REBUILD = text(f"""
    INSERT INTO {SEARCH_TABLE} (rowid, document_id, project_id, document_title, page_text)
    SELECT p.id, d.id, d.project_id, d.title, p.ocr_text
    FROM pages p
    JOIN documents d ON d.id = p.document_id
    WHERE p.status = :active
    AND d.status = :active
    AND p.ocr_text IS NOT NULL
    AND TRIM(p.ocr_text) != ''
""")


class SearchIndex:
    """Keeps one full-text entry per active page that has OCR text.

    Writes run inside the caller's transaction; only rebuild_all commits.
    """

    def upsert(
            self,
            db: Session,
            page_id: int,
            document_id: int,
            project_id: int,
            document_title: str,
            page_text: str | None
    ) -> bool:
        db.execute(_DELETE_PAGE, {"page_id": page_id})
        if not page_text or not page_text.strip():
            return False

        db.execute(_INSERT, {
            "page_id": page_id,
            "document_id": document_id,
            "project_id": project_id,
            "document_title": document_title,
            "page_text": page_text,
        })
        return True

    def upsert_page(self, db: Session, page: Page, document: Document) -> bool:
        return self.upsert(db, page.id, document.id, document.project_id, document.title, page.ocr_text)

    def remove(self, db: Session, page_id: int) -> None:
        db.execute(_DELETE_PAGE, {"page_id": page_id})

    def remove_document(self, db: Session, document_id: int) -> None:
        db.execute(_DELETE_DOCUMENT, {"document_id": document_id})

    def reindex_document(self, db: Session, document: Document) -> int:
        """Rewrite every entry of a document, e.g. after its title changed"""
        self.remove_document(db, document.id)
        if document.status != RecordStatus.ACTIVE:
            return 0

        pages = (
            db.query(Page)
            .filter(Page.document_id == document.id, Page.status == RecordStatus.ACTIVE)
            .all()
        )
        return sum(1 for page in pages if self.upsert_page(db, page, document))

    def rebuild_all(self, db: Session) -> int:
        """Drop every entry and re-derive the index from page and document rows"""
        try:
            db.execute(_DELETE_ALL)
            db.execute(_REBUILD, {"active": RecordStatus.ACTIVE.value})
            count = db.execute(_COUNT).scalar() or 0
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            db_logger.error("Search index rebuild failed", extra={"error": str(e)}, exc_info=True)
            raise IndexMaintenanceError(f"Search index rebuild failed: {e}") from e

        db_logger.info("Search index rebuilt", extra={"entries": count})
        return count

    def count(self, db: Session) -> int:
        return db.execute(_COUNT).scalar() or 0
