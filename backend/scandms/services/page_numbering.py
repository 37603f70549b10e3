# backend/scandms/services/page_numbering.py
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from ..models import Page, RecordStatus


def next_page_number(db: Session, document_id: int) -> int:
    """Highest active page number of the document plus one, or 1 for an empty document.

    Call once per ingestion batch and number the batch's pages locally from
    the returned value.
    """
    current_max_page = db.query(func.max(Page.page_number)) \
        .filter(Page.document_id == document_id, Page.status == RecordStatus.ACTIVE) \
        .scalar() or 0
    return current_max_page + 1


def allocate_block(db: Session, document_id: int, count: int) -> range:
    """Contiguous page numbers for a batch of `count` pages"""
    start = next_page_number(db, document_id)
    return range(start, start + count)
