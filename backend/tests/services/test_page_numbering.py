# tests/services/test_page_numbering.py
from scandms.models import Page, RecordStatus
from scandms.services.page_numbering import allocate_block, next_page_number


def test_empty_document_starts_at_one(db_session, sample_document):
    assert next_page_number(db_session, sample_document.id) == 1


def test_next_number_follows_highest_active_page(db_session, sample_document, add_page):
    add_page(sample_document, 1)
    add_page(sample_document, 4)

    assert next_page_number(db_session, sample_document.id) == 5


def test_inactive_pages_are_ignored(db_session, sample_document, add_page):
    add_page(sample_document, 1)
    last = add_page(sample_document, 2)

    last.status = RecordStatus.INACTIVE
    db_session.commit()

    assert next_page_number(db_session, sample_document.id) == 2


def test_numbering_is_per_document(db_session, sample_project, sample_document, add_page):
    from scandms.models import Document

    other = Document(title="Other", project_id=sample_project.id)
    db_session.add(other)
    db_session.commit()

    add_page(sample_document, 1)
    add_page(sample_document, 2)

    assert next_page_number(db_session, other.id) == 1


def test_allocate_block_is_contiguous(db_session, sample_document, add_page):
    add_page(sample_document, 1)

    block = allocate_block(db_session, sample_document.id, 3)

    assert list(block) == [2, 3, 4]
    # Allocation has no side effects
    assert db_session.query(Page).filter(Page.document_id == sample_document.id).count() == 1
