# backend/scandms/api/documents.py
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import get_page_service, get_pipeline, get_search_index
from ..models import Document, Project, RecordStatus
from ..schemas.document import (
    DocumentCreate,
    DocumentDeleteResult,
    DocumentDetail,
    DocumentUpdate,
    Document as DocumentSchema,
    PageCountFix,
)
from ..schemas.ingestion import BatchOCRRequest, BatchOCRResult, IngestionResult, PageCountRepairResult
from ..schemas.page import Page as PageSchema, PageReorderRequest, PageReorderResult
from ..services.ingestion import IngestionPipeline
from ..services.pages import PageFilter, PageOrder, PageService, query_pages
from ..services.search_index import SearchIndex
from ..utils.files import save_upload_file
from ..utils.logging import api_logger

router = APIRouter(prefix="/api/documents", tags=["documents"])


def get_active_document(db: Session, document_id: int) -> Document:
    document = db.query(Document) \
        .filter(Document.id == document_id, Document.status == RecordStatus.ACTIVE) \
        .first()
    if not document:
        api_logger.warning("Document not found", extra={"document_id": document_id})
        raise HTTPException(status_code=404, detail="Document not found")
    return document


def _detail(db: Session, document: Document) -> DocumentDetail:
    detail = DocumentDetail.model_validate(document)
    detail.pages = [
        PageSchema.model_validate(page)
        for page in query_pages(db, PageFilter(document_id=document.id)).all()
    ]
    return detail


@router.get("/project/{project_id}", response_model=List[DocumentSchema])
async def list_project_documents(project_id: int, db: Session = Depends(get_db)):
    api_logger.info("Listing documents for project", extra={
        "project_id": project_id,
        "operation": "list_project_documents"
    })

    try:
        start_time = time.time()
        documents = db.query(Document) \
            .filter(Document.project_id == project_id, Document.status == RecordStatus.ACTIVE) \
            .order_by(Document.created_at.desc(), Document.id.desc()) \
            .all()

        execution_time = time.time() - start_time
        api_logger.info("Successfully listed project documents", extra={
            "project_id": project_id,
            "document_count": len(documents),
            "execution_time_ms": round(execution_time * 1000, 2)
        })
        return documents

    except Exception as e:
        api_logger.error("Error listing project documents", extra={
            "project_id": project_id,
            "error": str(e)
        })
        raise


@router.post("", response_model=DocumentSchema)
async def create_document(document: DocumentCreate, db: Session = Depends(get_db)):
    api_logger.info("Creating new document", extra={
        "project_id": document.project_id,
        "document_title": document.title
    })

    try:
        project = db.query(Project) \
            .filter(Project.id == document.project_id, Project.status == RecordStatus.ACTIVE) \
            .first()
        if not project:
            api_logger.warning("Project not found for document", extra={"project_id": document.project_id})
            raise HTTPException(status_code=404, detail="Project not found")

        db_document = Document(**document.model_dump())
        db.add(db_document)
        db.commit()
        db.refresh(db_document)

        api_logger.info("Successfully created document", extra={
            "document_id": db_document.id,
            "project_id": db_document.project_id
        })
        return db_document

    except HTTPException:
        raise
    except Exception as e:
        api_logger.error("Error creating document", extra={
            "project_id": document.project_id,
            "document_title": document.title,
            "error": str(e)
        })
        db.rollback()
        raise


@router.post("/fix-page-counts", response_model=PageCountRepairResult)
async def fix_all_page_counts(
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    api_logger.info("Repairing page counts for all documents")
    repair = pages.fix_all_page_counts(db)
    api_logger.info("Page count repair finished", extra={
        "fixed": repair.fixed,
        "failed": repair.failed
    })
    return PageCountRepairResult(fixed=repair.fixed, failed=repair.failed, errors=repair.errors)


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(document_id: int, db: Session = Depends(get_db)):
    api_logger.info("Retrieving document details", extra={"document_id": document_id})

    try:
        start_time = time.time()
        detail = _detail(db, get_active_document(db, document_id))

        execution_time = time.time() - start_time
        api_logger.info("Successfully retrieved document", extra={
            "document_id": document_id,
            "page_count": len(detail.pages),
            "execution_time_ms": round(execution_time * 1000, 2)
        })
        return detail

    except HTTPException:
        raise
    except Exception as e:
        api_logger.error("Error retrieving document", extra={
            "document_id": document_id,
            "error": str(e)
        })
        raise


@router.put("/{document_id}", response_model=DocumentSchema)
async def update_document(
        document_id: int,
        document: DocumentUpdate,
        db: Session = Depends(get_db),
        index: SearchIndex = Depends(get_search_index)
):
    changes = document.model_dump(exclude_unset=True)
    api_logger.info("Updating document", extra={
        "document_id": document_id,
        "update_fields": list(changes.keys())
    })

    try:
        db_document = get_active_document(db, document_id)
        original_values = {field: getattr(db_document, field) for field in changes}

        for field, value in changes.items():
            setattr(db_document, field, value)

        reindexed = 0
        if "title" in changes and changes["title"] != original_values["title"]:
            # Index entries carry the title; rewrite them in the same transaction
            db.flush()
            reindexed = index.reindex_document(db, db_document)

        db.commit()
        db.refresh(db_document)

        api_logger.info("Successfully updated document", extra={
            "document_id": document_id,
            "original_values": original_values,
            "new_values": changes,
            "reindexed_pages": reindexed
        })
        return db_document

    except HTTPException:
        raise
    except Exception as e:
        api_logger.error("Error updating document", extra={
            "document_id": document_id,
            "error": str(e)
        })
        db.rollback()
        raise


@router.delete("/{document_id}", response_model=DocumentDeleteResult)
async def delete_document(
        document_id: int,
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    api_logger.info("Deleting document", extra={"document_id": document_id})

    try:
        document = get_active_document(db, document_id)
        pages_deleted = pages.soft_delete_document(db, document)

        api_logger.info(f"Successfully deleted document {document_id}", extra={
            "pages_deleted": pages_deleted
        })
        return DocumentDeleteResult(document_id=document_id, pages_deleted=pages_deleted)

    except HTTPException:
        raise
    except Exception as e:
        api_logger.error(f"Failed to delete document: {str(e)}")
        raise


@router.post("/{document_id}/upload", response_model=IngestionResult)
async def upload_file(
        document_id: int,
        file: UploadFile = File(...),
        perform_ocr: bool = Form(False),
        language: Optional[str] = Form(None),
        db: Session = Depends(get_db),
        pipeline: IngestionPipeline = Depends(get_pipeline)
):
    """Split the upload into pages and add them to the end of the document"""
    api_logger.info("Received upload", extra={
        "document_id": document_id,
        "upload_name": file.filename,
        "content_type": file.content_type,
        "perform_ocr": perform_ocr
    })

    document = get_active_document(db, document_id)
    upload_path = await save_upload_file(file, settings.UPLOADS_PATH)

    result = await pipeline.ingest_upload(
        db,
        document,
        upload_path,
        original_name=file.filename,
        mime_type=file.content_type,
        perform_ocr=perform_ocr,
        language=language
    )

    api_logger.info("Upload processed", extra={
        "document_id": document_id,
        "pages_created": result.total_pages,
        "errors": len(result.errors)
    })
    return result


@router.post("/{document_id}/ocr", response_model=BatchOCRResult)
async def process_document_ocr(
        document_id: int,
        request: BatchOCRRequest = BatchOCRRequest(),
        db: Session = Depends(get_db),
        pipeline: IngestionPipeline = Depends(get_pipeline)
):
    api_logger.info("Starting document OCR", extra={
        "document_id": document_id,
        "language": request.language,
        "force_reprocess": request.force_reprocess
    })

    document = get_active_document(db, document_id)
    return await pipeline.reprocess_document_ocr(
        db,
        document,
        language=request.language,
        force_reprocess=request.force_reprocess
    )


@router.put("/{document_id}/pages/reorder", response_model=PageReorderResult)
async def reorder_pages(
        document_id: int,
        request: PageReorderRequest,
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    api_logger.info("Reordering pages", extra={
        "document_id": document_id,
        "page_count": len(request.pages)
    })

    get_active_document(db, document_id)
    updated_count = pages.reorder_pages(db, document_id, [
        PageOrder(page_id=item.page_id, new_page_number=item.new_page_number)
        for item in request.pages
    ])
    return PageReorderResult(document_id=document_id, updated_count=updated_count)


@router.post("/{document_id}/fix-page-count", response_model=PageCountFix)
async def fix_page_count(
        document_id: int,
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    get_active_document(db, document_id)
    total_pages = pages.fix_page_count(db, document_id)

    api_logger.info("Page count fixed", extra={
        "document_id": document_id,
        "total_pages": total_pages
    })
    return PageCountFix(document_id=document_id, total_pages=total_pages)
