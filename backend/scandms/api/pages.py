# backend/scandms/api/pages.py
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_page_service, get_pipeline
from ..models import Page, RecordStatus
from ..schemas.page import Page as PageSchema, PageDeleteResult, PageOCRRequest, PageOCRText
from ..services.ingestion import IngestionPipeline
from ..services.pages import PageService
from ..utils.logging import api_logger

router = APIRouter(prefix="/api/pages", tags=["pages"])


def get_active_page(db: Session, page_id: int) -> Page:
    page = db.query(Page).filter(Page.id == page_id, Page.status == RecordStatus.ACTIVE).first()
    if not page:
        api_logger.warning(
            f"Page {page_id} not found",
            extra={"page_id": page_id}
        )
        raise HTTPException(status_code=404, detail="Page not found")
    return page


@router.get("/{page_id}", response_model=PageSchema)
async def get_page(page_id: int, db: Session = Depends(get_db)):
    api_logger.debug(f"Fetching page {page_id}", extra={"page_id": page_id})

    page = get_active_page(db, page_id)

    api_logger.debug(
        f"Successfully retrieved page {page_id}",
        extra={
            "page_id": page_id,
            "document_id": page.document_id,
            "has_ocr": page.has_ocr
        }
    )
    return page


@router.delete("/{page_id}", response_model=PageDeleteResult)
async def delete_page(
        page_id: int,
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    """Soft delete; the page keeps its files and number but leaves the index"""
    api_logger.info(f"Deleting page {page_id}", extra={"page_id": page_id})

    result = pages.soft_delete_page(db, page_id)

    api_logger.info(f"Successfully deleted page {page_id}", extra={
        "document_id": result.document_id,
        "remaining_pages": result.remaining_pages
    })
    return PageDeleteResult(
        page_id=page_id,
        document_id=result.document_id,
        remaining_pages=result.remaining_pages
    )


@router.get("/{page_id}/ocr", response_model=PageOCRText)
async def get_page_ocr(page_id: int, db: Session = Depends(get_db)):
    page = get_active_page(db, page_id)
    return PageOCRText(
        id=page.id,
        document_id=page.document_id,
        page_number=page.page_number,
        file_name=page.file_name,
        ocr_text=page.ocr_text or "",
        ocr_processed=page.ocr_processed_at is not None,
        ocr_confidence=page.ocr_confidence,
        ocr_processed_at=page.ocr_processed_at,
        ocr_language=page.ocr_language,
        word_count=page.word_count or 0
    )


@router.post("/{page_id}/ocr", response_model=PageSchema)
async def process_page_ocr(
        page_id: int,
        request: PageOCRRequest = PageOCRRequest(),
        db: Session = Depends(get_db),
        pipeline: IngestionPipeline = Depends(get_pipeline)
):
    api_logger.info(f"Running OCR for page {page_id}", extra={
        "page_id": page_id,
        "language": request.language
    })

    page = get_active_page(db, page_id)
    page = await pipeline.reprocess_page_ocr(db, page, language=request.language)

    api_logger.info(f"OCR finished for page {page_id}", extra={
        "page_id": page_id,
        "word_count": page.word_count
    })
    return page


@router.get("/{page_id}/thumbnail")
async def get_page_thumbnail(
        page_id: int,
        db: Session = Depends(get_db),
        pipeline: IngestionPipeline = Depends(get_pipeline)
):
    """Serve the thumbnail, generating it if it is missing"""
    page = get_active_page(db, page_id)

    thumbnail_path = await pipeline.ensure_thumbnail(db, page)
    if thumbnail_path is None:
        api_logger.warning("Thumbnail unavailable", extra={
            "page_id": page_id,
            "document_id": page.document_id
        })
        raise HTTPException(status_code=404, detail="Thumbnail not available")

    return FileResponse(thumbnail_path, media_type="image/jpeg")
