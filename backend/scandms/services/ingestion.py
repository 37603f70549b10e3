# backend/scandms/services/ingestion.py
import asyncio
import shutil
import time
from pathlib import Path
from typing import List
from uuid import uuid4

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import OCRError, RasterizationError, ScanDMSError
from ..models import Document, Page
from ..schemas.ingestion import BatchOCRResult, IngestionResult
from ..schemas.page import Page as PageSchema
from ..utils.files import (
    delete_file,
    get_relative_path,
    guess_mime_type,
    resolve_storage_path,
    safe_file_name,
    unique_file_name,
)
from ..utils.logging import service_logger
from .cleanup import cleanup_service
from .locks import DocumentLocks
from .ocr import OCRResult, OCRService
from .page_numbering import allocate_block
from .pages import PageDraft, PageService
from .rasterizer import PageSplitter, RasterizedPage
from .thumbnails import ThumbnailGenerator


class IngestionPipeline:
    """Upload -> split -> number -> thumbnail -> OCR -> persist + index.

    Pages of one upload are handled one after another in rasterized order and
    committed together. A page whose thumbnail or OCR fails is still stored,
    with the failure listed in the result's `errors`. A file that cannot be
    split fails the whole upload and leaves no rows or page files behind.
    """

    def __init__(
            self,
            splitter: PageSplitter,
            thumbnails: ThumbnailGenerator,
            ocr: OCRService,
            pages: PageService,
            locks: DocumentLocks | None = None
    ):
        self.splitter = splitter
        self.thumbnails = thumbnails
        self.ocr = ocr
        self.pages = pages
        self.locks = locks or DocumentLocks()

    async def ingest_upload(
            self,
            db: Session,
            document: Document,
            upload_path: Path,
            original_name: str,
            mime_type: str | None = None,
            perform_ocr: bool = False,
            language: str | None = None
    ) -> IngestionResult:
        start_time = time.perf_counter()
        mime_type = guess_mime_type(upload_path, mime_type)
        language = language or self.ocr.default_language
        original_name = Path(original_name or "").name or safe_file_name(upload_path.name)

        try:
            file_type = self.splitter.classify(mime_type)
        except ScanDMSError:
            delete_file(upload_path)
            raise

        service_logger.info("Starting ingestion", extra={
            "document_id": document.id,
            "file_name": original_name,
            "file_type": file_type,
            "perform_ocr": perform_ocr,
            "language": language
        })

        async with self.locks.hold(document.id):
            pages_dir, thumbnails_dir = settings.document_dirs(document.id)
            work_dir = pages_dir / f"tmp-{uuid4().hex}"

            try:
                rasterized = await asyncio.to_thread(
                    self.splitter.split_into_pages, upload_path, mime_type, work_dir
                )
            except RasterizationError as e:
                self._abort_split(upload_path, work_dir, document.id, e)
                raise
            except Exception as e:
                self._abort_split(upload_path, work_dir, document.id, e)
                raise RasterizationError(f"Failed to process {file_type.upper()}: {e}") from e

            written: List[Path] = []
            errors: List[str] = []
            try:
                # One read for the whole batch; pages are numbered locally from here
                numbers = allocate_block(db, document.id, len(rasterized))
                drafts = []
                for page_number, raster in zip(numbers, rasterized):
                    drafts.append(await self._prepare_page(
                        raster,
                        page_number=page_number,
                        file_type=file_type,
                        original_name=original_name,
                        mime_type=mime_type,
                        pages_dir=pages_dir,
                        thumbnails_dir=thumbnails_dir,
                        perform_ocr=perform_ocr,
                        language=language,
                        written=written,
                        errors=errors,
                        document_id=document.id
                    ))

                created = self.pages.persist_batch(db, document, drafts, ocr_language=language)
            except Exception:
                db.rollback()
                cleanup_service.discard_files(written)
                delete_file(upload_path)
                service_logger.error("Ingestion failed, batch discarded", extra={
                    "document_id": document.id,
                    "file_name": original_name,
                    "files_discarded": len(written)
                }, exc_info=True)
                raise
            finally:
                cleanup_service.remove_directory(work_dir)

        if file_type == "pdf":
            delete_file(upload_path)

        total_words = sum(page.word_count or 0 for page in created)
        has_ocr_text = any(page.has_ocr for page in created)

        service_logger.info("Ingestion complete", extra={
            "document_id": document.id,
            "pages_created": len(created),
            "ocr_words_found": total_words,
            "errors": len(errors),
            "processing_time_ms": round((time.perf_counter() - start_time) * 1000, 2)
        })

        return IngestionResult(
            document_id=document.id,
            file_type=file_type,
            pages=[PageSchema.model_validate(page) for page in created],
            total_pages=len(created),
            document_total_pages=document.total_pages,
            ocr_processed=perform_ocr,
            ocr_words_found=total_words,
            has_ocr_text=has_ocr_text,
            errors=errors
        )

    @staticmethod
    def _abort_split(upload_path: Path, work_dir: Path, document_id: int, error: Exception) -> None:
        service_logger.error("Splitting failed", extra={
            "document_id": document_id,
            "upload_path": str(upload_path),
            "error": str(error)
        })
        cleanup_service.remove_directory(work_dir)
        delete_file(upload_path)

    async def _prepare_page(
            self,
            raster: RasterizedPage,
            page_number: int,
            file_type: str,
            original_name: str,
            mime_type: str,
            pages_dir: Path,
            thumbnails_dir: Path,
            perform_ocr: bool,
            language: str,
            written: List[Path],
            errors: List[str],
            document_id: int
    ) -> PageDraft:
        if file_type == "pdf":
            final_path = pages_dir / f"{uuid4()}_page_{page_number}{raster.image_path.suffix}"
            file_name = f"{original_name} - Page {page_number}"
            page_mime_type = guess_mime_type(final_path)
        else:
            final_path = pages_dir / unique_file_name(original_name)
            file_name = original_name
            page_mime_type = mime_type

        shutil.move(str(raster.image_path), str(final_path))
        written.append(final_path)

        thumbnail_path = thumbnails_dir / f"thumb_{final_path.stem}.jpg"
        if await asyncio.to_thread(self.thumbnails.generate, final_path, thumbnail_path):
            written.append(thumbnail_path)
            stored_thumbnail = get_relative_path(thumbnail_path, settings.STORAGE_PATH)
        else:
            stored_thumbnail = None
            errors.append(f"Page {page_number}: Thumbnail generation failed")

        ocr_result = None
        if perform_ocr:
            ocr_result = await self._recognize_page(final_path, page_number, language, errors, document_id)

        return PageDraft(
            page_number=page_number,
            file_path=get_relative_path(final_path, settings.STORAGE_PATH),
            file_name=file_name,
            file_size=final_path.stat().st_size,
            mime_type=page_mime_type,
            source_file_name=original_name,
            thumbnail_path=stored_thumbnail,
            ocr=ocr_result,
            ocr_language=language if ocr_result else None
        )

    async def _recognize_page(
            self,
            image_path: Path,
            page_number: int,
            language: str,
            errors: List[str],
            document_id: int
    ) -> OCRResult | None:
        try:
            return await self.ocr.recognize(image_path, language)
        except OCRError as e:
            service_logger.warning("OCR failed for page", extra={
                "document_id": document_id,
                "page_number": page_number,
                "error": e.message
            })
            errors.append(f"Page {page_number}: {e.message}")
            return None

    async def reprocess_document_ocr(
            self,
            db: Session,
            document: Document,
            language: str | None = None,
            force_reprocess: bool = False
    ) -> BatchOCRResult:
        """OCR the pages missing text, or every active page when forced"""
        language = language or self.ocr.default_language

        async with self.locks.hold(document.id):
            pages = self.pages.find_pages_needing_ocr(db, document.id, force_reprocess)
            if not pages:
                return BatchOCRResult(
                    document_id=document.id,
                    processed_pages=0,
                    total_pages=0,
                    total_words=0,
                    language=language,
                    message="No pages need OCR processing"
                )

            service_logger.info("Starting batch OCR", extra={
                "document_id": document.id,
                "page_count": len(pages),
                "force_reprocess": force_reprocess,
                "language": language
            })

            processed_count, total_words, errors = 0, 0, []
            for page in pages:
                image_path = resolve_storage_path(page.file_path, settings.STORAGE_PATH)
                if image_path is None or not image_path.exists():
                    errors.append(f"Page {page.page_number}: File not found")
                    continue

                result = await self._recognize_page(image_path, page.page_number, language, errors, document.id)
                if result is None:
                    continue

                try:
                    self.pages.apply_ocr(db, page, document, result, language)
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
                processed_count += 1
                total_words += result.word_count

            self.pages.refresh_ocr_status(db, document, language if processed_count else None)
            db.commit()

        service_logger.info("Batch OCR complete", extra={
            "document_id": document.id,
            "processed_pages": processed_count,
            "total_words": total_words,
            "errors": len(errors)
        })
        return BatchOCRResult(
            document_id=document.id,
            processed_pages=processed_count,
            total_pages=len(pages),
            total_words=total_words,
            language=language,
            errors=errors,
            message=f"OCR processing completed for {processed_count} pages"
        )

    async def reprocess_page_ocr(self, db: Session, page: Page, language: str | None = None) -> Page:
        """OCR a single page; engine failure is raised to the caller"""
        language = language or self.ocr.default_language
        document = page.document
        image_path = resolve_storage_path(page.file_path, settings.STORAGE_PATH)
        if image_path is None or not image_path.exists():
            raise OCRError(f"Page {page.page_number}: File not found")

        async with self.locks.hold(document.id):
            result = await self.ocr.recognize(image_path, language)
            try:
                self.pages.apply_ocr(db, page, document, result, language)
                self.pages.refresh_ocr_status(db, document, language)
                db.commit()
            except Exception:
                db.rollback()
                raise

        db.refresh(page)
        return page

    async def ensure_thumbnail(self, db: Session, page: Page) -> Path | None:
        """Thumbnail path for the page, generating it on first access"""
        existing = resolve_storage_path(page.thumbnail_path, settings.STORAGE_PATH)
        if existing is not None and existing.exists():
            return existing

        source = resolve_storage_path(page.file_path, settings.STORAGE_PATH)
        if source is None or not source.exists():
            return None

        _, thumbnails_dir = settings.document_dirs(page.document_id)
        thumbnail_path = thumbnails_dir / f"thumb_{source.stem}.jpg"
        if not await asyncio.to_thread(self.thumbnails.generate, source, thumbnail_path):
            return None

        page.thumbnail_path = get_relative_path(thumbnail_path, settings.STORAGE_PATH)
        db.commit()
        return thumbnail_path
