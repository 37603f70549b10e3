# backend/scandms/api/search.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_page_service, get_search_filters, get_search_index, get_search_service
from ..schemas.search import IndexRebuildResult, OCRStats, SearchResponse, SuggestionResponse
from ..services.pages import PageService
from ..services.search import MAX_SUGGESTIONS, SearchFilters, SearchService
from ..services.search_index import SearchIndex
from ..utils.logging import api_logger

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search(
        q: str = Query(""),
        limit: int = 20,
        offset: int = 0,
        filters: SearchFilters = Depends(get_search_filters),
        db: Session = Depends(get_db),
        service: SearchService = Depends(get_search_service)
):
    api_logger.info("Search requested", extra={
        "query": q,
        "project_id": filters.project_id,
        "user_id": filters.user_id,
        "limit": limit,
        "offset": offset
    })
    return service.search(db, q, filters, limit=limit, offset=offset)


@router.get("/suggestions", response_model=SuggestionResponse)
async def suggestions(
        q: str = Query(""),
        limit: int = Query(10, ge=1, le=MAX_SUGGESTIONS),
        filters: SearchFilters = Depends(get_search_filters),
        db: Session = Depends(get_db),
        service: SearchService = Depends(get_search_service)
):
    return service.suggestions(db, q, filters, limit=limit)


@router.post("/rebuild-index", response_model=IndexRebuildResult)
async def rebuild_index(
        db: Session = Depends(get_db),
        index: SearchIndex = Depends(get_search_index)
):
    api_logger.info("Rebuilding search index")
    entries = index.rebuild_all(db)
    api_logger.info("Search index rebuilt", extra={"entries": entries})
    return IndexRebuildResult(entries=entries)


@router.get("/stats", response_model=OCRStats)
async def ocr_stats(
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    return OCRStats(**pages.ocr_stats(db))
