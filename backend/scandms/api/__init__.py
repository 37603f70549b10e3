# backend/scandms/api/__init__.py
from .projects import router as projects_router
from .documents import router as documents_router
from .pages import router as pages_router
from .search import router as search_router

__all__ = ["projects_router", "documents_router", "pages_router", "search_router"]
