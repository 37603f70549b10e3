# backend/scandms/models/__init__.py
from ..database import Base
from .status import RecordStatus
from .project import Project
from .document import Document
from .page import Page
from . import search_index

__all__ = [
    "Base",
    "RecordStatus",
    "Project",
    "Document",
    "Page",
    "search_index"
]
