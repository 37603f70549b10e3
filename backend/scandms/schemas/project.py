# backend/scandms/schemas/project.py
from typing import Optional

from .base import BaseSchema, TimestampMixin
from ..models.status import RecordStatus


class ProjectBase(BaseSchema):
    name: str
    description: Optional[str] = None


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseSchema):
    name: Optional[str] = None
    description: Optional[str] = None


class Project(ProjectBase, TimestampMixin):
    id: int
    status: RecordStatus


class ProjectDetail(Project):
    document_count: int = 0
