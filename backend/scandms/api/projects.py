# backend/scandms/api/projects.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from ..database import get_db
from ..dependencies import get_page_service
from ..models import Document, Project, RecordStatus
from ..schemas.project import ProjectCreate, ProjectUpdate, Project as ProjectSchema, ProjectDetail
from ..services.pages import PageService
from ..utils.logging import api_logger

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _active_project(db: Session, project_id: int) -> Project:
    project = db.query(Project) \
        .filter(Project.id == project_id, Project.status == RecordStatus.ACTIVE) \
        .first()
    if not project:
        api_logger.warning("Project not found", extra={"project_id": project_id})
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _document_count(db: Session, project_id: int) -> int:
    return db.query(func.count(Document.id)) \
        .filter(Document.project_id == project_id, Document.status == RecordStatus.ACTIVE) \
        .scalar() or 0


@router.get("", response_model=List[ProjectDetail])
async def list_projects(db: Session = Depends(get_db)):
    """List all active projects"""
    api_logger.info("Starting projects list operation", extra={
        "endpoint": "/api/projects",
        "method": "GET"
    })

    try:
        projects = db.query(Project) \
            .filter(Project.status == RecordStatus.ACTIVE) \
            .order_by(Project.created_at.desc(), Project.id.desc()) \
            .all()

        result = []
        for project in projects:
            detail = ProjectDetail.model_validate(project)
            detail.document_count = _document_count(db, project.id)
            result.append(detail)

        api_logger.info("Sending response", extra={"project_count": len(result)})
        return result
    except Exception as e:
        api_logger.error("Failed to list projects", extra={"error": str(e)})
        raise


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(project_id: int, db: Session = Depends(get_db)):
    api_logger.info("Fetching project", extra={"project_id": project_id})

    try:
        project = _active_project(db, project_id)
        detail = ProjectDetail.model_validate(project)
        detail.document_count = _document_count(db, project_id)

        api_logger.info("Project retrieved successfully", extra={
            "project_id": project_id,
            "document_count": detail.document_count
        })
        return detail
    except HTTPException:
        raise
    except Exception as e:
        api_logger.error("Failed to get project", extra={
            "project_id": project_id,
            "error": str(e)
        })
        raise


@router.post("", response_model=ProjectSchema)
async def create_project(project: ProjectCreate, db: Session = Depends(get_db)):
    api_logger.info("Creating new project", extra={"project_name": project.name})

    try:
        db_project = Project(**project.model_dump())
        db.add(db_project)
        db.commit()
        db.refresh(db_project)

        api_logger.info("Project created successfully", extra={
            "project_id": db_project.id,
            "project_name": db_project.name
        })
        return db_project
    except Exception as e:
        api_logger.error("Failed to create project", extra={
            "project_name": project.name,
            "error": str(e)
        })
        db.rollback()
        raise


@router.put("/{project_id}", response_model=ProjectSchema)
async def update_project(project_id: int, project: ProjectUpdate, db: Session = Depends(get_db)):
    api_logger.info("Updating project", extra={"project_id": project_id})

    try:
        db_project = _active_project(db, project_id)

        for field, value in project.model_dump(exclude_unset=True).items():
            setattr(db_project, field, value)

        db.commit()
        db.refresh(db_project)

        api_logger.info("Project updated successfully", extra={"project_id": project_id})
        return db_project
    except HTTPException:
        raise
    except Exception as e:
        api_logger.error("Failed to update project", extra={
            "project_id": project_id,
            "error": str(e)
        })
        db.rollback()
        raise


@router.delete("/{project_id}")
async def delete_project(
        project_id: int,
        db: Session = Depends(get_db),
        pages: PageService = Depends(get_page_service)
):
    """Soft delete the project together with its documents and their pages"""
    api_logger.info("Deleting project", extra={"project_id": project_id})

    try:
        project = _active_project(db, project_id)

        documents = db.query(Document) \
            .filter(Document.project_id == project_id, Document.status != RecordStatus.DELETED) \
            .all()
        pages_deleted = sum(pages.soft_delete_document(db, document) for document in documents)

        project.status = RecordStatus.DELETED
        db.commit()

        api_logger.info(f"Successfully deleted project {project_id}", extra={
            "documents_deleted": len(documents),
            "pages_deleted": pages_deleted
        })
        return {"success": True, "documents_deleted": len(documents), "pages_deleted": pages_deleted}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        api_logger.error(f"Failed to delete project: {str(e)}")
        raise
