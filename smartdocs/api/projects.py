"""
Project API endpoints
Workspaces that group conversations, documents and saved sessions
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user
from smartdocs.models.user import User
from smartdocs.schemas.project import ProjectCreate, ProjectUpdate
from smartdocs.services.project_service import ProjectService, serialize_project

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


@router.get("")
async def list_projects(
    page: int = 1,
    limit: int = 12,
    status: str = "all",
    industry: Optional[str] = None,
    sort_by: str = "last_activity",
    sort_order: str = "desc",
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """
    List the caller's projects

    Args:
        page: Page number (default 1)
        limit: Page size (default 12, max 50)
        status: active, paused, completed, archived or all
        industry: Exact industry filter
        sort_by: name, created, updated or last_activity
        sort_order: asc or desc

    Returns:
        dict: projects (with document, conversation and session counts) and pagination
    """
    return service.list_projects(current_user, page, limit, status, industry, sort_by, sort_order)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    project: ProjectCreate,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """
    Create a project

    Archived projects do not count toward the plan's project limit.

    Raises:
        HTTPException: 400 for a blank name, 403 when the plan limit is reached
    """
    created = service.create(
        current_user,
        project.name,
        description=project.description,
        industry=project.industry,
        initial_brief=project.initial_brief,
    )
    return {"success": True, "project": serialize_project(created)}


@router.get("/recent")
async def recent_projects(
    limit: int = 4,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Most recently active projects for the dashboard (max 10, archived excluded)"""
    return {"projects": service.recent(current_user, limit)}


@router.get("/{project_id}")
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Project with its documents, conversations, sessions, summaries and stats"""
    return service.get_detail(current_user, project_id)


@router.put("/{project_id}")
async def update_project(
    project_id: UUID,
    update: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """
    Partial update

    Raises:
        HTTPException: 400 for an invalid status, stage or confidence; 404 for an unknown project
    """
    project = service.update(current_user, project_id, update.model_dump(exclude_unset=True))
    return {"success": True, "project": serialize_project(project)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: UUID,
    permanent: bool = False,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Archive a project, or delete it with everything in it when permanent=true"""
    return service.delete(current_user, project_id, permanent)
