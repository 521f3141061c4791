"""
Project Routes

POST /projects - Create project (supervisor or admin)
GET /projects - List projects visible to the caller
GET /projects/{project_id} - Get project details
POST /projects/{project_id}/status-change - Change status (project supervisor or admin)
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from mentormatch.api.deps import get_project_service, unwrap
from mentormatch.core.auth import get_current_caller, get_supervisor_or_admin
from mentormatch.services.project_service import ProjectService
from mentormatch.schemas.schemas import (
    Caller, ProjectCreate, ProjectResponse, ProjectStatusChange, MessageResponse
)

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    project: ProjectCreate,
    caller: Caller = Depends(get_supervisor_or_admin),
    service: ProjectService = Depends(get_project_service),
):
    return unwrap(service.create_project(caller, project))


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    supervisor_id: Optional[str] = Query(None, description="Admin only: filter by supervisor"),
    caller: Caller = Depends(get_current_caller),
    service: ProjectService = Depends(get_project_service),
):
    return unwrap(service.list_projects(caller, supervisor_id))


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    caller: Caller = Depends(get_current_caller),
    service: ProjectService = Depends(get_project_service),
):
    return unwrap(service.get_project(caller, project_id))


@router.post("/{project_id}/status-change", response_model=MessageResponse)
async def change_project_status(
    project_id: str,
    body: ProjectStatusChange,
    caller: Caller = Depends(get_supervisor_or_admin),
    service: ProjectService = Depends(get_project_service),
):
    """Completing a project also ends its co-supervision."""
    result = unwrap(service.change_status(caller, project_id, body.status))
    return MessageResponse(message="Project status updated successfully", data=result)
