"""
Application Routes

POST /applications - Submit application (student only)
GET /applications - List applications visible to the caller
GET /applications/{application_id} - Get application details
PUT /applications/{application_id} - Edit application (revision_requested only)
POST /applications/{application_id}/resubmit - Resubmit after revision
PATCH /applications/{application_id}/status - Approve / reject / request revision (supervisor or admin)
DELETE /applications/{application_id} - Delete application (owner, partner or admin)
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from mentormatch.api.deps import get_application_service, unwrap
from mentormatch.core.auth import get_current_caller, get_current_student, get_supervisor_or_admin
from mentormatch.services.application_workflow import ApplicationWorkflowService
from mentormatch.schemas.schemas import (
    ApplicationCreate, ApplicationUpdate, ApplicationStatusUpdate, ApplicationStatus,
    ApplicationResponse, ApplicationListResponse, Caller, MessageResponse
)

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("", response_model=ApplicationResponse, status_code=201)
async def create_application(
    application: ApplicationCreate,
    student: Caller = Depends(get_current_student),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    """Submit a new supervision application. Students only."""
    return unwrap(service.create_application(student, application))


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    """Students see their own (and their partner's linked) applications, supervisors see theirs, admins see all."""
    applications = unwrap(service.list_applications(caller, status))
    return ApplicationListResponse(applications=applications, total=len(applications))


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    caller: Caller = Depends(get_current_caller),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    return unwrap(service.get_application(caller, application_id))


@router.put("/{application_id}", response_model=ApplicationResponse)
async def edit_application(
    application_id: str,
    update: ApplicationUpdate,
    caller: Caller = Depends(get_current_caller),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    """Edit an application. Only allowed while the supervisor has requested revisions."""
    return unwrap(service.edit_application(caller, application_id, update))


@router.post("/{application_id}/resubmit", response_model=ApplicationResponse)
async def resubmit_application(
    application_id: str,
    update: Optional[ApplicationUpdate] = None,
    caller: Caller = Depends(get_current_caller),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    """Send a revised application back to the supervisor."""
    return unwrap(service.resubmit_application(caller, application_id, update))


@router.patch("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: str,
    update: ApplicationStatusUpdate,
    caller: Caller = Depends(get_supervisor_or_admin),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    """Change application status. Approval fails with 409 when the supervisor is at capacity."""
    return unwrap(service.update_application_status(caller, application_id, update.status, update.feedback))


@router.delete("/{application_id}", response_model=MessageResponse)
async def delete_application(
    application_id: str,
    caller: Caller = Depends(get_current_caller),
    service: ApplicationWorkflowService = Depends(get_application_service),
):
    """Delete an application. Releases the supervisor's capacity slot if it was approved."""
    result = unwrap(service.delete_application(caller, application_id))
    return MessageResponse(message="Application deleted successfully", data=result)
