"""
Supervisor Partnership Routes (co-supervision, scoped to a project)

POST /supervisor-partnerships/request - Invite a co-supervisor for one of your projects
POST /supervisor-partnerships/{request_id}/respond - Accept or reject an invitation
DELETE /supervisor-partnerships/{request_id} - Cancel your own pending invitation
POST /supervisor-partnerships/unpair - Remove the co-supervisor from a project
GET /supervisor-partnerships/requests - Your incoming/outgoing invitations
GET /supervisor-partnerships/available - Supervisors with capacity to co-supervise
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from mentormatch.api.deps import get_supervisor_partnership_service, unwrap
from mentormatch.core.auth import get_current_supervisor
from mentormatch.services.supervisor_partnership_service import SupervisorPartnershipService
from mentormatch.schemas.schemas import (
    Caller, SupervisorPartnershipRequestCreate, PartnershipResponse, PartnershipRequestResponse,
    PartnershipRequestListResponse, RequestDirection, RequestStatus, SupervisorResponse,
    SupervisorUnpairRequest, MessageResponse
)

router = APIRouter(prefix="/supervisor-partnerships", tags=["Supervisor Partnerships"])


@router.post("/request", response_model=PartnershipRequestResponse, status_code=201)
async def create_supervisor_partnership_request(
    body: SupervisorPartnershipRequestCreate,
    supervisor: Caller = Depends(get_current_supervisor),
    service: SupervisorPartnershipService = Depends(get_supervisor_partnership_service),
):
    return unwrap(service.create_request(supervisor.uid, body.target_id, body.project_id))


@router.post("/{request_id}/respond", response_model=MessageResponse)
async def respond_to_supervisor_partnership_request(
    request_id: str,
    body: PartnershipResponse,
    supervisor: Caller = Depends(get_current_supervisor),
    service: SupervisorPartnershipService = Depends(get_supervisor_partnership_service),
):
    result = unwrap(service.respond_to_request(request_id, supervisor.uid, body.action))
    return MessageResponse(message=f"Co-supervision request {result['status']}", data=result)


@router.delete("/{request_id}", response_model=MessageResponse)
async def cancel_supervisor_partnership_request(
    request_id: str,
    supervisor: Caller = Depends(get_current_supervisor),
    service: SupervisorPartnershipService = Depends(get_supervisor_partnership_service),
):
    result = unwrap(service.cancel_request(request_id, supervisor.uid))
    return MessageResponse(message="Co-supervision request cancelled", data=result)


@router.post("/unpair", response_model=MessageResponse)
async def unpair_supervisors(
    body: SupervisorUnpairRequest,
    supervisor: Caller = Depends(get_current_supervisor),
    service: SupervisorPartnershipService = Depends(get_supervisor_partnership_service),
):
    result = unwrap(service.unpair(body.project_id, supervisor.uid))
    message = "Co-supervisor removed" if result["unpaired"] else "Project has no co-supervisor"
    return MessageResponse(message=message, data=result)


@router.get("/requests", response_model=PartnershipRequestListResponse)
async def list_supervisor_partnership_requests(
    direction: RequestDirection = Query(RequestDirection.all),
    status: Optional[RequestStatus] = Query(None),
    supervisor: Caller = Depends(get_current_supervisor),
    service: SupervisorPartnershipService = Depends(get_supervisor_partnership_service),
):
    requests = unwrap(service.list_requests(supervisor.uid, direction, status))
    return PartnershipRequestListResponse(requests=requests, total=len(requests))


@router.get("/available", response_model=List[SupervisorResponse])
async def list_available_co_supervisors(
    supervisor: Caller = Depends(get_current_supervisor),
    service: SupervisorPartnershipService = Depends(get_supervisor_partnership_service),
):
    return unwrap(service.list_available_partners(supervisor.uid))
