"""
Partnership Routes (student pairing)

POST /partnerships/request - Send a pairing request
POST /partnerships/{request_id}/respond - Accept or reject a request addressed to you
DELETE /partnerships/{request_id} - Cancel your own pending request
POST /partnerships/unpair - Dissolve your partnership
GET /partnerships/requests - Your incoming/outgoing requests
GET /partnerships/available - Students you can send a request to
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from mentormatch.api.deps import get_partnership_service, unwrap
from mentormatch.core.auth import get_current_student
from mentormatch.services.partnership_service import StudentPartnershipService
from mentormatch.schemas.schemas import (
    Caller, PartnershipRequestCreate, PartnershipResponse, PartnershipRequestResponse,
    PartnershipRequestListResponse, RequestDirection, RequestStatus, StudentResponse, MessageResponse
)

router = APIRouter(prefix="/partnerships", tags=["Partnerships"])


@router.post("/request", response_model=PartnershipRequestResponse, status_code=201)
async def create_partnership_request(
    body: PartnershipRequestCreate,
    student: Caller = Depends(get_current_student),
    service: StudentPartnershipService = Depends(get_partnership_service),
):
    return unwrap(service.create_request(student.uid, body.target_id))


@router.post("/{request_id}/respond", response_model=MessageResponse)
async def respond_to_partnership_request(
    request_id: str,
    body: PartnershipResponse,
    student: Caller = Depends(get_current_student),
    service: StudentPartnershipService = Depends(get_partnership_service),
):
    result = unwrap(service.respond_to_request(request_id, student.uid, body.action))
    return MessageResponse(message=f"Partnership request {result['status']}", data=result)


@router.delete("/{request_id}", response_model=MessageResponse)
async def cancel_partnership_request(
    request_id: str,
    student: Caller = Depends(get_current_student),
    service: StudentPartnershipService = Depends(get_partnership_service),
):
    result = unwrap(service.cancel_request(request_id, student.uid))
    return MessageResponse(message="Partnership request cancelled", data=result)


@router.post("/unpair", response_model=MessageResponse)
async def unpair(
    student: Caller = Depends(get_current_student),
    service: StudentPartnershipService = Depends(get_partnership_service),
):
    result = unwrap(service.unpair(student.uid))
    message = "Partnership dissolved" if result["unpaired"] else "You are not paired"
    return MessageResponse(message=message, data=result)


@router.get("/requests", response_model=PartnershipRequestListResponse)
async def list_partnership_requests(
    direction: RequestDirection = Query(RequestDirection.all),
    status: Optional[RequestStatus] = Query(None),
    student: Caller = Depends(get_current_student),
    service: StudentPartnershipService = Depends(get_partnership_service),
):
    requests = unwrap(service.list_requests(student.uid, direction, status))
    return PartnershipRequestListResponse(requests=requests, total=len(requests))


@router.get("/available", response_model=List[StudentResponse])
async def list_available_partners(
    student: Caller = Depends(get_current_student),
    service: StudentPartnershipService = Depends(get_partnership_service),
):
    return unwrap(service.list_available_partners(student.uid))
