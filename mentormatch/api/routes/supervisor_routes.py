"""
Supervisor Routes

GET /supervisors - Browse active supervisors
GET /supervisors/{supervisor_id} - Supervisor profile
PATCH /supervisors/me/capacity - Change your own max capacity (supervisor only)
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from mentormatch.api.deps import get_profile_service, unwrap
from mentormatch.core.auth import get_current_caller, get_current_supervisor
from mentormatch.services.profile_service import ProfileService
from mentormatch.schemas.schemas import Caller, CapacityUpdate, SupervisorListResponse, SupervisorResponse

router = APIRouter(prefix="/supervisors", tags=["Supervisors"])


@router.get("", response_model=SupervisorListResponse)
async def list_supervisors(
    available_only: bool = Query(False),
    department: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
):
    supervisors = unwrap(service.list_supervisors(available_only, department))
    return SupervisorListResponse(supervisors=supervisors, total=len(supervisors))


@router.patch("/me/capacity", response_model=SupervisorResponse)
async def update_my_capacity(
    body: CapacityUpdate,
    supervisor: Caller = Depends(get_current_supervisor),
    service: ProfileService = Depends(get_profile_service),
):
    return unwrap(service.update_own_capacity(supervisor.uid, body.max_capacity))


@router.get("/{supervisor_id}", response_model=SupervisorResponse)
async def get_supervisor(
    supervisor_id: str,
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
):
    return unwrap(service.get_supervisor(supervisor_id))
