"""
Admin Routes

PATCH /admin/supervisors/{supervisor_id}/capacity - Set max capacity (reason required, audited)
GET /admin/supervisors/{supervisor_id}/capacity-history - Audit trail of capacity changes
GET /admin/stats - Dashboard statistics
POST /admin/fix-capacity - Recount current capacity from approved applications
POST /admin/fix-match-status - Mark students with approved applications as matched
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from mentormatch.api.deps import get_admin_service, unwrap
from mentormatch.core.auth import get_current_admin
from mentormatch.services.admin_service import AdminService
from mentormatch.schemas.schemas import (
    AdminCapacityUpdate, Caller, CapacityReconcileResponse, DashboardStats, MessageResponse
)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.patch("/supervisors/{supervisor_id}/capacity", response_model=MessageResponse)
async def update_supervisor_capacity(
    supervisor_id: str,
    body: AdminCapacityUpdate,
    admin: Caller = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    change = unwrap(service.update_supervisor_capacity(admin, supervisor_id, body.max_capacity, body.reason))
    return MessageResponse(message="Supervisor capacity updated", data=change)


@router.get("/supervisors/{supervisor_id}/capacity-history", response_model=MessageResponse)
async def capacity_history(
    supervisor_id: str,
    admin: Caller = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    changes = unwrap(service.get_capacity_history(admin, supervisor_id))
    return MessageResponse(message=f"{len(changes)} capacity change(s)", data=changes)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    admin: Caller = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return unwrap(service.get_dashboard_stats())


@router.post("/fix-capacity", response_model=CapacityReconcileResponse)
async def fix_supervisor_capacity(
    supervisor_id: Optional[str] = Query(None),
    admin: Caller = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    return unwrap(service.reconcile_all_capacity(supervisor_id))


@router.post("/fix-match-status", response_model=MessageResponse)
async def fix_match_status(
    admin: Caller = Depends(get_current_admin),
    service: AdminService = Depends(get_admin_service),
):
    result = unwrap(service.fix_match_status())
    return MessageResponse(message=f"Fixed match status for {result['students_fixed']} student(s)", data=result)
