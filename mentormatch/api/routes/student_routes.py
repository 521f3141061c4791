"""
Student Routes

GET /students/me - Current student's profile (pairing and match status)
GET /students/{student_id} - Student profile
"""

from fastapi import APIRouter, Depends

from mentormatch.api.deps import get_profile_service, unwrap
from mentormatch.core.auth import get_current_caller, get_current_student
from mentormatch.services.profile_service import ProfileService
from mentormatch.schemas.schemas import Caller, StudentResponse

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("/me", response_model=StudentResponse)
async def get_my_profile(
    student: Caller = Depends(get_current_student),
    service: ProfileService = Depends(get_profile_service),
):
    return unwrap(service.get_student(student.uid))


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: str,
    caller: Caller = Depends(get_current_caller),
    service: ProfileService = Depends(get_profile_service),
):
    return unwrap(service.get_student(student_id))
