"""
Pydantic Schemas - Enums and Request/Response Validation

All API request and response schemas in one file for simplicity.
Document fields are snake_case and match what the services store.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    supervisor = "supervisor"
    admin = "admin"


class ApplicationStatus(str, Enum):
    pending = "pending"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    revision_requested = "revision_requested"


class PartnershipStatus(str, Enum):
    none = "none"
    pending_sent = "pending_sent"
    pending_received = "pending_received"
    paired = "paired"


class MatchStatus(str, Enum):
    unmatched = "unmatched"
    pending = "pending"
    matched = "matched"


class RequestStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    cancelled = "cancelled"


class PartnershipAction(str, Enum):
    accept = "accept"
    reject = "reject"


class RequestDirection(str, Enum):
    incoming = "incoming"
    outgoing = "outgoing"
    all = "all"


class AvailabilityStatus(str, Enum):
    available = "available"
    limited = "limited"
    unavailable = "unavailable"


class ProjectStatus(str, Enum):
    pending_approval = "pending_approval"
    approved = "approved"
    in_progress = "in_progress"
    completed = "completed"


class ProjectPhase(str, Enum):
    a = "A"
    b = "B"


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    student_number: Optional[str] = None
    department: Optional[str] = None
    skills: List[str] = []
    interests: List[str] = []
    partnership_status: PartnershipStatus = PartnershipStatus.none
    partner_id: Optional[str] = None
    match_status: MatchStatus = MatchStatus.unmatched
    assigned_supervisor_id: Optional[str] = None
    is_active: bool = True


# ============================================================
# SUPERVISOR SCHEMAS
# ============================================================

class SupervisorResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    department: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    expertise_areas: List[str] = []
    research_interests: List[str] = []
    max_capacity: int
    current_capacity: int
    availability_status: AvailabilityStatus
    is_approved: bool = True
    is_active: bool = True


class SupervisorListResponse(BaseModel):
    supervisors: List[SupervisorResponse]
    total: int


class CapacityUpdate(BaseModel):
    max_capacity: int = Field(..., ge=0)
    reason: Optional[str] = Field(None, max_length=500)


class AdminCapacityUpdate(CapacityUpdate):
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Reason is required")
        return v.strip()


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    supervisor_id: str
    project_title: str = Field(..., min_length=3, max_length=200)
    project_description: str = Field(..., min_length=10, max_length=5000)
    is_own_topic: bool = True
    proposed_topic_id: Optional[str] = None


class ApplicationUpdate(BaseModel):
    project_title: Optional[str] = Field(None, min_length=3, max_length=200)
    project_description: Optional[str] = Field(None, min_length=10, max_length=5000)
    is_own_topic: Optional[bool] = None
    proposed_topic_id: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    feedback: Optional[str] = Field(None, max_length=2000)


class ApplicationResponse(BaseModel):
    id: str
    student_id: str
    student_name: str
    student_email: str
    supervisor_id: str
    supervisor_name: str
    project_title: str
    project_description: str
    is_own_topic: bool = True
    proposed_topic_id: Optional[str] = None
    student_skills: List[str] = []
    student_interests: List[str] = []
    has_partner: bool = False
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    partner_email: Optional[str] = None
    linked_application_id: Optional[str] = None
    is_lead_application: bool = True
    status: ApplicationStatus
    supervisor_feedback: Optional[str] = None
    date_applied: datetime
    last_updated: datetime
    response_date: Optional[datetime] = None
    resubmitted_date: Optional[datetime] = None


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int


# ============================================================
# PARTNERSHIP SCHEMAS
# ============================================================

class PartnershipRequestCreate(BaseModel):
    target_id: str


class SupervisorPartnershipRequestCreate(BaseModel):
    target_id: str
    project_id: str


class PartnershipResponse(BaseModel):
    action: PartnershipAction


class SupervisorUnpairRequest(BaseModel):
    project_id: str


class PartnershipRequestResponse(BaseModel):
    id: str
    requester_id: str
    requester_name: str
    requester_email: str
    target_id: str
    target_name: str
    target_email: str
    project_id: Optional[str] = None
    project_title: Optional[str] = None
    status: RequestStatus
    created_at: datetime
    responded_at: Optional[datetime] = None


class PartnershipRequestListResponse(BaseModel):
    requests: List[PartnershipRequestResponse]
    total: int


# ============================================================
# PROJECT SCHEMAS
# ============================================================

class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field("", max_length=5000)
    student_ids: List[str] = []
    supervisor_id: Optional[str] = None
    phase: ProjectPhase = ProjectPhase.a


class ProjectStatusChange(BaseModel):
    status: ProjectStatus


class ProjectResponse(BaseModel):
    id: str
    project_code: str
    title: str
    description: str = ""
    student_ids: List[str] = []
    student_names: List[str] = []
    supervisor_id: str
    supervisor_name: str
    co_supervisor_id: Optional[str] = None
    co_supervisor_name: Optional[str] = None
    status: ProjectStatus
    phase: ProjectPhase
    created_at: datetime
    updated_at: datetime


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class DashboardStats(BaseModel):
    total_students: int
    matched_students: int
    pending_matches: int
    students_without_approved_app: int
    total_supervisors: int
    active_supervisors: int
    total_available_capacity: int
    approved_applications: int
    pending_applications: int
    total_applications: int


class CapacityReconcileResponse(BaseModel):
    supervisors_checked: int
    supervisors_corrected: int
    corrections: List[dict] = []


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
    data: Optional[Any] = None


class CreatedResponse(BaseModel):
    id: str
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None


class Caller(BaseModel):
    """The verified identity making a request."""
    uid: str
    role: UserRole
    email: Optional[EmailStr] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
