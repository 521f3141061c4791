"""
Application access rules.

Roles are a closed set (student, supervisor, admin); each check handles
every role explicitly.
"""

from typing import Any, Dict

from mentormatch.schemas.schemas import Caller, UserRole


def can_access_application(caller: Caller, application: Dict[str, Any]) -> bool:
    """Admin, the owning student, the recorded partner or the assigned supervisor."""
    if caller.role == UserRole.admin:
        return True
    elif caller.role == UserRole.student:
        return caller.uid in (application.get("student_id"), application.get("partner_id"))
    elif caller.role == UserRole.supervisor:
        return caller.uid == application.get("supervisor_id")
    return False


def can_modify_application(caller: Caller, application: Dict[str, Any]) -> bool:
    """Admin, the owning student or the recorded partner."""
    if caller.role == UserRole.admin:
        return True
    elif caller.role == UserRole.student:
        return caller.uid in (application.get("student_id"), application.get("partner_id"))
    elif caller.role == UserRole.supervisor:
        return False
    return False


def can_change_status(caller: Caller, application: Dict[str, Any]) -> bool:
    """Assigned supervisor or admin."""
    if caller.role == UserRole.admin:
        return True
    elif caller.role == UserRole.supervisor:
        return caller.uid == application.get("supervisor_id")
    elif caller.role == UserRole.student:
        return False
    return False
