"""
Admin Service - capacity management, dashboard statistics and data repair.

- update_supervisor_capacity: change a supervisor's max_capacity with an
  audit record in capacity_changes (same transaction)
- get_dashboard_stats: headline counts for the admin dashboard
- reconcile_all_capacity: recompute every supervisor's current_capacity
  from approved applications
- fix_match_status: mark students with an approved application as matched
"""

from typing import Any, Dict, Optional

from mentormatch.core.config import get_settings
from mentormatch.core.exceptions import ForbiddenError
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.schemas.schemas import ApplicationStatus, Caller, MatchStatus, UserRole
from mentormatch.services.capacity_ledger import CapacityLedger
from mentormatch.services.repositories import (
    ApplicationRepository,
    CapacityChangeRepository,
    StudentRepository,
    SupervisorRepository,
    full_name,
    utc_now,
)
from mentormatch.services.results import service_operation


class AdminService:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.students = StudentRepository(store)
        self.supervisors = SupervisorRepository(store)
        self.applications = ApplicationRepository(store)
        self.capacity_changes = CapacityChangeRepository(store)
        self.ledger = CapacityLedger(store)

    @staticmethod
    def _require_admin(caller: Caller) -> None:
        if caller.role != UserRole.admin:
            raise ForbiddenError("Admins only")

    @service_operation
    def update_supervisor_capacity(self, admin: Caller, supervisor_id: str,
                                   max_capacity: int, reason: str):
        """
        Set a supervisor's max_capacity and record who changed it and why.

        Args:
            admin: calling admin
            supervisor_id: supervisor to update
            max_capacity: new maximum (0..ADMIN_CAPACITY_LIMIT, not below current_capacity)
            reason: free-text justification stored in the audit trail
        """
        self._require_admin(admin)
        limit = get_settings().admin_capacity_limit

        def _update(tx: Transaction) -> Dict[str, Any]:
            supervisor, old_max = self.ledger.set_max_capacity(tx, supervisor_id, max_capacity, limit)
            change = {
                "supervisor_id": supervisor_id,
                "supervisor_name": full_name(supervisor),
                "admin_id": admin.uid,
                "admin_email": admin.email,
                "old_max_capacity": old_max,
                "new_max_capacity": max_capacity,
                "reason": reason,
                "timestamp": utc_now(),
            }
            change_id = self.capacity_changes.create(change, tx)
            return {**change, "id": change_id, "current_capacity": supervisor.get("current_capacity", 0)}

        change = self.store.run_transaction(_update)
        logger.info(
            f"Admin {admin.uid} changed max capacity of {supervisor_id}: "
            f"{change['old_max_capacity']} -> {max_capacity}"
        )
        return change

    @service_operation
    def get_capacity_history(self, admin: Caller, supervisor_id: str):
        self._require_admin(admin)
        self.supervisors.require(supervisor_id)
        return self.capacity_changes.find_for_supervisor(supervisor_id)

    @service_operation
    def get_dashboard_stats(self):
        students = self.students.list_all()
        supervisors = self.supervisors.list_all()
        applications = self.applications.list_all()

        approved = [a for a in applications if a.get("status") == ApplicationStatus.approved.value]
        pending = [a for a in applications if a.get("status") in (
            ApplicationStatus.pending.value, ApplicationStatus.under_review.value)]
        students_with_approved = {a["student_id"] for a in approved}
        active_supervisors = [s for s in supervisors if s.get("is_active", True)]

        return {
            "total_students": len(students),
            "matched_students": sum(1 for s in students if s.get("match_status") == MatchStatus.matched.value),
            "pending_matches": sum(1 for s in students if s.get("match_status") == MatchStatus.pending.value),
            "students_without_approved_app": sum(1 for s in students if s["id"] not in students_with_approved),
            "total_supervisors": len(supervisors),
            "active_supervisors": len(active_supervisors),
            "total_available_capacity": sum(
                max(0, s.get("max_capacity", 0) - s.get("current_capacity", 0)) for s in active_supervisors
            ),
            "approved_applications": len(approved),
            "pending_applications": len(pending),
            "total_applications": len(applications),
        }

    @service_operation
    def reconcile_all_capacity(self, supervisor_id: Optional[str] = None):
        """Recount current_capacity for one or every supervisor."""
        ids = [supervisor_id] if supervisor_id else [s["id"] for s in self.supervisors.list_all()]
        corrections = []
        for sid in ids:
            report = self.ledger.reconcile(sid)
            if report["old_capacity"] != report["new_capacity"] or report["overflow"]:
                corrections.append(report)
        logger.info(f"Capacity reconciled for {len(ids)} supervisors, {len(corrections)} corrected")
        return {
            "supervisors_checked": len(ids),
            "supervisors_corrected": len(corrections),
            "corrections": corrections,
        }

    @service_operation
    def fix_match_status(self):
        """Mark every student with an approved application as matched."""
        approved = self.applications.find_by_status([ApplicationStatus.approved.value])
        fixed = 0
        for application in approved:
            for student_id in (application.get("student_id"), application.get("partner_id")):
                student = self.students.get(student_id)
                if student is None or student.get("match_status") == MatchStatus.matched.value:
                    continue
                self.students.update(student_id, {
                    "match_status": MatchStatus.matched.value,
                    "assigned_supervisor_id": application["supervisor_id"],
                })
                fixed += 1
        logger.info(f"Match status fixed for {fixed} students")
        return {"students_fixed": fixed, "approved_applications": len(approved)}
