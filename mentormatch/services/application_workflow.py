"""
Application Workflow Engine

Status lifecycle of a supervision application:

    pending ──start review──> under_review
    pending / under_review ──approve──> approved            (takes a capacity slot)
    pending / under_review ──reject──> rejected
    pending / under_review ──request revision──> revision_requested
    revision_requested ──edit──> revision_requested         (owner only)
    revision_requested ──resubmit──> pending
    approved / rejected: terminal, only deletion remains

Every operation re-reads the application inside the transaction that writes
it, so two concurrent decisions cannot both pass the same check.

Partner linkage: when a paired student applies to a supervisor their
partner already has an active application with, the two applications are
linked. The earlier one stays the lead. The pair shares one capacity slot,
taken when the first of the two is approved.
"""

from typing import Any, Dict, List, Optional

from mentormatch.core.exceptions import (
    DuplicateApplicationError,
    ForbiddenError,
    InvalidStateForEditError,
    InvalidTransitionError,
    ValidationError,
)
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.schemas.schemas import (
    ApplicationCreate,
    ApplicationStatus,
    ApplicationUpdate,
    Caller,
    MatchStatus,
    PartnershipStatus,
    UserRole,
)
from mentormatch.services.application_auth import (
    can_access_application,
    can_change_status,
    can_modify_application,
)
from mentormatch.services.capacity_ledger import CapacityLedger, shares_slot_with
from mentormatch.services.repositories import (
    ACTIVE_APPLICATION_STATUSES,
    ApplicationRepository,
    StudentRepository,
    SupervisorRepository,
    full_name,
    utc_now,
)
from mentormatch.services.results import service_operation

S = ApplicationStatus

ALLOWED_TRANSITIONS = {
    S.pending: {S.under_review, S.approved, S.rejected, S.revision_requested},
    S.under_review: {S.approved, S.rejected, S.revision_requested},
    S.revision_requested: set(),
    S.approved: set(),
    S.rejected: set(),
}

DECISION_STATUSES = {S.approved, S.rejected, S.revision_requested}

EDITABLE_FIELDS = ("project_title", "project_description", "is_own_topic", "proposed_topic_id")


class ApplicationWorkflowService:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.applications = ApplicationRepository(store)
        self.students = StudentRepository(store)
        self.supervisors = SupervisorRepository(store)
        self.ledger = CapacityLedger(store)

    # ============================================================
    # HELPERS
    # ============================================================

    def _load_for_access(self, tx: Transaction, caller: Caller, application_id: str) -> Dict[str, Any]:
        application = self.applications.require(application_id, tx)
        if not can_access_application(caller, application):
            raise ForbiddenError("You do not have access to this application")
        return application

    def _load_for_modify(self, tx: Transaction, caller: Caller, application_id: str) -> Dict[str, Any]:
        application = self._load_for_access(tx, caller, application_id)
        if not can_modify_application(caller, application):
            raise ForbiddenError("Only the applicant or an admin can modify this application")
        return application

    def _refresh_match_status(self, tx: Transaction, student_id: Optional[str]) -> None:
        """
        Derive a student's match_status from the active applications they
        own or are recorded as partner on.
        """
        student = self.students.get(student_id, tx)
        if student is None:
            return
        remaining = (self.applications.find_by_student(student_id, ACTIVE_APPLICATION_STATUSES, tx)
                     + self.applications.find_by_partner(student_id, ACTIVE_APPLICATION_STATUSES, tx))
        approved = [a for a in remaining if a["status"] == S.approved.value]
        if approved:
            updates = {"match_status": MatchStatus.matched.value,
                       "assigned_supervisor_id": approved[0]["supervisor_id"]}
        elif remaining:
            updates = {"match_status": MatchStatus.pending.value, "assigned_supervisor_id": None}
        else:
            updates = {"match_status": MatchStatus.unmatched.value, "assigned_supervisor_id": None}

        if any(student.get(k) != v for k, v in updates.items()):
            self.students.update(student_id, updates, tx)

    def _mark_matched(self, tx: Transaction, student_id: Optional[str], supervisor_id: str) -> None:
        if student_id and self.students.get(student_id, tx) is not None:
            self.students.update(student_id, {
                "match_status": MatchStatus.matched.value,
                "assigned_supervisor_id": supervisor_id,
            }, tx)

    # ============================================================
    # CREATE
    # ============================================================

    @service_operation
    def create_application(self, caller: Caller, data: ApplicationCreate):
        """
        Submit a new application from the calling student.

        Rejects a second active application to the same supervisor. Creating
        an application for a supervisor who is currently full is allowed;
        capacity is only checked on approval.
        """
        if caller.role != UserRole.student:
            raise ForbiddenError("Only students can submit applications")

        def _create(tx: Transaction) -> Dict[str, Any]:
            student = self.students.require(caller.uid, tx)
            supervisor = self.supervisors.require(data.supervisor_id, tx)
            if not supervisor.get("is_active", True) or not supervisor.get("is_approved", True):
                raise ValidationError("This supervisor is not accepting applications", field="supervisor_id")

            if self.applications.find_active_for_pair(caller.uid, data.supervisor_id, tx):
                raise DuplicateApplicationError(data.supervisor_id)

            partner = None
            if student.get("partnership_status") == PartnershipStatus.paired.value and student.get("partner_id"):
                partner = self.students.get(student["partner_id"], tx)

            linked = None
            if partner:
                partner_apps = self.applications.find_active_for_pair(partner["id"], data.supervisor_id, tx)
                linked = next((a for a in partner_apps if not a.get("linked_application_id")), None)

            now = utc_now()
            doc = {
                "student_id": student["id"],
                "student_name": full_name(student),
                "student_email": student.get("email", ""),
                "supervisor_id": supervisor["id"],
                "supervisor_name": full_name(supervisor),
                "project_title": data.project_title,
                "project_description": data.project_description,
                "is_own_topic": data.is_own_topic,
                "proposed_topic_id": data.proposed_topic_id,
                "student_skills": student.get("skills", []),
                "student_interests": student.get("interests", []),
                "has_partner": partner is not None,
                "partner_id": partner["id"] if partner else None,
                "partner_name": full_name(partner) if partner else None,
                "partner_email": partner.get("email") if partner else None,
                "linked_application_id": linked["id"] if linked else None,
                "is_lead_application": linked is None,
                "status": S.pending.value,
                "supervisor_feedback": None,
                "date_applied": now,
                "last_updated": now,
                "response_date": None,
                "resubmitted_date": None,
            }
            application_id = self.applications.create(doc, tx)

            if linked:
                self.applications.update(linked["id"], {"linked_application_id": application_id}, tx)

            if student.get("match_status", MatchStatus.unmatched.value) == MatchStatus.unmatched.value:
                self.students.update(student["id"], {"match_status": MatchStatus.pending.value}, tx)

            return {**doc, "id": application_id}

        application = self.store.run_transaction(_create)
        logger.info(
            f"Application {application['id']} created: student {caller.uid} -> supervisor {data.supervisor_id}"
            + (f" (linked to {application['linked_application_id']})" if application["linked_application_id"] else "")
        )
        return application

    # ============================================================
    # READ
    # ============================================================

    @service_operation
    def get_application(self, caller: Caller, application_id: str):
        application = self.applications.require(application_id)
        if not can_access_application(caller, application):
            raise ForbiddenError("You do not have access to this application")
        return application

    @service_operation
    def list_applications(self, caller: Caller, status: Optional[ApplicationStatus] = None):
        """Applications visible to the caller, newest first."""
        statuses = [status.value] if status else None
        if caller.role == UserRole.student:
            own = self.applications.find_by_student(caller.uid, statuses)
            partner_apps = self.applications.find_by_partner(caller.uid, statuses)
            seen = {a["id"] for a in own}
            return own + [a for a in partner_apps if a["id"] not in seen]
        elif caller.role == UserRole.supervisor:
            return self.applications.find_by_supervisor(caller.uid, statuses)
        elif caller.role == UserRole.admin:
            if statuses:
                return self.applications.find_by_status(statuses)
            return self.applications.find(order_by=[("date_applied", -1)])
        return []

    # ============================================================
    # STATUS CHANGES
    # ============================================================

    @service_operation
    def update_application_status(self, caller: Caller, application_id: str,
                                  new_status: ApplicationStatus, feedback: Optional[str] = None):
        """
        Supervisor/admin decision on an application.

        Approving a counted application takes a capacity slot in the same
        transaction; when the supervisor is full nothing is written.
        Rejecting a lead application also rejects its linked partner
        application if that one is still undecided.
        """
        new_status = ApplicationStatus(new_status)

        def _update(tx: Transaction) -> Dict[str, Any]:
            application = self._load_for_access(tx, caller, application_id)
            if not can_change_status(caller, application):
                raise ForbiddenError("Only the assigned supervisor or an admin can change application status")

            current = ApplicationStatus(application["status"])
            if new_status == current:
                raise InvalidTransitionError(current.value, new_status.value,
                                             f"Application is already {current.value}")
            if new_status == S.pending:
                raise InvalidTransitionError(current.value, new_status.value,
                                             "Cannot revert application to pending after a decision")
            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError(current.value, new_status.value)

            if new_status == S.approved:
                linked = self.applications.get(application.get("linked_application_id"), tx)
                if not shares_slot_with(linked):
                    self.ledger.increment(tx, application["supervisor_id"])

            now = utc_now()
            updates: Dict[str, Any] = {"status": new_status.value, "last_updated": now}
            if feedback is not None:
                updates["supervisor_feedback"] = feedback
            if new_status in DECISION_STATUSES:
                updates["response_date"] = now
            self.applications.update(application_id, updates, tx)

            if new_status == S.approved:
                self._mark_matched(tx, application["student_id"], application["supervisor_id"])
                if application.get("has_partner"):
                    self._mark_matched(tx, application.get("partner_id"), application["supervisor_id"])

            elif new_status == S.rejected:
                linked_id = application.get("linked_application_id")
                if application.get("is_lead_application", True) and linked_id:
                    linked = self.applications.get(linked_id, tx)
                    if linked and linked["status"] in (S.pending.value, S.under_review.value):
                        self.applications.update(linked_id, {
                            "status": S.rejected.value,
                            "supervisor_feedback": feedback if feedback is not None else linked.get("supervisor_feedback"),
                            "response_date": now,
                        }, tx)
                        self._refresh_match_status(tx, linked["student_id"])
                self._refresh_match_status(tx, application["student_id"])
                self._refresh_match_status(tx, application.get("partner_id"))

            return {**application, **updates, "_from": current.value}

        application = self.store.run_transaction(_update)
        from_status = application.pop("_from")
        logger.log_transition("application", application_id, from_status, new_status.value, actor=caller.uid)
        return application

    @service_operation
    def edit_application(self, caller: Caller, application_id: str, data: ApplicationUpdate):
        """Replace application fields. Only while status is revision_requested."""
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in EDITABLE_FIELDS}

        def _edit(tx: Transaction) -> Dict[str, Any]:
            application = self._load_for_modify(tx, caller, application_id)
            if application["status"] != S.revision_requested.value:
                raise InvalidStateForEditError(application["status"])
            if not changes:
                raise ValidationError("No fields to update")
            self.applications.update(application_id, changes, tx)
            return self.applications.get(application_id, tx)

        application = self.store.run_transaction(_edit)
        logger.info(f"Application {application_id} edited by {caller.uid}")
        return application

    @service_operation
    def resubmit_application(self, caller: Caller, application_id: str,
                             data: Optional[ApplicationUpdate] = None):
        """
        Send a revised application back to pending.

        Optional edits are applied in the same write. A linked partner
        application that is also awaiting revision is resubmitted with it.
        """
        changes = {}
        if data is not None:
            changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in EDITABLE_FIELDS}

        def _resubmit(tx: Transaction) -> Dict[str, Any]:
            application = self._load_for_modify(tx, caller, application_id)
            if application["status"] != S.revision_requested.value:
                raise InvalidTransitionError(
                    application["status"], S.pending.value,
                    "Only applications with requested revisions can be resubmitted",
                )

            now = utc_now()
            resubmitted = {
                "status": S.pending.value,
                "supervisor_feedback": None,
                "resubmitted_date": now,
                "last_updated": now,
            }
            self.applications.update(application_id, {**changes, **resubmitted}, tx)

            linked_id = application.get("linked_application_id")
            if linked_id:
                linked = self.applications.get(linked_id, tx)
                if linked and linked["status"] == S.revision_requested.value:
                    self.applications.update(linked_id, resubmitted, tx)

            return self.applications.get(application_id, tx)

        application = self.store.run_transaction(_resubmit)
        logger.log_transition("application", application_id, S.revision_requested.value,
                              S.pending.value, actor=caller.uid)
        return application

    # ============================================================
    # DELETE
    # ============================================================

    @service_operation
    def delete_application(self, caller: Caller, application_id: str):
        """
        Remove an application.

        Deleting an approved application releases its capacity slot in the
        same transaction. A linked partner application is unlinked and
        promoted to lead; if it is approved it keeps the pair's slot, so
        capacity is left unchanged.
        """
        def _delete(tx: Transaction) -> Dict[str, Any]:
            application = self._load_for_modify(tx, caller, application_id)
            linked_id = application.get("linked_application_id")
            linked = self.applications.get(linked_id, tx)

            released = False
            if application["status"] == S.approved.value and not shares_slot_with(linked):
                self.ledger.decrement(tx, application["supervisor_id"])
                released = True

            if linked is not None:
                self.applications.update(linked_id, {
                    "linked_application_id": None,
                    "is_lead_application": True,
                }, tx)

            self.applications.delete(application_id, tx)
            self._refresh_match_status(tx, application["student_id"])
            self._refresh_match_status(tx, application.get("partner_id"))
            return {"id": application_id, "capacity_released": released}

        result = self.store.run_transaction(_delete)
        logger.info(
            f"Application {application_id} deleted by {caller.uid}"
            + (" (capacity released)" if result["capacity_released"] else "")
        )
        return result
