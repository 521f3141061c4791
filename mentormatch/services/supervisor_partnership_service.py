"""
Partnership Matching Engine - supervisor co-supervision.

A project's supervisor can invite another supervisor to co-supervise that
project. Requests are scoped to the project, and the pairing is recorded on
the project (co_supervisor_id) rather than on either supervisor, so a
supervisor may co-supervise several projects.

Rules:
- only the project's supervisor can send a request for it
- the project must not already have a co-supervisor
- the invited supervisor must have a free capacity slot (co-supervising does
  not itself take one)
- same duplicate / reciprocal rules as student requests, per project
"""

from typing import Any, Dict

from mentormatch.core.exceptions import (
    AlreadyPairedError,
    CapacityExceededError,
    ForbiddenError,
    SelfPartnershipForbiddenError,
    ValidationError,
)
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.schemas.schemas import ProjectStatus, RequestStatus
from mentormatch.services.capacity_ledger import has_capacity
from mentormatch.services.partnership_service import PartnershipRequestService
from mentormatch.services.repositories import (
    ProjectRepository,
    SupervisorPartnershipRequestRepository,
    SupervisorRepository,
    full_name,
    utc_now,
)
from mentormatch.services.results import service_operation


class SupervisorPartnershipService(PartnershipRequestService):
    kind = "supervisor partnership"

    def __init__(self, store: DocumentStore):
        super().__init__(store)
        self.requests = SupervisorPartnershipRequestRepository(store)
        self.parties = self.supervisors = SupervisorRepository(store)
        self.projects = ProjectRepository(store)

    def _check_can_pair(self, project: Dict[str, Any], requester_id: str,
                        target: Dict[str, Any]) -> None:
        if project.get("supervisor_id") != requester_id:
            raise ForbiddenError("Only the project supervisor can request a co-supervisor")
        if project.get("status") == ProjectStatus.completed.value:
            raise ValidationError("Cannot add a co-supervisor to a completed project")
        if project.get("co_supervisor_id"):
            raise AlreadyPairedError("This project already has a co-supervisor")
        if not target.get("is_active", True):
            raise ValidationError("Target supervisor is not active")
        if not has_capacity(target):
            raise CapacityExceededError(
                target.get("current_capacity", 0),
                target.get("max_capacity", 0),
                "Target supervisor has no available capacity",
            )

    @service_operation
    def create_request(self, requester_id: str, target_id: str, project_id: str):
        """Invite target to co-supervise one of the requester's projects."""
        if requester_id == target_id:
            raise SelfPartnershipForbiddenError("You cannot send a co-supervision request to yourself")

        def _create(tx: Transaction) -> Dict[str, Any]:
            requester = self.supervisors.require(requester_id, tx)
            target = self.supervisors.require(target_id, tx)
            project = self.projects.require(project_id, tx)

            self._check_can_pair(project, requester_id, target)
            self._check_not_duplicate(tx, requester_id, target_id, project_id)

            doc = {
                "requester_id": requester_id,
                "requester_name": full_name(requester),
                "requester_email": requester.get("email", ""),
                "requester_department": requester.get("department"),
                "target_id": target_id,
                "target_name": full_name(target),
                "target_email": target.get("email", ""),
                "target_department": target.get("department"),
                "project_id": project_id,
                "project_title": project.get("title"),
                "status": RequestStatus.pending.value,
                "created_at": utc_now(),
                "responded_at": None,
            }
            request_id = self.requests.create(doc, tx)
            self.projects.update(project_id, {}, tx)
            return {**doc, "id": request_id}

        request = self.store.run_transaction(_create)
        logger.info(
            f"Co-supervision request {request['id']}: {requester_id} -> {target_id} (project {project_id})"
        )
        return request

    def _accept(self, tx: Transaction, request: Dict[str, Any]) -> Dict[str, Any]:
        project = self.projects.require(request["project_id"], tx)
        target = self.supervisors.require(request["target_id"], tx)
        self._check_can_pair(project, request["requester_id"], target)

        self.projects.update(project["id"], {
            "co_supervisor_id": target["id"],
            "co_supervisor_name": full_name(target),
        }, tx)

        superseded = self.requests.find_pending_for_project(project["id"], tx)
        cancelled = self._cancel_superseded(tx, superseded, keep_id=request["id"])
        return {"project_id": project["id"], "co_supervisor_id": target["id"], "cancelled_requests": cancelled}

    @service_operation
    def unpair(self, project_id: str, caller_id: str):
        """Remove the co-supervisor from a project. No-op when there is none."""
        def _unpair(tx: Transaction) -> Dict[str, Any]:
            project = self.projects.require(project_id, tx)
            co_supervisor_id = project.get("co_supervisor_id")
            if caller_id not in (project.get("supervisor_id"), co_supervisor_id):
                raise ForbiddenError("Only the project supervisor or co-supervisor can remove the co-supervisor")
            if not co_supervisor_id:
                return {"unpaired": False, "project_id": project_id, "co_supervisor_id": None}

            self.projects.update(project_id, {"co_supervisor_id": None, "co_supervisor_name": None}, tx)
            return {"unpaired": True, "project_id": project_id, "co_supervisor_id": co_supervisor_id}

        result = self.store.run_transaction(_unpair)
        if result["unpaired"]:
            logger.info(f"Co-supervisor {result['co_supervisor_id']} removed from project {project_id}")
        return result

    @service_operation
    def list_available_partners(self, supervisor_id: str):
        """Active supervisors with a free slot, excluding the caller and current co-supervision partners."""
        partners = {p.get("co_supervisor_id") for p in self.projects.find_by_supervisor(supervisor_id)}
        partners |= {p.get("supervisor_id") for p in self.projects.find_co_supervised_by(supervisor_id)}
        return [
            s for s in self.supervisors.list_active()
            if s["id"] != supervisor_id and s["id"] not in partners and has_capacity(s)
        ]
