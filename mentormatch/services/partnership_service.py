"""
Partnership Matching Engine - student pairing.

Two students pair through a request/response handshake:

    A ──request──> B        pending
    B ──accept───> A        accepted: A.partner_id = B, B.partner_id = A
    B ──reject───> A        rejected
    A ──cancel───> B        cancelled

Rules checked inside the transaction that writes the request:
- no self requests
- neither side may already be paired
- one pending request per direction, and no new request while the reverse
  one is pending (respond to it instead)

Accepting pairs both students in one transaction and cancels every other
pending request involving either of them. The request lifecycle is shared
with supervisor co-supervision requests (see supervisor_partnership_service).

Unpairing also splits any linked application pair back into two solo
applications. When both halves are already approved they each need their own
capacity slot, so the second slot is taken in the same transaction and the
unpair fails if the supervisor is full.
"""

from typing import Any, Dict, List, Optional

from mentormatch.core.exceptions import (
    AlreadyPairedError,
    AlreadyProcessedError,
    DuplicatePendingRequestError,
    ForbiddenError,
    NotFoundError,
    ReciprocalRequestExistsError,
    SelfPartnershipForbiddenError,
)
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.schemas.schemas import (
    ApplicationStatus,
    PartnershipAction,
    PartnershipStatus,
    RequestDirection,
    RequestStatus,
)
from mentormatch.services.capacity_ledger import CapacityLedger
from mentormatch.services.repositories import (
    ACTIVE_APPLICATION_STATUSES,
    ApplicationRepository,
    BaseRepository,
    PartnershipRequestRepository,
    StudentRepository,
    full_name,
    utc_now,
)
from mentormatch.services.results import service_operation


# ============================================================
# SHARED REQUEST LIFECYCLE
# ============================================================

class PartnershipRequestService:
    """
    Request/response lifecycle shared by student and supervisor partnerships.

    Subclasses provide the request and party repositories, create_request,
    unpair and the _accept hook that performs the actual pairing.
    """

    requests: PartnershipRequestRepository
    parties: BaseRepository
    kind = "partnership"

    def __init__(self, store: DocumentStore):
        self.store = store

    def _check_not_duplicate(self, tx: Transaction, requester_id: str, target_id: str,
                             project_id: Optional[str] = None) -> None:
        if self.requests.find_pending_between(requester_id, target_id, project_id, tx):
            raise DuplicatePendingRequestError()
        if self.requests.find_pending_between(target_id, requester_id, project_id, tx):
            raise ReciprocalRequestExistsError()

    def _cancel_superseded(self, tx: Transaction, requests: List[Dict[str, Any]],
                           keep_id: str) -> int:
        now = utc_now()
        cancelled = set()
        for request in requests:
            if request["id"] == keep_id or request["id"] in cancelled:
                continue
            self.requests.update(request["id"], {
                "status": RequestStatus.cancelled.value,
                "responded_at": now,
            }, tx)
            cancelled.add(request["id"])
        return len(cancelled)

    def _accept(self, tx: Transaction, request: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @service_operation
    def respond_to_request(self, request_id: str, responder_id: str, action: PartnershipAction):
        """
        Accept or reject a pending request addressed to the responder.

        A request that does not exist or is addressed to someone else is
        reported as not found.
        """
        action = PartnershipAction(action)

        def _respond(tx: Transaction) -> Dict[str, Any]:
            request = self.requests.get(request_id, tx)
            if request is None or request.get("target_id") != responder_id:
                raise NotFoundError(self.requests.entity_name, request_id)
            if request["status"] != RequestStatus.pending.value:
                raise AlreadyProcessedError(request["status"])

            if action == PartnershipAction.reject:
                self.requests.update(request_id, {
                    "status": RequestStatus.rejected.value,
                    "responded_at": utc_now(),
                }, tx)
                return {"request_id": request_id, "status": RequestStatus.rejected.value}

            outcome = self._accept(tx, request)
            self.requests.update(request_id, {
                "status": RequestStatus.accepted.value,
                "responded_at": utc_now(),
            }, tx)
            return {"request_id": request_id, "status": RequestStatus.accepted.value, **outcome}

        result = self.store.run_transaction(_respond)
        logger.log_transition(f"{self.kind} request", request_id, RequestStatus.pending.value,
                              result["status"], actor=responder_id)
        return result

    @service_operation
    def cancel_request(self, request_id: str, requester_id: str):
        """Withdraw a pending request. Only the requester may cancel."""
        def _cancel(tx: Transaction) -> Dict[str, Any]:
            request = self.requests.require(request_id, tx)
            if request.get("requester_id") != requester_id:
                raise ForbiddenError("Only the requester can cancel this request")
            if request["status"] != RequestStatus.pending.value:
                raise AlreadyProcessedError(request["status"])
            self.requests.update(request_id, {
                "status": RequestStatus.cancelled.value,
                "responded_at": utc_now(),
            }, tx)
            return {"request_id": request_id, "status": RequestStatus.cancelled.value}

        result = self.store.run_transaction(_cancel)
        logger.log_transition(f"{self.kind} request", request_id, RequestStatus.pending.value,
                              RequestStatus.cancelled.value, actor=requester_id)
        return result

    @service_operation
    def list_requests(self, party_id: str, direction: RequestDirection = RequestDirection.all,
                      status: Optional[RequestStatus] = None):
        return self.requests.find_for_party(
            party_id,
            RequestDirection(direction).value,
            RequestStatus(status).value if status else None,
        )


# ============================================================
# STUDENT PARTNERSHIPS
# ============================================================

class StudentPartnershipService(PartnershipRequestService):
    kind = "student partnership"

    def __init__(self, store: DocumentStore):
        super().__init__(store)
        self.requests = PartnershipRequestRepository(store)
        self.parties = self.students = StudentRepository(store)
        self.applications = ApplicationRepository(store)
        self.ledger = CapacityLedger(store)

    @staticmethod
    def _is_paired(student: Dict[str, Any]) -> bool:
        return student.get("partnership_status") == PartnershipStatus.paired.value or bool(student.get("partner_id"))

    def _set_application_partner(self, tx: Transaction, student_id: str,
                                 partner: Optional[Dict[str, Any]]) -> None:
        """Copy (or clear) partner details on a student's active applications."""
        for application in self.applications.find_by_student(student_id, ACTIVE_APPLICATION_STATUSES, tx):
            self.applications.update(application["id"], {
                "has_partner": partner is not None,
                "partner_id": partner["id"] if partner else None,
                "partner_name": full_name(partner) if partner else None,
                "partner_email": partner.get("email") if partner else None,
            }, tx)

    def _unlink_applications(self, tx: Transaction, student_ids: List[str]) -> int:
        """Split linked application pairs between the students into solo applications."""
        approved = ApplicationStatus.approved.value
        done = set()
        unlinked = 0
        for student_id in student_ids:
            for application in self.applications.find_by_student(student_id, None, tx):
                linked_id = application.get("linked_application_id")
                if not linked_id or application["id"] in done:
                    continue
                linked = self.applications.get(linked_id, tx)
                if linked is not None and application["status"] == approved and linked["status"] == approved:
                    self.ledger.increment(tx, application["supervisor_id"])
                solo = {"linked_application_id": None, "is_lead_application": True}
                self.applications.update(application["id"], solo, tx)
                done.add(application["id"])
                if linked is not None:
                    self.applications.update(linked_id, solo, tx)
                    done.add(linked_id)
                unlinked += 1
        return unlinked

    @service_operation
    def create_request(self, requester_id: str, target_id: str):
        """Send a pairing request from requester to target."""
        if requester_id == target_id:
            raise SelfPartnershipForbiddenError()

        def _create(tx: Transaction) -> Dict[str, Any]:
            requester = self.students.require(requester_id, tx)
            target = self.students.require(target_id, tx)

            if self._is_paired(requester):
                raise AlreadyPairedError("You are already paired with another student")
            if self._is_paired(target):
                raise AlreadyPairedError("Target student is already paired")
            self._check_not_duplicate(tx, requester_id, target_id)

            doc = {
                "requester_id": requester_id,
                "requester_name": full_name(requester),
                "requester_email": requester.get("email", ""),
                "requester_student_number": requester.get("student_number"),
                "requester_department": requester.get("department"),
                "target_id": target_id,
                "target_name": full_name(target),
                "target_email": target.get("email", ""),
                "target_department": target.get("department"),
                "status": RequestStatus.pending.value,
                "created_at": utc_now(),
                "responded_at": None,
            }
            request_id = self.requests.create(doc, tx)

            # Both profiles are written so crossed requests conflict at commit
            self.students.update(requester_id, {}, tx)
            self.students.update(target_id, {}, tx)
            return {**doc, "id": request_id}

        request = self.store.run_transaction(_create)
        logger.info(f"Partnership request {request['id']}: {requester_id} -> {target_id}")
        return request

    def _accept(self, tx: Transaction, request: Dict[str, Any]) -> Dict[str, Any]:
        requester = self.students.require(request["requester_id"], tx)
        target = self.students.require(request["target_id"], tx)

        if self._is_paired(requester):
            raise AlreadyPairedError(f"{full_name(requester)} is already paired with another student")
        if self._is_paired(target):
            raise AlreadyPairedError("You are already paired with another student")

        self.students.update(requester["id"], {
            "partner_id": target["id"],
            "partnership_status": PartnershipStatus.paired.value,
        }, tx)
        self.students.update(target["id"], {
            "partner_id": requester["id"],
            "partnership_status": PartnershipStatus.paired.value,
        }, tx)

        self._set_application_partner(tx, requester["id"], target)
        self._set_application_partner(tx, target["id"], requester)

        superseded = (self.requests.find_pending_involving(requester["id"], tx=tx)
                      + self.requests.find_pending_involving(target["id"], tx=tx))
        cancelled = self._cancel_superseded(tx, superseded, keep_id=request["id"])
        return {"partner_ids": [requester["id"], target["id"]], "cancelled_requests": cancelled}

    @service_operation
    def unpair(self, student_id: str):
        """
        Dissolve the caller's partnership. Both sides are cleared together,
        along with partner details on their active applications, and any
        linked application pair is split. Calling it when not paired is a no-op.
        """
        def _unpair(tx: Transaction) -> Dict[str, Any]:
            student = self.students.require(student_id, tx)
            partner_id = student.get("partner_id")
            if not partner_id:
                if student.get("partnership_status") == PartnershipStatus.paired.value:
                    self.students.update(student_id, {"partnership_status": PartnershipStatus.none.value}, tx)
                return {"unpaired": False, "partner_id": None}

            partner = self.students.get(partner_id, tx)
            mutual = partner is not None and partner.get("partner_id") == student_id
            unlinked = self._unlink_applications(tx, [student_id, partner_id] if mutual else [student_id])

            cleared = {"partner_id": None, "partnership_status": PartnershipStatus.none.value}
            self.students.update(student_id, cleared, tx)
            self._set_application_partner(tx, student_id, None)

            if mutual:
                self.students.update(partner_id, cleared, tx)
                self._set_application_partner(tx, partner_id, None)
            elif partner is not None:
                logger.warning(f"Partner {partner_id} of {student_id} did not point back; only one side cleared")

            return {"unpaired": True, "partner_id": partner_id, "unlinked_applications": unlinked}

        result = self.store.run_transaction(_unpair)
        if result["unpaired"]:
            logger.info(f"Students unpaired: {student_id} / {result['partner_id']}")
        return result

    @service_operation
    def list_available_partners(self, student_id: str):
        """Active, unpaired students with no pending request to or from the caller."""
        pending = self.requests.find_pending_involving(student_id)
        busy = {r["requester_id"] for r in pending} | {r["target_id"] for r in pending}
        return [
            s for s in self.students.list_unpaired(exclude_id=student_id)
            if s["id"] not in busy and not s.get("partner_id")
        ]
