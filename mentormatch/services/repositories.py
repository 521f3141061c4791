"""
Repositories - typed access to each document collection.

Collections:
1. students                         - student profiles and pairing slot
2. supervisors                      - supervisor profiles and capacity counters
3. admins                           - admin profiles
4. applications                     - supervision applications
5. partnership_requests             - student pairing requests
6. supervisor_partnership_requests  - co-supervision requests (per project)
7. projects                         - supervision projects
8. capacity_changes                 - audit trail of capacity edits

Every method accepts an optional ``tx``. When given, the read or write goes
through the open transaction; otherwise it goes straight to the store.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from mentormatch.core.exceptions import NotFoundError
from mentormatch.db.mongodb import COLLECTIONS
from mentormatch.db.store import DocumentReader, DocumentStore, Transaction
from mentormatch.schemas.schemas import ApplicationStatus, RequestStatus


# Applications that block a second application to the same supervisor
ACTIVE_APPLICATION_STATUSES = [
    ApplicationStatus.pending.value,
    ApplicationStatus.under_review.value,
    ApplicationStatus.revision_requested.value,
    ApplicationStatus.approved.value,
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def full_name(doc: Dict[str, Any]) -> str:
    """Display name for a student/supervisor document."""
    if doc.get("full_name"):
        return doc["full_name"]
    return f"{doc.get('first_name', '')} {doc.get('last_name', '')}".strip()


# ============================================================
# PROFILE DOCUMENT BUILDERS
# Profiles are created by the account system; these give seed
# scripts and tests the same document shape.
# ============================================================

def new_student_doc(first_name: str, last_name: str, email: str, **extra) -> Dict[str, Any]:
    now = utc_now()
    doc = {
        "first_name": first_name,
        "last_name": last_name,
        "full_name": f"{first_name} {last_name}",
        "email": email,
        "student_number": None,
        "department": None,
        "skills": [],
        "interests": [],
        "partnership_status": "none",
        "partner_id": None,
        "match_status": "unmatched",
        "assigned_supervisor_id": None,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    doc.update(extra)
    return doc


def new_supervisor_doc(first_name: str, last_name: str, email: str,
                       max_capacity: int = 5, current_capacity: int = 0, **extra) -> Dict[str, Any]:
    # Imported here: capacity_ledger imports this module
    from mentormatch.services.capacity_ledger import capacity_fields

    now = utc_now()
    doc = {
        "first_name": first_name,
        "last_name": last_name,
        "full_name": f"{first_name} {last_name}",
        "email": email,
        "department": None,
        "title": None,
        "bio": None,
        "expertise_areas": [],
        "research_interests": [],
        **capacity_fields(current_capacity, max_capacity),
        "is_approved": True,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    doc.update(extra)
    return doc


def new_admin_doc(first_name: str, last_name: str, email: str) -> Dict[str, Any]:
    return {
        "first_name": first_name,
        "last_name": last_name,
        "full_name": f"{first_name} {last_name}",
        "email": email,
        "is_active": True,
        "created_at": utc_now(),
    }


# ============================================================
# BASE
# ============================================================

class BaseRepository:
    collection: str = ""
    entity_name: str = "Document"
    timestamp_field: Optional[str] = "updated_at"

    def __init__(self, store: DocumentStore):
        self.store = store

    def _reader(self, tx: Optional[Transaction]) -> DocumentReader:
        return tx if tx is not None else self.store

    def get(self, doc_id: str, tx: Optional[Transaction] = None) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        return self._reader(tx).get(self.collection, doc_id)

    def require(self, doc_id: str, tx: Optional[Transaction] = None) -> Dict[str, Any]:
        """Fetch a document or raise NotFoundError."""
        doc = self.get(doc_id, tx)
        if doc is None:
            raise NotFoundError(self.entity_name, doc_id)
        return doc

    def find(self, filters=None, order_by=None, limit=None, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self._reader(tx).query(self.collection, filters, order_by, limit)

    def create(self, data: Dict[str, Any], tx: Optional[Transaction] = None, doc_id: Optional[str] = None) -> str:
        reader = self._reader(tx)
        if doc_id:
            reader.set(self.collection, doc_id, data)
            return doc_id
        return reader.add(self.collection, data)

    def update(self, doc_id: str, data: Dict[str, Any], tx: Optional[Transaction] = None) -> None:
        if self.timestamp_field and self.timestamp_field not in data:
            data = {**data, self.timestamp_field: utc_now()}
        self._reader(tx).update(self.collection, doc_id, data)

    def delete(self, doc_id: str, tx: Optional[Transaction] = None) -> None:
        self._reader(tx).delete(self.collection, doc_id)

    def list_all(self, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find(tx=tx)


# ============================================================
# PROFILES
# ============================================================

class StudentRepository(BaseRepository):
    collection = COLLECTIONS["students"]
    entity_name = "Student"

    def list_active(self, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find([("is_active", "==", True)], tx=tx)

    def list_unpaired(self, exclude_id: str) -> List[Dict[str, Any]]:
        students = self.find([
            ("is_active", "==", True),
            ("partnership_status", "!=", "paired"),
        ])
        return [s for s in students if s["id"] != exclude_id]


class SupervisorRepository(BaseRepository):
    collection = COLLECTIONS["supervisors"]
    entity_name = "Supervisor"

    def list_active(self, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find([("is_active", "==", True)], order_by=[("last_name", 1)], tx=tx)


class AdminRepository(BaseRepository):
    collection = COLLECTIONS["admins"]
    entity_name = "Admin"


# ============================================================
# APPLICATIONS
# ============================================================

class ApplicationRepository(BaseRepository):
    collection = COLLECTIONS["applications"]
    entity_name = "Application"
    timestamp_field = "last_updated"

    def find_active_for_pair(self, student_id: str, supervisor_id: str,
                             tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        """Active applications from a student to a supervisor."""
        return self.find([
            ("student_id", "==", student_id),
            ("supervisor_id", "==", supervisor_id),
            ("status", "in", ACTIVE_APPLICATION_STATUSES),
        ], tx=tx)

    def find_by_student(self, student_id: str, statuses: Optional[List[str]] = None,
                        tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        filters = [("student_id", "==", student_id)]
        if statuses:
            filters.append(("status", "in", statuses))
        return self.find(filters, order_by=[("date_applied", -1)], tx=tx)

    def find_by_partner(self, student_id: str, statuses: Optional[List[str]] = None,
                        tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        """Applications where the student is recorded as the applicant's partner."""
        filters = [("partner_id", "==", student_id)]
        if statuses:
            filters.append(("status", "in", statuses))
        return self.find(filters, tx=tx)

    def find_by_supervisor(self, supervisor_id: str, statuses: Optional[List[str]] = None,
                           tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        filters = [("supervisor_id", "==", supervisor_id)]
        if statuses:
            filters.append(("status", "in", statuses))
        return self.find(filters, order_by=[("date_applied", -1)], tx=tx)

    def find_by_status(self, statuses: List[str], tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find([("status", "in", statuses)], tx=tx)


# ============================================================
# PARTNERSHIP REQUESTS
# ============================================================

class PartnershipRequestRepository(BaseRepository):
    collection = COLLECTIONS["partnership_requests"]
    entity_name = "Partnership request"
    timestamp_field = None

    def _scope(self, project_id: Optional[str]) -> list:
        return [("project_id", "==", project_id)] if project_id else []

    def find_pending_between(self, requester_id: str, target_id: str,
                             project_id: Optional[str] = None,
                             tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        """Pending requests from requester to target (one direction only)."""
        return self.find([
            ("requester_id", "==", requester_id),
            ("target_id", "==", target_id),
            ("status", "==", RequestStatus.pending.value),
        ] + self._scope(project_id), tx=tx)

    def find_pending_involving(self, party_id: str, project_id: Optional[str] = None,
                               tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        """Pending requests where the party is requester or target."""
        pending = ("status", "==", RequestStatus.pending.value)
        scope = self._scope(project_id)
        sent = self.find([("requester_id", "==", party_id), pending] + scope, tx=tx)
        received = self.find([("target_id", "==", party_id), pending] + scope, tx=tx)
        return sent + received

    def find_for_party(self, party_id: str, direction: str = "all",
                       status: Optional[str] = None) -> List[Dict[str, Any]]:
        extra = [("status", "==", status)] if status else []
        order = [("created_at", -1)]
        results: List[Dict[str, Any]] = []
        if direction in ("outgoing", "all"):
            results += self.find([("requester_id", "==", party_id)] + extra, order_by=order)
        if direction in ("incoming", "all"):
            results += self.find([("target_id", "==", party_id)] + extra, order_by=order)
        return results


class SupervisorPartnershipRequestRepository(PartnershipRequestRepository):
    collection = COLLECTIONS["supervisor_partnership_requests"]
    entity_name = "Supervisor partnership request"

    def find_pending_for_project(self, project_id: str,
                                 tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find([
            ("project_id", "==", project_id),
            ("status", "==", RequestStatus.pending.value),
        ], tx=tx)


# ============================================================
# PROJECTS AND AUDIT
# ============================================================

class ProjectRepository(BaseRepository):
    collection = COLLECTIONS["projects"]
    entity_name = "Project"

    def find_by_supervisor(self, supervisor_id: str, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find([("supervisor_id", "==", supervisor_id)], tx=tx)

    def find_co_supervised_by(self, supervisor_id: str, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.find([("co_supervisor_id", "==", supervisor_id)], tx=tx)

    def find_by_code_prefix(self, prefix: str, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return [p for p in self.find(tx=tx) if p.get("project_code", "").startswith(prefix)]


class CapacityChangeRepository(BaseRepository):
    collection = COLLECTIONS["capacity_changes"]
    entity_name = "Capacity change"
    timestamp_field = None

    def find_for_supervisor(self, supervisor_id: str) -> List[Dict[str, Any]]:
        return self.find([("supervisor_id", "==", supervisor_id)], order_by=[("timestamp", -1)])
