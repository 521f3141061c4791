"""
Project Service - supervision projects.

Project codes look like ``2026-2-C-03``: year, semester (1 for January to
June, 2 for July to December), first letter of the supervisor's department,
then a two-digit sequence number within that prefix.

Moving a project to ``completed`` ends any co-supervision: the
co-supervisor is cleared and pending co-supervision requests for the project
are cancelled in the same transaction.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from mentormatch.core.exceptions import ForbiddenError, InvalidTransitionError, ValidationError
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.schemas.schemas import Caller, ProjectCreate, ProjectStatus, RequestStatus, UserRole
from mentormatch.services.repositories import (
    ProjectRepository,
    StudentRepository,
    SupervisorPartnershipRequestRepository,
    SupervisorRepository,
    full_name,
    utc_now,
)
from mentormatch.services.results import service_operation


def generate_project_code(year: int, semester: int, department: str, number: int) -> str:
    dept_code = (department or "X")[:1].upper()
    return f"{year}-{semester}-{dept_code}-{number:02d}"


def semester_for(moment: datetime) -> int:
    return 1 if moment.month <= 6 else 2


class ProjectService:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.projects = ProjectRepository(store)
        self.students = StudentRepository(store)
        self.supervisors = SupervisorRepository(store)
        self.co_requests = SupervisorPartnershipRequestRepository(store)

    def _check_can_manage(self, caller: Caller, project: Dict[str, Any]) -> None:
        if caller.role == UserRole.admin:
            return
        elif caller.role == UserRole.supervisor and project.get("supervisor_id") == caller.uid:
            return
        raise ForbiddenError("Only the project supervisor or admin can change project status")

    @service_operation
    def create_project(self, caller: Caller, data: ProjectCreate):
        """Create a project owned by the calling supervisor (or, for admins, the given supervisor)."""
        if caller.role == UserRole.supervisor:
            supervisor_id = caller.uid
        elif caller.role == UserRole.admin:
            if not data.supervisor_id:
                raise ValidationError("supervisor_id is required", field="supervisor_id")
            supervisor_id = data.supervisor_id
        else:
            raise ForbiddenError("Only supervisors or admins can create projects")

        def _create(tx: Transaction) -> Dict[str, Any]:
            supervisor = self.supervisors.require(supervisor_id, tx)
            students = [self.students.require(sid, tx) for sid in data.student_ids]

            now = utc_now()
            prefix = generate_project_code(now.year, semester_for(now), supervisor.get("department", ""), 0)[:-2]
            number = len(self.projects.find_by_code_prefix(prefix, tx)) + 1

            doc = {
                "project_code": generate_project_code(now.year, semester_for(now),
                                                      supervisor.get("department", ""), number),
                "title": data.title,
                "description": data.description,
                "student_ids": [s["id"] for s in students],
                "student_names": [full_name(s) for s in students],
                "supervisor_id": supervisor["id"],
                "supervisor_name": full_name(supervisor),
                "co_supervisor_id": None,
                "co_supervisor_name": None,
                "status": ProjectStatus.pending_approval.value,
                "phase": data.phase.value,
                "created_at": now,
                "updated_at": now,
            }
            project_id = self.projects.create(doc, tx)
            return {**doc, "id": project_id}

        project = self.store.run_transaction(_create)
        logger.info(f"Project {project['project_code']} created ({project['id']})")
        return project

    @staticmethod
    def _can_view(caller: Caller, project: Dict[str, Any]) -> bool:
        if caller.role == UserRole.admin:
            return True
        elif caller.role == UserRole.supervisor:
            return caller.uid in (project.get("supervisor_id"), project.get("co_supervisor_id"))
        elif caller.role == UserRole.student:
            return caller.uid in project.get("student_ids", [])
        return False

    @service_operation
    def get_project(self, caller: Caller, project_id: str):
        """A single project, visible to the same callers that would see it in list_projects."""
        project = self.projects.require(project_id)
        if not self._can_view(caller, project):
            raise ForbiddenError("You do not have access to this project")
        return project

    @service_operation
    def list_projects(self, caller: Caller, supervisor_id: Optional[str] = None):
        if caller.role == UserRole.supervisor:
            own = self.projects.find_by_supervisor(caller.uid)
            return own + self.projects.find_co_supervised_by(caller.uid)
        elif caller.role == UserRole.student:
            return [p for p in self.projects.list_all() if caller.uid in p.get("student_ids", [])]
        elif caller.role == UserRole.admin:
            if supervisor_id:
                return self.projects.find_by_supervisor(supervisor_id)
            return self.projects.list_all()
        return []

    @service_operation
    def change_status(self, caller: Caller, project_id: str, new_status: ProjectStatus):
        new_status = ProjectStatus(new_status)

        def _change(tx: Transaction) -> Dict[str, Any]:
            project = self.projects.require(project_id, tx)
            self._check_can_manage(caller, project)

            current = project.get("status")
            if current == ProjectStatus.completed.value and new_status != ProjectStatus.completed:
                raise InvalidTransitionError(current, new_status.value, "Completed projects cannot be reopened")

            updates: Dict[str, Any] = {"status": new_status.value}
            cancelled = 0
            if new_status == ProjectStatus.completed:
                updates.update({"co_supervisor_id": None, "co_supervisor_name": None})
                now = utc_now()
                for request in self.co_requests.find_pending_for_project(project_id, tx):
                    self.co_requests.update(request["id"], {
                        "status": RequestStatus.cancelled.value,
                        "responded_at": now,
                    }, tx)
                    cancelled += 1

            self.projects.update(project_id, updates, tx)
            return {"project_id": project_id, "from": current, "status": new_status.value,
                    "cancelled_requests": cancelled}

        result = self.store.run_transaction(_change)
        logger.log_transition("project", project_id, result["from"], result["status"], actor=caller.uid)
        return result
