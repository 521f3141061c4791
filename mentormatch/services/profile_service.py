"""
Profile Service - read access to student and supervisor profiles, plus
supervisor self-service capacity changes.
"""

from mentormatch.core.config import get_settings
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.services.capacity_ledger import CapacityLedger, has_capacity
from mentormatch.services.repositories import StudentRepository, SupervisorRepository
from mentormatch.services.results import service_operation


class ProfileService:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.students = StudentRepository(store)
        self.supervisors = SupervisorRepository(store)
        self.ledger = CapacityLedger(store)

    @service_operation
    def get_student(self, student_id: str):
        return self.students.require(student_id)

    @service_operation
    def get_supervisor(self, supervisor_id: str):
        return self.supervisors.require(supervisor_id)

    @service_operation
    def list_supervisors(self, available_only: bool = False, department: str = None):
        supervisors = self.supervisors.list_active()
        if department:
            supervisors = [s for s in supervisors if s.get("department") == department]
        if available_only:
            supervisors = [s for s in supervisors if has_capacity(s)]
        return supervisors

    @service_operation
    def update_own_capacity(self, supervisor_id: str, max_capacity: int):
        """Supervisor changes their own max_capacity (up to SUPERVISOR_CAPACITY_LIMIT)."""
        limit = get_settings().supervisor_capacity_limit

        def _update(tx: Transaction):
            self.ledger.set_max_capacity(tx, supervisor_id, max_capacity, limit)
            return self.supervisors.get(supervisor_id, tx)

        supervisor = self.store.run_transaction(_update)
        logger.info(f"Supervisor {supervisor_id} set own max capacity to {max_capacity}")
        return supervisor
