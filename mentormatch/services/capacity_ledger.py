"""
Capacity Ledger - the only code that writes supervisor capacity fields.

Each supervisor has ``max_capacity`` supervision slots and a
``current_capacity`` counter of slots held by approved applications. The
ledger keeps 0 <= current_capacity <= max_capacity at every commit:

- increment/decrement must run inside a transaction together with the
  application write they belong to
- increment fails with CapacityExceededError when the supervisor is full
- decrement floors at zero and tolerates a deleted supervisor
- availability_status is refreshed on every write (advisory only)

Two linked partner applications share one slot. The slot is taken when the
first of the pair is approved, whichever half that is, and stays held while
either approved half remains.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from mentormatch.core.exceptions import CapacityExceededError, InternalError, ValidationError
from mentormatch.core.logging_config import logger
from mentormatch.db.store import DocumentStore, Transaction
from mentormatch.schemas.schemas import ApplicationStatus, AvailabilityStatus
from mentormatch.services.repositories import ApplicationRepository, SupervisorRepository, utc_now


def shares_slot_with(linked: Optional[Dict[str, Any]]) -> bool:
    """True when the linked partner application is approved and so already holds the pair's slot."""
    return linked is not None and linked.get("status") == ApplicationStatus.approved.value


def count_held_slots(approved: Iterable[Dict[str, Any]]) -> int:
    """Slots held by a set of approved applications; an approved linked pair holds one."""
    approved = list(approved)
    ids = {app["id"] for app in approved}
    pairs = {
        frozenset((app["id"], app["linked_application_id"]))
        for app in approved
        if app.get("linked_application_id") in ids
    }
    return len(approved) - len(pairs)


def compute_availability(current: int, maximum: int) -> AvailabilityStatus:
    remaining = maximum - current
    if remaining <= 0:
        return AvailabilityStatus.unavailable
    if remaining == 1:
        return AvailabilityStatus.limited
    return AvailabilityStatus.available


def has_capacity(supervisor: Dict[str, Any]) -> bool:
    return supervisor.get("current_capacity", 0) < supervisor.get("max_capacity", 0)


def capacity_fields(current: int, maximum: int) -> Dict[str, Any]:
    return {
        "current_capacity": current,
        "max_capacity": maximum,
        "availability_status": compute_availability(current, maximum).value,
    }


class CapacityLedger:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.supervisors = SupervisorRepository(store)
        self.applications = ApplicationRepository(store)

    @staticmethod
    def _require_tx(tx: Transaction) -> None:
        if not isinstance(tx, Transaction):
            raise InternalError("Capacity changes must run inside a transaction")

    def increment(self, tx: Transaction, supervisor_id: str) -> int:
        """Take one slot. Returns the new current_capacity."""
        self._require_tx(tx)
        supervisor = self.supervisors.require(supervisor_id, tx)
        current = supervisor.get("current_capacity", 0)
        maximum = supervisor.get("max_capacity", 0)

        if current >= maximum:
            raise CapacityExceededError(current, maximum)

        self.supervisors.update(supervisor_id, capacity_fields(current + 1, maximum), tx)
        logger.info(f"Capacity {supervisor_id}: {current} -> {current + 1}/{maximum}")
        return current + 1

    def decrement(self, tx: Transaction, supervisor_id: str) -> Optional[int]:
        """Release one slot. Returns the new current_capacity, or None if the supervisor is gone."""
        self._require_tx(tx)
        supervisor = self.supervisors.get(supervisor_id, tx)
        if supervisor is None:
            logger.warning(f"Capacity release skipped: supervisor {supervisor_id} not found")
            return None

        current = supervisor.get("current_capacity", 0)
        maximum = supervisor.get("max_capacity", 0)
        new_current = max(0, current - 1)

        self.supervisors.update(supervisor_id, capacity_fields(new_current, maximum), tx)
        logger.info(f"Capacity {supervisor_id}: {current} -> {new_current}/{maximum}")
        return new_current

    def set_max_capacity(self, tx: Transaction, supervisor_id: str, new_max: int,
                         limit: int) -> Tuple[Dict[str, Any], int]:
        """
        Change a supervisor's max_capacity.

        Args:
            new_max: requested maximum
            limit: upper bound allowed for the caller (admin or self-service)

        Returns:
            (supervisor document before the change, old max_capacity)
        """
        self._require_tx(tx)
        if new_max < 0:
            raise ValidationError("Maximum capacity cannot be negative", field="max_capacity")
        if new_max > limit:
            raise ValidationError(f"Maximum capacity cannot exceed {limit}", field="max_capacity")

        supervisor = self.supervisors.require(supervisor_id, tx)
        current = supervisor.get("current_capacity", 0)
        old_max = supervisor.get("max_capacity", 0)

        if new_max < current:
            raise ValidationError(
                f"Maximum capacity cannot be less than current capacity ({current})",
                field="max_capacity",
            )

        self.supervisors.update(supervisor_id, capacity_fields(current, new_max), tx)
        logger.info(f"Max capacity {supervisor_id}: {old_max} -> {new_max}")
        return supervisor, old_max

    def reconcile(self, supervisor_id: str) -> Dict[str, Any]:
        """
        Recompute current_capacity from approved applications.

        An approved linked partner pair is counted once. If the recount exceeds
        max_capacity the counter is clamped to max_capacity and the
        overflow is reported.
        """
        def _reconcile(tx: Transaction) -> Dict[str, Any]:
            supervisor = self.supervisors.require(supervisor_id, tx)
            approved = self.applications.find_by_supervisor(
                supervisor_id, [ApplicationStatus.approved.value], tx
            )
            actual = count_held_slots(approved)
            stored = supervisor.get("current_capacity", 0)
            maximum = supervisor.get("max_capacity", 0)
            new_current = min(actual, maximum)

            if new_current != stored or supervisor.get("availability_status") != compute_availability(new_current, maximum).value:
                self.supervisors.update(supervisor_id, {
                    **capacity_fields(new_current, maximum),
                    "capacity_reconciled_at": utc_now(),
                }, tx)

            return {
                "supervisor_id": supervisor_id,
                "old_capacity": stored,
                "new_capacity": new_current,
                "approved_count": actual,
                "max_capacity": maximum,
                "overflow": max(0, actual - maximum),
            }

        report = self.store.run_transaction(_reconcile)
        if report["overflow"]:
            logger.warning(
                f"Supervisor {supervisor_id} has {report['approved_count']} approved projects "
                f"but max capacity {report['max_capacity']}"
            )
        return report
