import pytest

from mentormatch.core.exceptions import CapacityExceededError, InternalError, ValidationError
from mentormatch.services.capacity_ledger import (
    CapacityLedger,
    compute_availability,
    count_held_slots,
    shares_slot_with,
)
from mentormatch.schemas.schemas import ApplicationStatus, AvailabilityStatus


@pytest.fixture
def ledger(store) -> CapacityLedger:
    return CapacityLedger(store)


def test_increment_takes_a_slot(store, ledger, make_supervisor):
    supervisor = make_supervisor(max_capacity=3, current_capacity=1)

    new_value = store.run_transaction(lambda tx: ledger.increment(tx, supervisor["id"]))

    assert new_value == 2
    updated = store.get("supervisors", supervisor["id"])
    assert updated["current_capacity"] == 2
    assert updated["availability_status"] == AvailabilityStatus.limited.value


def test_increment_at_max_fails_and_leaves_counter(store, ledger, make_supervisor):
    supervisor = make_supervisor(max_capacity=2, current_capacity=2)

    with pytest.raises(CapacityExceededError) as exc:
        store.run_transaction(lambda tx: ledger.increment(tx, supervisor["id"]))

    assert "2/2" in exc.value.message
    assert store.get("supervisors", supervisor["id"])["current_capacity"] == 2


def test_decrement_floors_at_zero(store, ledger, make_supervisor):
    supervisor = make_supervisor(max_capacity=2, current_capacity=0)

    new_value = store.run_transaction(lambda tx: ledger.decrement(tx, supervisor["id"]))

    assert new_value == 0
    assert store.get("supervisors", supervisor["id"])["current_capacity"] == 0


def test_decrement_tolerates_missing_supervisor(store, ledger):
    assert store.run_transaction(lambda tx: ledger.decrement(tx, "gone")) is None


def test_ledger_requires_transaction(store, ledger, make_supervisor):
    supervisor = make_supervisor()
    with pytest.raises(InternalError):
        ledger.increment(store, supervisor["id"])


def test_set_max_capacity_rejects_below_current(store, ledger, make_supervisor):
    supervisor = make_supervisor(max_capacity=5, current_capacity=4)

    with pytest.raises(ValidationError) as exc:
        store.run_transaction(lambda tx: ledger.set_max_capacity(tx, supervisor["id"], 3, limit=50))

    assert "current capacity (4)" in exc.value.message
    assert store.get("supervisors", supervisor["id"])["max_capacity"] == 5


def test_set_max_capacity_respects_limit(store, ledger, make_supervisor):
    supervisor = make_supervisor(max_capacity=5)

    with pytest.raises(ValidationError):
        store.run_transaction(lambda tx: ledger.set_max_capacity(tx, supervisor["id"], 21, limit=20))

    _, old_max = store.run_transaction(lambda tx: ledger.set_max_capacity(tx, supervisor["id"], 20, limit=20))
    assert old_max == 5
    assert store.get("supervisors", supervisor["id"])["max_capacity"] == 20


def test_reconcile_counts_linked_pair_once(store, ledger, make_supervisor, make_student, make_application):
    supervisor = make_supervisor(max_capacity=5, current_capacity=0)
    a, b, c = make_student(), make_student(), make_student()
    lead = make_application(a, supervisor, ApplicationStatus.approved)
    make_application(b, supervisor, ApplicationStatus.approved,
                     linked_application_id=lead["id"], is_lead_application=False)
    make_application(c, supervisor, ApplicationStatus.approved)
    make_application(c, supervisor, ApplicationStatus.rejected)

    report = ledger.reconcile(supervisor["id"])

    assert report["old_capacity"] == 0
    assert report["new_capacity"] == 2
    assert store.get("supervisors", supervisor["id"])["current_capacity"] == 2


def test_reconcile_clamps_overflow(store, ledger, make_supervisor, make_student, make_application):
    supervisor = make_supervisor(max_capacity=1, current_capacity=1)
    make_application(make_student(), supervisor, ApplicationStatus.approved)
    make_application(make_student(), supervisor, ApplicationStatus.approved)

    report = ledger.reconcile(supervisor["id"])

    assert report["overflow"] == 1
    assert store.get("supervisors", supervisor["id"])["current_capacity"] == 1


def test_shares_slot_with():
    assert shares_slot_with({"status": ApplicationStatus.approved.value})
    assert not shares_slot_with({"status": ApplicationStatus.pending.value})
    assert not shares_slot_with(None)


def test_count_held_slots():
    approved = [
        {"id": "a", "linked_application_id": "b"},
        {"id": "b", "linked_application_id": "a"},
        {"id": "c", "linked_application_id": "gone"},
        {"id": "d", "linked_application_id": None},
    ]
    assert count_held_slots(approved) == 3
    assert count_held_slots([]) == 0


@pytest.mark.parametrize("current,maximum,expected", [
    (0, 3, AvailabilityStatus.available),
    (2, 3, AvailabilityStatus.limited),
    (3, 3, AvailabilityStatus.unavailable),
    (0, 0, AvailabilityStatus.unavailable),
])
def test_compute_availability(current, maximum, expected):
    assert compute_availability(current, maximum) == expected
