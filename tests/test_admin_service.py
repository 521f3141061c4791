import pytest

from mentormatch.core.exceptions import ErrorKind
from mentormatch.schemas.schemas import ApplicationStatus, UserRole
from mentormatch.services.admin_service import AdminService
from mentormatch.services.profile_service import ProfileService

from helpers import caller_for


@pytest.fixture
def admin_service(store) -> AdminService:
    return AdminService(store)


def test_update_capacity_writes_audit_record(store, admin_service, make_admin, make_supervisor):
    admin = make_admin()
    supervisor = make_supervisor(max_capacity=5, current_capacity=2)

    result = admin_service.update_supervisor_capacity(caller_for(admin, UserRole.admin), supervisor["id"],
                                                      8, "Department approved extra load")

    assert result.success
    assert store.get("supervisors", supervisor["id"])["max_capacity"] == 8
    history = admin_service.get_capacity_history(caller_for(admin, UserRole.admin), supervisor["id"]).data
    assert len(history) == 1
    assert history[0]["old_max_capacity"] == 5
    assert history[0]["new_max_capacity"] == 8
    assert history[0]["admin_id"] == admin["id"]
    assert history[0]["reason"] == "Department approved extra load"


def test_update_capacity_below_current_writes_nothing(store, admin_service, make_admin, make_supervisor):
    admin = make_admin()
    supervisor = make_supervisor(max_capacity=5, current_capacity=4)

    result = admin_service.update_supervisor_capacity(caller_for(admin, UserRole.admin), supervisor["id"], 2, "Cut")

    assert result.error_kind == ErrorKind.validation
    assert store.get("supervisors", supervisor["id"])["max_capacity"] == 5
    assert store.count("capacity_changes") == 0


def test_update_capacity_requires_admin(admin_service, make_supervisor):
    supervisor = make_supervisor()

    result = admin_service.update_supervisor_capacity(caller_for(supervisor, UserRole.supervisor),
                                                      supervisor["id"], 10, "Self promotion")

    assert result.error_kind == ErrorKind.forbidden


def test_dashboard_stats(admin_service, make_student, make_supervisor, make_application):
    supervisor = make_supervisor(max_capacity=4, current_capacity=1)
    matched = make_student(match_status="matched")
    waiting = make_student(match_status="pending")
    make_student()
    make_application(matched, supervisor, ApplicationStatus.approved)
    make_application(waiting, supervisor, ApplicationStatus.under_review)

    stats = admin_service.get_dashboard_stats().data

    assert stats["total_students"] == 3
    assert stats["matched_students"] == 1
    assert stats["pending_matches"] == 1
    assert stats["students_without_approved_app"] == 2
    assert stats["total_available_capacity"] == 3
    assert stats["approved_applications"] == 1
    assert stats["pending_applications"] == 1
    assert stats["total_applications"] == 2


def test_reconcile_all_reports_corrections(store, admin_service, make_student, make_supervisor, make_application):
    drifted = make_supervisor(max_capacity=5, current_capacity=4)
    correct = make_supervisor(max_capacity=5, current_capacity=1)
    make_application(make_student(), drifted, ApplicationStatus.approved)
    make_application(make_student(), correct, ApplicationStatus.approved)

    result = admin_service.reconcile_all_capacity().data

    assert result["supervisors_checked"] == 2
    assert result["supervisors_corrected"] == 1
    assert result["corrections"][0]["supervisor_id"] == drifted["id"]
    assert store.get("supervisors", drifted["id"])["current_capacity"] == 1


def test_fix_match_status_marks_both_partners(store, admin_service, make_pair, make_supervisor, make_application):
    a, b = make_pair()
    supervisor = make_supervisor()
    make_application(a, supervisor, ApplicationStatus.approved, has_partner=True, partner_id=b["id"])

    result = admin_service.fix_match_status().data

    assert result["students_fixed"] == 2
    for student_id in (a["id"], b["id"]):
        student = store.get("students", student_id)
        assert student["match_status"] == "matched"
        assert student["assigned_supervisor_id"] == supervisor["id"]
    assert admin_service.fix_match_status().data["students_fixed"] == 0


# ============================================================
# SUPERVISOR SELF-SERVICE
# ============================================================

def test_supervisor_own_capacity_limit(store, make_supervisor):
    profiles = ProfileService(store)
    supervisor = make_supervisor(max_capacity=5)

    assert profiles.update_own_capacity(supervisor["id"], 21).error_kind == ErrorKind.validation

    result = profiles.update_own_capacity(supervisor["id"], 20)
    assert result.success
    assert result.data["max_capacity"] == 20
    assert result.data["availability_status"] == "available"


def test_list_supervisors_available_only(store, make_supervisor):
    profiles = ProfileService(store)
    open_slot = make_supervisor(max_capacity=2, current_capacity=1)
    full = make_supervisor(max_capacity=2, current_capacity=2)

    ids = {s["id"] for s in profiles.list_supervisors(available_only=True).data}

    assert open_slot["id"] in ids
    assert full["id"] not in ids
