from datetime import datetime

import pytest

from mentormatch.core.exceptions import ErrorKind
from mentormatch.schemas.schemas import ProjectCreate, ProjectStatus, RequestStatus, UserRole
from mentormatch.services.project_service import ProjectService, generate_project_code, semester_for
from mentormatch.services.supervisor_partnership_service import SupervisorPartnershipService

from helpers import caller_for


@pytest.fixture
def projects(store) -> ProjectService:
    return ProjectService(store)


def _create(projects, supervisor, **fields):
    data = {"title": "Federated learning on edge devices", **fields}
    return projects.create_project(caller_for(supervisor, UserRole.supervisor), ProjectCreate(**data))


@pytest.mark.parametrize("month,expected", [(1, 1), (6, 1), (7, 2), (12, 2)])
def test_semester_for(month, expected):
    assert semester_for(datetime(2026, month, 15)) == expected


def test_generate_project_code():
    assert generate_project_code(2026, 2, "computer science", 3) == "2026-2-C-03"
    assert generate_project_code(2026, 1, "", 12) == "2026-1-X-12"


def test_create_project_numbers_sequentially(projects, make_supervisor, make_student):
    supervisor = make_supervisor()
    student = make_student()

    first = _create(projects, supervisor, student_ids=[student["id"]]).data
    second = _create(projects, supervisor).data

    assert first["status"] == ProjectStatus.pending_approval.value
    assert first["student_names"] == [student["full_name"]]
    assert first["project_code"].endswith("-C-01")
    assert second["project_code"].endswith("-C-02")


def test_student_cannot_create_project(projects, make_student):
    student = make_student()
    result = projects.create_project(caller_for(student, UserRole.student), ProjectCreate(title="Some project"))
    assert result.error_kind == ErrorKind.forbidden


def test_admin_must_name_supervisor(projects, make_admin):
    result = projects.create_project(caller_for(make_admin(), UserRole.admin), ProjectCreate(title="Some project"))
    assert result.error_kind == ErrorKind.validation


def test_complete_clears_co_supervision(store, projects, make_supervisor):
    owner, helper, invited = make_supervisor(), make_supervisor(), make_supervisor()
    project = _create(projects, owner).data
    store.update("projects", project["id"], {"co_supervisor_id": helper["id"], "co_supervisor_name": "x"})
    # A stale pending invite for the same project
    request = SupervisorPartnershipService(store).requests.create({
        "requester_id": owner["id"], "target_id": invited["id"], "project_id": project["id"],
        "status": RequestStatus.pending.value,
    })

    result = projects.change_status(caller_for(owner, UserRole.supervisor), project["id"], ProjectStatus.completed)

    assert result.success
    assert result.data["cancelled_requests"] == 1
    updated = store.get("projects", project["id"])
    assert updated["status"] == ProjectStatus.completed.value
    assert updated["co_supervisor_id"] is None
    assert store.get("supervisor_partnership_requests", request)["status"] == RequestStatus.cancelled.value


def test_completed_project_cannot_reopen(projects, make_supervisor):
    owner = make_supervisor()
    project = _create(projects, owner).data
    caller = caller_for(owner, UserRole.supervisor)
    projects.change_status(caller, project["id"], ProjectStatus.completed)

    result = projects.change_status(caller, project["id"], ProjectStatus.in_progress)

    assert result.code == "INVALID_TRANSITION"


def test_other_supervisor_cannot_change_status(projects, make_supervisor):
    project = _create(projects, make_supervisor()).data

    result = projects.change_status(caller_for(make_supervisor(), UserRole.supervisor),
                                    project["id"], ProjectStatus.approved)

    assert result.error_kind == ErrorKind.forbidden


def test_list_projects_includes_co_supervised(store, projects, make_supervisor):
    owner, helper = make_supervisor(), make_supervisor()
    project = _create(projects, owner).data
    store.update("projects", project["id"], {"co_supervisor_id": helper["id"]})

    listed = projects.list_projects(caller_for(helper, UserRole.supervisor)).data

    assert [p["id"] for p in listed] == [project["id"]]


def test_get_project_visible_to_members(store, projects, make_supervisor, make_student, make_admin):
    owner, helper = make_supervisor(), make_supervisor()
    student = make_student()
    project = _create(projects, owner, student_ids=[student["id"]]).data
    store.update("projects", project["id"], {"co_supervisor_id": helper["id"]})

    for caller in (caller_for(owner, UserRole.supervisor), caller_for(helper, UserRole.supervisor),
                   caller_for(student, UserRole.student), caller_for(make_admin(), UserRole.admin)):
        assert projects.get_project(caller, project["id"]).data["id"] == project["id"]


def test_get_project_hidden_from_outsiders(projects, make_supervisor, make_student):
    project = _create(projects, make_supervisor()).data

    other_supervisor = projects.get_project(caller_for(make_supervisor(), UserRole.supervisor), project["id"])
    other_student = projects.get_project(caller_for(make_student(), UserRole.student), project["id"])

    assert other_supervisor.error_kind == ErrorKind.forbidden
    assert other_student.error_kind == ErrorKind.forbidden


def test_get_missing_project(projects, make_admin):
    result = projects.get_project(caller_for(make_admin(), UserRole.admin), "missing")
    assert result.error_kind == ErrorKind.not_found
