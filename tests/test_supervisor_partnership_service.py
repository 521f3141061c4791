import pytest

from mentormatch.core.exceptions import ErrorKind
from mentormatch.schemas.schemas import PartnershipAction, ProjectCreate, RequestStatus, UserRole
from mentormatch.services.project_service import ProjectService
from mentormatch.services.supervisor_partnership_service import SupervisorPartnershipService

from helpers import caller_for


@pytest.fixture
def co_supervision(store) -> SupervisorPartnershipService:
    return SupervisorPartnershipService(store)


@pytest.fixture
def make_project(store):
    def _make(supervisor: dict) -> dict:
        result = ProjectService(store).create_project(
            caller_for(supervisor, UserRole.supervisor),
            ProjectCreate(title="Federated learning on edge devices"),
        )
        assert result.success, result.error
        return result.data
    return _make


def test_create_and_accept_sets_co_supervisor(store, co_supervision, make_supervisor, make_project):
    owner, helper = make_supervisor(), make_supervisor()
    project = make_project(owner)

    request = co_supervision.create_request(owner["id"], helper["id"], project["id"]).data
    result = co_supervision.respond_to_request(request["id"], helper["id"], PartnershipAction.accept)

    assert result.success
    updated = store.get("projects", project["id"])
    assert updated["co_supervisor_id"] == helper["id"]
    assert updated["co_supervisor_name"] == helper["full_name"]
    # Co-supervising does not take a capacity slot
    assert store.get("supervisors", helper["id"])["current_capacity"] == 0


def test_only_project_owner_can_invite(co_supervision, make_supervisor, make_project):
    owner, stranger, helper = make_supervisor(), make_supervisor(), make_supervisor()
    project = make_project(owner)

    result = co_supervision.create_request(stranger["id"], helper["id"], project["id"])

    assert result.error_kind == ErrorKind.forbidden


def test_self_invite_rejected(co_supervision, make_supervisor, make_project):
    owner = make_supervisor()
    project = make_project(owner)

    result = co_supervision.create_request(owner["id"], owner["id"], project["id"])

    assert result.code == "SELF_PARTNERSHIP_FORBIDDEN"


def test_full_target_rejected(co_supervision, make_supervisor, make_project):
    owner, full = make_supervisor(), make_supervisor(max_capacity=2, current_capacity=2)
    project = make_project(owner)

    result = co_supervision.create_request(owner["id"], full["id"], project["id"])

    assert result.code == "CAPACITY_EXCEEDED"


def test_duplicate_request_per_project(co_supervision, make_supervisor, make_project):
    owner, helper = make_supervisor(), make_supervisor()
    project = make_project(owner)
    assert co_supervision.create_request(owner["id"], helper["id"], project["id"]).success

    result = co_supervision.create_request(owner["id"], helper["id"], project["id"])

    assert result.code == "DUPLICATE_PENDING_REQUEST"


def test_accept_cancels_other_requests_for_project(store, co_supervision, make_supervisor, make_project):
    owner, first, second = make_supervisor(), make_supervisor(), make_supervisor()
    project = make_project(owner)
    to_first = co_supervision.create_request(owner["id"], first["id"], project["id"]).data
    to_second = co_supervision.create_request(owner["id"], second["id"], project["id"]).data

    co_supervision.respond_to_request(to_first["id"], first["id"], PartnershipAction.accept)

    assert store.get("supervisor_partnership_requests", to_second["id"])["status"] == RequestStatus.cancelled.value
    late = co_supervision.respond_to_request(to_second["id"], second["id"], PartnershipAction.accept)
    assert late.code == "ALREADY_PROCESSED"


def test_project_with_co_supervisor_rejects_new_request(co_supervision, make_supervisor, make_project):
    owner, helper, other = make_supervisor(), make_supervisor(), make_supervisor()
    project = make_project(owner)
    request = co_supervision.create_request(owner["id"], helper["id"], project["id"]).data
    co_supervision.respond_to_request(request["id"], helper["id"], PartnershipAction.accept)

    result = co_supervision.create_request(owner["id"], other["id"], project["id"])

    assert result.code == "ALREADY_PAIRED"


def test_unpair_removes_co_supervisor(store, co_supervision, make_supervisor, make_project):
    owner, helper = make_supervisor(), make_supervisor()
    project = make_project(owner)
    request = co_supervision.create_request(owner["id"], helper["id"], project["id"]).data
    co_supervision.respond_to_request(request["id"], helper["id"], PartnershipAction.accept)

    result = co_supervision.unpair(project["id"], helper["id"])

    assert result.data["unpaired"] is True
    assert store.get("projects", project["id"])["co_supervisor_id"] is None
    assert co_supervision.unpair(project["id"], owner["id"]).data["unpaired"] is False


def test_unpair_by_outsider_forbidden(co_supervision, make_supervisor, make_project):
    project = make_project(make_supervisor())

    result = co_supervision.unpair(project["id"], make_supervisor()["id"])

    assert result.error_kind == ErrorKind.forbidden


def test_available_partners_have_capacity(co_supervision, make_supervisor):
    me = make_supervisor()
    open_slot = make_supervisor(max_capacity=3, current_capacity=1)
    full = make_supervisor(max_capacity=1, current_capacity=1)

    ids = {s["id"] for s in co_supervision.list_available_partners(me["id"]).data}

    assert open_slot["id"] in ids
    assert full["id"] not in ids
    assert me["id"] not in ids
