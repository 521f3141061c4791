"""
Shared test helpers - callers, auth headers and request payloads.
"""
from mentormatch.core.auth import create_caller_token
from mentormatch.schemas.schemas import ApplicationCreate, ApplicationStatus, Caller, UserRole


def caller_for(profile: dict, role: UserRole) -> Caller:
    return Caller(uid=profile["id"], role=role, email=profile["email"])


def auth_headers(profile: dict, role: UserRole) -> dict:
    token = create_caller_token(profile["id"], role, profile["email"])
    return {'Authorization': f'Bearer {token}'}


def application_payload(supervisor_id: str, **overrides) -> ApplicationCreate:
    data = {
        "supervisor_id": supervisor_id,
        "project_title": "Graph-based course recommender",
        "project_description": "Recommending elective courses from enrolment graphs.",
    }
    data.update(overrides)
    return ApplicationCreate(**data)


def held_slots(store, supervisor_id: str) -> int:
    """Slots the supervisor's approved applications should hold: one per solo application or approved pair."""
    approved = store.query("applications", [("supervisor_id", "==", supervisor_id),
                                            ("status", "==", ApplicationStatus.approved.value)])
    ids = {app["id"] for app in approved}
    pairs = set()
    for app in approved:
        if app.get("linked_application_id") in ids:
            pairs.add(tuple(sorted((app["id"], app["linked_application_id"]))))
    return len(approved) - len(pairs)


def assert_capacity_consistent(store, supervisor_id: str) -> None:
    assert store.get("supervisors", supervisor_id)["current_capacity"] == held_slots(store, supervisor_id)
