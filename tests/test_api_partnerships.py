"""
Student pairing and co-supervision endpoints through the HTTP layer.
"""
from mentormatch.schemas.schemas import UserRole

from helpers import auth_headers


async def test_pairing_handshake(client, store, make_student):
    a, b = make_student(), make_student()

    response = await client.post("/api/partnerships/request", json={"target_id": b["id"]},
                                 headers=auth_headers(a, UserRole.student))
    assert response.status_code == 201
    request_id = response.json()["id"]

    response = await client.get("/api/partnerships/requests", params={"direction": "incoming"},
                                headers=auth_headers(b, UserRole.student))
    assert [r["id"] for r in response.json()["requests"]] == [request_id]

    response = await client.post(f"/api/partnerships/{request_id}/respond", json={"action": "accept"},
                                 headers=auth_headers(b, UserRole.student))
    assert response.status_code == 200
    assert store.get("students", a["id"])["partner_id"] == b["id"]

    response = await client.get("/api/students/me", headers=auth_headers(a, UserRole.student))
    assert response.json()["partnership_status"] == "paired"


async def test_self_request_is_400(client, make_student):
    a = make_student()

    response = await client.post("/api/partnerships/request", json={"target_id": a["id"]},
                                 headers=auth_headers(a, UserRole.student))

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "SELF_PARTNERSHIP_FORBIDDEN"


async def test_reciprocal_request_is_409(client, make_student):
    a, b = make_student(), make_student()
    await client.post("/api/partnerships/request", json={"target_id": b["id"]},
                      headers=auth_headers(a, UserRole.student))

    response = await client.post("/api/partnerships/request", json={"target_id": a["id"]},
                                 headers=auth_headers(b, UserRole.student))

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "RECIPROCAL_REQUEST_EXISTS"


async def test_requester_cannot_respond(client, make_student):
    a, b = make_student(), make_student()
    response = await client.post("/api/partnerships/request", json={"target_id": b["id"]},
                                 headers=auth_headers(a, UserRole.student))
    request_id = response.json()["id"]

    response = await client.post(f"/api/partnerships/{request_id}/respond", json={"action": "accept"},
                                 headers=auth_headers(a, UserRole.student))

    assert response.status_code == 404


async def test_cancel_by_target_is_403(client, make_student):
    a, b = make_student(), make_student()
    response = await client.post("/api/partnerships/request", json={"target_id": b["id"]},
                                 headers=auth_headers(a, UserRole.student))
    request_id = response.json()["id"]

    response = await client.delete(f"/api/partnerships/{request_id}", headers=auth_headers(b, UserRole.student))

    assert response.status_code == 403


async def test_unpair_twice(client, store, make_pair):
    a, b = make_pair()

    first = await client.post("/api/partnerships/unpair", headers=auth_headers(a, UserRole.student))
    second = await client.post("/api/partnerships/unpair", headers=auth_headers(a, UserRole.student))

    assert first.json()["data"]["unpaired"] is True
    assert second.status_code == 200
    assert second.json()["data"]["unpaired"] is False
    assert store.get("students", b["id"])["partner_id"] is None


async def test_co_supervision_flow(client, store, make_supervisor):
    owner, helper = make_supervisor(), make_supervisor()

    response = await client.post("/api/projects", json={"title": "Robust speech models"},
                                 headers=auth_headers(owner, UserRole.supervisor))
    assert response.status_code == 201
    project_id = response.json()["id"]

    response = await client.post(
        "/api/supervisor-partnerships/request",
        json={"target_id": helper["id"], "project_id": project_id},
        headers=auth_headers(owner, UserRole.supervisor),
    )
    assert response.status_code == 201
    request_id = response.json()["id"]

    response = await client.post(f"/api/supervisor-partnerships/{request_id}/respond",
                                 json={"action": "accept"}, headers=auth_headers(helper, UserRole.supervisor))
    assert response.status_code == 200
    assert store.get("projects", project_id)["co_supervisor_id"] == helper["id"]

    response = await client.post("/api/supervisor-partnerships/unpair", json={"project_id": project_id},
                                 headers=auth_headers(owner, UserRole.supervisor))
    assert response.status_code == 200
    assert store.get("projects", project_id)["co_supervisor_id"] is None


async def test_students_cannot_use_co_supervision(client, make_student, make_supervisor):
    student = make_student()

    response = await client.get("/api/supervisor-partnerships/available",
                                headers=auth_headers(student, UserRole.student))

    assert response.status_code == 403


async def test_project_detail_is_scoped(client, make_supervisor, make_student):
    owner = make_supervisor()
    response = await client.post("/api/projects", json={"title": "Robust speech models"},
                                 headers=auth_headers(owner, UserRole.supervisor))
    project_id = response.json()["id"]

    own = await client.get(f"/api/projects/{project_id}", headers=auth_headers(owner, UserRole.supervisor))
    outsider = await client.get(f"/api/projects/{project_id}", headers=auth_headers(make_student(), UserRole.student))

    assert own.status_code == 200
    assert outsider.status_code == 403
