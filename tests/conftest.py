"""
MentorMatch - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment
os.environ['STORE_BACKEND'] = 'memory'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['ENVIRONMENT'] = 'test'

from mentormatch.main import app
from mentormatch.db.memory_store import InMemoryDocumentStore
from mentormatch.db.store import get_document_store
from mentormatch.schemas.schemas import ApplicationStatus
from mentormatch.services.application_workflow import ApplicationWorkflowService
from mentormatch.services.repositories import (
    AdminRepository,
    ApplicationRepository,
    StudentRepository,
    SupervisorRepository,
    new_admin_doc,
    new_student_doc,
    new_supervisor_doc,
    utc_now,
)

fake = Faker()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Fresh in-memory store for each test"""
    return InMemoryDocumentStore()


@pytest.fixture
async def client(store: InMemoryDocumentStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with the document store overridden"""
    app.dependency_overrides[get_document_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# PROFILE FACTORIES
# ============================================================

@pytest.fixture
def make_student(store):
    def _make(**extra) -> dict:
        doc = new_student_doc(fake.first_name(), fake.last_name(), fake.email(),
                              department="Computer Science", **extra)
        student_id = StudentRepository(store).create(doc)
        return store.get("students", student_id)
    return _make


@pytest.fixture
def make_supervisor(store):
    def _make(max_capacity: int = 5, current_capacity: int = 0, **extra) -> dict:
        doc = new_supervisor_doc(fake.first_name(), fake.last_name(), fake.email(),
                                 max_capacity=max_capacity, current_capacity=current_capacity,
                                 department="Computer Science", **extra)
        supervisor_id = SupervisorRepository(store).create(doc)
        return store.get("supervisors", supervisor_id)
    return _make


@pytest.fixture
def make_admin(store):
    def _make() -> dict:
        admin_id = AdminRepository(store).create(new_admin_doc("Admin", fake.last_name(), fake.email()))
        return store.get("admins", admin_id)
    return _make


@pytest.fixture
def make_pair(store, make_student):
    """Two students already paired with each other"""
    def _make():
        a, b = make_student(), make_student()
        students = StudentRepository(store)
        students.update(a["id"], {"partner_id": b["id"], "partnership_status": "paired"})
        students.update(b["id"], {"partner_id": a["id"], "partnership_status": "paired"})
        return store.get("students", a["id"]), store.get("students", b["id"])
    return _make


@pytest.fixture
def make_application(store):
    """Insert an application document directly in the given status"""
    def _make(student: dict, supervisor: dict, status: ApplicationStatus = ApplicationStatus.pending,
              **extra) -> dict:
        now = utc_now()
        doc = {
            "student_id": student["id"],
            "student_name": student["full_name"],
            "student_email": student["email"],
            "supervisor_id": supervisor["id"],
            "supervisor_name": supervisor["full_name"],
            "project_title": "Graph-based course recommender",
            "project_description": "Recommending elective courses from enrolment graphs.",
            "is_own_topic": True,
            "proposed_topic_id": None,
            "student_skills": [],
            "student_interests": [],
            "has_partner": False,
            "partner_id": None,
            "partner_name": None,
            "partner_email": None,
            "linked_application_id": None,
            "is_lead_application": True,
            "status": ApplicationStatus(status).value,
            "supervisor_feedback": None,
            "date_applied": now,
            "last_updated": now,
            "response_date": None,
            "resubmitted_date": None,
        }
        doc.update(extra)
        application_id = ApplicationRepository(store).create(doc)
        return store.get("applications", application_id)
    return _make


@pytest.fixture
def workflow(store) -> ApplicationWorkflowService:
    return ApplicationWorkflowService(store)
