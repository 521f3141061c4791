"""
Shared route helpers - service dependencies and result unwrapping.
"""

from fastapi import Depends, HTTPException

from mentormatch.core.exceptions import ErrorKind, HTTP_STATUS_BY_KIND
from mentormatch.db.store import DocumentStore, get_document_store
from mentormatch.services.admin_service import AdminService
from mentormatch.services.application_workflow import ApplicationWorkflowService
from mentormatch.services.partnership_service import StudentPartnershipService
from mentormatch.services.profile_service import ProfileService
from mentormatch.services.project_service import ProjectService
from mentormatch.services.results import ServiceResult
from mentormatch.services.supervisor_partnership_service import SupervisorPartnershipService


def unwrap(result: ServiceResult):
    """Return the result data, or raise the HTTPException matching its error kind."""
    if result.success:
        return result.data
    status_code = HTTP_STATUS_BY_KIND[result.error_kind or ErrorKind.internal]
    raise HTTPException(
        status_code=status_code,
        detail={"message": result.error, "code": result.code, "details": result.details},
    )


def get_application_service(store: DocumentStore = Depends(get_document_store)) -> ApplicationWorkflowService:
    return ApplicationWorkflowService(store)


def get_partnership_service(store: DocumentStore = Depends(get_document_store)) -> StudentPartnershipService:
    return StudentPartnershipService(store)


def get_supervisor_partnership_service(
    store: DocumentStore = Depends(get_document_store),
) -> SupervisorPartnershipService:
    return SupervisorPartnershipService(store)


def get_project_service(store: DocumentStore = Depends(get_document_store)) -> ProjectService:
    return ProjectService(store)


def get_admin_service(store: DocumentStore = Depends(get_document_store)) -> AdminService:
    return AdminService(store)


def get_profile_service(store: DocumentStore = Depends(get_document_store)) -> ProfileService:
    return ProfileService(store)
