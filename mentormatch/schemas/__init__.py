"""
Schemas module - enums plus request/response schemas for the API.

    from mentormatch.schemas.schemas import ApplicationCreate, ApplicationStatus
"""
