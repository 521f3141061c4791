"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from mentormatch.api.routes.application_routes import router as application_router
from mentormatch.api.routes.partnership_routes import router as partnership_router
from mentormatch.api.routes.supervisor_partnership_routes import router as supervisor_partnership_router
from mentormatch.api.routes.project_routes import router as project_router
from mentormatch.api.routes.supervisor_routes import router as supervisor_router
from mentormatch.api.routes.student_routes import router as student_router
from mentormatch.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(application_router)
api_router.include_router(partnership_router)
api_router.include_router(supervisor_partnership_router)
api_router.include_router(project_router)
api_router.include_router(supervisor_router)
api_router.include_router(student_router)
api_router.include_router(admin_router)
