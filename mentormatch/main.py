"""
MentorMatch - Main Application

FastAPI backend with:
- MongoDB document store (in-memory store for tests/demos)
- JWT-authenticated callers (student, supervisor, admin)
- Application workflow, capacity ledger and partnership matching services

Run: uvicorn mentormatch.main:app --reload
"""

import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mentormatch.api.routes import api_router
from mentormatch.core.config import get_settings
from mentormatch.core.exceptions import MentorMatchError
from mentormatch.core.logging_config import logger, generate_request_id, set_request_id, set_caller_id

settings = get_settings()

# Create FastAPI app
app = FastAPI(
    title="MentorMatch",
    description="""
    Supervision matching for final-year projects.

    ## Features
    - **Applications**: submit, review, request revisions, approve or reject
    - **Capacity**: approvals consume supervisor slots, never beyond max capacity
    - **Partnerships**: students pair up; supervisors co-supervise projects
    - **Admin**: capacity management with audit trail, dashboard, data repair
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Assign a request id and log every request."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    set_request_id(request_id)
    set_caller_id("")
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.log_request(request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(MentorMatchError)
async def mentormatch_error_handler(request: Request, exc: MentorMatchError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "details": {"errors": [
                {"loc": list(e.get("loc", [])), "msg": e.get("msg")} for e in exc.errors()
            ]},
        }},
    )


# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    if settings.store_backend != "mongo":
        logger.info(f"Using {settings.store_backend} document store; skipping index setup")
        return
    try:
        from mentormatch.db.mongodb import init_mongo_indexes
        init_mongo_indexes()
    except Exception as e:
        logger.warning(f"MongoDB index initialization failed: {e}")


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    health = {"status": "healthy", "store": settings.store_backend}
    if settings.store_backend == "mongo":
        from mentormatch.db.mongodb import check_mongo_connection
        health["mongodb"] = "connected" if check_mongo_connection() else "disconnected"
    return health
