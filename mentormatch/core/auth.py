"""
Authentication Utility - JWT handling and caller dependencies.

Provides:
- JWT token creation/verification
- FastAPI dependencies that turn a bearer token into a verified Caller
- Role-gated dependencies for student, supervisor and admin routes

Account registration and login live outside this service; it only trusts
tokens signed with JWT_SECRET_KEY whose subject has an active profile.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from mentormatch.core.config import get_settings
from mentormatch.core.logging_config import logger, set_caller_id
from mentormatch.db.mongodb import COLLECTIONS
from mentormatch.db.store import DocumentStore, get_document_store
from mentormatch.schemas.schemas import Caller, UserRole

settings = get_settings()

# Bearer token extractor
bearer_scheme = HTTPBearer()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_caller_token(uid: str, role: UserRole, email: Optional[str] = None) -> str:
    """Token for a known profile (used by scripts and tests)."""
    return create_access_token({"sub": uid, "role": role.value, "email": email})


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _profile_collection(role: UserRole) -> str:
    if role == UserRole.student:
        return COLLECTIONS["students"]
    elif role == UserRole.supervisor:
        return COLLECTIONS["supervisors"]
    elif role == UserRole.admin:
        return COLLECTIONS["admins"]
    raise ValueError(f"Unknown role: {role}")


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_document_store),
) -> Caller:
    """
    FastAPI dependency - Get the verified caller.

    Usage:
        @router.get("/protected")
        async def route(caller: Caller = Depends(get_current_caller)):
            return caller
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    uid = payload.get("sub")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise credentials_exception
    if not uid:
        raise credentials_exception

    # Verify profile exists for the claimed role
    profile = store.get(_profile_collection(role), uid)
    if not profile:
        logger.warning(f"Token for unknown {role.value} profile {uid}")
        raise credentials_exception

    if not profile.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account deactivated")

    set_caller_id(uid)
    return Caller(uid=uid, role=role, email=profile.get("email") or payload.get("email"))


async def get_current_student(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Dependency - Require student role."""
    if caller.role != UserRole.student:
        raise HTTPException(status_code=403, detail="Students only")
    return caller


async def get_current_supervisor(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Dependency - Require supervisor role."""
    if caller.role != UserRole.supervisor:
        raise HTTPException(status_code=403, detail="Supervisors only")
    return caller


async def get_current_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Dependency - Require admin role."""
    if caller.role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Admins only")
    return caller


async def get_supervisor_or_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    if caller.role not in (UserRole.supervisor, UserRole.admin):
        raise HTTPException(status_code=403, detail="Supervisors or admins only")
    return caller
