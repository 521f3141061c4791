"""
Service Results

Public service operations never raise for business-rule failures. They
return a ServiceResult that carries either the data or the error kind,
code and message. Inside a service, code raises the typed exceptions from
mentormatch.core.exceptions; the @service_operation decorator is the one
place those are turned into results.
"""

import functools
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from mentormatch.core.exceptions import ErrorKind, InternalError, MentorMatchError
from mentormatch.core.logging_config import logger

T = TypeVar("T")


class ServiceResult(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    code: Optional[str] = None
    details: dict = {}

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ServiceResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: MentorMatchError) -> "ServiceResult":
        return cls(
            success=False,
            error=error.message,
            error_kind=error.kind,
            code=error.code,
            details=error.details,
        )


def service_operation(fn: Callable[..., Any]) -> Callable[..., ServiceResult]:
    """
    Wrap a service method so it always returns a ServiceResult.

    The wrapped method returns either a ServiceResult or plain data (wrapped
    as success). MentorMatchError becomes a failed result and is logged as a
    rejection; anything else is logged with traceback and reported as an
    internal error.
    """
    operation = fn.__qualname__

    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> ServiceResult:
        try:
            result = fn(*args, **kwargs)
        except MentorMatchError as e:
            if e.kind == ErrorKind.internal:
                logger.log_error_with_context(e, context=operation)
            else:
                logger.log_rejected(operation, e.code, e.message)
            return ServiceResult.fail(e)
        except Exception as e:
            logger.log_error_with_context(e, context=operation)
            return ServiceResult.fail(InternalError())
        if isinstance(result, ServiceResult):
            return result
        return ServiceResult.ok(result)

    return wrapper
