"""
Domain exceptions and error handlers for consistent error responses.

Every failure reported by the core carries a kind, an error code and a
message that can be shown to the user verbatim. Handlers render them in
one envelope: {"error_code", "message", "details"}.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    kind = "AppError"

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Missing or invalid required field. No state was changed."""

    kind = "ValidationError"

    def __init__(self, message: str, field: Optional[str] = None, details: Dict[str, Any] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class AlreadyCoupledError(AppException):
    """
    A truck or trailer is already a party to an active combo.

    side is "truck" or "trailer" and names the conflicting unit.
    """

    kind = "AlreadyCoupledError"

    def __init__(self, side: str, equipment_id: Any, equipment_name: Optional[str] = None, combo_id: Any = None):
        label = equipment_name or equipment_id
        super().__init__(
            message=f"{side.capitalize()} {label} is already coupled to an active combo",
            error_code="ERR_COUPLING_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"side": side, "equipment_id": equipment_id, "combo_id": combo_id}
        )
        self.side = side
        self.equipment_id = equipment_id


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    kind = "NotFoundError"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthorizationError(AppException):
    """Cross-tenant or non-admin access. Fatal to the request."""

    kind = "AuthorizationError"

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class StorageError(AppException):
    """Backend failure (network, timeout, constraint). Never retried here."""

    kind = "StorageError"

    def __init__(self, message: str, cause: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"cause": cause} if cause else {}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for domain exceptions."""
    if isinstance(exc, StorageError):
        logger.error("Storage failure: %s (%s)", exc.message, exc.details.get("cause"))
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "kind": exc.kind,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code_map.get(exc.status_code, "ERR_UNKNOWN"),
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "kind": ValidationError.kind,
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
