# iam/domain/exceptions.py

"""
Application exceptions.

This module defines the typed failures raised by services and repositories.
Each one carries an HTTP status code and an internal code, so the API layer
can render it without knowing which service raised it.
"""

from fastapi import HTTPException, status
from typing import Any, Dict, Iterable, Optional


class DomainException(HTTPException):
    """
    Base exception for all IAM errors.
    Extends FastAPI's HTTPException with an internal code and field details.
    """

    def __init__(
            self,
            status_code: int,
            detail: Any = None,
            headers: Optional[Dict[str, Any]] = None,
            internal_code: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.internal_code = internal_code
        self.details = details or {}

    def __str__(self) -> str:
        return str(self.detail)


class ResourceNotFoundException(DomainException):
    """Resource not found."""

    def __init__(self, detail: str = "Resource not found", resource_id: Any = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            internal_code="RESOURCE_NOT_FOUND",
            details={"resource_id": resource_id} if resource_id is not None else None
        )
        self.resource_id = resource_id


class ResourcesNotFoundException(ResourceNotFoundException):
    """Some ids of a batch did not resolve to existing rows."""

    def __init__(self, label: str, missing_ids: Iterable[Any]):
        self.missing_ids = list(missing_ids)
        super().__init__(
            detail=f"{label} not found: {', '.join(str(i) for i in self.missing_ids)}"
        )
        self.details = {"missing_ids": self.missing_ids}


class ResourceAlreadyExistsException(DomainException):
    """Resource already exists."""

    def __init__(self, detail: str = "Resource already exists", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{detail}{resource_info}",
            internal_code="RESOURCE_ALREADY_EXISTS"
        )


class PermissionDeniedException(DomainException):
    """Permission denied."""

    def __init__(self, detail: str = "Permission denied", permission: Optional[str] = None):
        permission_info = f" (Required permission: {permission})" if permission else ""
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{detail}{permission_info}",
            internal_code="PERMISSION_DENIED"
        )


class InvalidCredentialsException(DomainException):
    """Missing or invalid credentials."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            internal_code="INVALID_CREDENTIALS"
        )


class DatabaseOperationException(DomainException):
    """Database operation failed."""

    def __init__(self, detail: str = "Error executing database operation",
                 original_error: Optional[Exception] = None):
        error_info = f": {str(original_error)}" if original_error else ""
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{detail}{error_info}",
            internal_code="DATABASE_OPERATION_ERROR"
        )


class InvalidInputException(DomainException):
    """Malformed input data."""

    def __init__(self, detail: str = "Invalid input data", fields: Optional[Dict[str, str]] = None):
        field_errors = ""
        if fields:
            field_errors = ": " + ", ".join([f"{field}: {error}" for field, error in fields.items()])

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{detail}{field_errors}",
            internal_code="INVALID_INPUT",
            details=fields
        )


class ValidationException(DomainException):
    """The operation would break a protective invariant of the data."""

    def __init__(self, detail: str = "Validation error", fields: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            internal_code="VALIDATION_ERROR",
            details=fields
        )


class ResourceInactiveException(DomainException):
    """Resource found but inactive."""

    def __init__(self, detail: str = "Resource is inactive", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{detail}{resource_info}",
            internal_code="RESOURCE_INACTIVE"
        )
