# iam/shared/middleware/exception_middleware.py

"""
Middleware and handlers for centralized exception handling.

Domain exceptions raised by services and dependencies are rendered by
``domain_exception_handler``. Anything else that escapes a route is caught
by ``AsyncExceptionMiddleware`` and turned into the same error envelope.
"""

import re
import time
import logging
import traceback
from typing import Optional, Callable

from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware
from jose.exceptions import JWTError, ExpiredSignatureError

from iam.domain.exceptions import DomainException
from iam.adapters.configuration.config import settings
from iam.shared.utils.responses import error_response

# Configure logger
logger = logging.getLogger(__name__)


def _client(request: Request) -> str:
    return request.client.host if request.client else "N/A"


async def domain_exception_handler(request: Request, exc: HTTPException):
    """Render DomainException and plain HTTPException in the error envelope."""
    code = getattr(exc, "internal_code", None)
    errors = getattr(exc, "details", None) or None

    if exc.status_code >= 500:
        logger.error(f"Server error: {exc.detail} | Code: {code} | Path: {request.url.path}")
    else:
        logger.warning(f"Request failed: {exc.detail} | Code: {code} | Path: {request.url.path}")

    message = str(exc.detail)
    if exc.status_code >= 500 and settings.ENVIRONMENT == "production":
        message = "Internal server error"

    return error_response(
        exc.status_code,
        message,
        code=code,
        errors=errors,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request body or parameter validation failed."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error: {len(errors)} issue(s) | Path: {request.url.path}")
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        code="VALIDATION_ERROR",
        errors=errors,
    )


class AsyncExceptionMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized exception handling.
    Captures exceptions not handled by the routes and formats the response.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            return response

        except DomainException as exc:
            return await domain_exception_handler(request, exc)

        except IntegrityError as exc:
            error_info = str(exc)
            constraint_name = self._extract_constraint_name(error_info)
            logger.error(
                f"Integrity error: Type={type(exc).__name__} | "
                f"Constraint={constraint_name or 'N/A'} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
            message = "Database integrity error" if settings.ENVIRONMENT == "production" else error_info
            return error_response(
                status.HTTP_409_CONFLICT,
                message,
                code=f"INTEGRITY_ERROR{f'_{constraint_name}' if constraint_name else ''}",
            )

        except SQLAlchemyError as exc:
            logger.error(
                f"Database error: {str(exc)} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
            message = "Internal database error" if settings.ENVIRONMENT == "production" else str(exc)
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                message,
                code="DATABASE_ERROR",
            )

        except (JWTError, ExpiredSignatureError) as exc:
            error_type = "Expired token" if isinstance(exc, ExpiredSignatureError) else "Invalid token"
            logger.warning(
                f"Authentication error: {error_type} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
            return error_response(
                status.HTTP_401_UNAUTHORIZED,
                f"{error_type}. Please login again.",
                code="INVALID_TOKEN",
                headers={"WWW-Authenticate": "Bearer"},
            )

        except ValueError as exc:
            logger.warning(
                f"Validation error: {str(exc)} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                str(exc),
                code="VALIDATION_ERROR",
            )

        except Exception as exc:
            if settings.ENVIRONMENT == "production":
                error_message = "Internal server error"
                logger.exception(
                    f"Unhandled exception: Type={type(exc).__name__} | "
                    f"Path: {request.url.path} | Client: {_client(request)}"
                )
            else:
                error_message = str(exc)
                logger.exception(
                    f"Unhandled exception: {str(exc)} | "
                    f"Path: {request.url.path} | Client: {_client(request)}\n"
                    f"Traceback: {traceback.format_exc()}"
                )
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_message,
                code="INTERNAL_SERVER_ERROR",
            )

    def _extract_constraint_name(self, error_message: str) -> Optional[str]:
        """
        Attempts to extract the constraint name from an integrity error message.

        Args:
            error_message: The complete error message

        Returns:
            The constraint name or None if not found
        """
        patterns = [
            r'duplicate key value violates unique constraint "(.*?)"',
            r'violates foreign key constraint "(.*?)"',
            r'constraint "(.*?)"',
            r'UNIQUE constraint failed: (.*)',
        ]

        for pattern in patterns:
            match = re.search(pattern, error_message)
            if match:
                return match.group(1)
        return None
