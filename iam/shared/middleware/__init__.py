# iam/shared/middleware/__init__.py

from iam.shared.middleware.exception_middleware import (
    AsyncExceptionMiddleware,
    domain_exception_handler,
    validation_exception_handler,
)
from iam.shared.middleware.logging_middleware import AsyncRequestLoggingMiddleware

__all__ = [
    "AsyncExceptionMiddleware",
    "AsyncRequestLoggingMiddleware",
    "domain_exception_handler",
    "validation_exception_handler",
]
