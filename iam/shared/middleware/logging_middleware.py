# iam/shared/middleware/logging_middleware.py

"""
Middleware for HTTP request logging.

Logs one line per request and one per response. In production the
query string and client address are left out.
"""

import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from iam.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)


class AsyncRequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        production = settings.ENVIRONMENT == "production"

        if production:
            logger.info(f"Request: {request.method} {request.url.path}")
        else:
            query_params = dict(request.query_params)
            logger.info(
                f"Request: {request.method} {request.url.path} | "
                f"Query: {query_params if query_params else 'N/A'} | "
                f"Client: {request.client.host if request.client else 'N/A'}"
            )

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        if production:
            logger.log(level, f"Response: {response.status_code} for {request.method} {request.url.path}")
        else:
            logger.log(
                level,
                f"Response: {response.status_code} for {request.method} {request.url.path} | "
                f"Time: {process_time:.4f}s"
            )

        return response
