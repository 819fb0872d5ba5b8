# iam/adapters/inbound/api/deps.py

"""
Dependencies for injection into API endpoints.

This module defines functions that provide dependencies via
FastAPI Depends() for authentication, database access and auditing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional
from fastapi import BackgroundTasks, Depends, Request, Security
from fastapi.encoders import jsonable_encoder
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.database import get_db, get_db_context
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.persistence.repositories.user_repository import user_repository
from iam.adapters.outbound.security.auth_user_manager import UserAuthManager
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.audit_use_cases import SessionAuditSink
from iam.domain.exceptions import InvalidCredentialsException

# Configure logger
logger = logging.getLogger(__name__)

# Missing credentials are reported by get_current_user, not by the scheme
bearer_scheme = HTTPBearer(auto_error=False)

########################################################################
# Database Session Management
########################################################################

get_session = get_db


########################################################################
# User Token Authentication
########################################################################

async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
        db: AsyncSession = Depends(get_session),
) -> User:
    """
    Get the current user from the token.

    Args:
        credentials: Authorization credentials with bearer token
        db: Async database session

    Returns:
        Authenticated User object

    Raises:
        InvalidCredentialsException: If the token is missing or invalid, or the
            user doesn't exist or is inactive
    """
    if credentials is None or not credentials.credentials:
        raise InvalidCredentialsException(detail="Authentication required. No token provided.")

    payload = await UserAuthManager.verify_access_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        logger.warning(f"Invalid token: 'sub' is not a user ID ({payload.get('sub')})")
        raise InvalidCredentialsException(detail="Invalid token: malformed subject")

    user = await user_repository.get(db, id=user_id)
    if not user or not user.is_active:
        logger.warning(f"User {user_id} not found or inactive")
        raise InvalidCredentialsException(detail="User not found or inactive")

    return user


########################################################################
# Audit
########################################################################

@dataclass
class RequestContext:
    """Who is calling and from where; recorded with every audit event."""
    user_id: Optional[int]
    ip_address: Optional[str]
    user_agent: Optional[str]


def get_audit_session_factory():
    """Session factory used by background audit writes."""
    return get_db_context


def get_audit_sink(session_factory=Depends(get_audit_session_factory)) -> IAuditSink:
    return SessionAuditSink(session_factory)


def request_context(request: Request, user: Optional[User] = None) -> RequestContext:
    return RequestContext(
        user_id=user.id if user else None,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def schedule_audit(
        background_tasks: BackgroundTasks,
        sink: IAuditSink,
        context: RequestContext,
        action: str,
        resource: str,
        resource_id: Optional[int] = None,
        details: Any = None,
) -> None:
    """Queue an audit event to be written after the response is sent."""
    background_tasks.add_task(
        sink.log_event,
        action=action,
        resource=resource,
        resource_id=resource_id,
        user_id=context.user_id,
        details=jsonable_encoder(details) if details is not None else None,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )
