# iam/adapters/inbound/api/v1/endpoints/user_endpoint.py

import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, status
from fastapi_pagination import Page, Params
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.inbound.api.deps import (
    get_session,
    get_audit_sink,
    request_context,
    schedule_audit,
)
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.security.permissions import require_permission
from iam.application.dtos.base_dto import ApiResponse
from iam.application.dtos.user_dto import (
    UserCreate,
    UserUpdate,
    UserOutput,
    UserStatistics,
    ResetPasswordInput,
)
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.auth_use_cases import AsyncAuthService
from iam.application.use_cases.user_use_cases import AsyncUserService
from iam.shared.utils.pagination import pagination_params, page_of
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[UserOutput]],
    summary="List Users",
    description="Returns a paginated list of users, optionally filtered by status or username.",
)
async def list_users(
        params: Params = Depends(pagination_params),
        is_active: Optional[bool] = Query(None, description="Filter by active status"),
        search: Optional[str] = Query(None, description="Substring of the username"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "read")),
):
    page = await AsyncUserService(db).list(params, is_active=is_active, search=search)
    return ok(page_of(page, UserOutput), "Users retrieved successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[UserStatistics],
    summary="User Statistics",
    description="Active/inactive counts and how many users belong to a group.",
)
async def user_statistics(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "read")),
):
    return ok(await AsyncUserService(db).statistics(), "User statistics retrieved successfully")


@router.post(
    "",
    response_model=ApiResponse[UserOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    description="Creates a user. Username and email must be unique.",
)
async def create_user(
        user_in: UserCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncUserService(db).create(user_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "USER_CREATED", "User", user.id, {"username": user.username},
    )
    return ok(user, "User created successfully")


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserOutput],
    summary="Get User",
)
async def get_user(
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "read")),
):
    return ok(await AsyncUserService(db).get(user_id), "User retrieved successfully")


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserOutput],
    summary="Update User",
    description="Updates a user's profile, password or status.",
)
async def update_user(
        user_in: UserUpdate,
        request: Request,
        background_tasks: BackgroundTasks,
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncUserService(db).update(user_id, user_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "USER_UPDATED", "User", user.id, user_in.model_dump(exclude_unset=True, exclude={"password"}),
    )
    return ok(user, "User updated successfully")


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[UserOutput],
    summary="Deactivate User",
)
async def delete_user(
        request: Request,
        background_tasks: BackgroundTasks,
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncUserService(db).deactivate(user_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "USER_DEACTIVATED", "User", user_id,
    )
    return ok(user, "User deactivated successfully")


@router.delete(
    "/{user_id}/permanent",
    response_model=ApiResponse[UserOutput],
    summary="Delete User Permanently",
    description="Removes the user and their group memberships.",
)
async def hard_delete_user(
        request: Request,
        background_tasks: BackgroundTasks,
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncUserService(db).hard_delete(user_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "USER_DELETED", "User", user_id, {"username": user.username},
    )
    return ok(user, "User deleted permanently")


@router.post(
    "/{user_id}/activate",
    response_model=ApiResponse[UserOutput],
    summary="Activate User",
)
async def activate_user(
        request: Request,
        background_tasks: BackgroundTasks,
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncAuthService(db).activate(user_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "USER_ACTIVATED", "User", user_id,
    )
    return ok(user, "User activated successfully")


@router.post(
    "/{user_id}/reset-password",
    response_model=ApiResponse[UserOutput],
    summary="Reset User Password",
    description="Sets a new password without requiring the current one.",
)
async def reset_password(
        password_in: ResetPasswordInput,
        request: Request,
        background_tasks: BackgroundTasks,
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncAuthService(db).reset_password(user_id, password_in.new_password)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "PASSWORD_RESET", "User", user_id,
    )
    return ok(user, "Password reset successfully")
