# iam/adapters/inbound/api/v1/endpoints/user_permission_endpoint.py

"""
Effective permission queries.

These routes are registered before the permission CRUD routes so that
``/permissions/check`` and ``/permissions/users`` are not taken for a
permission ID.
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.inbound.api.deps import get_session, get_current_user
from iam.adapters.outbound.persistence.models.user_model import User
from iam.adapters.outbound.security.permissions import require_permission
from iam.application.dtos.base_dto import ApiResponse
from iam.application.dtos.permission_dto import (
    EffectivePermissionOutput,
    PermissionCheckOutput,
    SimulateActionInput,
    UserPermissionSummaryOutput,
)
from iam.application.dtos.user_dto import UserOutput
from iam.application.use_cases.permission_resolver_use_cases import PermissionResolver
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/me/permissions",
    response_model=ApiResponse[List[EffectivePermissionOutput]],
    summary="My Permissions",
    description="Effective permissions of the authenticated user, through all their groups and roles.",
)
async def my_permissions(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    permissions = await PermissionResolver(db).get_formatted_user_permissions(current_user.id)
    return ok(permissions, "User permissions retrieved successfully")


@router.post(
    "/simulate-action",
    response_model=ApiResponse[PermissionCheckOutput],
    summary="Simulate Action",
    description="Answers whether a user (by default the caller) may perform an action on a module.",
)
async def simulate_action(
        body: SimulateActionInput,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
):
    user_id = body.user_id or current_user.id
    check = await PermissionResolver(db).simulate_action(user_id, body.module_id, body.action)
    verdict = "allowed" if check.has_permission else "denied"
    return ok(check, f"Action {body.action} is {verdict}")


@router.get(
    "/users/{user_id}/permissions",
    response_model=ApiResponse[UserPermissionSummaryOutput],
    summary="User Permission Summary",
    description="Groups, roles and effective permissions of a user.",
)
async def user_permission_summary(
        user_id: int = Path(..., gt=0, description="User ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Users", "read")),
):
    summary = await PermissionResolver(db).get_user_permission_summary(user_id)
    return ok(summary, "User permission summary retrieved successfully")


@router.get(
    "/permissions/check",
    response_model=ApiResponse[PermissionCheckOutput],
    summary="Check Permission",
    description="Whether a user holds an action on the module with the given name.",
)
async def check_permission(
        user_id: int = Query(..., gt=0, description="User ID"),
        module_name: str = Query(..., min_length=1, description="Module name"),
        action: str = Query(..., min_length=1, description="Action"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "read")),
):
    check = await PermissionResolver(db).explain_permission_by_module_name(user_id, module_name, action)
    return ok(check, "Permission check completed")


@router.get(
    "/permissions/users",
    response_model=ApiResponse[List[UserOutput]],
    summary="Users With Permission",
    description="Users holding an action on a module through any group and role.",
)
async def users_with_permission(
        module_id: int = Query(..., gt=0, description="Module ID"),
        action: str = Query(..., min_length=1, description="Action"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Permissions", "read")),
):
    users = await PermissionResolver(db).get_users_by_permission(module_id, action)
    return ok(users, "Users retrieved successfully")
