# iam/adapters/inbound/api/v1/endpoints/group_endpoint.py

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
from iam.application.dtos.base_dto import ApiResponse, EntityStatistics
from iam.application.dtos.group_dto import GroupCreate, GroupUpdate, GroupOutput
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.group_use_cases import AsyncGroupService
from iam.shared.utils.pagination import pagination_params, page_of
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[GroupOutput]],
    summary="List Groups",
    description="Returns a paginated list of groups, optionally filtered by status or name.",
)
async def list_groups(
        params: Params = Depends(pagination_params),
        is_active: Optional[bool] = Query(None, description="Filter by active status"),
        search: Optional[str] = Query(None, description="Substring of the group name"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "read")),
):
    page = await AsyncGroupService(db).list(
        params, is_active=is_active, name=f"%{search}%" if search else None
    )
    return ok(page_of(page, GroupOutput), "Groups retrieved successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[EntityStatistics],
    summary="Group Statistics",
    description="Total, active and inactive group counts.",
)
async def group_statistics(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "read")),
):
    return ok(await AsyncGroupService(db).statistics(), "Group statistics retrieved successfully")


@router.post(
    "",
    response_model=ApiResponse[GroupOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Create Group",
    description="Creates a group. The name must be unique.",
)
async def create_group(
        group_in: GroupCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    group = await AsyncGroupService(db).create(group_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "GROUP_CREATED", "Group", group.id, {"name": group.name},
    )
    return ok(group, "Group created successfully")


@router.get(
    "/{group_id}",
    response_model=ApiResponse[GroupOutput],
    summary="Get Group",
)
async def get_group(
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "read")),
):
    return ok(await AsyncGroupService(db).get(group_id), "Group retrieved successfully")


@router.put(
    "/{group_id}",
    response_model=ApiResponse[GroupOutput],
    summary="Update Group",
    description="Updates the name, description or status of a group.",
)
async def update_group(
        group_in: GroupUpdate,
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    group = await AsyncGroupService(db).update(group_id, group_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "GROUP_UPDATED", "Group", group.id, group_in.model_dump(exclude_unset=True),
    )
    return ok(group, "Group updated successfully")


@router.delete(
    "/{group_id}",
    response_model=ApiResponse[GroupOutput],
    summary="Deactivate Group",
    description="Soft deletes a group. Refused while users are assigned to it.",
)
async def delete_group(
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    group = await AsyncGroupService(db).deactivate(group_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "GROUP_DEACTIVATED", "Group", group_id,
    )
    return ok(group, "Group deactivated successfully")


@router.delete(
    "/{group_id}/permanent",
    response_model=ApiResponse[GroupOutput],
    summary="Delete Group Permanently",
    description="Removes the group together with its user and role assignments.",
)
async def hard_delete_group(
        request: Request,
        background_tasks: BackgroundTasks,
        group_id: int = Path(..., gt=0, description="Group ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Groups", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    group = await AsyncGroupService(db).hard_delete(group_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "GROUP_DELETED", "Group", group_id, {"name": group.name},
    )
    return ok(group, "Group deleted permanently")
