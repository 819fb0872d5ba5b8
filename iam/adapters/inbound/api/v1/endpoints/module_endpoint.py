# iam/adapters/inbound/api/v1/endpoints/module_endpoint.py

import logging
from typing import List, Optional
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
from iam.application.dtos.module_dto import ModuleCreate, ModuleUpdate, ModuleOutput
from iam.application.dtos.permission_dto import PermissionOutput
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.module_use_cases import AsyncModuleService
from iam.shared.utils.pagination import pagination_params, page_of
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[ModuleOutput]],
    summary="List Modules",
)
async def list_modules(
        params: Params = Depends(pagination_params),
        is_active: Optional[bool] = Query(None, description="Filter by active status"),
        search: Optional[str] = Query(None, description="Substring of the module name"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "read")),
):
    page = await AsyncModuleService(db).list(
        params, is_active=is_active, name=f"%{search}%" if search else None
    )
    return ok(page_of(page, ModuleOutput), "Modules retrieved successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[EntityStatistics],
    summary="Module Statistics",
)
async def module_statistics(
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "read")),
):
    return ok(await AsyncModuleService(db).statistics(), "Module statistics retrieved successfully")


@router.post(
    "",
    response_model=ApiResponse[ModuleOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Create Module",
)
async def create_module(
        module_in: ModuleCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    module = await AsyncModuleService(db).create(module_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "MODULE_CREATED", "Module", module.id, {"name": module.name},
    )
    return ok(module, "Module created successfully")


@router.get(
    "/{module_id}",
    response_model=ApiResponse[ModuleOutput],
    summary="Get Module",
)
async def get_module(
        module_id: int = Path(..., gt=0, description="Module ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "read")),
):
    return ok(await AsyncModuleService(db).get(module_id), "Module retrieved successfully")


@router.put(
    "/{module_id}",
    response_model=ApiResponse[ModuleOutput],
    summary="Update Module",
)
async def update_module(
        module_in: ModuleUpdate,
        request: Request,
        background_tasks: BackgroundTasks,
        module_id: int = Path(..., gt=0, description="Module ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "update")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    module = await AsyncModuleService(db).update(module_id, module_in)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "MODULE_UPDATED", "Module", module.id, module_in.model_dump(exclude_unset=True),
    )
    return ok(module, "Module updated successfully")


@router.delete(
    "/{module_id}",
    response_model=ApiResponse[ModuleOutput],
    summary="Deactivate Module",
    description="Soft deletes a module. Refused while permissions exist for it.",
)
async def delete_module(
        request: Request,
        background_tasks: BackgroundTasks,
        module_id: int = Path(..., gt=0, description="Module ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    module = await AsyncModuleService(db).deactivate(module_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "MODULE_DEACTIVATED", "Module", module_id,
    )
    return ok(module, "Module deactivated successfully")


@router.delete(
    "/{module_id}/permanent",
    response_model=ApiResponse[ModuleOutput],
    summary="Delete Module Permanently",
    description="Removes a module. Refused while permissions exist for it.",
)
async def hard_delete_module(
        request: Request,
        background_tasks: BackgroundTasks,
        module_id: int = Path(..., gt=0, description="Module ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "delete")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    module = await AsyncModuleService(db).hard_delete(module_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "MODULE_DELETED", "Module", module_id, {"name": module.name},
    )
    return ok(module, "Module deleted permanently")


@router.post(
    "/{module_id}/standard-permissions",
    response_model=ApiResponse[List[PermissionOutput]],
    status_code=status.HTTP_201_CREATED,
    summary="Create Standard Permissions",
    description="Creates the missing create, read, update and delete permissions of a module.",
)
async def create_standard_permissions(
        request: Request,
        background_tasks: BackgroundTasks,
        module_id: int = Path(..., gt=0, description="Module ID"),
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(require_permission("Modules", "create")),
        audit: IAuditSink = Depends(get_audit_sink),
):
    created = await AsyncModuleService(db).create_standard_permissions(module_id)
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "STANDARD_PERMISSIONS_CREATED", "Module", module_id,
        {"permission_ids": [p.id for p in created]},
    )
    return ok(created, f"{len(created)} standard permission(s) created")
