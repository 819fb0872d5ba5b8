# iam/adapters/inbound/api/v1/endpoints/auth_endpoint.py

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.inbound.api.deps import (
    get_session,
    get_current_user,
    get_audit_sink,
    request_context,
    schedule_audit,
)
from iam.adapters.outbound.persistence.models.user_model import User
from iam.application.dtos.base_dto import ApiResponse
from iam.application.dtos.user_dto import (
    UserCreate,
    UserLogin,
    UserOutput,
    TokenData,
    ChangePasswordInput,
)
from iam.application.ports.outbound import IAuditSink
from iam.application.use_cases.auth_use_cases import AsyncAuthService
from iam.shared.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse[UserOutput],
    status_code=status.HTTP_201_CREATED,
    summary="Register - Create a new account",
    description="Registers a new user. The account starts with no group and therefore no permissions.",
)
async def register(
        user_in: UserCreate,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncAuthService(db).register(user_in)
    context = request_context(request, user)
    schedule_audit(background_tasks, audit, context, "USER_REGISTERED", "User", user.id)
    return ok(user, "User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse[TokenData],
    summary="Login - Obtain an access token",
    description="Authenticates with email and password and returns a bearer JWT.",
)
async def login(
        credentials: UserLogin,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        audit: IAuditSink = Depends(get_audit_sink),
):
    token = await AsyncAuthService(db).login(credentials)
    context = request_context(request)
    context.user_id = token.user.id
    schedule_audit(background_tasks, audit, context, "USER_LOGIN", "User", token.user.id)
    return ok(token, "Login successful")


@router.get(
    "/me",
    response_model=ApiResponse[UserOutput],
    summary="Get My Data - Logged in user data",
    description="Returns the authenticated user data via JWT token.",
)
async def get_my_data(current_user: User = Depends(get_current_user)):
    return ok(current_user, "User retrieved successfully")


@router.post(
    "/change-password",
    response_model=ApiResponse[UserOutput],
    summary="Change Password",
    description="Changes the authenticated user's password after checking the current one.",
)
async def change_password(
        password_in: ChangePasswordInput,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_session),
        current_user: User = Depends(get_current_user),
        audit: IAuditSink = Depends(get_audit_sink),
):
    user = await AsyncAuthService(db).change_password(
        current_user.id, password_in.current_password, password_in.new_password
    )
    schedule_audit(
        background_tasks, audit, request_context(request, current_user),
        "PASSWORD_CHANGED", "User", user.id,
    )
    return ok(user, "Password changed successfully")
