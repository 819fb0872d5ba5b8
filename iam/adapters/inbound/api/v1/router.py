# iam/adapters/inbound/api/v1/router.py

from fastapi import APIRouter
from iam.adapters.inbound.api.v1.endpoints import (
    auth_endpoint,
    user_endpoint,
    group_endpoint,
    role_endpoint,
    module_endpoint,
    permission_endpoint,
    assignment_endpoint,
    user_permission_endpoint,
    audit_endpoint,
)

api_router = APIRouter()

api_router.include_router(auth_endpoint.router, prefix="/auth", tags=["Auth"])

# Registered before the CRUD routers so fixed paths such as
# /permissions/check win over /permissions/{permission_id}
api_router.include_router(user_permission_endpoint.router, tags=["User Permissions"])
api_router.include_router(assignment_endpoint.router, tags=["Assignments"])

api_router.include_router(user_endpoint.router, prefix="/users", tags=["Users"])
api_router.include_router(group_endpoint.router, prefix="/groups", tags=["Groups"])
api_router.include_router(role_endpoint.router, prefix="/roles", tags=["Roles"])
api_router.include_router(module_endpoint.router, prefix="/modules", tags=["Modules"])
api_router.include_router(permission_endpoint.router, prefix="/permissions", tags=["Permissions"])
api_router.include_router(audit_endpoint.router, prefix="/audit", tags=["Audit"])
