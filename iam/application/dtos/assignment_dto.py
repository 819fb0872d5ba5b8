# iam/application/dtos/assignment_dto.py

"""
Schemas for bulk relationship assignment.

Id lists are not length-checked here: an empty list reaches the service,
which answers with a 400 naming the missing ids argument.
"""

from typing import Any, Dict, List
from pydantic import Field

from iam.application.dtos.base_dto import CustomBaseModel
from iam.domain.models.permission_domain_model import AssignmentStatus


class RoleIdsInput(CustomBaseModel):
    role_ids: List[int] = Field(..., description="Roles to assign to or remove from the group.")


class UserIdsInput(CustomBaseModel):
    user_ids: List[int] = Field(..., description="Users to add to or remove from the group.")


class PermissionIdsInput(CustomBaseModel):
    permission_ids: List[int] = Field(..., description="Permissions to grant to or revoke from the role.")


class AssignmentDetailOutput(CustomBaseModel):
    id: int
    name: str
    status: AssignmentStatus = Field(..., description="assigned, already_exists, removed or not_found.")
    message: str
    extra: Dict[str, Any] = {}


class AssignmentResultOutput(CustomBaseModel):
    assigned: int
    skipped: int
    details: List[AssignmentDetailOutput] = []


class RemovalResultOutput(CustomBaseModel):
    removed: int
    not_found: int
    details: List[AssignmentDetailOutput] = []
