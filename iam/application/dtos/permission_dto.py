# iam/application/dtos/permission_dto.py

"""
Schemas for permissions and effective-permission queries.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator

from iam.application.dtos.base_dto import CustomBaseModel
from iam.application.dtos.group_dto import check_entity_name
from iam.domain.models.permission_domain_model import Action
from iam.shared.utils.input_validation import InputValidator


class PermissionCreate(CustomBaseModel):
    name: str = Field(..., description="Permission name, e.g. 'Users Read'.")
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)
    action: Action = Field(..., description="One of create, read, update, delete.")
    module_id: int = Field(..., gt=0, description="Owning module.")

    @field_validator("name")
    def validate_name(cls, v):
        return check_entity_name(v, "Permission name", InputValidator.MAX_PERMISSION_NAME_LENGTH)


class PermissionUpdate(CustomBaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)
    action: Optional[Action] = None
    module_id: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None

    @field_validator("name")
    def validate_name(cls, v):
        return check_entity_name(v, "Permission name", InputValidator.MAX_PERMISSION_NAME_LENGTH)


class PermissionOutput(CustomBaseModel):
    id: int
    name: str
    description: Optional[str] = None
    action: str
    module_id: int
    module_name: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EffectivePermissionOutput(CustomBaseModel):
    """One entry of a user's effective permission list."""
    id: int
    name: str
    module_id: int
    module_name: str
    action: str
    description: Optional[str] = None
    is_active: bool


class PermissionCheckOutput(CustomBaseModel):
    user_id: int
    module_id: int
    module_name: Optional[str] = None
    action: str
    has_permission: bool


class SimulateActionInput(CustomBaseModel):
    """
    Ask whether a user may perform an action on a module.

    The action is validated by the service, so an unknown action yields a
    400 with the list of accepted values.
    """
    user_id: Optional[int] = Field(None, description="Defaults to the authenticated user.")
    module_id: int = Field(..., gt=0)
    action: str = Field(..., description="One of create, read, update, delete.")


class RoleSummaryOutput(CustomBaseModel):
    id: int
    name: str
    permission_count: int


class GroupSummaryOutput(CustomBaseModel):
    id: int
    name: str
    roles: List[RoleSummaryOutput] = []


class UserPermissionSummaryOutput(CustomBaseModel):
    """How a user gets their permissions: groups, their roles, and the union."""
    user_id: int
    username: str
    email: str
    groups: List[GroupSummaryOutput] = []
    total_permissions: int
    permissions: List[EffectivePermissionOutput] = []
