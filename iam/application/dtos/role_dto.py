# iam/application/dtos/role_dto.py

from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator

from iam.application.dtos.base_dto import CustomBaseModel
from iam.application.dtos.group_dto import check_entity_name
from iam.application.dtos.permission_dto import PermissionOutput
from iam.shared.utils.input_validation import InputValidator


class RoleCreate(CustomBaseModel):
    name: str = Field(..., description="Unique role name.")
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)

    @field_validator("name")
    def validate_name(cls, v):
        return check_entity_name(v, "Role name")


class RoleUpdate(CustomBaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)
    is_active: Optional[bool] = None

    @field_validator("name")
    def validate_name(cls, v):
        return check_entity_name(v, "Role name")


class RoleClone(RoleCreate):
    """Name and description of the copy created by a clone."""
    pass


class RoleOutput(CustomBaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleGroupOutput(CustomBaseModel):
    id: int
    name: str
    description: Optional[str] = None


class RoleByModuleOutput(RoleOutput):
    """A role with its permissions on one module and the groups holding it."""
    permissions: List[PermissionOutput] = []
    groups: List[RoleGroupOutput] = []
    permission_count: int = 0
    group_count: int = 0
