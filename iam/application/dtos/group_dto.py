# iam/application/dtos/group_dto.py

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from iam.application.dtos.base_dto import CustomBaseModel
from iam.shared.utils.input_validation import InputValidator


def check_entity_name(v: Optional[str], label: str, max_length: Optional[int] = None) -> Optional[str]:
    """Validate and tidy a group, role or permission name."""
    if v is None:
        return v
    is_valid, error_msg = InputValidator.validate_name(v, label, max_length)
    if not is_valid:
        raise ValueError(error_msg)
    return InputValidator.sanitize_name(v)


class GroupCreate(CustomBaseModel):
    name: str = Field(..., description="Unique group name.")
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)

    @field_validator("name")
    def validate_name(cls, v):
        return check_entity_name(v, "Group name")


class GroupUpdate(CustomBaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)
    is_active: Optional[bool] = None

    @field_validator("name")
    def validate_name(cls, v):
        return check_entity_name(v, "Group name")


class GroupOutput(CustomBaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
