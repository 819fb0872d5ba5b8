# iam/application/dtos/module_dto.py

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from iam.application.dtos.base_dto import CustomBaseModel
from iam.shared.utils.input_validation import InputValidator


def check_module_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    is_valid, error_msg = InputValidator.validate_module_name(v)
    if not is_valid:
        raise ValueError(error_msg)
    return v


class ModuleCreate(CustomBaseModel):
    name: str = Field(..., description="Unique module name, e.g. 'Users'.")
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)

    @field_validator("name")
    def validate_name(cls, v):
        return check_module_name(v)


class ModuleUpdate(CustomBaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=InputValidator.MAX_DESCRIPTION_LENGTH)
    is_active: Optional[bool] = None

    @field_validator("name")
    def validate_name(cls, v):
        return check_module_name(v)


class ModuleOutput(CustomBaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
