# iam/application/dtos/base_dto.py

"""
Base classes for DTOs.

Defines the shared Pydantic base model and the response envelope used by
every endpoint.
"""

from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class CustomBaseModel(BaseModel):
    """
    Base model for all DTOs of the application.

    Reads attributes from ORM objects so services can return models directly.
    """

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class ApiResponse(CustomBaseModel, Generic[T]):
    """
    Envelope returned by every endpoint: ``{success, message, data}``.
    """
    success: bool = Field(True, description="False only for error responses.")
    message: Optional[str] = Field(None, description="Human readable summary of the outcome.")
    data: Optional[T] = Field(None, description="Operation payload.")


class EntityStatistics(CustomBaseModel):
    """Active/inactive counts for one entity type."""
    total: int
    active: int
    inactive: int
