# iam/application/dtos/user_dto.py

"""
Schemas for user data.

This module defines the Pydantic DTOs for validating and serializing
user data: registration, login, profile updates and authentication.
"""

from datetime import datetime
from typing import Optional
from iam.application.dtos.base_dto import CustomBaseModel, EntityStatistics
from iam.shared.utils.input_validation import InputValidator
from pydantic import (
    field_validator,
    EmailStr,
    Field,
)


def check_username(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    is_valid, error_msg = InputValidator.validate_username(v)
    if not is_valid:
        raise ValueError(error_msg)
    return v


def check_password(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    is_valid, error_msg = InputValidator.validate_password(v)
    if not is_valid:
        raise ValueError(error_msg)
    return v


class UserBase(CustomBaseModel):
    """
    Base schema for user data.

    Holds the attributes shared by every user DTO.
    """
    username: str = Field(..., description="Unique login name, 3 to 50 characters.")
    email: EmailStr = Field(..., description="User email. Must be valid and unique.")
    first_name: Optional[str] = Field(None, min_length=1, max_length=50, description="Given name.")
    last_name: Optional[str] = Field(None, min_length=1, max_length=50, description="Family name.")

    @field_validator("username")
    def validate_username(cls, v):
        return check_username(v)

    @field_validator("email")
    def normalize_email(cls, v):
        return InputValidator.normalize_email(v)


class UserCreate(UserBase):
    """
    Schema for creating a new user.

    Extends UserBase with the password.
    """
    password: str = Field(..., description="User password, at least 6 characters.")

    @field_validator("password")
    def validate_password(cls, v):
        return check_password(v)


class UserUpdate(CustomBaseModel):
    """
    Schema for updating a user. Only the fields sent are changed.
    """
    username: Optional[str] = Field(None, description="New username.")
    email: Optional[EmailStr] = Field(None, description="New email.")
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    password: Optional[str] = Field(None, description="New password, at least 6 characters.")
    is_active: Optional[bool] = Field(None, description="Activate or deactivate the user.")

    @field_validator("username")
    def validate_username(cls, v):
        return check_username(v)

    @field_validator("email")
    def normalize_email(cls, v):
        return InputValidator.normalize_email(v) if v is not None else v

    @field_validator("password")
    def validate_password(cls, v):
        return check_password(v)


class UserOutput(CustomBaseModel):
    """
    Schema for returning user data. Never exposes the password hash.
    """
    id: int = Field(..., description="User identifier.")
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserLogin(CustomBaseModel):
    email: EmailStr = Field(..., description="Registered email.")
    password: str = Field(..., min_length=1, description="Account password.")


class ChangePasswordInput(CustomBaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., description="New password, at least 6 characters.")

    @field_validator("new_password")
    def validate_password(cls, v):
        return check_password(v)


class ResetPasswordInput(CustomBaseModel):
    new_password: str = Field(..., description="New password, at least 6 characters.")

    @field_validator("new_password")
    def validate_password(cls, v):
        return check_password(v)


class TokenData(CustomBaseModel):
    """
    Result of a successful login.
    """
    access_token: str = Field(..., description="JWT access token.")
    token_type: str = Field("bearer", description="Always 'bearer'.")
    expires_in: int = Field(..., description="Token lifetime in seconds.")
    user: UserOutput


class UserStatistics(EntityStatistics):
    with_groups: int
    without_groups: int
