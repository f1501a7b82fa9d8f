"""
Admin Pydantic schemas for API request/response handling.

This module provides:
- Admin account creation schema
- Admin account listing schema
"""

from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field

from storefront.models.enums import UserRole
from storefront.schemas.common import CamelModel


class CreateAdminRequest(CamelModel):
    """
    Schema for creating an admin account.

    Attributes:
        username: Admin email address
        password: Admin password (checked against the password policy)
    """

    username: EmailStr = Field(description="Admin email address")
    password: str = Field(min_length=1, max_length=128, description="Admin password")


class AdminUserResponse(CamelModel):
    """Schema for an admin account in listings and creation responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: UserRole
    created_at: datetime
