"""
MeMantra Backend — Admin User Schemas
=======================================

What:  Bodies and envelopes for admin user management under /api/users.
       Admins create users with the same fields as self-registration
       (`RegisterRequest`) and see them through `UserOut`.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.auth import UserOut


class UserUpdate(BaseModel):
    """Partial update: omitted or null fields are left unchanged."""
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v


class UserListData(BaseModel):
    users: List[UserOut]


class UserListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: UserListData


class UserData(BaseModel):
    user: UserOut


class UserDetailResponse(BaseModel):
    status: Literal["success"] = "success"
    data: UserData


class UserResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: UserData
