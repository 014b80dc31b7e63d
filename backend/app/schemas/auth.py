"""
MeMantra Backend — Auth & User Schemas
========================================
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class EmailUpdateRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordChangeRequest(BaseModel):
    """`current_password` must verify against the stored hash."""
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class UserOut(BaseModel):
    """Public view of a user. Never includes the password hash."""
    user_id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthData(BaseModel):
    user: UserOut
    token: str


class AuthResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: AuthData


class MeData(BaseModel):
    user: UserOut


class MeResponse(BaseModel):
    status: Literal["success"] = "success"
    data: MeData


class EmailData(BaseModel):
    email: str


class EmailUpdateResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    data: EmailData
