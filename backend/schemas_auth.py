import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def _check_username(value: str) -> str:
    value = value.strip()
    if not USERNAME_RE.match(value):
        raise ValueError("Username must contain only letters, numbers, and underscores")
    if len(value) < 3 or len(value) > 20:
        raise ValueError("Username must be between 3 and 20 characters")
    return value


class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    username: str
    company: str | None = Field(default=None, max_length=200)

    @field_validator("username")
    @classmethod
    def username_format(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not any(ch.isdigit() for ch in value):
            raise ValueError("Password must contain at least one number")
        return value


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    username: str
    first_name: str
    last_name: str
    company: str | None = None
    profile_image: str | None = None
    role: str
    last_login: datetime | None = None
    created_at: datetime


class AuthOut(BaseModel):
    token: str
    user: UserOut


class ProfileUpdateIn(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    company: str | None = Field(default=None, max_length=200)
    username: str | None = None
    profile_image: str | None = None

    @field_validator("username")
    @classmethod
    def username_format(cls, value: str | None) -> str | None:
        if value is None or value.strip() == "":
            return None
        return _check_username(value)


class ChangePasswordIn(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not any(ch.isdigit() for ch in value):
            raise ValueError("Password must contain at least one number")
        return value


class DeleteAccountIn(BaseModel):
    password: str = Field(min_length=1)
