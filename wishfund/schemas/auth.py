from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


def _normalize_username(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError("Username must not be blank")
    if any(ch.isspace() for ch in normalized):
        raise ValueError("Username must not contain whitespace")
    return normalized


class SignUpRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=6, max_length=128)
    avatar: str | None = Field(default=None, max_length=255)
    about: str | None = Field(default=None, max_length=512)

    @field_validator("username")
    @classmethod
    def _username_strip(cls, value: str) -> str:
        return _normalize_username(value)


class SignInRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    username: str | None = Field(default=None, min_length=1, max_length=64)
    password: str | None = Field(default=None, min_length=6, max_length=128)
    avatar: str | None = Field(default=None, max_length=255)
    about: str | None = Field(default=None, max_length=512)

    @field_validator("username")
    @classmethod
    def _username_strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _normalize_username(value)


class FindUsersRequest(BaseModel):
    query: str = Field(min_length=1, max_length=255)


class UserPublic(BaseModel):
    id: int
    username: str
    about: str | None = None
    avatar: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserPrivate(UserPublic):
    email: EmailStr
