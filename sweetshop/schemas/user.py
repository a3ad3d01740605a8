from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Validare de bază, aceeași ca în clientul web
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LEN = 6


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRegister(BaseModel):
    """Payload pentru înregistrare."""
    username: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("username")
    @classmethod
    def _username_strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must not be empty")
        return v

    @field_validator("email")
    @classmethod
    def _email_normalize(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("password")
    @classmethod
    def _password_rules(cls, v: str) -> str:
        # parola NU se face strip; doar refuzăm una formată numai din spații
        if not v.strip():
            raise ValueError("password must not be empty")
        if len(v) < MIN_PASSWORD_LEN:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LEN} characters long")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"username": "priya", "email": "priya@example.com", "password": "s3cret!"}]
        }
    )


class UserLogin(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("username")
    @classmethod
    def _username_strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must not be empty")
        return v


class UserRead(_CamelModel):
    id: int
    username: str
    email: str
    is_admin: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class AuthResponse(_CamelModel):
    """Răspuns pentru register/login: token opac + utilizator."""
    message: str
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserRead
