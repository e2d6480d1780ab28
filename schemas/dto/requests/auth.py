"""
Request DTOs for authentication endpoints.

RegisterRequest   — POST /auth/register
LoginRequest      — POST /auth/login
RefreshRequest    — POST /auth/refresh
LogoutRequest     — POST /auth/logout
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.validators import is_hex_token


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=254)
    password: str


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str


class RefreshRequest(BaseModel):
    """Request body for POST /auth/refresh."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str

    @field_validator("refresh_token", mode="after")
    @classmethod
    def _token_format(cls, v: str) -> str:
        if not is_hex_token(v):
            raise ValueError("refresh_token must be a 64-character hex string")
        return v


class LogoutRequest(BaseModel):
    """Request body for POST /auth/logout."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str

    @field_validator("refresh_token", mode="after")
    @classmethod
    def _token_format(cls, v: str) -> str:
        if not is_hex_token(v):
            raise ValueError("refresh_token must be a 64-character hex string")
        return v
