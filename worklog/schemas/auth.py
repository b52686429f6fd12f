from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "dev@example.com", "password": "secret123"}
        },
    }


class SignupRequest(LoginRequest):
    pass


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "<jwt>",
                "refresh_token": "<token>",
                "token_type": "bearer",
                "expires_in": 3600,
                "user_id": "6f1c...",
                "email": "dev@example.com",
                "is_admin": False,
            }
        }
    }


class SignupResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    confirmation_required: bool = False


class RefreshRequest(BaseModel):
    refresh_token: str

    model_config = {
        "json_schema_extra": {
            "example": {"refresh_token": "<token>"}
        }
    }
