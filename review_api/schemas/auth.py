from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials-free login payload; identity checks live outside this service."""

    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(..., min_length=1, max_length=120)
    role: Literal["admin", "employee"] = "employee"


class UserProfile(BaseModel):
    email: str
    name: str
    role: Literal["admin", "employee"]


class SessionUserResponse(BaseModel):
    user: UserProfile
