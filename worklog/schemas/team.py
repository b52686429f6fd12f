"""Pydantic schemas for teams and their members."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..core.task_types import DEFAULT_MEMBER_ROLE, MEMBER_ROLE_CHOICES

ROLE_PATTERN = f"^({'|'.join(MEMBER_ROLE_CHOICES)})$"


class TeamCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class TeamOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    member_count: int = 0


class TeamMemberCreate(BaseModel):
    email: str = Field(min_length=3)
    role: str = Field(default=DEFAULT_MEMBER_ROLE, pattern=ROLE_PATTERN)
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)


class TeamMemberOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    full_name: str
    email: str
    role: str
    hourly_rate: float
    joined_at: Optional[str] = None
    is_active: bool = True
    team_name: Optional[str] = None


class TeamOverview(BaseModel):
    team_id: str
    team_name: str
    team_description: Optional[str] = None
    member_count: int = 0
    active_tasks_count: int = 0
