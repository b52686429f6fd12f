"""Pydantic schemas for admin-assigned tasks."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..core.task_types import DEFAULT_TASK_PRIORITY, TASK_PRIORITY_CHOICES, TASK_STATUS_CHOICES

STATUS_PATTERN = f"^({'|'.join(TASK_STATUS_CHOICES)})$"
PRIORITY_PATTERN = f"^({'|'.join(TASK_PRIORITY_CHOICES)})$"


class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    team_id: str = Field(min_length=1)
    assigned_to: Optional[str] = None
    priority: str = Field(default=DEFAULT_TASK_PRIORITY, pattern=PRIORITY_PATTERN)
    estimated_hours: Decimal = Field(default=Decimal("0"), ge=0)
    due_date: Optional[date] = None


class TaskStatusUpdate(BaseModel):
    status: str = Field(pattern=STATUS_PATTERN)


class TaskOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    due_date: Optional[str] = None
    assigned_to: Optional[str] = None
    team_id: Optional[str] = None
    team_name: str = "Unknown"
    assigned_user_name: str = "Unassigned"
    created_at: Optional[str] = None
