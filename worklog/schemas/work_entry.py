"""Pydantic schemas that describe work entry payloads for the API."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class WorkEntryBase(BaseModel):
    work_date: date
    work_time: str
    description: str
    hours_spent: Decimal
    commit_link: Optional[str] = None
    screenshot_url: Optional[str] = None


class WorkEntryCreate(WorkEntryBase):
    pass


class WorkEntryUpdate(BaseModel):
    work_date: Optional[date] = None
    work_time: Optional[str] = None
    description: Optional[str] = None
    hours_spent: Optional[Decimal] = None
    commit_link: Optional[str] = None
    screenshot_url: Optional[str] = None


class WorkEntryOut(BaseModel):
    id: str
    user_id: str
    work_date: str
    work_time: str
    description: str
    hours_spent: float
    commit_link: Optional[str] = None
    screenshot_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


class ScreenshotOut(BaseModel):
    public_url: str


class WorkSummary(BaseModel):
    total_hours: float
    total_tasks: int
    work_days: int
    average_hours_per_day: float


class MonthlyStatsOut(WorkSummary):
    month: str
    hourly_rate: float
    total_earnings: float


class PreferencesOut(BaseModel):
    hourly_rate: float


class PreferencesUpdate(BaseModel):
    hourly_rate: Decimal = Field(ge=0)
