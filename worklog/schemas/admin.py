"""Schemas for the admin profile, dashboard and monthly reports."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .task import TaskOut
from .team import TeamMemberOut, TeamOverview


class AdminProfileOut(BaseModel):
    id: str
    user_id: str
    company_name: Optional[str] = None
    admin_level: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None


class AdminProfileUpdate(BaseModel):
    company_name: str = Field(min_length=1)


class DashboardStats(BaseModel):
    total_teams: int
    total_members: int
    total_tasks: int
    completed_tasks: int


class AdminDashboardOut(BaseModel):
    stats: DashboardStats
    teams: list[TeamOverview] = Field(default_factory=list)
    recent_tasks: list[TaskOut] = Field(default_factory=list)
    members: list[TeamMemberOut] = Field(default_factory=list)


class DeveloperReportOut(BaseModel):
    user_id: str
    full_name: str
    email: str
    team_name: str
    role: str
    hourly_rate: float
    total_hours: float
    total_earnings: float
    tasks_completed: int
    work_entries: int
    last_activity: str


class ReportTotals(BaseModel):
    total_hours: float
    total_earnings: float
    total_tasks: int


class MonthlyReportOut(BaseModel):
    month: str
    developers: list[DeveloperReportOut] = Field(default_factory=list)
    totals: ReportTotals


class DeveloperWorkEntryOut(BaseModel):
    id: str
    work_date: str
    hours_spent: float
    description: str
    task_title: str
