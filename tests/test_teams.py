"""Tests for team, member, task and monthly report helpers."""

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_URL", "https://project.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")

from fake_platform import FakeClient
from worklog.crud import reports, tasks, teams


@pytest.fixture()
def client():
    return FakeClient(
        tables={
            "auth_users": [
                {"id": "u-ada", "email": "ada@example.com"},
                {"id": "u-bob", "email": "bob@example.com"},
            ],
            "teams": [
                {
                    "id": "t-core",
                    "name": "Core",
                    "is_active": True,
                    "created_at": "2024-01-02T00:00:00",
                    "team_members": [{"id": "m1", "is_active": True}, {"id": "m9", "is_active": False}],
                },
                {"id": "t-old", "name": "Old", "is_active": False, "created_at": "2023-01-01T00:00:00"},
            ],
            "team_members": [
                {
                    "id": "m1",
                    "team_id": "t-core",
                    "user_id": "u-ada",
                    "role": "lead",
                    "hourly_rate": 80,
                    "joined_at": "2024-01-03T00:00:00",
                    "is_active": True,
                    "teams": {"name": "Core"},
                    "user_profiles": [{"full_name": "Ada Lovelace"}],
                    "auth_users": {"id": "u-ada", "email": "ada@example.com"},
                },
                {
                    "id": "m2",
                    "team_id": "t-core",
                    "user_id": "u-bob",
                    "role": "developer",
                    "hourly_rate": None,
                    "is_active": True,
                    "teams": None,
                    "user_profiles": None,
                    "auth_users": None,
                },
            ],
        }
    )


def test_list_teams_skips_inactive_and_counts_active_members(client):
    rows = teams.list_teams(client)

    assert [row["name"] for row in rows] == ["Core"]
    assert rows[0]["member_count"] == 1
    assert "team_members" not in rows[0]


def test_create_team_requires_a_name(client):
    with pytest.raises(ValueError) as excinfo:
        teams.create_team(client, "   ")
    assert str(excinfo.value) == "Team name is required"

    created = teams.create_team(client, " Mobile ", "")
    assert created["name"] == "Mobile"
    assert created["description"] is None


def test_list_team_members_flattens_embeds_with_defaults(client):
    members = teams.list_team_members(client, "t-core")

    ada, bob = members
    assert ada["full_name"] == "Ada Lovelace"
    assert ada["email"] == "ada@example.com"
    assert ada["team_name"] == "Core"
    assert bob["full_name"] == "Unknown"
    assert bob["email"] == "Unknown"
    assert bob["user_id"] == "u-bob"
    assert bob["hourly_rate"] == 0


def test_add_team_member_looks_up_user_by_email(client):
    created = teams.add_team_member(client, "t-core", " BOB@example.com ", "tester", "45.5")

    assert created["user_id"] == "u-bob"
    assert created["role"] == "tester"
    assert created["hourly_rate"] == 45.5


def test_add_team_member_unknown_email(client):
    with pytest.raises(ValueError) as excinfo:
        teams.add_team_member(client, "t-core", "nobody@example.com")

    assert str(excinfo.value) == "User not found with this email"


def test_add_team_member_rejects_unknown_role(client):
    with pytest.raises(ValueError):
        teams.add_team_member(client, "t-core", "bob@example.com", "manager")


def test_remove_team_member_is_a_soft_delete(client):
    assert teams.remove_team_member(client, "m2") is True

    row = next(row for row in client.tables["team_members"] if row["id"] == "m2")
    assert row["is_active"] is False
    assert [member["id"] for member in teams.list_team_members(client, "t-core")] == ["m1"]
    assert teams.remove_team_member(client, "missing") is False


def test_admin_team_overview_normalizes_rpc_rows(client):
    client.rpc_handlers["get_admin_teams"] = [
        {"team_id": "t-core", "team_name": "Core", "member_count": "2", "active_tasks_count": None}
    ]

    assert teams.admin_team_overview(client) == [
        {
            "team_id": "t-core",
            "team_name": "Core",
            "team_description": None,
            "member_count": 2,
            "active_tasks_count": 0,
        }
    ]


def test_create_task_starts_pending_and_validates(client):
    with pytest.raises(ValueError) as excinfo:
        tasks.create_task(client, {"title": "", "team_id": "t-core"})
    assert str(excinfo.value) == "Task title is required"

    with pytest.raises(ValueError):
        tasks.create_task(client, {"title": "Ship", "team_id": "t-core", "priority": "someday"})

    created = tasks.create_task(
        client,
        {"title": " Ship v2 ", "team_id": "t-core", "priority": "HIGH", "estimated_hours": "6", "due_date": "2024-06-01"},
    )
    assert created["status"] == "pending"
    assert created["priority"] == "high"
    assert created["estimated_hours"] == 6.0
    assert created["due_date"] == "2024-06-01"


def test_task_status_follows_allowed_transitions(client):
    task = tasks.create_task(client, {"title": "Ship", "team_id": "t-core"})

    with pytest.raises(ValueError) as excinfo:
        tasks.update_task_status(client, task["id"], "completed")
    assert str(excinfo.value) == "Cannot move a task from pending to completed"

    assert tasks.update_task_status(client, task["id"], "in_progress")["status"] == "in_progress"
    assert tasks.update_task_status(client, task["id"], "on_hold")["status"] == "on_hold"
    assert tasks.update_task_status(client, task["id"], "in_progress")["status"] == "in_progress"
    assert tasks.update_task_status(client, task["id"], "completed")["status"] == "completed"
    assert tasks.update_task_status(client, "missing", "in_progress") is None


def test_list_tasks_filters_by_status_and_flattens(client):
    client.tables["tasks"] = [
        {"id": "k1", "title": "A", "status": "pending", "created_at": "2024-05-01", "teams": {"name": "Core"}},
        {
            "id": "k2",
            "title": "B",
            "status": "completed",
            "created_at": "2024-05-02",
            "teams": {"name": "Core"},
            "user_profiles": {"full_name": "Ada Lovelace"},
            "assigned_to": "u-ada",
        },
    ]

    all_tasks = tasks.list_tasks(client, status="all")
    assert [task["id"] for task in all_tasks] == ["k2", "k1"]
    assert all_tasks[0]["assigned_user_name"] == "Ada Lovelace"
    assert all_tasks[1]["assigned_user_name"] == "Unassigned"
    assert [task["id"] for task in tasks.list_tasks(client, status="pending")] == ["k1"]
    assert tasks.count_completed_tasks(client, "u-ada") == 1


def test_monthly_developer_reports_combine_entries_and_tasks(client):
    client.tables["work_entries"] = [
        {"id": "w1", "user_id": "u-ada", "work_date": "2024-05-02", "hours_spent": 3, "description": "a"},
        {"id": "w2", "user_id": "u-ada", "work_date": "2024-05-20", "hours_spent": 1.5, "description": "b"},
        {"id": "w3", "user_id": "u-ada", "work_date": "2024-04-30", "hours_spent": 8, "description": "c"},
    ]
    client.tables["tasks"] = [{"id": "k1", "assigned_to": "u-ada", "status": "completed"}]

    rows = reports.monthly_developer_reports(client, date(2024, 5, 1))
    ada, bob = rows

    assert ada["total_hours"] == Decimal("4.50")
    assert ada["total_earnings"] == Decimal("360.00")
    assert ada["tasks_completed"] == 1
    assert ada["work_entries"] == 2
    assert ada["last_activity"] == "2024-05-20"
    assert bob["work_entries"] == 0
    assert bob["last_activity"] == "No activity"


def test_developer_work_details_show_linked_task_title(client):
    client.tables["work_entries"] = [
        {
            "id": "w1",
            "user_id": "u-ada",
            "work_date": "2024-05-02",
            "hours_spent": 3,
            "description": "Auth",
            "task_work_entries": [{"tasks": {"title": "Login revamp"}}],
        },
        {"id": "w2", "user_id": "u-ada", "work_date": "2024-05-20", "hours_spent": 1, "description": "Misc"},
    ]

    details = reports.developer_work_details(client, "u-ada", date(2024, 5, 1))

    assert [row["id"] for row in details] == ["w2", "w1"]
    assert details[0]["task_title"] == reports.NO_TASK_LINKED
    assert details[1]["task_title"] == "Login revamp"


def test_admin_dashboard_counts_everything_but_trims_lists(client):
    client.tables["team_members"] = [
        {"id": f"m{index}", "team_id": "t-core", "user_id": f"u-{index}", "is_active": True} for index in range(12)
    ]
    client.tables["tasks"] = [
        {"id": f"k{index}", "title": f"Task {index}", "status": "completed" if index < 3 else "pending", "created_at": f"2024-05-{index + 1:02d}"}
        for index in range(7)
    ]
    client.rpc_handlers["get_admin_teams"] = [{"team_id": "t-core", "team_name": "Core", "member_count": 12}]

    dashboard = reports.admin_dashboard(client)

    assert dashboard["stats"] == {"total_teams": 1, "total_members": 12, "total_tasks": 7, "completed_tasks": 3}
    assert len(dashboard["members"]) == reports.DASHBOARD_MEMBERS
    assert [task["id"] for task in dashboard["recent_tasks"]] == ["k6", "k5", "k4", "k3", "k2"]
