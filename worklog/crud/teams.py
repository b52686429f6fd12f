from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from ..core.task_types import DEFAULT_MEMBER_ROLE, MEMBER_ROLE_CHOICES, normalize_choice
from ..platform.client import execute, fetch_one, fetch_rows

logger = logging.getLogger(__name__)

TEAMS_TABLE = "teams"
MEMBERS_TABLE = "team_members"
USERS_VIEW = "auth_users"

MEMBER_COLUMNS = (
    "id, team_id, user_id, role, hourly_rate, joined_at, is_active, "
    "teams(name), user_profiles(full_name), auth_users(id, email)"
)


def embedded_row(row: Mapping[str, Any], relation: str) -> dict[str, Any]:
    # PostgREST returns to-one embeds as an object, but a list when the
    # relationship is ambiguous; take the first element in that case.
    value = row.get(relation)
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


def flatten_member(row: Mapping[str, Any]) -> dict[str, Any]:
    user = embedded_row(row, "auth_users")
    return {
        "id": str(row.get("id")),
        "team_id": row.get("team_id"),
        "user_id": user.get("id") or row.get("user_id"),
        "full_name": embedded_row(row, "user_profiles").get("full_name") or "Unknown",
        "email": user.get("email") or "Unknown",
        "role": row.get("role") or DEFAULT_MEMBER_ROLE,
        "hourly_rate": row.get("hourly_rate") or 0,
        "joined_at": row.get("joined_at"),
        "is_active": bool(row.get("is_active", True)),
        "team_name": embedded_row(row, "teams").get("name") or "Unknown",
    }


def list_teams(client: Any) -> list[dict[str, Any]]:
    query = (
        client.table(TEAMS_TABLE)
        .select("id, name, description, is_active, created_at, team_members(id, is_active)")
        .eq("is_active", True)
        .order("created_at", desc=True)
    )
    teams = []
    for row in fetch_rows(query, action="teams.list"):
        members = row.pop("team_members", None) or []
        row["member_count"] = sum(1 for member in members if member.get("is_active", True))
        row["id"] = str(row.get("id"))
        teams.append(row)
    return teams


def list_team_choices(client: Any) -> list[dict[str, Any]]:
    query = client.table(TEAMS_TABLE).select("id, name").eq("is_active", True).order("name")
    return fetch_rows(query, action="teams.choices")


def create_team(client: Any, name: str, description: str | None = None) -> dict[str, Any]:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Team name is required")
    payload = {"name": cleaned, "description": (description or "").strip() or None}
    rows = fetch_rows(client.table(TEAMS_TABLE).insert(payload), action="teams.create")
    if not rows:
        raise ValueError("Team was not created")
    logger.info("teams.created", extra={"extra_data": {"team_id": rows[0].get("id"), "name": cleaned}})
    return rows[0]


def list_team_members(client: Any, team_id: str) -> list[dict[str, Any]]:
    query = (
        client.table(MEMBERS_TABLE)
        .select(MEMBER_COLUMNS)
        .eq("team_id", team_id)
        .eq("is_active", True)
    )
    return [flatten_member(row) for row in fetch_rows(query, action="teams.members")]


def list_active_members(client: Any) -> list[dict[str, Any]]:
    query = client.table(MEMBERS_TABLE).select(MEMBER_COLUMNS).eq("is_active", True)
    return [flatten_member(row) for row in fetch_rows(query, action="teams.active_members")]


def find_user_id_by_email(client: Any, email: str) -> str | None:
    cleaned = (email or "").strip().lower()
    if not cleaned:
        return None
    row = fetch_one(client.table(USERS_VIEW).select("id").eq("email", cleaned), action="users.lookup")
    return str(row["id"]) if row and row.get("id") else None


def add_team_member(
    client: Any,
    team_id: str,
    email: str,
    role: str | None = None,
    hourly_rate: Any = 0,
) -> dict[str, Any]:
    if not team_id:
        raise ValueError("team_id is required")
    role_value = normalize_choice(role, MEMBER_ROLE_CHOICES, DEFAULT_MEMBER_ROLE)
    try:
        rate = Decimal(str(hourly_rate if hourly_rate not in (None, "") else 0))
    except InvalidOperation as exc:
        raise ValueError("hourly_rate must be a number") from exc
    if rate < 0:
        raise ValueError("hourly_rate must be zero or greater")
    user_id = find_user_id_by_email(client, email)
    if not user_id:
        raise ValueError("User not found with this email")
    payload = {"team_id": team_id, "user_id": user_id, "role": role_value, "hourly_rate": float(rate)}
    rows = fetch_rows(client.table(MEMBERS_TABLE).insert(payload), action="teams.add_member")
    if not rows:
        raise ValueError("Team member was not added")
    logger.info(
        "teams.member_added",
        extra={"extra_data": {"team_id": team_id, "user_id": user_id, "role": role_value}},
    )
    return rows[0]


def remove_team_member(client: Any, member_id: str) -> bool:
    """Soft delete: the membership row stays but stops counting as active."""

    query = client.table(MEMBERS_TABLE).update({"is_active": False}).eq("id", member_id)
    rows = fetch_rows(query, action="teams.remove_member")
    if rows:
        logger.info("teams.member_removed", extra={"extra_data": {"member_id": member_id}})
    return bool(rows)


def admin_team_overview(client: Any) -> list[dict[str, Any]]:
    data = execute(client.rpc("get_admin_teams", {}), action="teams.overview")
    if not data:
        return []
    rows = data if isinstance(data, list) else [data]
    return [
        {
            "team_id": str(row.get("team_id") or row.get("id") or ""),
            "team_name": row.get("team_name") or row.get("name") or "Unknown",
            "team_description": row.get("team_description") or row.get("description"),
            "member_count": int(row.get("member_count") or 0),
            "active_tasks_count": int(row.get("active_tasks_count") or 0),
        }
        for row in rows
    ]


__all__ = [
    "add_team_member",
    "admin_team_overview",
    "create_team",
    "find_user_id_by_email",
    "embedded_row",
    "flatten_member",
    "list_active_members",
    "list_team_choices",
    "list_team_members",
    "list_teams",
    "remove_team_member",
]
