"""Platform helpers for the ``admin_users`` profile table."""

from __future__ import annotations

from typing import Any

from ..platform.client import execute, fetch_one, fetch_rows

ADMIN_TABLE = "admin_users"


def get_active_admin(client: Any, user_id: str) -> dict[str, Any] | None:
    if not user_id:
        return None
    query = (
        client.table(ADMIN_TABLE)
        .select("*")
        .eq("user_id", user_id)
        .eq("is_active", True)
    )
    return fetch_one(query, action="admin.lookup")


def get_admin_profile(client: Any, user_id: str) -> dict[str, Any] | None:
    query = client.table(ADMIN_TABLE).select("*").eq("user_id", user_id)
    return fetch_one(query, action="admin.profile")


def update_company_name(client: Any, admin_id: str, company_name: str) -> dict[str, Any]:
    name = (company_name or "").strip()
    if not name:
        raise ValueError("company_name is required")
    query = client.table(ADMIN_TABLE).update({"company_name": name}).eq("id", admin_id)
    rows = fetch_rows(query, action="admin.update")
    if not rows:
        raise ValueError("Admin profile not found")
    return rows[0]


def create_admin_profile(client: Any, user_id: str, company_name: str) -> dict[str, Any]:
    """Ask the platform's ``create_admin_user`` function to provision the profile."""

    result = execute(
        client.rpc("create_admin_user", {"p_user_id": user_id, "p_company_name": company_name}),
        action="admin.create",
    )
    if isinstance(result, list):
        result = result[0] if result else None
    if not isinstance(result, dict) or not result.get("success"):
        error = result.get("error") if isinstance(result, dict) else None
        raise ValueError(f"Admin creation failed: {error or 'Unknown error occurred'}")
    return result


__all__ = [
    "create_admin_profile",
    "get_active_admin",
    "get_admin_profile",
    "update_company_name",
]
