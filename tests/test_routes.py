"""End-to-end checks through the FastAPI app with the platform faked out."""

import csv
import io
import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_URL", "https://project.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")

from fake_platform import FakeClient, make_access_token
from worklog.core.security import token_expired
from worklog.crud.accounts import sign_in
from worklog.deps.auth import SESSION_KEY, _fresh_session, get_platform
from worklog.main import app
from worklog.platform.client import get_anon_platform
from worklog.routers.auth_ui import safe_next

HTML = {"accept": "text/html"}


@pytest.fixture()
def fake():
    client = FakeClient()
    client.auth.add_user("dev@example.com", "secret123", user_id="u-dev")
    client.auth.add_user("boss@example.com", "secret123", user_id="u-boss")
    client.tables["admin_users"] = [
        {"id": "a1", "user_id": "u-boss", "company_name": "Acme", "is_active": True},
    ]
    client.rpc_handlers["get_admin_teams"] = []
    return client


@pytest.fixture()
def client(fake):
    app.dependency_overrides[get_anon_platform] = lambda: fake
    app.dependency_overrides[get_platform] = lambda: fake
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _login(client, email="dev@example.com", path="/login"):
    return client.post(path, data={"email": email, "password": "secret123"}, follow_redirects=False)


def _bearer(user_id="u-dev", email="dev@example.com"):
    return {"Authorization": f"Bearer {make_access_token(user_id, email)}"}


def _entry(**overrides):
    data = {
        "work_date": "2024-05-03",
        "work_time": "09:30",
        "description": "Refactor auth flow",
        "hours_spent": 1.5,
    }
    data.update(overrides)
    return data


def test_health_reports_platform_configuration(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "platform_configured": True}
    assert response.headers["X-Request-ID"]
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_api_requires_authentication(client):
    response = client.get("/api/v1/entries")

    assert response.status_code == 401
    assert response.json() == {"code": "http_error", "message": "Authorization required"}


def test_api_rejects_tampered_bearer_token(client):
    headers = {"Authorization": _bearer()["Authorization"] + "x"}

    response = client.get("/api/v1/entries", headers=headers)

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_api_login_then_crud_with_bearer_token(client, fake):
    login = client.post("/api/v1/auth/login", json={"email": "dev@example.com", "password": "secret123"})
    assert login.status_code == 200
    tokens = login.json()
    assert tokens["token_type"] == "bearer"
    assert tokens["is_admin"] is False
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    created = client.post("/api/v1/entries", json=_entry(), headers=headers)
    assert created.status_code == 201
    entry = created.json()
    assert entry["user_id"] == "u-dev"
    assert entry["hours_spent"] == 1.5

    patched = client.patch(f"/api/v1/entries/{entry['id']}", json={"hours_spent": 2}, headers=headers)
    assert patched.json()["hours_spent"] == 2.0

    listed = client.get("/api/v1/entries", params={"date": "2024-05-03"}, headers=headers)
    assert [row["id"] for row in listed.json()] == [entry["id"]]

    summary = client.get("/api/v1/summary", headers=headers).json()
    assert summary == {"total_hours": 2.0, "total_tasks": 1, "work_days": 1, "average_hours_per_day": 2.0}

    monthly = client.get("/api/v1/stats/monthly", params={"month": "2024-05"}, headers=headers).json()
    assert monthly["total_earnings"] == 100.0
    assert monthly["month"] == "2024-05"

    assert client.delete(f"/api/v1/entries/{entry['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/v1/entries/{entry['id']}", headers=headers).status_code == 404


def test_api_entry_validation_errors(client):
    headers = _bearer()

    too_short = client.post("/api/v1/entries", json=_entry(hours_spent=0.1), headers=headers)
    assert too_short.status_code == 422
    assert too_short.json()["message"] == "hours_spent must be at least 0.25"

    missing = client.post("/api/v1/entries", json={"description": "x"}, headers=headers)
    assert missing.status_code == 422
    assert missing.json()["code"] == "validation_error"


def test_api_delete_all_requires_confirmation(client, fake):
    headers = _bearer()
    client.post("/api/v1/entries", json=_entry(), headers=headers)

    refused = client.delete("/api/v1/entries", headers=headers)
    assert refused.status_code == 422
    assert len(fake.tables["work_entries"]) == 1

    removed = client.delete("/api/v1/entries", params={"confirm": "DELETE"}, headers=headers)
    assert removed.json() == {"deleted": 1}


def test_api_screenshot_upload(client, fake):
    response = client.post(
        "/api/v1/entries/screenshot",
        files={"file": ("shot.png", b"\x89PNG", "image/png")},
        headers=_bearer(),
    )

    assert response.status_code == 201
    assert response.json()["public_url"].startswith("https://project.test/storage/v1/object/public/images/screenshots/u-dev/")

    rejected = client.post(
        "/api/v1/entries/screenshot",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=_bearer(),
    )
    assert rejected.status_code == 415


def test_api_preferences_round_trip(client):
    headers = _bearer()

    assert client.get("/api/v1/preferences", headers=headers).json() == {"hourly_rate": 50.0}
    assert client.put("/api/v1/preferences", json={"hourly_rate": 65}, headers=headers).json() == {"hourly_rate": 65.0}
    assert client.get("/api/v1/preferences", headers=headers).json() == {"hourly_rate": 65.0}


def test_api_export_csv(client):
    headers = _bearer()
    client.post("/api/v1/entries", json=_entry(), headers=headers)

    response = client.get("/api/v1/export", params={"format": "csv"}, headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "programming-work-" in response.headers["content-disposition"]
    assert response.text.splitlines()[1] == "2024-05-03,09:30,Refactor auth flow,1.5,,"


def test_platform_failures_become_bad_gateway(client, fake):
    fake.failures[("work_entries", "select")] = "upstream timeout"

    response = client.get("/api/v1/entries", headers=_bearer())

    assert response.status_code == 502
    assert response.json() == {
        "code": "platform_error",
        "message": "upstream timeout",
        "details": {"action": "entries.list"},
    }


def test_admin_api_is_forbidden_for_members(client):
    response = client.get("/api/v1/admin/teams", headers=_bearer())

    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"


def test_admin_api_manages_teams_and_tasks(client, fake):
    headers = _bearer("u-boss", "boss@example.com")
    fake.tables["auth_users"] = [{"id": "u-dev", "email": "dev@example.com"}]

    team = client.post("/api/v1/admin/teams", json={"name": "Core"}, headers=headers)
    assert team.status_code == 201
    team_id = team.json()["id"]

    member = client.post(
        f"/api/v1/admin/teams/{team_id}/members",
        json={"email": "dev@example.com", "role": "developer", "hourly_rate": 40},
        headers=headers,
    )
    assert member.status_code == 201

    task = client.post("/api/v1/admin/tasks", json={"title": "Ship", "team_id": team_id}, headers=headers)
    assert task.status_code == 201
    assert task.json()["status"] == "pending"

    bad_move = client.patch(f"/api/v1/admin/tasks/{task.json()['id']}/status", json={"status": "completed"}, headers=headers)
    assert bad_move.status_code == 422

    started = client.patch(
        f"/api/v1/admin/tasks/{task.json()['id']}/status",
        json={"status": "in_progress"},
        headers=headers,
    )
    assert started.json()["status"] == "in_progress"

    me = client.get("/api/v1/auth/me", headers=headers)
    assert me.json() == {"user_id": "u-boss", "email": "boss@example.com", "is_admin": True}


def test_pages_redirect_browsers_to_login(client):
    response = client.get("/dashboard", headers=HTML, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/login?next=/dashboard"


def test_login_page_flow_and_entry_form(client, fake):
    assert client.get("/login").status_code == 200

    failed = client.post("/login", data={"email": "dev@example.com", "password": "wrong"})
    assert failed.status_code == 401
    assert "Invalid login credentials" in failed.text

    assert _login(client).headers["location"] == "/"

    created = client.post(
        "/entries",
        data={
            "work_date": "2024-05-03",
            "work_time": "09:30",
            "description": "Pair on release notes",
            "hours_spent": "2",
        },
        follow_redirects=False,
    )
    assert created.status_code == 303
    assert created.headers["location"] == "/?date=2024-05-03"

    page = client.get("/", params={"date": "2024-05-03"})
    assert page.status_code == 200
    assert "Pair on release notes" in page.text

    invalid = client.post(
        "/entries",
        data={"work_date": "2024-05-03", "work_time": "09:30", "description": "", "hours_spent": "2"},
    )
    assert invalid.status_code == 422
    assert "description is required" in invalid.text
    assert len(fake.tables["work_entries"]) == 1


def test_member_pages_render(client):
    _login(client)
    client.post("/api/v1/entries", json=_entry())

    for path in ("/dashboard", "/monthly?month=2024-05&day=2024-05-03", "/monthly-earnings?month=2024-05", "/export", "/settings"):
        response = client.get(path)
        assert response.status_code == 200, path


def test_export_download_formats(client):
    _login(client)
    client.post("/api/v1/entries", json=_entry())

    csv_response = client.get("/export/download", params={"format": "csv"})
    assert csv_response.text.startswith("Date,Time,Description,Hours,Commit Link,Screenshot URL")

    pdf_response = client.get("/export/download", params={"format": "pdf", "month": "2024-05"})
    assert pdf_response.headers["content-type"] == "application/pdf"
    assert 'filename="earnings-statement-2024-05.pdf"' in pdf_response.headers["content-disposition"]
    assert pdf_response.content.startswith(b"%PDF-")

    assert client.get("/export/download", params={"format": "xml"}).status_code == 400


def test_settings_rate_is_saved_and_mirrored_in_session(client, fake):
    _login(client)

    saved = client.post("/settings", data={"hourly_rate": "72.5"}, follow_redirects=False)
    assert saved.status_code == 303
    assert fake.tables["user_preferences"][0]["hourly_rate"] == 72.5

    fake.failures[("user_preferences", "select")] = "should not be read again"
    assert client.get("/api/v1/preferences").json() == {"hourly_rate": 72.5}

    refused = client.post("/settings/delete-all", data={"confirmation": "delete"})
    assert refused.status_code == 422


def test_admin_login_rejects_members(client):
    response = _login(client, path="/admin/login")

    assert response.status_code == 401
    assert "Access denied. This account is not authorized as an admin." in response.text


def test_roles_are_routed_to_their_own_area(client):
    _login(client)
    assert client.get("/admin/dashboard", follow_redirects=False).headers["location"] == "/"
    client.post("/logout")

    assert _login(client, "boss@example.com").headers["location"] == "/admin/dashboard"
    assert client.get("/", follow_redirects=False).headers["location"] == "/admin/dashboard"
    assert client.get("/admin/dashboard").status_code == 200
    assert client.get("/admin/teams").status_code == 200
    assert client.get("/admin/tasks").status_code == 200
    assert client.get("/admin/reports").status_code == 200
    assert client.get("/admin/settings").status_code == 200

    logout = client.post("/logout", follow_redirects=False)
    assert logout.headers["location"] == "/admin/login"
    assert client.get("/api/v1/auth/me").status_code == 401


def test_expired_session_token_is_refreshed(fake):
    session = sign_in(fake, "dev@example.com", "secret123")
    session.access_token = make_access_token("u-dev", expires_in=-60)
    request = SimpleNamespace(session={})

    renewed = _fresh_session(request, session, fake)

    assert renewed.access_token != session.access_token
    assert token_expired(renewed.access_token) is False
    assert request.session[SESSION_KEY]["access_token"] == renewed.access_token


def test_unrefreshable_session_is_cleared(fake):
    session = sign_in(fake, "dev@example.com", "secret123")
    session.access_token = make_access_token("u-dev", expires_in=-60)
    session.refresh_token = "revoked"
    request = SimpleNamespace(session={SESSION_KEY: session.to_session()})

    with pytest.raises(HTTPException) as excinfo:
        _fresh_session(request, session, fake)

    assert excinfo.value.status_code == 401
    assert request.session == {}


def test_auth_pages_render(client):
    for path in ("/login", "/register", "/admin/login", "/admin/signup"):
        response = client.get(path)
        assert response.status_code == 200, path
        assert response.headers["content-type"].startswith("text/html")
        assert "<form" in response.text


@pytest.mark.parametrize(
    "value, expected",
    [
        ("/monthly", "/monthly"),
        ("/\\evil.example", "/"),
        ("//evil.example", "/"),
        ("https://evil.example", "/"),
        ("", "/"),
        (None, "/"),
    ],
)
def test_safe_next_only_follows_local_paths(value, expected):
    assert safe_next(value) == expected


def test_login_ignores_backslash_next_target(client):
    response = client.post(
        "/login",
        data={"email": "dev@example.com", "password": "secret123", "next": "/\\evil.example"},
        follow_redirects=False,
    )

    assert response.headers["location"] == "/"


def test_invalid_entry_form_does_not_upload_screenshot(client, fake):
    _login(client)

    invalid = client.post(
        "/entries",
        data={"work_date": "2024-05-03", "work_time": "09:30", "description": "", "hours_spent": "2"},
        files={"screenshot": ("shot.png", b"\x89PNG", "image/png")},
    )
    assert invalid.status_code == 422
    assert fake.storage.uploads == []

    created = client.post(
        "/entries",
        data={"work_date": "2024-05-03", "work_time": "09:30", "description": "Fix login", "hours_spent": "2"},
        files={"screenshot": ("shot.png", b"\x89PNG", "image/png")},
        follow_redirects=False,
    )
    assert created.status_code == 303
    assert len(fake.storage.uploads) == 1
    assert fake.tables["work_entries"][0]["screenshot_url"].startswith("https://project.test/storage/v1/object/public/images/")


def test_admin_team_forms(client, fake):
    fake.tables["auth_users"] = [{"id": "u-dev", "email": "dev@example.com"}]
    _login(client, "boss@example.com")

    created = client.post("/admin/teams", data={"name": "Core", "description": "Platform"}, follow_redirects=False)
    team = fake.tables["teams"][0]
    assert created.status_code == 303
    assert created.headers["location"] == f"/admin/teams?team={team['id']}"
    assert team["description"] == "Platform"

    blank = client.post("/admin/teams", data={"name": "  "})
    assert blank.status_code == 422
    assert "Team name is required" in blank.text

    added = client.post(
        f"/admin/teams/{team['id']}/members",
        data={"email": "dev@example.com", "role": "developer", "hourly_rate": "40"},
        follow_redirects=False,
    )
    member = fake.tables["team_members"][0]
    assert added.status_code == 303
    assert added.headers["location"] == f"/admin/teams?team={team['id']}"
    assert member["user_id"] == "u-dev"
    assert member["hourly_rate"] == 40.0

    unknown = client.post(f"/admin/teams/{team['id']}/members", data={"email": "nobody@example.com"})
    assert unknown.status_code == 422
    assert "User not found with this email" in unknown.text

    removed = client.post(
        f"/admin/members/{member['id']}/remove",
        data={"team_id": team["id"]},
        follow_redirects=False,
    )
    assert removed.status_code == 303
    assert removed.headers["location"] == f"/admin/teams?team={team['id']}"
    assert fake.tables["team_members"][0]["is_active"] is False

    assert client.post("/admin/members/missing/remove", data={}).status_code == 404


def test_admin_task_forms(client, fake):
    _login(client, "boss@example.com")

    created = client.post(
        "/admin/tasks",
        data={"title": "Ship v2", "team_id": "t1", "priority": "high", "estimated_hours": "4", "due_date": "2024-06-01"},
        follow_redirects=False,
    )
    task = fake.tables["tasks"][0]
    assert created.status_code == 303
    assert created.headers["location"] == "/admin/tasks"
    assert task["status"] == "pending"
    assert task["priority"] == "high"

    invalid = client.post("/admin/tasks", data={"title": "", "team_id": "t1"})
    assert invalid.status_code == 422
    assert "Task title is required" in invalid.text
    assert len(fake.tables["tasks"]) == 1

    skipped = client.post(f"/admin/tasks/{task['id']}/status", data={"status": "completed"})
    assert skipped.status_code == 422
    assert skipped.json()["message"] == "Cannot move a task from pending to completed"

    started = client.post(
        f"/admin/tasks/{task['id']}/status",
        data={"status": "in_progress", "status_filter": "pending"},
        follow_redirects=False,
    )
    assert started.status_code == 303
    assert started.headers["location"] == "/admin/tasks?status=pending"
    assert fake.tables["tasks"][0]["status"] == "in_progress"

    assert client.post("/admin/tasks/missing/status", data={"status": "in_progress"}).status_code == 404


def test_admin_settings_form(client, fake):
    _login(client, "boss@example.com")

    saved = client.post("/admin/settings", data={"company_name": " Acme Corp "}, follow_redirects=False)
    assert saved.status_code == 303
    assert saved.headers["location"] == "/admin/settings?saved=1"
    assert fake.tables["admin_users"][0]["company_name"] == "Acme Corp"
    assert "Settings saved" in client.get("/admin/settings", params={"saved": 1}).text

    blank = client.post("/admin/settings", data={"company_name": ""})
    assert blank.status_code == 422
    assert "company_name is required" in blank.text


def test_admin_reports_export_and_work_details(client, fake):
    fake.tables["team_members"] = [
        {
            "id": "m1",
            "team_id": "t1",
            "user_id": "u-dev",
            "role": "developer",
            "hourly_rate": 40,
            "is_active": True,
            "teams": {"name": "Core"},
            "user_profiles": {"full_name": "Dev One"},
            "auth_users": {"id": "u-dev", "email": "dev@example.com"},
        }
    ]
    fake.tables["work_entries"] = [
        {
            "id": "w1",
            "user_id": "u-dev",
            "work_date": "2024-05-03",
            "hours_spent": 2.5,
            "description": "Auth refactor",
            "task_work_entries": [{"tasks": {"title": "Login revamp"}}],
        },
        {"id": "w2", "user_id": "u-dev", "work_date": "2024-04-30", "hours_spent": 1, "description": "April work"},
    ]
    _login(client, "boss@example.com")

    exported = client.get("/admin/reports/export", params={"month": "2024-05"})
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
    assert exported.headers["content-disposition"] == 'attachment; filename="developer-reports-2024-05.csv"'
    rows = list(csv.reader(io.StringIO(exported.text)))
    assert rows[0][0] == "Name"
    assert rows[1] == ["Dev One", "dev@example.com", "Core", "developer", "40.00", "2.50", "100.00", "0", "1", "2024-05-03"]

    details = client.get("/admin/reports", params={"month": "2024-05", "developer": "u-dev"})
    assert details.status_code == 200
    assert "work details" in details.text
    assert "Login revamp" in details.text
    assert "April work" not in details.text
