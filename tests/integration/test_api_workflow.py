"""End-to-end HTTP tests over the ASGI app.

Tests cover:
- Login and bearer authentication
- Project and task lifecycle through the API
- 403 versus 404 for related and unrelated callers
- Progress log chain, notifications and the activity log
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from worktrack.database.models.base import utcnow

PASSWORD = "secret123"


@pytest.fixture
async def project_id(client: AsyncClient, auth_headers, manager, member) -> str:
    response = await client.post(
        "/projects/",
        json={"name": "Website", "description": "Public site", "members": [str(member.id)]},
        headers=auth_headers(manager),
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
async def task_id(client: AsyncClient, auth_headers, manager, member, project_id) -> str:
    response = await client.post(
        "/tasks/",
        json={"project_id": project_id, "title": "Landing page", "assigned_to": str(member.id)},
        headers=auth_headers(manager),
    )
    assert response.status_code == 201
    return response.json()[0]["id"]


class TestAuth:
    """Login and bearer tokens."""

    async def test_login_returns_usable_token(self, client: AsyncClient, member) -> None:
        response = await client.post(
            "/auth/login", json={"email": member.email, "password": PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "member"
        assert "password_hash" not in body["user"]

        listed = await client.get(
            "/projects/", headers={"Authorization": f"Bearer {body['access_token']}"}
        )
        assert listed.status_code == 200

    async def test_wrong_password(self, client: AsyncClient, member) -> None:
        response = await client.post(
            "/auth/login", json={"email": member.email, "password": "nope-nope"}
        )
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid email or password"}

    async def test_missing_and_bad_tokens(self, client: AsyncClient) -> None:
        missing = await client.get("/tasks/")
        assert missing.status_code == 401
        assert missing.headers["www-authenticate"] == "Bearer"

        bad = await client.get("/tasks/", headers={"Authorization": "Bearer garbage"})
        assert bad.status_code == 401
        assert bad.json() == {"detail": "Invalid or expired token"}

    async def test_deactivated_user_is_forbidden(
        self, client: AsyncClient, auth_headers, admin, member
    ) -> None:
        headers = auth_headers(member)
        toggled = await client.patch(
            f"/users/{member.id}/toggle-status", headers=auth_headers(admin)
        )
        assert toggled.status_code == 200
        assert toggled.json()["is_active"] is False

        response = await client.get("/projects/", headers=headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "account deactivated"


class TestProjects:
    """Project endpoints."""

    async def test_create_and_read(
        self, client: AsyncClient, auth_headers, manager, member, project_id
    ) -> None:
        response = await client.get(f"/projects/{project_id}", headers=auth_headers(member))
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Website"
        assert body["manager"]["id"] == str(manager.id)
        assert [m["id"] for m in body["members"]] == [str(member.id)]
        assert body["status"] == "active"

    async def test_unrelated_manager_gets_404(
        self, client: AsyncClient, auth_headers, other_manager, project_id
    ) -> None:
        response = await client.get(f"/projects/{project_id}", headers=auth_headers(other_manager))
        assert response.status_code == 404
        assert response.json() == {"detail": "Project not found"}

    async def test_member_cannot_update(
        self, client: AsyncClient, auth_headers, member, project_id
    ) -> None:
        response = await client.put(
            f"/projects/{project_id}", json={"status": "on-hold"}, headers=auth_headers(member)
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "role not permitted"

    async def test_membership_endpoints(
        self, client: AsyncClient, auth_headers, manager, other_member, project_id
    ) -> None:
        headers = auth_headers(manager)
        added = await client.post(
            f"/projects/{project_id}/add-member",
            json={"user_id": str(other_member.id)},
            headers=headers,
        )
        assert added.status_code == 200
        assert str(other_member.id) in [m["id"] for m in added.json()["members"]]

        removed = await client.delete(
            f"/projects/{project_id}/remove-member/{other_member.id}", headers=headers
        )
        assert removed.status_code == 200
        assert str(other_member.id) not in [m["id"] for m in removed.json()["members"]]

    async def test_invalid_member_reports_field(
        self, client: AsyncClient, auth_headers, manager
    ) -> None:
        response = await client.post(
            "/projects/",
            json={"name": "Website", "members": [str(manager.id)]},
            headers=auth_headers(manager),
        )
        assert response.status_code == 422
        assert response.json()["field"] == "members"

    async def test_delete(self, client: AsyncClient, auth_headers, manager, project_id, task_id) -> None:
        headers = auth_headers(manager)
        response = await client.delete(f"/projects/{project_id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == project_id

        assert (await client.get(f"/tasks/{task_id}", headers=headers)).status_code == 404


class TestTasks:
    """Task endpoints."""

    async def test_bare_collection_path_redirects(
        self, client: AsyncClient, auth_headers, manager, task_id
    ) -> None:
        headers = auth_headers(manager)

        response = await client.get("/tasks", headers=headers)
        assert response.status_code == 307
        assert response.headers["location"].endswith("/tasks/")

        followed = await client.get("/tasks", headers=headers, follow_redirects=True)
        assert followed.status_code == 200
        assert [t["id"] for t in followed.json()] == [task_id]

    async def test_multi_assignee_create(
        self, client: AsyncClient, auth_headers, manager, member, other_member, project_id
    ) -> None:
        headers = auth_headers(manager)
        await client.post(
            f"/projects/{project_id}/add-member",
            json={"user_id": str(other_member.id)},
            headers=headers,
        )

        response = await client.post(
            "/tasks/",
            json={
                "project_id": project_id,
                "title": "Review",
                "assigned_to": [str(member.id), str(other_member.id)],
                "priority": "urgent",
            },
            headers=headers,
        )
        assert response.status_code == 201
        created = response.json()
        assert [t["assigned_to_id"] for t in created] == [str(member.id), str(other_member.id)]
        assert {t["priority"] for t in created} == {"urgent"}
        assert created[0]["assignee"]["name"] == "Mia Member"

    async def test_member_status_patch_on_foreign_task_is_403(
        self, client: AsyncClient, auth_headers, manager, other_member, project_id
    ) -> None:
        headers = auth_headers(manager)
        await client.post(
            f"/projects/{project_id}/add-member",
            json={"user_id": str(other_member.id)},
            headers=headers,
        )
        created = await client.post(
            "/tasks/", json={"project_id": project_id, "title": "Not yours"}, headers=headers
        )
        task_id = created.json()[0]["id"]

        response = await client.patch(
            f"/tasks/{task_id}/status",
            json={"status": "completed"},
            headers=auth_headers(other_member),
        )
        assert response.status_code == 403
        assert response.json() == {"detail": "not assignee", "reason": "not assignee"}

    async def test_unrelated_manager_gets_404(
        self, client: AsyncClient, auth_headers, other_manager, task_id
    ) -> None:
        headers = auth_headers(other_manager)
        assert (await client.get(f"/tasks/{task_id}", headers=headers)).status_code == 404
        patched = await client.patch(
            f"/tasks/{task_id}/status", json={"status": "completed"}, headers=headers
        )
        assert patched.status_code == 404

    async def test_assignee_status_patch(
        self, client: AsyncClient, auth_headers, member, task_id
    ) -> None:
        response = await client.patch(
            f"/tasks/{task_id}/status", json={"status": "in-progress"}, headers=auth_headers(member)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "in-progress"
        assert response.json()["version"] == 2

    async def test_update_keeps_and_clears_deadline(
        self, client: AsyncClient, auth_headers, manager, task_id
    ) -> None:
        headers = auth_headers(manager)
        deadline = (utcnow() + timedelta(days=2)).replace(microsecond=0)

        set_response = await client.put(
            f"/tasks/{task_id}", json={"deadline": deadline.isoformat()}, headers=headers
        )
        assert set_response.json()["deadline"] is not None

        kept = await client.put(f"/tasks/{task_id}", json={"title": "Renamed"}, headers=headers)
        assert kept.json()["deadline"] is not None
        assert kept.json()["title"] == "Renamed"

        cleared = await client.put(f"/tasks/{task_id}", json={"deadline": None}, headers=headers)
        assert cleared.json()["deadline"] is None

    async def test_assign_to_non_member(
        self, client: AsyncClient, auth_headers, manager, other_member, task_id
    ) -> None:
        response = await client.patch(
            f"/tasks/{task_id}/assign",
            json={"assigned_to": str(other_member.id)},
            headers=auth_headers(manager),
        )
        assert response.status_code == 422
        assert response.json()["field"] == "assigned_to"

    async def test_admin_cannot_mutate(
        self, client: AsyncClient, auth_headers, admin, task_id
    ) -> None:
        headers = auth_headers(admin)
        assert (await client.get(f"/tasks/{task_id}", headers=headers)).status_code == 200
        response = await client.delete(f"/tasks/{task_id}", headers=headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "role not permitted"


class TestTaskLogs:
    """Progress log chain endpoints."""

    async def test_append_and_read(
        self, client: AsyncClient, auth_headers, manager, member, task_id
    ) -> None:
        headers = auth_headers(member)
        first = await client.post(
            f"/tasks/{task_id}/logs",
            json={"content": "Wireframes done", "progress_percent": 40},
            headers=headers,
        )
        assert first.status_code == 201
        second = await client.post(
            f"/tasks/{task_id}/logs",
            json={"content": "Shipped", "progress_percent": 100, "status": "completed"},
            headers=headers,
        )
        assert second.json()["status_at_entry"] == "completed"

        chain = await client.get(f"/tasks/{task_id}/logs", headers=auth_headers(manager))
        assert chain.status_code == 200
        assert [e["content"] for e in chain.json()] == ["Wireframes done", "Shipped"]
        assert chain.json()[0]["author"]["name"] == "Mia Member"

        task = await client.get(f"/tasks/{task_id}", headers=auth_headers(manager))
        assert task.json()["status"] == "completed"

    async def test_manager_cannot_append(
        self, client: AsyncClient, auth_headers, manager, task_id
    ) -> None:
        response = await client.post(
            f"/tasks/{task_id}/logs", json={"content": "Mine"}, headers=auth_headers(manager)
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "not assignee"

    async def test_progress_out_of_range(
        self, client: AsyncClient, auth_headers, member, task_id
    ) -> None:
        response = await client.post(
            f"/tasks/{task_id}/logs",
            json={"content": "Too much", "progress_percent": 150},
            headers=auth_headers(member),
        )
        assert response.status_code == 422
        assert response.json()["field"] == "progress_percent"


class TestNotificationsAndActivity:
    """Inbox and login activity endpoints."""

    async def test_inbox_flow(self, client: AsyncClient, auth_headers, member, task_id) -> None:
        headers = auth_headers(member)

        inbox = await client.get("/notifications/", headers=headers)
        assert inbox.status_code == 200
        body = inbox.json()
        assert body["unread_count"] == 2
        assert [n["type"] for n in body["notifications"]] == [
            "task_assigned",
            "project_member_added",
        ]

        first_id = body["notifications"][0]["id"]
        read = await client.patch(f"/notifications/{first_id}/read", headers=headers)
        assert read.status_code == 200
        assert read.json()["is_read"] is True

        unread = await client.get("/notifications/?unreadOnly=true", headers=headers)
        assert [n["id"] for n in unread.json()["notifications"]] == [
            body["notifications"][1]["id"]
        ]
        assert unread.json()["unread_count"] == 1

        marked = await client.patch("/notifications/mark-all-read", headers=headers)
        assert marked.json() == {"updated": 1}

    async def test_due_soon_on_listing(
        self, client: AsyncClient, auth_headers, manager, member, project_id
    ) -> None:
        await client.post(
            "/tasks/",
            json={
                "project_id": project_id,
                "title": "Hotfix",
                "assigned_to": [str(member.id)],
                "deadline": (utcnow() + timedelta(hours=3)).isoformat(),
            },
            headers=auth_headers(manager),
        )
        headers = auth_headers(member)
        await client.get("/tasks/", headers=headers)
        await client.get("/tasks/", headers=headers)

        inbox = await client.get("/notifications/", headers=headers)
        due = [n for n in inbox.json()["notifications"] if n["type"] == "due_soon"]
        assert len(due) == 1
        assert due[0]["message"] == 'Task "Hotfix" is due in less than 24 hours'

    async def test_activity_logs(self, client: AsyncClient, auth_headers, admin, member) -> None:
        await client.post("/auth/login", json={"email": member.email, "password": PASSWORD})
        await client.post("/auth/login", json={"email": member.email, "password": "bad-pass"})

        own = await client.get("/activity-logs/", headers=auth_headers(member))
        assert [e["action"] for e in own.json()] == ["LOGIN_FAILED", "LOGIN_SUCCESS"]

        limited = await client.get("/activity-logs/?limit=1", headers=auth_headers(admin))
        assert len(limited.json()) == 1

    async def test_users_endpoints(self, client: AsyncClient, auth_headers, admin, member) -> None:
        created = await client.post(
            "/users/",
            json={"name": "Nia New", "email": "nia@example.com", "password": "secret1", "role": "manager"},
            headers=auth_headers(admin),
        )
        assert created.status_code == 201
        assert created.json()["role"] == "manager"

        forbidden = await client.get("/users/", headers=auth_headers(member))
        assert forbidden.status_code == 403

        admin_inbox = await client.get("/notifications/", headers=auth_headers(admin))
        messages = [n["message"] for n in admin_inbox.json()["notifications"]]
        assert "New user created: Nia New (manager)" in messages
