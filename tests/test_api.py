"""Tests for API endpoints."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.models import Todo
from tasknest.ordering import ensure_aware
from tasknest.schemas.todo import TodoResponse

from conftest import register


async def create_todo(client, headers, title, parent=None, tags=None):
    body = {"title": title}
    if parent:
        body["parent"] = parent
    if tags:
        body["tags"] = tags
    response = await client.post("/api/todos", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def list_todos(client, headers):
    response = await client.get("/api/todos", headers=headers)
    assert response.status_code == 200
    return response.json()["todos"]


def check_tree(roots):
    """Structural checks that hold for every tree the API returns."""
    for root in roots:
        assert root["parentId"] is None
        stack = [root]
        while stack:
            node = stack.pop()
            assert node["isCompleted"] == (node["completedAt"] is not None)
            for child in node["children"]:
                assert child["parentId"] == node["id"]
                assert child["order"] is None
                stack.append(child)


class TestHealthAPI:
    """Tests for health endpoint."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuthAPI:
    """Tests for auth endpoints."""

    @pytest.mark.asyncio
    async def test_register(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "New@Example.com", "password": "secret123", "name": "  New  "},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["name"] == "New"
        assert "password" not in str(data["user"]).lower()

    @pytest.mark.asyncio
    async def test_register_duplicate(self, client, auth_headers):
        response = await client.post(
            "/api/auth/register",
            json={"email": "ada@example.com", "password": "secret123", "name": "Ada"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists with this email"

    @pytest.mark.asyncio
    async def test_register_short_password(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "x@example.com", "password": "123", "name": "X"},
        )

        assert response.status_code == 400
        assert "password" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_login(self, client, auth_headers):
        response = await client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "secret123"},
        )

        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Ada"

    @pytest.mark.asyncio
    async def test_login_bad_credentials(self, client, auth_headers):
        response = await client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "wrong-one"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_profile(self, client, auth_headers):
        response = await client.get("/api/auth/profile", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "ada@example.com"

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/todos")

        assert response.status_code == 401
        assert response.json()["detail"] == "Access denied. No token provided."

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(
            "/api/todos", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"


class TestTodosAPI:
    """Tests for todo endpoints."""

    @pytest.mark.asyncio
    async def test_create_todo(self, client, auth_headers):
        data = await create_todo(client, auth_headers, "  Buy milk  ")

        assert data["title"] == "Buy milk"
        assert data["isCompleted"] is False
        assert data["completedAt"] is None
        assert data["order"] == 0
        assert data["tags"] == []
        assert data["children"] == []

    @pytest.mark.asyncio
    async def test_create_empty_title(self, client, auth_headers):
        response = await client.post("/api/todos", json={"title": "   "}, headers=auth_headers)

        assert response.status_code == 400
        assert "Title is required" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_create_title_too_long(self, client, auth_headers):
        response = await client.post("/api/todos", json={"title": "x" * 201}, headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_is_nested_and_ordered(self, client, auth_headers):
        milk = await create_todo(client, auth_headers, "Buy milk")
        await create_todo(client, auth_headers, "Walk dog")
        await create_todo(client, auth_headers, "Whole milk", parent=milk["id"])

        todos = await list_todos(client, auth_headers)

        assert [t["title"] for t in todos] == ["Walk dog", "Buy milk"]
        assert [c["title"] for c in todos[1]["children"]] == ["Whole milk"]
        check_tree(todos)

    @pytest.mark.asyncio
    async def test_get_todo(self, client, auth_headers):
        created = await create_todo(client, auth_headers, "Read")

        response = await client.get(f"/api/todos/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["title"] == "Read"

    @pytest.mark.asyncio
    async def test_get_todo_includes_children(self, client, auth_headers):
        root = await create_todo(client, auth_headers, "Trip")
        child = await create_todo(client, auth_headers, "Pack", parent=root["id"])
        await create_todo(client, auth_headers, "Socks", parent=child["id"])

        response = await client.get(f"/api/todos/{root['id']}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [c["title"] for c in data["children"]] == ["Pack"]
        assert [g["title"] for g in data["children"][0]["children"]] == ["Socks"]

        response = await client.patch(f"/api/todos/{root['id']}/toggle", headers=auth_headers)
        assert [c["title"] for c in response.json()["children"]] == ["Pack"]

    @pytest.mark.asyncio
    async def test_corrupt_tree_hides_details(self, client, auth_headers, test_engine):
        user_id = (await client.get("/api/auth/profile", headers=auth_headers)).json()["user"]["id"]
        async with AsyncSession(test_engine, expire_on_commit=False) as session:
            a = Todo(id="loop-a", user_id=user_id, title="A", parent_id="loop-b", child_ids=["loop-b"])
            b = Todo(id="loop-b", user_id=user_id, title="B", parent_id="loop-a", child_ids=["loop-a"])
            session.add_all([a, b])
            await session.commit()

        response = await client.get("/api/todos", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    @pytest.mark.asyncio
    async def test_get_todo_not_found(self, client, auth_headers):
        response = await client.get("/api/todos/nonexistent", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Todo not found"

    @pytest.mark.asyncio
    async def test_update_todo(self, client, auth_headers):
        created = await create_todo(client, auth_headers, "Original")

        response = await client.put(
            f"/api/todos/{created['id']}",
            json={"title": "Updated", "description": "More detail"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Updated"
        assert data["description"] == "More detail"

    @pytest.mark.asyncio
    async def test_toggle_todo(self, client, auth_headers):
        created = await create_todo(client, auth_headers, "Finish")

        response = await client.patch(f"/api/todos/{created['id']}/toggle", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["isCompleted"] is True
        assert response.json()["completedAt"] is not None

        response = await client.patch(f"/api/todos/{created['id']}/toggle", headers=auth_headers)
        assert response.json()["isCompleted"] is False
        assert response.json()["completedAt"] is None

    @pytest.mark.asyncio
    async def test_completed_sort_after_open(self, client, auth_headers):
        done = await create_todo(client, auth_headers, "Done")
        await create_todo(client, auth_headers, "Open")
        await client.patch(f"/api/todos/{done['id']}/toggle", headers=auth_headers)

        todos = await list_todos(client, auth_headers)

        assert [t["title"] for t in todos] == ["Open", "Done"]
        check_tree(todos)

    @pytest.mark.asyncio
    async def test_reorder(self, client, auth_headers):
        a = await create_todo(client, auth_headers, "A")
        b = await create_todo(client, auth_headers, "B")
        c = await create_todo(client, auth_headers, "C")

        response = await client.patch(
            "/api/todos/reorder",
            json={"todoIds": [a["id"], b["id"], c["id"]]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Todo order updated successfully"
        assert [t["title"] for t in await list_todos(client, auth_headers)] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_reorder_unknown_id_changes_nothing(self, client, auth_headers):
        a = await create_todo(client, auth_headers, "A")
        b = await create_todo(client, auth_headers, "B")

        response = await client.patch(
            "/api/todos/reorder",
            json={"todoIds": [a["id"], "missing", b["id"]]},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert [t["title"] for t in await list_todos(client, auth_headers)] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_priority(self, client, auth_headers):
        a = await create_todo(client, auth_headers, "A")
        await create_todo(client, auth_headers, "B")

        response = await client.patch(
            f"/api/todos/{a['id']}/priority",
            json={"isPriority": True},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["isPriority"] is True
        assert response.json()["order"] == 0

    @pytest.mark.asyncio
    async def test_priority_on_child_rejected(self, client, auth_headers):
        root = await create_todo(client, auth_headers, "Root")
        child = await create_todo(client, auth_headers, "Child", parent=root["id"])

        response = await client.patch(
            f"/api/todos/{child['id']}/priority",
            json={"isPriority": True},
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_cascades(self, client, auth_headers):
        root = await create_todo(client, auth_headers, "Root")
        child = await create_todo(client, auth_headers, "Child", parent=root["id"])
        await create_todo(client, auth_headers, "Grandchild", parent=child["id"])

        response = await client.delete(f"/api/todos/{root['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 3
        assert await list_todos(client, auth_headers) == []

    @pytest.mark.asyncio
    async def test_delete_child_updates_parent(self, client, auth_headers):
        root = await create_todo(client, auth_headers, "Root")
        child = await create_todo(client, auth_headers, "Child", parent=root["id"])

        response = await client.delete(f"/api/todos/{child['id']}", headers=auth_headers)
        assert response.json()["deletedCount"] == 1

        todos = await list_todos(client, auth_headers)
        assert todos[0]["children"] == []
        check_tree(todos)

    @pytest.mark.asyncio
    async def test_delete_not_found(self, client, auth_headers):
        response = await client.delete("/api/todos/nonexistent", headers=auth_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_completed(self, client, auth_headers):
        done = await create_todo(client, auth_headers, "Done")
        await create_todo(client, auth_headers, "Under done", parent=done["id"])
        await create_todo(client, auth_headers, "Open")
        await client.patch(f"/api/todos/{done['id']}/toggle", headers=auth_headers)

        response = await client.delete("/api/todos/completed", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 2
        assert [t["title"] for t in await list_todos(client, auth_headers)] == ["Open"]

    @pytest.mark.asyncio
    async def test_delete_completed_on_day(self, client, auth_headers):
        done = await create_todo(client, auth_headers, "Done")
        response = await client.patch(f"/api/todos/{done['id']}/toggle", headers=auth_headers)
        completed_at = TodoResponse.model_validate(response.json()).completed_at
        day = ensure_aware(completed_at).astimezone().date()

        response = await client.delete("/api/todos/completed/2001-01-01", headers=auth_headers)
        assert response.json()["deletedCount"] == 0

        response = await client.delete(
            f"/api/todos/completed/{day.isoformat()}", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["deletedCount"] == 1

    @pytest.mark.asyncio
    async def test_delete_completed_bad_date(self, client, auth_headers):
        response = await client.delete("/api/todos/completed/yesterday", headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_users_cannot_see_each_other(self, client, auth_headers):
        theirs = await create_todo(client, auth_headers, "Private")
        bob = await register(client, email="bob@example.com", name="Bob")

        assert await list_todos(client, bob) == []
        response = await client.patch(f"/api/todos/{theirs['id']}/toggle", headers=bob)
        assert response.status_code == 404


class TestTagsAPI:
    """Tests for tag endpoints."""

    @pytest.mark.asyncio
    async def test_create_tag(self, client, auth_headers):
        response = await client.post(
            "/api/tags",
            json={"name": "urgent", "color": "#FF0000"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["name"] == "urgent"
        assert response.json()["color"] == "#FF0000"

    @pytest.mark.asyncio
    async def test_create_existing_tag_returns_it(self, client, auth_headers):
        first = await client.post("/api/tags", json={"name": "home"}, headers=auth_headers)
        second = await client.post("/api/tags", json={"name": "home"}, headers=auth_headers)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]

    @pytest.mark.asyncio
    async def test_invalid_color(self, client, auth_headers):
        response = await client.post(
            "/api/tags", json={"name": "bad", "color": "red"}, headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_tags(self, client, auth_headers):
        for name in ("work", "errand"):
            await client.post("/api/tags", json={"name": name}, headers=auth_headers)

        response = await client.get("/api/tags", headers=auth_headers)

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["errand", "work"]

    @pytest.mark.asyncio
    async def test_update_tag(self, client, auth_headers):
        created = (await client.post("/api/tags", json={"name": "wrk"}, headers=auth_headers)).json()

        response = await client.put(
            f"/api/tags/{created['id']}", json={"name": "work"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "work"

    @pytest.mark.asyncio
    async def test_delete_tag_removes_it_from_todos(self, client, auth_headers):
        tag = (await client.post("/api/tags", json={"name": "errand"}, headers=auth_headers)).json()
        await client.post("/api/tags", json={"name": "keep"}, headers=auth_headers)
        root = await create_todo(client, auth_headers, "Shop", tags=[tag["id"]])
        await create_todo(client, auth_headers, "Bread", parent=root["id"], tags=[tag["id"]])
        await create_todo(client, auth_headers, "Post office", tags=[tag["id"]])

        response = await client.delete(f"/api/tags/{tag['id']}", headers=auth_headers)
        assert response.status_code == 200

        todos = await list_todos(client, auth_headers)
        assert len(todos) == 2
        for todo in todos:
            assert todo["tags"] == []
            for child in todo["children"]:
                assert child["tags"] == []

        response = await client.get("/api/tags", headers=auth_headers)
        assert [t["name"] for t in response.json()] == ["keep"]

        response = await client.get(f"/api/tags/{tag['id']}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_todo_with_tag(self, client, auth_headers):
        tag = (await client.post("/api/tags", json={"name": "work"}, headers=auth_headers)).json()

        data = await create_todo(client, auth_headers, "Report", tags=[tag["id"]])

        assert [t["name"] for t in data["tags"]] == ["work"]
