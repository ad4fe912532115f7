"""Thin async wrapper over the REST API."""

import logging
from datetime import date
from typing import Any

import httpx

from tasknest.schemas.auth import AuthResponse, UserResponse
from tasknest.schemas.tag import TagResponse
from tasknest.schemas.todo import TodoResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A request the server answered with an error status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class ApiClient:
    """One method per endpoint; responses are parsed into the API schemas."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport)
        self.token = token

    @property
    def token(self) -> str | None:
        return self._token

    @token.setter
    def token(self, value: str | None) -> None:
        self._token = value
        if value:
            self._http.headers["Authorization"] = f"Bearer {value}"
        else:
            self._http.headers.pop("Authorization", None)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._http.request(method, path, **kwargs)
        if response.is_error:
            try:
                message = response.json().get("detail", response.reason_phrase)
            except ValueError:
                message = response.text or response.reason_phrase
            logger.debug("%s %s failed: %s", method, path, message)
            raise ApiError(response.status_code, str(message))
        return response.json()

    # Auth

    async def register(self, email: str, password: str, name: str) -> AuthResponse:
        data = await self._request(
            "POST", "/auth/register", json={"email": email, "password": password, "name": name}
        )
        auth = AuthResponse.model_validate(data)
        self.token = auth.token
        return auth

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        auth = AuthResponse.model_validate(data)
        self.token = auth.token
        return auth

    async def profile(self) -> UserResponse:
        data = await self._request("GET", "/auth/profile")
        return UserResponse.model_validate(data["user"])

    # Todos

    async def list_todos(self) -> list[TodoResponse]:
        data = await self._request("GET", "/todos")
        return [TodoResponse.model_validate(item) for item in data["todos"]]

    async def create_todo(
        self,
        title: str,
        description: str | None = None,
        parent: str | None = None,
        tags: list[str] | None = None,
    ) -> TodoResponse:
        body: dict[str, Any] = {"title": title, "tags": tags or []}
        if description is not None:
            body["description"] = description
        if parent is not None:
            body["parent"] = parent
        return TodoResponse.model_validate(await self._request("POST", "/todos", json=body))

    async def update_todo(
        self,
        todo_id: str,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> TodoResponse:
        body = {
            key: value
            for key, value in (("title", title), ("description", description), ("tags", tags))
            if value is not None
        }
        return TodoResponse.model_validate(await self._request("PUT", f"/todos/{todo_id}", json=body))

    async def toggle_todo(self, todo_id: str) -> TodoResponse:
        return TodoResponse.model_validate(await self._request("PATCH", f"/todos/{todo_id}/toggle"))

    async def set_priority(self, todo_id: str, is_priority: bool) -> TodoResponse:
        data = await self._request(
            "PATCH", f"/todos/{todo_id}/priority", json={"isPriority": is_priority}
        )
        return TodoResponse.model_validate(data)

    async def reorder_todos(self, todo_ids: list[str]) -> None:
        await self._request("PATCH", "/todos/reorder", json={"todoIds": todo_ids})

    async def delete_todo(self, todo_id: str) -> int:
        data = await self._request("DELETE", f"/todos/{todo_id}")
        return data["deletedCount"]

    async def delete_completed(self) -> int:
        data = await self._request("DELETE", "/todos/completed")
        return data["deletedCount"]

    async def delete_completed_on(self, day: date) -> int:
        data = await self._request("DELETE", f"/todos/completed/{day.isoformat()}")
        return data["deletedCount"]

    # Tags

    async def list_tags(self) -> list[TagResponse]:
        return [TagResponse.model_validate(item) for item in await self._request("GET", "/tags")]

    async def create_tag(self, name: str, color: str | None = None) -> TagResponse:
        body = {"name": name} if color is None else {"name": name, "color": color}
        return TagResponse.model_validate(await self._request("POST", "/tags", json=body))

    async def update_tag(
        self, tag_id: str, name: str | None = None, color: str | None = None
    ) -> TagResponse:
        body = {key: value for key, value in (("name", name), ("color", color)) if value is not None}
        return TagResponse.model_validate(await self._request("PUT", f"/tags/{tag_id}", json=body))

    async def delete_tag(self, tag_id: str) -> None:
        await self._request("DELETE", f"/tags/{tag_id}")
