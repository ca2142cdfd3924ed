"""HTTP client for the to-do API.

The authentication state lives in an explicit :class:`AuthSession` backed by
a pluggable :class:`TokenStore`, so a command line tool can keep its token in
a file while tests keep it in memory.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import DEFAULT_LIST_NAME
from .ordering import move_item, orders_for

logger = logging.getLogger(__name__)

IMPORTANT = "important"
MY_DAY = "my-day"


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


class SessionExpired(ApiError):
    """The server rejected the credential; the session has been cleared."""


# === Token persistence ===


class TokenStore:
    def load(self) -> Tuple[Optional[str], Optional[dict]]:
        raise NotImplementedError

    def save(self, token: str, user: dict) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self) -> None:
        self._token: Optional[str] = None
        self._user: Optional[dict] = None

    def load(self) -> Tuple[Optional[str], Optional[dict]]:
        return self._token, self._user

    def save(self, token: str, user: dict) -> None:
        self._token, self._user = token, dict(user)

    def clear(self) -> None:
        self._token, self._user = None, None


class FileTokenStore(TokenStore):
    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> Tuple[Optional[str], Optional[dict]]:
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None, None
        except ValueError:
            logger.warning("ignoring unreadable token file %s", self.path)
            return None, None
        return data.get("token"), data.get("user")

    def save(self, token: str, user: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump({"token": token, "user": user}, fh)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class AuthSession:
    def __init__(self, store: Optional[TokenStore] = None) -> None:
        self.store = store or MemoryTokenStore()
        self.token, self.user = self.store.load()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def start(self, token: str, user: dict) -> None:
        self.token, self.user = token, user
        self.store.save(token, user)

    def end(self) -> None:
        self.token, self.user = None, None
        self.store.clear()

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}


# === API client ===


class TodoClient:
    """Thin wrapper over the REST endpoints.

    ``http`` is anything with a requests-style ``request(method, url, json=,
    headers=)``; it defaults to a :class:`requests.Session`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        session: Optional[AuthSession] = None,
        http: Any = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or AuthSession()
        self.http = http or requests.Session()

    def _call(self, method: str, path: str, body: Any = None) -> Any:
        kwargs: Dict[str, Any] = {"headers": self.session.headers()}
        if body is not None:
            kwargs["json"] = body
        resp = self.http.request(method, self.base_url + path, **kwargs)
        if resp.status_code == 204:
            return None
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code >= 400:
            err = (data or {}).get("error", {}) if isinstance(data, dict) else {}
            code = err.get("code", "http_error")
            message = err.get("message", f"HTTP {resp.status_code}")
            if resp.status_code == 401 and self.session.is_authenticated:
                self.session.end()
                raise SessionExpired(resp.status_code, code, message)
            raise ApiError(resp.status_code, code, message)
        return data

    # Auth
    def register(self, username: str, password: str) -> dict:
        data = self._call("POST", "/auth/register", {"username": username, "password": password})
        self.session.start(data["token"], data["user"])
        return data["user"]

    def login(self, username: str, password: str) -> dict:
        data = self._call("POST", "/auth/login", {"username": username, "password": password})
        self.session.start(data["token"], data["user"])
        return data["user"]

    def logout(self) -> None:
        self.session.end()

    def me(self) -> dict:
        return self._call("GET", "/auth/me")

    # Lists
    def lists(self) -> List[dict]:
        return self._call("GET", "/lists")

    def create_list(self, name: str) -> dict:
        return self._call("POST", "/lists", {"name": name})

    def rename_list(self, list_id: int, name: str) -> dict:
        return self._call("PUT", f"/lists/{list_id}", {"name": name})

    def delete_list(self, list_id: int) -> None:
        self._call("DELETE", f"/lists/{list_id}")

    # Tasks
    def tasks(self, list_id: int) -> List[dict]:
        return self._call("GET", f"/lists/{list_id}/tasks")

    def important_tasks(self) -> List[dict]:
        return self._call("GET", "/tasks/important")

    def create_task(self, list_id: int, title: str) -> dict:
        return self._call("POST", f"/lists/{list_id}/tasks", {"title": title})

    def update_task(self, task_id: int, **changes: Any) -> dict:
        return self._call("PATCH", f"/tasks/{task_id}", changes)

    def delete_task(self, task_id: int) -> None:
        self._call("DELETE", f"/tasks/{task_id}")

    def reorder_tasks(self, list_id: int, task_orders: List[dict]) -> List[dict]:
        return self._call("PATCH", f"/lists/{list_id}/tasks/reorder", {"taskOrders": task_orders})


class ListBoard:
    """Cached custom lists plus the current selection.

    The default list is kept out of :attr:`lists` and addressed through the
    :data:`MY_DAY` alias; :meth:`resolve` maps the alias to its real id.
    """

    def __init__(self, client: TodoClient) -> None:
        self.client = client
        self.lists: List[dict] = []
        self.default_id: Optional[int] = None
        self.selected_id: Any = MY_DAY

    def refresh(self) -> List[dict]:
        rows = self.client.lists()
        default = next((lst for lst in rows if lst["is_default"]), None)
        self.default_id = default["id"] if default else None
        self.lists = [lst for lst in rows if not lst["is_default"]]
        return self.lists

    def resolve(self, list_id: Any) -> Any:
        if list_id != MY_DAY:
            return list_id
        if self.default_id is None:
            self.refresh()
        return self.default_id

    def select(self, list_id: Any) -> None:
        self.selected_id = list_id

    @property
    def selected(self) -> Optional[dict]:
        if self.selected_id == MY_DAY:
            return {"id": MY_DAY, "name": DEFAULT_LIST_NAME, "is_default": True}
        if self.selected_id == IMPORTANT:
            return {"id": IMPORTANT, "name": "Important Tasks", "is_default": False}
        return next((lst for lst in self.lists if lst["id"] == self.selected_id), None)

    def create(self, name: str) -> dict:
        task_list = self.client.create_list(name)
        self.lists.append(task_list)
        self.selected_id = task_list["id"]
        return task_list

    def rename(self, list_id: int, name: str) -> dict:
        updated = self.client.rename_list(list_id, name)
        self.lists = [updated if lst["id"] == list_id else lst for lst in self.lists]
        return updated

    def remove(self, list_id: int) -> None:
        self.client.delete_list(list_id)
        self.lists = [lst for lst in self.lists if lst["id"] != list_id]
        if self.selected_id == list_id:
            self.selected_id = MY_DAY

    def board(self) -> "TaskBoard":
        """A :class:`TaskBoard` over the selected list."""
        return TaskBoard(self.client, self.selected_id, lists=self)


class TaskBoard:
    """Cached view of the tasks of one list, or of the Important view.

    ``list_id`` may be the :data:`MY_DAY` alias when a :class:`ListBoard` is
    given to resolve it.
    """

    def __init__(self, client: TodoClient, list_id: Any, lists: Optional[ListBoard] = None) -> None:
        self.client = client
        self.list_id = list_id
        self.lists = lists
        self.tasks: List[dict] = []

    @property
    def is_important_view(self) -> bool:
        return self.list_id == IMPORTANT

    @property
    def target_id(self) -> Any:
        if self.lists is not None:
            return self.lists.resolve(self.list_id)
        return self.list_id

    @property
    def active(self) -> List[dict]:
        return [t for t in self.tasks if not t["is_completed"]]

    @property
    def completed(self) -> List[dict]:
        return [t for t in self.tasks if t["is_completed"]]

    def refresh(self) -> List[dict]:
        if self.is_important_view:
            self.tasks = self.client.important_tasks()
        else:
            self.tasks = self.client.tasks(self.target_id)
        return self.tasks

    def _find(self, task_id: int) -> dict:
        for task in self.tasks:
            if task["id"] == task_id:
                return task
        raise KeyError(task_id)

    def _replace(self, updated: dict) -> dict:
        # task responses carry no list_name; the Important view keeps the cached one
        if self.is_important_view:
            cached = next((t for t in self.tasks if t["id"] == updated["id"]), {})
            updated = dict(updated, list_name=cached.get("list_name"))
        self.tasks = [updated if t["id"] == updated["id"] else t for t in self.tasks]
        return updated

    def add(self, title: str) -> dict:
        if self.is_important_view:
            raise ValueError("Cannot add tasks to Important view. Please select a specific list.")
        task = self.client.create_task(self.target_id, title)
        self.tasks.append(task)
        return task

    def rename(self, task_id: int, title: str) -> dict:
        return self._replace(self.client.update_task(task_id, title=title))

    def remove(self, task_id: int) -> None:
        self.client.delete_task(task_id)
        self.tasks = [t for t in self.tasks if t["id"] != task_id]

    def toggle_complete(self, task_id: int) -> dict:
        task = self._find(task_id)
        return self._replace(self.client.update_task(task_id, is_completed=not task["is_completed"]))

    def toggle_important(self, task_id: int) -> dict:
        task = self._find(task_id)
        updated = self.client.update_task(task_id, is_important=not task["is_important"])
        if self.is_important_view and task["is_important"]:
            self.tasks = [t for t in self.tasks if t["id"] != task_id]
            return updated
        return self._replace(updated)

    def move(self, old_index: int, new_index: int) -> List[dict]:
        """Drag an active task from ``old_index`` to ``new_index``."""
        if self.is_important_view:
            raise ValueError("Tasks in the Important view cannot be reordered")
        if old_index == new_index:
            return self.active
        reordered = move_item(self.active, old_index, new_index)
        self.tasks = reordered + self.completed
        self.client.reorder_tasks(self.target_id, orders_for(t["id"] for t in reordered))
        self.refresh()
        return self.active
