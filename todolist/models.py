from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, List, Optional, Tuple

from . import config
from .errors import ValidationFailed


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# === Domain objects ===


@dataclass(frozen=True)
class Identity:
    id: int
    username: str


@dataclass(frozen=True)
class TaskState:
    title: str
    is_completed: bool
    is_important: bool
    completed_at: Optional[datetime]


@dataclass(frozen=True)
class TaskUpdate:
    """Partial update of a task. Fields left as ``UNSET`` are not touched."""

    title: Any = UNSET
    is_completed: Any = UNSET
    is_important: Any = UNSET

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> TaskUpdate:
        known = {k: v for k, v in fields.items() if k in ("title", "is_completed", "is_important")}
        # a null flag means "leave it alone"; a null title is still a validation error
        for flag in ("is_completed", "is_important"):
            if known.get(flag, UNSET) is None:
                del known[flag]
        return cls(**known)

    def is_empty(self) -> bool:
        return all(v is UNSET for v in (self.title, self.is_completed, self.is_important))


# === Validation ===


def normalize_title(title: Optional[str]) -> str:
    trimmed = (title or "").strip()
    if not trimmed:
        raise ValidationFailed("Task title is required", field="title")
    if len(trimmed) > config.TASK_TITLE_MAX:
        raise ValidationFailed(
            f"Task title must not exceed {config.TASK_TITLE_MAX} characters", field="title"
        )
    return trimmed


def normalize_list_name(name: Optional[str]) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationFailed("List name is required", field="name")
    if len(trimmed) > config.LIST_NAME_MAX:
        raise ValidationFailed(
            f"List name must not exceed {config.LIST_NAME_MAX} characters", field="name"
        )
    return trimmed


def require_credentials(username: Optional[str], password: Optional[str]) -> None:
    if not username or not password:
        raise ValidationFailed("Username and password are required")


def validate_credentials(username: Optional[str], password: Optional[str]) -> None:
    require_credentials(username, password)
    if len(username) < config.USERNAME_MIN:
        raise ValidationFailed(
            f"Username must be at least {config.USERNAME_MIN} characters", field="username"
        )
    if len(username) > config.USERNAME_MAX:
        raise ValidationFailed(
            f"Username must not exceed {config.USERNAME_MAX} characters", field="username"
        )
    if len(password) < config.PASSWORD_MIN:
        raise ValidationFailed(
            f"Password must be at least {config.PASSWORD_MIN} characters", field="password"
        )


# === Partial updates ===


def apply_task_update(
    state: TaskState, update: TaskUpdate, now: datetime
) -> Tuple[TaskState, List[str]]:
    """Return the task state after ``update`` and the columns that changed.

    ``completed_at`` moves in lockstep with ``is_completed``: it is stamped
    with ``now`` on the false -> true transition and cleared on true -> false.
    Re-sending the current completion value keeps the original timestamp.
    """
    changes: dict[str, Any] = {}

    if update.title is not UNSET:
        title = normalize_title(update.title)
        if title != state.title:
            changes["title"] = title

    if update.is_completed is not UNSET:
        completed = bool(update.is_completed)
        if completed != state.is_completed:
            changes["is_completed"] = completed
            changes["completed_at"] = now if completed else None

    if update.is_important is not UNSET:
        important = bool(update.is_important)
        if important != state.is_important:
            changes["is_important"] = important

    return replace(state, **changes), list(changes)
