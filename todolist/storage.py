from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import config
from .auth import hash_password, verify_password
from .db import Task, TaskList, User, now_utc
from .errors import Conflict, Forbidden, InvalidCredentials, NotFound
from .models import (
    TaskState,
    TaskUpdate,
    apply_task_update,
    normalize_list_name,
    normalize_title,
    require_credentials,
    validate_credentials,
)
from .ordering import Order, next_position, plan_reorder, validate_orders

logger = logging.getLogger(__name__)


class Storage:
    """Users, lists and tasks over one SQLAlchemy session.

    Every lookup is scoped to the calling user; rows owned by someone else
    are reported exactly like rows that do not exist.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # === Users ===
    def register(self, username: str, password: str) -> Tuple[User, TaskList]:
        validate_credentials(username, password)
        exists = self.db.scalar(select(User.id).where(User.username == username))
        if exists is not None:
            raise Conflict("Username already exists", {"field": "username"})

        user = User(username=username, password_hash=hash_password(password))
        default_list = TaskList(name=config.DEFAULT_LIST_NAME, is_default=True)
        user.lists.append(default_list)
        try:
            with self._transaction():
                self.db.add(user)
        except IntegrityError:
            raise Conflict("Username already exists", {"field": "username"})
        logger.info("registered user %s (id=%s)", user.username, user.id)
        return user, default_list

    def authenticate(self, username: str, password: str) -> User:
        require_credentials(username, password)
        user = self.db.scalar(select(User).where(User.username == username))
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("failed login for username %r", username)
            raise InvalidCredentials()
        return user

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def delete_user(self, user_id: int) -> None:
        user = self.get_user(user_id)
        with self._transaction():
            self.db.delete(user)
        logger.info("deleted user id=%s", user_id)

    # === Lists ===
    def list_lists(self, user_id: int) -> List[TaskList]:
        stmt = (
            select(TaskList)
            .where(TaskList.user_id == user_id)
            .order_by(TaskList.is_default.desc(), TaskList.created_at.asc(), TaskList.id.asc())
        )
        return list(self.db.scalars(stmt))

    def get_list(self, user_id: int, list_id: int) -> TaskList:
        task_list = self.db.scalar(
            select(TaskList).where(TaskList.id == list_id, TaskList.user_id == user_id)
        )
        if task_list is None:
            raise NotFound("List not found")
        return task_list

    def _ensure_unique_name(self, user_id: int, name: str, exclude_id: int | None = None) -> None:
        stmt = select(TaskList.id).where(TaskList.user_id == user_id, TaskList.name == name)
        if exclude_id is not None:
            stmt = stmt.where(TaskList.id != exclude_id)
        if self.db.scalar(stmt) is not None:
            raise Conflict("List with this name already exists", {"field": "name"})

    def create_list(self, user_id: int, name: str) -> TaskList:
        name = normalize_list_name(name)
        owner = self.get_user(user_id)
        self._ensure_unique_name(owner.id, name)
        task_list = TaskList(user_id=owner.id, name=name, is_default=False)
        try:
            with self._transaction():
                self.db.add(task_list)
        except IntegrityError:
            self._ensure_unique_name(owner.id, name)
            raise
        return task_list

    def rename_list(self, user_id: int, list_id: int, name: str) -> TaskList:
        name = normalize_list_name(name)
        task_list = self.get_list(user_id, list_id)
        if task_list.is_default:
            raise Forbidden("Cannot rename default list")
        self._ensure_unique_name(user_id, name, exclude_id=task_list.id)
        try:
            with self._transaction():
                task_list.name = name
        except IntegrityError:
            self._ensure_unique_name(user_id, name, exclude_id=list_id)
            raise
        return task_list

    def delete_list(self, user_id: int, list_id: int) -> None:
        task_list = self.get_list(user_id, list_id)
        if task_list.is_default:
            raise Forbidden("Cannot delete default list")
        with self._transaction():
            self.db.delete(task_list)

    # === Tasks ===
    def _tasks_in(self, list_id: int) -> List[Task]:
        stmt = select(Task).where(Task.list_id == list_id).order_by(Task.position.asc(), Task.id.asc())
        return list(self.db.scalars(stmt))

    def list_tasks(self, user_id: int, list_id: int) -> List[Task]:
        task_list = self.get_list(user_id, list_id)
        return self._tasks_in(task_list.id)

    def important_tasks(self, user_id: int) -> List[Tuple[Task, str]]:
        stmt = (
            select(Task, TaskList.name)
            .join(TaskList, Task.list_id == TaskList.id)
            .where(Task.user_id == user_id, Task.is_important)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        return [(task, list_name) for task, list_name in self.db.execute(stmt)]

    def get_task(self, user_id: int, task_id: int) -> Task:
        task = self.db.scalar(select(Task).where(Task.id == task_id, Task.user_id == user_id))
        if task is None:
            raise NotFound("Task not found")
        return task

    def create_task(self, user_id: int, list_id: int, title: str) -> Task:
        title = normalize_title(title)
        task_list = self.get_list(user_id, list_id)
        with self._transaction():
            max_position = self.db.scalar(
                select(func.max(Task.position)).where(Task.list_id == task_list.id)
            )
            task = Task(
                list_id=task_list.id,
                user_id=task_list.user_id,
                title=title,
                is_completed=False,
                is_important=False,
                position=next_position(max_position),
            )
            self.db.add(task)
        return task

    def update_task(self, user_id: int, task_id: int, update: TaskUpdate) -> Task:
        task = self.get_task(user_id, task_id)
        state = TaskState(
            title=task.title,
            is_completed=task.is_completed,
            is_important=task.is_important,
            completed_at=task.completed_at,
        )
        new_state, changed = apply_task_update(state, update, now_utc())
        if not changed:
            return task
        with self._transaction():
            for column in changed:
                setattr(task, column, getattr(new_state, column))
        return task

    def delete_task(self, user_id: int, task_id: int) -> None:
        task = self.get_task(user_id, task_id)
        with self._transaction():
            self.db.delete(task)

    def reorder_tasks(self, user_id: int, list_id: int, orders: Sequence[Order]) -> List[Task]:
        """Apply a batch of (task id, position) pairs to one list, all or nothing."""
        task_list = self.get_list(user_id, list_id)
        validate_orders(orders)
        with self._transaction():
            tasks = {
                t.id: t
                for t in self.db.scalars(
                    select(Task)
                    .where(Task.list_id == task_list.id, Task.user_id == user_id)
                    .with_for_update()
                )
            }
            writes = plan_reorder({tid: t.position for tid, t in tasks.items()}, orders)
            for task_id, position in writes.items():
                tasks[task_id].position = position
        return self._tasks_in(task_list.id)

