from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    requestId: Optional[str] = None


class ErrorEnvelope(BaseModel):
    error: ErrorBody


class Health(BaseModel):
    status: str = "ok"


# === Auth ===


class CredentialsIn(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class AuthOut(BaseModel):
    user: UserOut
    token: str


# === Lists ===


class ListIn(BaseModel):
    name: Optional[str] = None


class ListOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_default: bool
    created_at: datetime


# === Tasks ===


class TaskIn(BaseModel):
    title: Optional[str] = None


class TaskPatch(BaseModel):
    title: Optional[str] = None
    is_completed: Optional[bool] = None
    is_important: Optional[bool] = None


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    list_id: int
    title: str
    is_completed: bool
    is_important: bool
    position: int
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class ImportantTaskOut(TaskOut):
    list_name: str


class TaskOrderIn(BaseModel):
    id: int
    position: int = Field(ge=0)


class ReorderIn(BaseModel):
    taskOrders: list[TaskOrderIn]
