from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class UserOut(BaseModel):
  id: int
  username: str
  fullName: str | None
  email: str | None
  role: Literal["admin", "user"]
  avatarColor: str
  isActive: bool
  createdAt: datetime


class UserCreateIn(BaseModel):
  username: str = Field(min_length=1, max_length=120)
  password: str = Field(min_length=1, max_length=200)
  fullName: str | None = Field(default=None, max_length=200)
  email: str | None = Field(default=None, max_length=320)
  role: str = "user"
  avatarColor: str | None = Field(default=None, max_length=32)
  isActive: bool = True


class UserUpdateIn(BaseModel):
  username: str | None = Field(default=None, min_length=1, max_length=120)
  password: str | None = Field(default=None, min_length=1, max_length=200)
  fullName: str | None = Field(default=None, max_length=200)
  email: str | None = Field(default=None, max_length=320)
  role: str | None = None
  avatarColor: str | None = Field(default=None, max_length=32)
  isActive: bool | None = None


class RegisterIn(BaseModel):
  username: str = Field(min_length=1, max_length=120)
  password: str = Field(min_length=1, max_length=200)
  fullName: str | None = Field(default=None, max_length=200)
  email: str | None = Field(default=None, max_length=320)
  avatarColor: str | None = Field(default=None, max_length=32)


class BoardCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=120)


class BoardUpdateIn(BaseModel):
  name: str = Field(min_length=1, max_length=120)


class BoardOut(BaseModel):
  id: int
  name: str
  userId: int
  isArchived: bool
  createdAt: datetime


class CategoryCreateIn(BaseModel):
  boardId: int
  name: str = Field(min_length=1, max_length=120)
  color: str | None = Field(default=None, max_length=32)


class CategoryUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=120)
  color: str | None = Field(default=None, max_length=32)


class CategoryOut(BaseModel):
  id: int
  boardId: int
  name: str
  color: str
  order: int


class CategoryReorderIn(BaseModel):
  categoryIds: list[int]


class CustomFieldCreateIn(BaseModel):
  boardId: int
  name: str = Field(min_length=1, max_length=120)
  type: str
  options: str | None = None


class CustomFieldUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=120)
  type: str | None = None
  options: str | None = None


class CustomFieldOut(BaseModel):
  id: int
  boardId: int
  name: str
  type: str
  options: str | None
  optionList: list[str] = []


class TaskCreateIn(BaseModel):
  categoryId: int
  title: str
  description: str | None = None
  dueDate: str | None = None
  priority: str | None = None
  assignees: list[int] = []
  customData: dict[str, Any] | None = None


class TaskUpdateIn(BaseModel):
  # Only the keys present in the body are applied.
  title: str | None = None
  description: str | None = None
  dueDate: str | None = None
  priority: str | None = None
  categoryId: int | None = None
  isArchived: bool | None = None
  assignees: list[int] | None = None
  customData: dict[str, Any] | None = None
  comments: int | None = None


class TaskMoveIn(BaseModel):
  categoryId: int
  toIndex: int = 0


class TaskOut(BaseModel):
  id: int
  categoryId: int
  title: str
  description: str | None
  dueDate: str | None
  priority: str | None
  isArchived: bool
  assignees: list[int]
  customData: dict[str, Any]
  comments: int
  orderIndex: int
  createdAt: datetime


class TaskCustomDataOut(BaseModel):
  taskId: int
  boardId: int
  fields: list[CustomFieldOut]
  values: dict[str, Any]


class SettingOut(BaseModel):
  key: str
  value: str
  description: str | None
  updatedAt: datetime


class SettingUpdateIn(BaseModel):
  value: str


class ActorSummaryOut(BaseModel):
  id: int
  username: str
  email: str | None
  role: str
  avatarColor: str


class EventLogOut(BaseModel):
  id: int
  userId: int
  eventType: str
  entityType: str
  entityId: int
  details: dict[str, Any]
  ipAddress: str | None
  userAgent: str | None
  createdAt: datetime
  user: ActorSummaryOut | None = None


class PaginationOut(BaseModel):
  total: int
  page: int
  pageSize: int
  totalPages: int


class EventLogPageOut(BaseModel):
  logs: list[EventLogOut]
  pagination: PaginationOut
