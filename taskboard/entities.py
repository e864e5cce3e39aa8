from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


USER_ROLES = ("admin", "user")
TASK_PRIORITIES = ("low", "medium", "high")
CUSTOM_FIELD_TYPES = ("text", "number", "date", "select", "checkbox", "url")


@dataclass
class User:
  id: int
  username: str
  password_hash: str
  full_name: str | None = None
  email: str | None = None
  role: str = "user"
  avatar_color: str = "#6366f1"
  is_active: bool = True
  created_at: datetime = field(default_factory=utcnow)


@dataclass
class Board:
  id: int
  name: str
  user_id: int
  is_archived: bool = False
  created_at: datetime = field(default_factory=utcnow)


@dataclass
class Category:
  id: int
  name: str
  color: str
  board_id: int
  order: int


@dataclass
class CustomField:
  id: int
  name: str
  type: str
  board_id: int
  options: str | None = None

  def option_list(self) -> list[str]:
    if self.type != "select" or not self.options:
      return []
    return [o.strip() for o in self.options.split(",") if o.strip()]


@dataclass
class Task:
  id: int
  title: str
  category_id: int
  description: str | None = None
  due_date: str | None = None
  priority: str | None = None
  is_archived: bool = False
  assignees: list[int] = field(default_factory=list)
  custom_data: dict[str, Any] = field(default_factory=dict)
  comments: int = 0
  order_index: int = 0
  created_at: datetime = field(default_factory=utcnow)

  def snapshot(self) -> dict[str, Any]:
    return {
      "title": self.title,
      "description": self.description,
      "categoryId": self.category_id,
      "priority": self.priority,
      "dueDate": self.due_date,
      "assignees": list(self.assignees),
    }

  def full_snapshot(self) -> dict[str, Any]:
    out = self.snapshot()
    out.update(
      {
        "id": self.id,
        "isArchived": self.is_archived,
        "customData": dict(self.custom_data),
        "comments": self.comments,
        "orderIndex": self.order_index,
        "createdAt": self.created_at.isoformat(),
      }
    )
    return out


@dataclass
class SystemSetting:
  id: int
  key: str
  value: str
  description: str | None = None
  updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ActorSummary:
  id: int
  username: str
  email: str | None
  role: str
  avatar_color: str


@dataclass
class EventLogEntry:
  id: int
  user_id: int
  event_type: str
  entity_type: str
  entity_id: int
  details: dict[str, Any] = field(default_factory=dict)
  ip_address: str | None = None
  user_agent: str | None = None
  created_at: datetime = field(default_factory=utcnow)
  user: ActorSummary | None = None


@dataclass
class EventLogFilter:
  user_id: int | None = None
  entity_type: str | None = None
  event_type: str | None = None
