from __future__ import annotations

import copy
from collections import Counter
from dataclasses import replace
from itertools import count
from typing import Any, TypeVar

from taskboard.entities import (
  ActorSummary,
  Board,
  Category,
  CustomField,
  EventLogEntry,
  EventLogFilter,
  SystemSetting,
  Task,
  User,
  utcnow,
)

T = TypeVar("T")


def _copy(item: T | None) -> T | None:
  return copy.deepcopy(item) if item is not None else None


class MemoryEntityStore:
  """In-process EntityStore used by tests and `store_backend=memory`."""

  def __init__(self) -> None:
    self.users: dict[int, User] = {}
    self.settings: dict[str, SystemSetting] = {}
    self.boards: dict[int, Board] = {}
    self.categories: dict[int, Category] = {}
    self.custom_fields: dict[int, CustomField] = {}
    self.tasks: dict[int, Task] = {}
    self.event_logs: dict[int, EventLogEntry] = {}
    self._ids = {name: count(1) for name in ("user", "setting", "board", "category", "custom_field", "task", "event_log")}

  def _next_id(self, table: str) -> int:
    return next(self._ids[table])

  # users

  async def list_users(self) -> list[User]:
    return [copy.deepcopy(u) for u in sorted(self.users.values(), key=lambda u: u.id)]

  async def get_user(self, user_id: int) -> User | None:
    return _copy(self.users.get(user_id))

  async def get_user_by_username(self, username: str) -> User | None:
    for u in self.users.values():
      if u.username == username:
        return copy.deepcopy(u)
    return None

  async def create_user(self, fields: dict[str, Any]) -> User:
    u = User(id=self._next_id("user"), **fields)
    self.users[u.id] = u
    return copy.deepcopy(u)

  async def update_user(self, user_id: int, fields: dict[str, Any]) -> User | None:
    if user_id not in self.users:
      return None
    self.users[user_id] = replace(self.users[user_id], **fields)
    return copy.deepcopy(self.users[user_id])

  async def delete_user(self, user_id: int) -> bool:
    return self.users.pop(user_id, None) is not None

  # system settings

  async def get_setting(self, key: str) -> SystemSetting | None:
    return _copy(self.settings.get(key))

  async def put_setting(self, key: str, value: str, description: str | None = None) -> SystemSetting:
    existing = self.settings.get(key)
    if existing:
      s = replace(existing, value=value, description=description or existing.description, updated_at=utcnow())
    else:
      s = SystemSetting(id=self._next_id("setting"), key=key, value=value, description=description)
    self.settings[key] = s
    return copy.deepcopy(s)

  # boards

  async def list_boards(self, user_id: int, *, archived: bool = False) -> list[Board]:
    out = [b for b in self.boards.values() if b.user_id == user_id and b.is_archived == archived]
    return [copy.deepcopy(b) for b in sorted(out, key=lambda b: b.id)]

  async def get_board(self, board_id: int) -> Board | None:
    return _copy(self.boards.get(board_id))

  async def create_board(self, fields: dict[str, Any]) -> Board:
    b = Board(id=self._next_id("board"), **fields)
    self.boards[b.id] = b
    return copy.deepcopy(b)

  async def update_board(self, board_id: int, fields: dict[str, Any]) -> Board | None:
    if board_id not in self.boards:
      return None
    self.boards[board_id] = replace(self.boards[board_id], **fields)
    return copy.deepcopy(self.boards[board_id])

  async def delete_board_cascade(self, board_id: int) -> bool:
    if board_id not in self.boards:
      return False
    category_ids = {c.id for c in self.categories.values() if c.board_id == board_id}
    self.tasks = {k: t for k, t in self.tasks.items() if t.category_id not in category_ids}
    self.categories = {k: c for k, c in self.categories.items() if c.id not in category_ids}
    self.custom_fields = {k: f for k, f in self.custom_fields.items() if f.board_id != board_id}
    del self.boards[board_id]
    return True

  # categories

  async def get_categories_by_board(self, board_id: int) -> list[Category]:
    out = [c for c in self.categories.values() if c.board_id == board_id]
    return [copy.deepcopy(c) for c in sorted(out, key=lambda c: (c.order, c.id))]

  async def get_category(self, category_id: int) -> Category | None:
    return _copy(self.categories.get(category_id))

  async def create_category(self, fields: dict[str, Any]) -> Category:
    c = Category(id=self._next_id("category"), **fields)
    self.categories[c.id] = c
    return copy.deepcopy(c)

  async def update_category(self, category_id: int, fields: dict[str, Any]) -> Category | None:
    if category_id not in self.categories:
      return None
    self.categories[category_id] = replace(self.categories[category_id], **fields)
    return copy.deepcopy(self.categories[category_id])

  async def delete_category(self, category_id: int) -> bool:
    if self.categories.pop(category_id, None) is None:
      return False
    for tid in [t.id for t in self.tasks.values() if t.category_id == category_id]:
      del self.tasks[tid]
    return True

  # custom fields

  async def get_custom_fields_by_board(self, board_id: int) -> list[CustomField]:
    out = [f for f in self.custom_fields.values() if f.board_id == board_id]
    return [copy.deepcopy(f) for f in sorted(out, key=lambda f: f.id)]

  async def get_custom_field(self, field_id: int) -> CustomField | None:
    return _copy(self.custom_fields.get(field_id))

  async def create_custom_field(self, fields: dict[str, Any]) -> CustomField:
    f = CustomField(id=self._next_id("custom_field"), **fields)
    self.custom_fields[f.id] = f
    return copy.deepcopy(f)

  async def update_custom_field(self, field_id: int, fields: dict[str, Any]) -> CustomField | None:
    if field_id not in self.custom_fields:
      return None
    self.custom_fields[field_id] = replace(self.custom_fields[field_id], **fields)
    return copy.deepcopy(self.custom_fields[field_id])

  async def delete_custom_field(self, field_id: int) -> bool:
    return self.custom_fields.pop(field_id, None) is not None

  # tasks

  async def get_task(self, task_id: int) -> Task | None:
    return _copy(self.tasks.get(task_id))

  async def create_task(self, fields: dict[str, Any]) -> Task:
    t = Task(id=self._next_id("task"), **copy.deepcopy(fields))
    self.tasks[t.id] = t
    return copy.deepcopy(t)

  async def update_task(self, task_id: int, fields: dict[str, Any]) -> Task | None:
    if task_id not in self.tasks:
      return None
    self.tasks[task_id] = replace(self.tasks[task_id], **copy.deepcopy(fields))
    return copy.deepcopy(self.tasks[task_id])

  async def delete_task(self, task_id: int) -> bool:
    return self.tasks.pop(task_id, None) is not None

  async def list_tasks_by_category(self, category_id: int, include_archived: bool = False) -> list[Task]:
    out = [t for t in self.tasks.values() if t.category_id == category_id and (include_archived or not t.is_archived)]
    return [copy.deepcopy(t) for t in sorted(out, key=lambda t: (t.order_index, t.id))]

  async def list_archived_tasks_by_board(self, board_id: int) -> list[Task]:
    category_ids = {c.id for c in self.categories.values() if c.board_id == board_id}
    out = [t for t in self.tasks.values() if t.category_id in category_ids and t.is_archived]
    return [copy.deepcopy(t) for t in sorted(out, key=lambda t: t.id)]

  async def max_task_order(self, category_id: int) -> int | None:
    orders = [t.order_index for t in self.tasks.values() if t.category_id == category_id]
    return max(orders) if orders else None

  # event logs

  def _summary(self, user_id: int) -> ActorSummary | None:
    u = self.users.get(user_id)
    if not u:
      return None
    return ActorSummary(id=u.id, username=u.username, email=u.email, role=u.role, avatar_color=u.avatar_color)

  def _matches(self, ev: EventLogEntry, flt: EventLogFilter) -> bool:
    if flt.user_id is not None and ev.user_id != flt.user_id:
      return False
    if flt.entity_type is not None and ev.entity_type != flt.entity_type:
      return False
    if flt.event_type is not None and ev.event_type != flt.event_type:
      return False
    return True

  async def append_event_log(self, fields: dict[str, Any]) -> EventLogEntry:
    ev = EventLogEntry(id=self._next_id("event_log"), **copy.deepcopy(fields))
    self.event_logs[ev.id] = ev
    return copy.deepcopy(ev)

  async def get_event_log(self, log_id: int) -> EventLogEntry | None:
    ev = self.event_logs.get(log_id)
    if not ev:
      return None
    return replace(copy.deepcopy(ev), user=self._summary(ev.user_id))

  async def query_event_logs(self, flt: EventLogFilter, *, limit: int, offset: int) -> list[EventLogEntry]:
    rows = [ev for ev in self.event_logs.values() if self._matches(ev, flt)]
    rows.sort(key=lambda ev: (ev.created_at, ev.id), reverse=True)
    return [replace(copy.deepcopy(ev), user=self._summary(ev.user_id)) for ev in rows[offset : offset + limit]]

  async def count_event_logs(self, flt: EventLogFilter) -> int:
    return sum(1 for ev in self.event_logs.values() if self._matches(ev, flt))

  async def count_event_logs_by_entity_type(self) -> dict[str, int]:
    return dict(Counter(ev.entity_type for ev in self.event_logs.values()))
