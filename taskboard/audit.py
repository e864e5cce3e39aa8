from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from fastapi.encoders import jsonable_encoder

from taskboard.config import settings
from taskboard.entities import EventLogEntry, EventLogFilter
from taskboard.errors import AuditError, NotFoundError, ValidationError
from taskboard.store.base import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
  user_id: int
  ip_address: str | None = None
  user_agent: str | None = None


class EntityTypes:
  TASK = "task"
  BOARD = "board"
  CATEGORY = "category"
  CUSTOM_FIELD = "customField"
  USER = "user"
  SYSTEM = "system"

  ALL = (TASK, BOARD, CATEGORY, CUSTOM_FIELD, USER, SYSTEM)


class EventTypes:
  TASK_CREATED = "task.created"
  TASK_UPDATED = "task.updated"
  TASK_ARCHIVED = "task.archived"
  TASK_RESTORED = "task.restored"
  TASK_DELETED = "task.deleted"

  BOARD_CREATED = "board.created"
  BOARD_UPDATED = "board.updated"
  BOARD_ARCHIVED = "board.archived"
  BOARD_RESTORED = "board.restored"
  BOARD_DELETED = "board.deleted"

  CATEGORY_CREATED = "category.created"
  CATEGORY_UPDATED = "category.updated"
  CATEGORY_DELETED = "category.deleted"
  CATEGORY_REORDERED = "category.reordered"

  CUSTOM_FIELD_CREATED = "customField.created"
  CUSTOM_FIELD_UPDATED = "customField.updated"
  CUSTOM_FIELD_DELETED = "customField.deleted"

  USER_CREATED = "user.created"
  USER_UPDATED = "user.updated"
  USER_DELETED = "user.deleted"
  USER_REGISTERED = "user.registered"

  SYSTEM_SETTING_UPDATED = "system.setting_updated"


@dataclass
class EventLogPage:
  logs: list[EventLogEntry]
  total: int
  page: int
  page_size: int

  @property
  def total_pages(self) -> int:
    return math.ceil(self.total / self.page_size) if self.page_size else 0


class AuditTrail:
  """Append-only event log. Recording is best-effort and never raises."""

  def __init__(self, store: EntityStore) -> None:
    self._store = store

  async def _append(
    self,
    actor: Actor,
    event_type: str,
    entity_type: str,
    entity_id: int,
    details: dict[str, Any] | None,
  ) -> EventLogEntry:
    try:
      return await self._store.append_event_log(
        {
          "user_id": actor.user_id,
          "event_type": event_type,
          "entity_type": entity_type,
          "entity_id": entity_id,
          "details": jsonable_encoder(details or {}),
          "ip_address": actor.ip_address,
          "user_agent": actor.user_agent or "",
        }
      )
    except Exception as exc:
      raise AuditError(f"Failed to record {event_type} for {entity_type} {entity_id}") from exc

  async def record(
    self,
    actor: Actor,
    event_type: str,
    entity_type: str,
    entity_id: int,
    details: dict[str, Any] | None = None,
  ) -> EventLogEntry | None:
    try:
      return await self._append(actor, event_type, entity_type, entity_id, details)
    except AuditError as exc:
      logger.error("%s: %r", exc.message, exc.__cause__)
      return None

  async def get(self, log_id: int) -> EventLogEntry:
    ev = await self._store.get_event_log(log_id)
    if not ev:
      raise NotFoundError("Event log not found")
    return ev

  async def query(
    self,
    *,
    page: int = 1,
    limit: int | None = None,
    user_id: int | None = None,
    entity_type: str | None = None,
    event_type: str | None = None,
  ) -> EventLogPage:
    limit = settings.event_log_page_size if limit is None else limit
    errors: dict[str, str] = {}
    if page < 1:
      errors["page"] = "must be >= 1"
    if limit < 1 or limit > settings.event_log_max_page_size:
      errors["limit"] = f"must be between 1 and {settings.event_log_max_page_size}"
    if errors:
      raise ValidationError("Invalid event log query", errors)

    flt = EventLogFilter(user_id=user_id, entity_type=entity_type, event_type=event_type)
    logs = await self._store.query_event_logs(flt, limit=limit, offset=(page - 1) * limit)
    total = await self._store.count_event_logs(flt)
    return EventLogPage(logs=logs, total=total, page=page, page_size=limit)

  async def count_by_entity_type(self) -> dict[str, int]:
    counts = {entity_type: 0 for entity_type in EntityTypes.ALL}
    raw = await self._store.count_event_logs_by_entity_type()
    counts.update(raw)
    counts["total"] = sum(raw.values())
    return counts
