from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from taskboard import custom_data
from taskboard.audit import Actor, AuditTrail, EntityTypes, EventTypes
from taskboard.entities import TASK_PRIORITIES, Category, CustomField, Task
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.store.base import EntityStore

# attribute -> wire name used in audit payloads and error fields
TASK_FIELDS = {
  "title": "title",
  "description": "description",
  "due_date": "dueDate",
  "priority": "priority",
  "category_id": "categoryId",
  "is_archived": "isArchived",
  "assignees": "assignees",
  "custom_data": "customData",
  "comments": "comments",
}


@dataclass
class DeletedTask:
  task_id: int
  category_id: int
  snapshot: dict[str, Any]


@dataclass
class CustomDataView:
  task_id: int
  board_id: int
  fields: list[CustomField]
  values: dict[str, Any]


def _is_int(v: Any) -> bool:
  return isinstance(v, int) and not isinstance(v, bool)


def _valid_date(s: str) -> bool:
  try:
    date.fromisoformat(s[:10])
  except ValueError:
    return False
  return True


def validate_task_fields(data: Mapping[str, Any], *, partial: bool) -> dict[str, str]:
  errors: dict[str, str] = {}
  for key in sorted(set(data) - set(TASK_FIELDS)):
    errors[key] = "unknown field"

  if not partial or "title" in data:
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
      errors["title"] = "required"
  if not partial or "category_id" in data:
    if not _is_int(data.get("category_id")):
      errors["categoryId"] = "must be an integer"

  description = data.get("description")
  if description is not None and not isinstance(description, str):
    errors["description"] = "must be a string"
  due = data.get("due_date")
  if due not in (None, "") and (not isinstance(due, str) or not _valid_date(due)):
    errors["dueDate"] = "must be an ISO date"
  priority = data.get("priority")
  if priority is not None and priority not in TASK_PRIORITIES:
    errors["priority"] = f"must be one of {', '.join(TASK_PRIORITIES)}"
  if "assignees" in data:
    assignees = data["assignees"]
    if assignees is not None and (not isinstance(assignees, list) or not all(_is_int(a) for a in assignees)):
      errors["assignees"] = "must be a list of user ids"
  if "is_archived" in data and not isinstance(data["is_archived"], bool):
    errors["isArchived"] = "must be a boolean"
  if "comments" in data and (not _is_int(data["comments"]) or data["comments"] < 0):
    errors["comments"] = "must be a non-negative integer"
  return errors


class TaskService:
  """Single entry point for task mutations; each success is paired with one audit row."""

  def __init__(self, store: EntityStore, audit: AuditTrail) -> None:
    self._store = store
    self._audit = audit

  async def _require(self, task_id: int) -> Task:
    t = await self._store.get_task(task_id)
    if not t:
      raise NotFoundError("Task not found")
    return t

  async def _require_category(self, category_id: int) -> Category:
    c = await self._store.get_category(category_id)
    if not c:
      raise ValidationError("Invalid categoryId", {"categoryId": "category does not exist"})
    return c

  async def _next_order(self, category_id: int) -> int:
    max_order = await self._store.max_task_order(category_id)
    return (max_order + 1) if max_order is not None else 0

  async def _persist(self, task_id: int, fields: dict[str, Any]) -> Task:
    t = await self._store.update_task(task_id, fields)
    if not t:
      raise NotFoundError("Task not found")
    return t

  async def get(self, task_id: int) -> Task:
    return await self._require(task_id)

  async def list_by_category(self, category_id: int, *, include_archived: bool = False) -> list[Task]:
    if not await self._store.get_category(category_id):
      raise NotFoundError("Category not found")
    return await self._store.list_tasks_by_category(category_id, include_archived)

  async def list_archived(self, board_id: int) -> list[Task]:
    if not await self._store.get_board(board_id):
      raise NotFoundError("Board not found")
    return await self._store.list_archived_tasks_by_board(board_id)

  async def create(self, actor: Actor, data: Mapping[str, Any]) -> Task:
    errors = validate_task_fields(data, partial=False)
    if errors:
      raise ValidationError("Invalid task data", errors)
    category = await self._require_category(data["category_id"])

    t = await self._store.create_task(
      {
        "title": data["title"].strip(),
        "description": data.get("description"),
        "due_date": data.get("due_date") or None,
        "priority": data.get("priority"),
        "category_id": category.id,
        "is_archived": bool(data.get("is_archived", False)),
        "assignees": list(data.get("assignees") or []),
        "custom_data": custom_data.normalize(data.get("custom_data")),
        "comments": 0,
        "order_index": await self._next_order(category.id),
      }
    )
    await self._audit.record(
      actor,
      EventTypes.TASK_CREATED,
      EntityTypes.TASK,
      t.id,
      {"title": t.title, "categoryId": t.category_id, "priority": t.priority, "dueDate": t.due_date},
    )
    return t

  async def update(self, actor: Actor, task_id: int, patch: Mapping[str, Any]) -> Task:
    t = await self._require(task_id)
    errors = validate_task_fields(patch, partial=True)
    if not patch:
      errors["_"] = "no fields to update"
    if errors:
      raise ValidationError("Invalid task data", errors)

    fields: dict[str, Any] = {}
    for key, val in patch.items():
      if key == "custom_data":
        fields[key] = custom_data.merge_update(t.custom_data, val)
      elif key == "title":
        fields[key] = val.strip()
      elif key == "assignees":
        fields[key] = list(val or [])
      elif key == "due_date":
        fields[key] = val or None
      else:
        fields[key] = val

    if "category_id" in fields and fields["category_id"] != t.category_id:
      dest = await self._require_category(fields["category_id"])
      source = await self._store.get_category(t.category_id)
      if source and source.board_id != dest.board_id:
        raise ValidationError("Invalid categoryId", {"categoryId": "category belongs to another board"})
      fields["order_index"] = await self._next_order(dest.id)

    before = t.snapshot()
    updated = await self._persist(task_id, fields)
    await self._audit.record(
      actor,
      EventTypes.TASK_UPDATED,
      EntityTypes.TASK,
      updated.id,
      {"before": before, "after": updated.snapshot(), "changedFields": [TASK_FIELDS[k] for k in patch]},
    )
    return updated

  async def _set_archived(self, actor: Actor, task_id: int, archived: bool) -> Task:
    await self._require(task_id)
    updated = await self._persist(task_id, {"is_archived": archived})
    event_type = EventTypes.TASK_ARCHIVED if archived else EventTypes.TASK_RESTORED
    await self._audit.record(actor, event_type, EntityTypes.TASK, updated.id, {"task": updated.full_snapshot()})
    return updated

  async def archive(self, actor: Actor, task_id: int) -> Task:
    return await self._set_archived(actor, task_id, True)

  async def restore(self, actor: Actor, task_id: int) -> Task:
    return await self._set_archived(actor, task_id, False)

  async def delete(self, actor: Actor, task_id: int) -> DeletedTask:
    t = await self._require(task_id)
    snapshot = t.full_snapshot()
    if not await self._store.delete_task(task_id):
      raise NotFoundError("Task not found")
    await self._audit.record(actor, EventTypes.TASK_DELETED, EntityTypes.TASK, task_id, {"task": snapshot})
    return DeletedTask(task_id=task_id, category_id=t.category_id, snapshot=snapshot)

  async def move(self, actor: Actor, task_id: int, destination_category_id: Any, destination_index: Any) -> Task:
    errors = {}
    if not _is_int(destination_category_id):
      errors["categoryId"] = "must be an integer"
    if not _is_int(destination_index):
      errors["toIndex"] = "must be an integer"
    if errors:
      raise ValidationError("Invalid move", errors)

    t = await self._require(task_id)
    if t.is_archived:
      raise ConflictError("Archived tasks cannot be moved; restore first")
    dest = await self._require_category(destination_category_id)
    source = await self._store.get_category(t.category_id)
    if source and source.board_id != dest.board_id:
      raise ValidationError("Invalid categoryId", {"categoryId": "category belongs to another board"})

    # Reindex both columns in memory, then persist contiguous ranks.
    from_arr = [x for x in await self._store.list_tasks_by_category(t.category_id) if x.id != t.id]
    to_arr = from_arr if dest.id == t.category_id else await self._store.list_tasks_by_category(dest.id)
    to_idx = min(max(destination_index, 0), len(to_arr))
    to_arr.insert(to_idx, t)

    columns = [to_arr] if to_arr is from_arr else [from_arr, to_arr]
    for arr in columns:
      for idx, x in enumerate(arr):
        if x.id != t.id and x.order_index != idx:
          await self._persist(x.id, {"order_index": idx})

    before = t.snapshot()
    changed = ["orderIndex"] if dest.id == t.category_id else ["categoryId", "orderIndex"]
    updated = await self._persist(t.id, {"category_id": dest.id, "order_index": to_idx})
    await self._audit.record(
      actor,
      EventTypes.TASK_UPDATED,
      EntityTypes.TASK,
      updated.id,
      {
        "before": before,
        "after": updated.snapshot(),
        "changedFields": changed,
        "move": {"fromCategoryId": t.category_id, "toCategoryId": dest.id, "toIndex": to_idx},
      },
    )
    return updated

  async def custom_data_view(self, task_id: int) -> CustomDataView:
    t = await self._require(task_id)
    category = await self._store.get_category(t.category_id)
    if not category:
      raise NotFoundError("Category not found")
    fields = await self._store.get_custom_fields_by_board(category.board_id)
    return CustomDataView(
      task_id=t.id,
      board_id=category.board_id,
      fields=fields,
      values=custom_data.visible_custom_data(t.custom_data, fields),
    )

  async def remove_custom_field(self, actor: Actor, task_id: int, field_name: str) -> Task:
    return await self.update(actor, task_id, {"custom_data": {field_name: None}})
