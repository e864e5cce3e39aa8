from __future__ import annotations

from typing import Any

from taskboard.audit import Actor, AuditTrail, EntityTypes, EventTypes
from taskboard.entities import CUSTOM_FIELD_TYPES, CustomField
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.store.base import EntityStore


def _clean_options(options: str | None) -> str | None:
  if options is None:
    return None
  parts = [o.strip() for o in options.split(",") if o.strip()]
  return ",".join(parts) or None


def _field_snapshot(f: CustomField) -> dict[str, Any]:
  return {"name": f.name, "type": f.type, "options": f.options, "boardId": f.board_id}


class CustomFieldService:
  """
  Board-scoped custom field definitions.

  Field names are the keys into Task.custom_data. Renaming or deleting a
  field leaves existing task values untouched; they are hidden at read time
  by `custom_data.prune_stale` and resurface if the name is defined again.
  """

  def __init__(self, store: EntityStore, audit: AuditTrail) -> None:
    self._store = store
    self._audit = audit

  async def _require(self, field_id: int) -> CustomField:
    f = await self._store.get_custom_field(field_id)
    if not f:
      raise NotFoundError("Custom field not found")
    return f

  async def _ensure_unique(self, board_id: int, name: str, *, exclude_id: int | None = None) -> None:
    for f in await self._store.get_custom_fields_by_board(board_id):
      if f.name == name and f.id != exclude_id:
        raise ConflictError(f"Custom field '{name}' already exists on this board")

  def _check(self, name: str, field_type: str, options: str | None) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not name:
      errors["name"] = "required"
    if field_type not in CUSTOM_FIELD_TYPES:
      errors["type"] = f"must be one of {', '.join(CUSTOM_FIELD_TYPES)}"
    elif field_type == "select" and not options:
      errors["options"] = "select fields need at least one option"
    return errors

  async def list_for_board(self, board_id: int) -> list[CustomField]:
    if not await self._store.get_board(board_id):
      raise NotFoundError("Board not found")
    return await self._store.get_custom_fields_by_board(board_id)

  async def create(
    self,
    actor: Actor,
    *,
    board_id: int,
    name: str,
    field_type: str,
    options: str | None = None,
  ) -> CustomField:
    name = (name or "").strip()
    options = _clean_options(options) if field_type == "select" else None
    errors = self._check(name, field_type, options)
    if errors:
      raise ValidationError("Invalid custom field data", errors)
    if not await self._store.get_board(board_id):
      raise ValidationError("Invalid custom field data", {"boardId": "board does not exist"})
    await self._ensure_unique(board_id, name)

    f = await self._store.create_custom_field({"name": name, "type": field_type, "options": options, "board_id": board_id})
    await self._audit.record(actor, EventTypes.CUSTOM_FIELD_CREATED, EntityTypes.CUSTOM_FIELD, f.id, _field_snapshot(f))
    return f

  async def update(
    self,
    actor: Actor,
    field_id: int,
    *,
    name: str | None = None,
    field_type: str | None = None,
    options: str | None = None,
  ) -> CustomField:
    f = await self._require(field_id)
    new_name = f.name if name is None else name.strip()
    new_type = field_type or f.type
    new_options = _clean_options(options) if options is not None else f.options
    if new_type != "select":
      new_options = None
    errors = self._check(new_name, new_type, new_options)
    if errors:
      raise ValidationError("Invalid custom field data", errors)
    if new_name != f.name:
      await self._ensure_unique(f.board_id, new_name, exclude_id=f.id)

    fields = {
      k: v
      for k, v in (("name", new_name), ("type", new_type), ("options", new_options))
      if getattr(f, k) != v
    }
    if not fields:
      return f
    updated = await self._store.update_custom_field(field_id, fields)
    if not updated:
      raise NotFoundError("Custom field not found")
    await self._audit.record(
      actor,
      EventTypes.CUSTOM_FIELD_UPDATED,
      EntityTypes.CUSTOM_FIELD,
      updated.id,
      {"before": _field_snapshot(f), "after": _field_snapshot(updated), "changedFields": sorted(fields)},
    )
    return updated

  async def delete(self, actor: Actor, field_id: int) -> None:
    f = await self._require(field_id)
    if not await self._store.delete_custom_field(field_id):
      raise NotFoundError("Custom field not found")
    await self._audit.record(actor, EventTypes.CUSTOM_FIELD_DELETED, EntityTypes.CUSTOM_FIELD, field_id, _field_snapshot(f))
