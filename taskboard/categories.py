from __future__ import annotations

from typing import Any

from taskboard.audit import Actor, AuditTrail, EntityTypes, EventTypes
from taskboard.entities import Category
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.store.base import EntityStore

DEFAULT_COLOR = "#6366f1"


class CategoryService:
  def __init__(self, store: EntityStore, audit: AuditTrail) -> None:
    self._store = store
    self._audit = audit

  async def _require(self, category_id: int) -> Category:
    c = await self._store.get_category(category_id)
    if not c:
      raise NotFoundError("Category not found")
    return c

  async def list_for_board(self, board_id: int) -> list[Category]:
    if not await self._store.get_board(board_id):
      raise NotFoundError("Board not found")
    return await self._store.get_categories_by_board(board_id)

  async def create(self, actor: Actor, *, board_id: int, name: str, color: str | None = None) -> Category:
    name = (name or "").strip()
    if not name:
      raise ValidationError("Invalid category data", {"name": "required"})
    if not await self._store.get_board(board_id):
      raise ValidationError("Invalid category data", {"boardId": "board does not exist"})

    existing = await self._store.get_categories_by_board(board_id)
    order = max((c.order for c in existing), default=-1) + 1
    c = await self._store.create_category({"name": name, "color": color or DEFAULT_COLOR, "board_id": board_id, "order": order})
    await self._audit.record(
      actor,
      EventTypes.CATEGORY_CREATED,
      EntityTypes.CATEGORY,
      c.id,
      {"name": c.name, "boardId": c.board_id, "order": c.order},
    )
    return c

  async def update(self, actor: Actor, category_id: int, *, name: str | None = None, color: str | None = None) -> Category:
    c = await self._require(category_id)
    fields: dict[str, Any] = {}
    if name is not None:
      if not name.strip():
        raise ValidationError("Invalid category data", {"name": "required"})
      fields["name"] = name.strip()
    if color is not None:
      fields["color"] = color
    if not fields:
      return c

    updated = await self._store.update_category(category_id, fields)
    if not updated:
      raise NotFoundError("Category not found")
    await self._audit.record(
      actor,
      EventTypes.CATEGORY_UPDATED,
      EntityTypes.CATEGORY,
      updated.id,
      {
        "before": {"name": c.name, "color": c.color},
        "after": {"name": updated.name, "color": updated.color},
        "changedFields": sorted(fields),
      },
    )
    return updated

  async def delete(self, actor: Actor, category_id: int) -> None:
    c = await self._require(category_id)
    active = await self._store.list_tasks_by_category(category_id)
    if active:
      raise ConflictError("Category has active tasks; move or archive them first")
    if not await self._store.delete_category(category_id):
      raise NotFoundError("Category not found")
    await self._audit.record(
      actor,
      EventTypes.CATEGORY_DELETED,
      EntityTypes.CATEGORY,
      category_id,
      {"name": c.name, "boardId": c.board_id},
    )

  async def reorder(self, actor: Actor, board_id: int, category_ids: list[int]) -> list[Category]:
    categories = {c.id: c for c in await self.list_for_board(board_id)}
    if len(category_ids) != len(set(category_ids)) or set(category_ids) != set(categories):
      raise ValidationError("Invalid category order", {"categoryIds": "must include every category of the board exactly once"})
    for idx, category_id in enumerate(category_ids):
      if categories[category_id].order != idx:
        await self._store.update_category(category_id, {"order": idx})
    await self._audit.record(
      actor,
      EventTypes.CATEGORY_REORDERED,
      EntityTypes.BOARD,
      board_id,
      {"boardId": board_id, "categoryIds": list(category_ids)},
    )
    return await self._store.get_categories_by_board(board_id)
