from __future__ import annotations

from taskboard.audit import Actor, AuditTrail, EntityTypes, EventTypes
from taskboard.entities import Board
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.store.base import EntityStore


class BoardService:
  def __init__(self, store: EntityStore, audit: AuditTrail) -> None:
    self._store = store
    self._audit = audit

  async def _require(self, board_id: int) -> Board:
    b = await self._store.get_board(board_id)
    if not b:
      raise NotFoundError("Board not found")
    return b

  async def get(self, board_id: int) -> Board:
    return await self._require(board_id)

  async def list_for_user(self, user_id: int, *, archived: bool = False) -> list[Board]:
    return await self._store.list_boards(user_id, archived=archived)

  async def create(self, actor: Actor, *, name: str) -> Board:
    name = (name or "").strip()
    if not name:
      raise ValidationError("Invalid board data", {"name": "required"})
    b = await self._store.create_board({"name": name, "user_id": actor.user_id, "is_archived": False})
    await self._audit.record(actor, EventTypes.BOARD_CREATED, EntityTypes.BOARD, b.id, {"name": b.name, "userId": b.user_id})
    return b

  async def rename(self, actor: Actor, board_id: int, *, name: str) -> Board:
    b = await self._require(board_id)
    name = (name or "").strip()
    if not name:
      raise ValidationError("Invalid board data", {"name": "required"})
    updated = await self._store.update_board(board_id, {"name": name})
    if not updated:
      raise NotFoundError("Board not found")
    await self._audit.record(
      actor,
      EventTypes.BOARD_UPDATED,
      EntityTypes.BOARD,
      board_id,
      {"before": {"name": b.name}, "after": {"name": updated.name}, "changedFields": ["name"]},
    )
    return updated

  async def _set_archived(self, actor: Actor, board_id: int, archived: bool) -> Board:
    await self._require(board_id)
    updated = await self._store.update_board(board_id, {"is_archived": archived})
    if not updated:
      raise NotFoundError("Board not found")
    event_type = EventTypes.BOARD_ARCHIVED if archived else EventTypes.BOARD_RESTORED
    await self._audit.record(actor, event_type, EntityTypes.BOARD, board_id, {"name": updated.name})
    return updated

  async def archive(self, actor: Actor, board_id: int) -> Board:
    return await self._set_archived(actor, board_id, True)

  async def restore(self, actor: Actor, board_id: int) -> Board:
    return await self._set_archived(actor, board_id, False)

  async def delete(self, actor: Actor, board_id: int) -> None:
    b = await self._require(board_id)
    categories = await self._store.get_categories_by_board(board_id)
    for c in categories:
      if await self._store.list_tasks_by_category(c.id):
        raise ConflictError("Cannot delete board with active tasks. Archive or delete all tasks first.")
    fields = await self._store.get_custom_fields_by_board(board_id)
    if not await self._store.delete_board_cascade(board_id):
      raise NotFoundError("Board not found")
    await self._audit.record(
      actor,
      EventTypes.BOARD_DELETED,
      EntityTypes.BOARD,
      board_id,
      {"name": b.name, "categories": len(categories), "customFields": len(fields)},
    )
