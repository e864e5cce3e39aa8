"""
Board view with optimistic drag-and-drop.

`DragDropCoordinator` keeps an in-memory copy of one board (ordered
categories and the active tasks of each category). A drop is applied to the
local view first and then persisted through the services. Persisting a task
move is serialized per task id, so two drags of the same card reach the store
in the order they were dropped.

When persisting fails the affected columns are re-fetched from the store. If
the re-fetch fails as well, the view is restored to the snapshot taken before
the drop.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass

from taskboard.audit import Actor
from taskboard.categories import CategoryService
from taskboard.entities import Category, Task
from taskboard.errors import CoreError, NotFoundError, ValidationError
from taskboard.tasks import TaskService

logger = logging.getLogger(__name__)

DROP_TASK = "task"
DROP_COLUMN = "column"


@dataclass(frozen=True)
class DropLocation:
  # category id for task drops, board id for column drops
  droppable_id: int
  index: int


@dataclass(frozen=True)
class DropResult:
  draggable_id: int
  source: DropLocation
  destination: DropLocation | None
  kind: str = DROP_TASK


@dataclass
class DropOutcome:
  status: str  # noop | applied | reconciled | reverted
  error: CoreError | None = None


@dataclass
class _Snapshot:
  categories: list[Category]
  columns: dict[int, list[Task]]


class DragDropCoordinator:
  def __init__(self, tasks: TaskService, categories: CategoryService) -> None:
    self._tasks = tasks
    self._categories = categories
    self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
    self.board_id: int | None = None
    self.categories: list[Category] = []
    self.columns: dict[int, list[Task]] = {}

  async def load(self, board_id: int) -> None:
    categories = await self._categories.list_for_board(board_id)
    columns = {c.id: await self._tasks.list_by_category(c.id) for c in categories}
    self.board_id = board_id
    self.categories = categories
    self.columns = columns

  async def refresh_columns(self, *category_ids: int) -> None:
    fresh = {cid: await self._tasks.list_by_category(cid) for cid in category_ids}
    self.columns.update(fresh)

  def column_ids(self, category_id: int) -> list[int]:
    return [t.id for t in self.columns.get(category_id, [])]

  def _snapshot(self) -> _Snapshot:
    return _Snapshot(
      categories=list(self.categories),
      columns={cid: list(tasks) for cid, tasks in self.columns.items()},
    )

  def _restore(self, snap: _Snapshot) -> None:
    self.categories = snap.categories
    self.columns = snap.columns

  async def on_drag_end(self, actor: Actor, result: DropResult) -> DropOutcome:
    if self.board_id is None:
      raise ValidationError("Board view is not loaded", {"boardId": "call load() first"})
    dst = result.destination
    if dst is None:
      return DropOutcome("noop")
    if dst.droppable_id == result.source.droppable_id and dst.index == result.source.index:
      return DropOutcome("noop")
    if result.kind == DROP_COLUMN:
      return await self._drop_column(actor, result, dst)
    return await self._drop_task(actor, result, dst)

  async def _drop_task(self, actor: Actor, result: DropResult, dst: DropLocation) -> DropOutcome:
    src = result.source
    if src.droppable_id not in self.columns or dst.droppable_id not in self.columns:
      raise NotFoundError("Category is not part of this board view")
    source_col = self.columns[src.droppable_id]
    pos = next((i for i, t in enumerate(source_col) if t.id == result.draggable_id), None)
    if pos is None:
      raise NotFoundError("Task is not in the source column")

    snap = self._snapshot()
    task = source_col.pop(pos)
    dest_col = self.columns[dst.droppable_id]
    index = min(max(dst.index, 0), len(dest_col))
    dest_col.insert(index, task)

    async with self._locks[task.id]:
      try:
        await self._tasks.move(actor, task.id, dst.droppable_id, index)
      except CoreError as exc:
        logger.warning("Move of task %s to category %s failed: %s", task.id, dst.droppable_id, exc.message)
        return await self._reconcile_columns(snap, {src.droppable_id, dst.droppable_id}, exc)
    return DropOutcome("applied")

  async def _reconcile_columns(self, snap: _Snapshot, category_ids: set[int], exc: CoreError) -> DropOutcome:
    try:
      await self.refresh_columns(*sorted(category_ids))
    except CoreError as refetch_exc:
      logger.warning("Re-fetch of categories %s failed, restoring previous view: %s", sorted(category_ids), refetch_exc.message)
      self._restore(snap)
      return DropOutcome("reverted", exc)
    return DropOutcome("reconciled", exc)

  async def _drop_column(self, actor: Actor, result: DropResult, dst: DropLocation) -> DropOutcome:
    pos = next((i for i, c in enumerate(self.categories) if c.id == result.draggable_id), None)
    if pos is None:
      raise NotFoundError("Category is not part of this board view")

    snap = self._snapshot()
    moved = self.categories.pop(pos)
    index = min(max(dst.index, 0), len(self.categories))
    self.categories.insert(index, moved)

    try:
      self.categories = await self._categories.reorder(actor, self.board_id, [c.id for c in self.categories])
    except CoreError as exc:
      logger.warning("Reorder of board %s failed: %s", self.board_id, exc.message)
      try:
        self.categories = await self._categories.list_for_board(self.board_id)
      except CoreError:
        self._restore(snap)
        return DropOutcome("reverted", exc)
      return DropOutcome("reconciled", exc)
    return DropOutcome("applied")
