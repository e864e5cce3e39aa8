from __future__ import annotations

import pytest

from taskboard.audit import Actor
from taskboard.errors import ConflictError, NotFoundError
from taskboard.services import Services
from taskboard.store.memory import MemoryEntityStore


@pytest.mark.anyio
async def test_board_lifecycle_end_to_end(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  def new_logs(since: int) -> list:
    return [ev for ev in sorted(store.event_logs.values(), key=lambda ev: ev.id) if ev.id > since]

  # A: board, two ordered categories, a number field and a task carrying a value
  board = await services.boards.create(actor, name="B")
  todo = await services.categories.create(actor, board_id=board.id, name="To Do")
  done = await services.categories.create(actor, board_id=board.id, name="Done")
  assert (todo.order, done.order) == (0, 1)
  await services.custom_fields.create(actor, board_id=board.id, name="Budget", field_type="number")
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id, "custom_data": {"Budget": "500"}})
  assert t.custom_data == {"Budget": "500"}

  # B: clearing the value removes the key
  mark = max(store.event_logs)
  t = await services.tasks.update(actor, t.id, {"custom_data": {"Budget": ""}})
  assert t.custom_data == {}
  logs = new_logs(mark)
  assert [ev.event_type for ev in logs] == ["task.updated"]
  assert "customData" in logs[0].details["changedFields"]

  # C: archive then restore
  mark = max(store.event_logs)
  await services.tasks.archive(actor, t.id)
  t = await services.tasks.restore(actor, t.id)
  assert [ev.event_type for ev in new_logs(mark)] == ["task.archived", "task.restored"]
  assert t.is_archived is False
  assert [x.id for x in await services.tasks.list_by_category(todo.id)] == [t.id]

  # D: category with an active task cannot be deleted
  mark = max(store.event_logs)
  with pytest.raises(ConflictError):
    await services.categories.delete(actor, todo.id)
  assert new_logs(mark) == []
  assert [c.id for c in await services.categories.list_for_board(board.id)] == [todo.id, done.id]

  # E: delete the task
  mark = max(store.event_logs)
  await services.tasks.delete(actor, t.id)
  with pytest.raises(NotFoundError):
    await services.tasks.get(t.id)
  logs = new_logs(mark)
  assert [ev.event_type for ev in logs] == ["task.deleted"]
  assert logs[0].details["task"]["title"] == "T"


@pytest.mark.anyio
async def test_every_task_mutation_is_paired_with_one_log(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  board = await services.boards.create(actor, name="B")
  todo = await services.categories.create(actor, board_id=board.id, name="To Do")

  steps = [
    ("task.created", lambda tid: services.tasks.create(actor, {"title": "T", "category_id": todo.id})),
    ("task.updated", lambda tid: services.tasks.update(actor, tid, {"title": "U"})),
    ("task.archived", lambda tid: services.tasks.archive(actor, tid)),
    ("task.restored", lambda tid: services.tasks.restore(actor, tid)),
    ("task.deleted", lambda tid: services.tasks.delete(actor, tid)),
  ]
  task_id = 0
  for event_type, step in steps:
    before = len(store.event_logs)
    result = await step(task_id)
    task_id = task_id or result.id
    assert len(store.event_logs) == before + 1
    ev = max(store.event_logs.values(), key=lambda ev: ev.id)
    assert (ev.event_type, ev.entity_type, ev.entity_id) == (event_type, "task", task_id)
