from __future__ import annotations

import logging

import pytest

from conftest import event_types, make_board
from taskboard.audit import Actor
from taskboard.errors import ConflictError, NotFoundError, StorageError, ValidationError
from taskboard.services import Services
from taskboard.store.memory import MemoryEntityStore


@pytest.mark.anyio
async def test_create_requires_title_and_existing_category(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  before = len(store.event_logs)

  with pytest.raises(ValidationError) as exc:
    await services.tasks.create(actor, {"title": "  ", "category_id": todo.id})
  assert "title" in exc.value.fields

  with pytest.raises(ValidationError) as exc:
    await services.tasks.create(actor, {"title": "T", "category_id": "abc"})
  assert "categoryId" in exc.value.fields

  with pytest.raises(ValidationError) as exc:
    await services.tasks.create(actor, {"title": "T", "category_id": 999})
  assert exc.value.message == "Invalid categoryId"

  assert len(store.event_logs) == before
  assert store.tasks == {}


@pytest.mark.anyio
async def test_create_applies_defaults_and_logs_snapshot(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(
    actor,
    {"title": " Write docs ", "category_id": todo.id, "priority": "high", "custom_data": {"Budget": "500", "Owner": ""}},
  )

  assert t.title == "Write docs"
  assert t.is_archived is False
  assert t.comments == 0
  assert t.assignees == []
  assert t.custom_data == {"Budget": "500"}

  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert (ev.event_type, ev.entity_type, ev.entity_id) == ("task.created", "task", t.id)
  assert ev.details == {"title": "Write docs", "categoryId": todo.id, "priority": "high", "dueDate": None}
  assert ev.user_id == actor.user_id
  assert ev.ip_address == "127.0.0.1"


@pytest.mark.anyio
async def test_create_appends_to_end_of_category(services: Services, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  created = [await services.tasks.create(actor, {"title": f"T{i}", "category_id": todo.id}) for i in range(3)]
  assert [t.order_index for t in created] == [0, 1, 2]


@pytest.mark.anyio
async def test_create_rejects_bad_enums_and_dates(services: Services, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  with pytest.raises(ValidationError) as exc:
    await services.tasks.create(
      actor,
      {"title": "T", "category_id": todo.id, "priority": "urgent", "due_date": "next week", "assignees": ["bob"]},
    )
  assert set(exc.value.fields) == {"priority", "dueDate", "assignees"}


@pytest.mark.anyio
async def test_update_merges_custom_data(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id, "custom_data": {"Budget": "500", "Stage": "Design"}})

  t = await services.tasks.update(actor, t.id, {"title": "Renamed"})
  assert t.custom_data == {"Budget": "500", "Stage": "Design"}

  t = await services.tasks.update(actor, t.id, {"custom_data": {"Stage": "Build"}})
  assert t.custom_data == {"Budget": "500", "Stage": "Build"}

  t = await services.tasks.update(actor, t.id, {"custom_data": {"Budget": ""}})
  assert t.custom_data == {"Stage": "Build"}

  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.event_type == "task.updated"
  assert ev.details["changedFields"] == ["customData"]
  assert ev.details["before"]["title"] == "Renamed"


@pytest.mark.anyio
async def test_update_null_custom_data_is_a_no_op_merge(services: Services, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id, "custom_data": {"Budget": "1"}})
  t = await services.tasks.update(actor, t.id, {"custom_data": None})
  assert t.custom_data == {"Budget": "1"}


@pytest.mark.anyio
async def test_update_records_before_after_and_changed_fields(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "Old", "category_id": todo.id, "priority": "low"})
  await services.tasks.update(actor, t.id, {"title": "New", "priority": "high", "due_date": "2026-11-01"})

  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.details["before"]["title"] == "Old"
  assert ev.details["before"]["priority"] == "low"
  assert ev.details["after"]["title"] == "New"
  assert ev.details["after"]["dueDate"] == "2026-11-01"
  assert sorted(ev.details["changedFields"]) == ["dueDate", "priority", "title"]


@pytest.mark.anyio
async def test_update_failures_do_not_log(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})
  before = len(store.event_logs)

  with pytest.raises(NotFoundError):
    await services.tasks.update(actor, 999, {"title": "x"})
  with pytest.raises(ValidationError):
    await services.tasks.update(actor, t.id, {})
  with pytest.raises(ValidationError):
    await services.tasks.update(actor, t.id, {"priority": "urgent"})
  with pytest.raises(ValidationError):
    await services.tasks.update(actor, t.id, {"category_id": 999})

  assert len(store.event_logs) == before
  assert (await services.tasks.get(t.id)).title == "T"


@pytest.mark.anyio
async def test_update_rejects_category_of_another_board(services: Services, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor, name="A")
  _, (other, _) = await make_board(services, actor, name="B")
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})
  with pytest.raises(ValidationError):
    await services.tasks.update(actor, t.id, {"category_id": other.id})


@pytest.mark.anyio
async def test_update_category_change_appends_to_destination(services: Services, actor: Actor) -> None:
  _, (todo, done) = await make_board(services, actor)
  await services.tasks.create(actor, {"title": "D0", "category_id": done.id})
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})
  t = await services.tasks.update(actor, t.id, {"category_id": done.id})
  assert t.category_id == done.id
  assert t.order_index == 1


@pytest.mark.anyio
async def test_archive_and_restore(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  board, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})

  archived = await services.tasks.archive(actor, t.id)
  assert archived.is_archived is True
  assert await services.tasks.list_by_category(todo.id) == []
  assert [x.id for x in await services.tasks.list_by_category(todo.id, include_archived=True)] == [t.id]
  assert [x.id for x in await services.tasks.list_archived(board.id)] == [t.id]

  restored = await services.tasks.restore(actor, t.id)
  assert restored.is_archived is False
  assert [x.id for x in await services.tasks.list_by_category(todo.id)] == [t.id]

  assert event_types(store)[-2:] == ["task.archived", "task.restored"]
  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.details["task"]["title"] == "T"
  assert ev.details["task"]["isArchived"] is False

  with pytest.raises(NotFoundError):
    await services.tasks.archive(actor, 999)


@pytest.mark.anyio
async def test_delete_returns_owning_category_and_logs_snapshot(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "Gone soon", "category_id": todo.id, "custom_data": {"Budget": "5"}})

  deleted = await services.tasks.delete(actor, t.id)
  assert deleted.category_id == todo.id
  assert deleted.snapshot["title"] == "Gone soon"

  with pytest.raises(NotFoundError):
    await services.tasks.get(t.id)
  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.event_type == "task.deleted"
  assert ev.details["task"]["title"] == "Gone soon"
  assert ev.details["task"]["customData"] == {"Budget": "5"}

  before = len(store.event_logs)
  with pytest.raises(NotFoundError):
    await services.tasks.delete(actor, t.id)
  assert len(store.event_logs) == before


@pytest.mark.anyio
async def test_audit_failure_does_not_fail_the_mutation(
  services: Services,
  store: MemoryEntityStore,
  actor: Actor,
  monkeypatch: pytest.MonkeyPatch,
  caplog: pytest.LogCaptureFixture,
) -> None:
  _, (todo, _) = await make_board(services, actor)
  before = len(store.event_logs)

  async def boom(fields: dict) -> None:
    raise RuntimeError("event log table is gone")

  monkeypatch.setattr(store, "append_event_log", boom)
  with caplog.at_level(logging.ERROR, logger="taskboard.audit"):
    t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})

  assert (await services.tasks.get(t.id)).title == "T"
  assert len(store.event_logs) == before
  assert any("task.created" in r.getMessage() for r in caplog.records)


@pytest.mark.anyio
async def test_storage_failure_is_not_audited(
  services: Services,
  store: MemoryEntityStore,
  actor: Actor,
  monkeypatch: pytest.MonkeyPatch,
) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})
  before = len(store.event_logs)

  async def fail(task_id: int, fields: dict) -> None:
    raise StorageError("Storage operation failed")

  monkeypatch.setattr(store, "update_task", fail)
  with pytest.raises(StorageError):
    await services.tasks.update(actor, t.id, {"title": "New"})
  with pytest.raises(StorageError):
    await services.tasks.archive(actor, t.id)
  assert len(store.event_logs) == before


@pytest.mark.anyio
async def test_move_within_category_reindexes(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  a, b, c = [await services.tasks.create(actor, {"title": n, "category_id": todo.id}) for n in "abc"]

  moved = await services.tasks.move(actor, c.id, todo.id, 0)
  assert moved.order_index == 0
  tasks = await services.tasks.list_by_category(todo.id)
  assert [t.title for t in tasks] == ["c", "a", "b"]
  assert [t.order_index for t in tasks] == [0, 1, 2]

  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.event_type == "task.updated"
  assert ev.details["changedFields"] == ["orderIndex"]


@pytest.mark.anyio
async def test_move_across_categories_changes_ownership(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, done) = await make_board(services, actor)
  a, b = [await services.tasks.create(actor, {"title": n, "category_id": todo.id}) for n in "ab"]
  x = await services.tasks.create(actor, {"title": "x", "category_id": done.id})

  moved = await services.tasks.move(actor, a.id, done.id, 1)
  assert (await services.tasks.get(a.id)).category_id == done.id
  assert moved.order_index == 1
  assert [t.id for t in await services.tasks.list_by_category(todo.id)] == [b.id]
  assert [t.id for t in await services.tasks.list_by_category(done.id)] == [x.id, a.id]
  assert (await services.tasks.get(b.id)).order_index == 0

  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.details["changedFields"] == ["categoryId", "orderIndex"]
  assert ev.details["move"] == {"fromCategoryId": todo.id, "toCategoryId": done.id, "toIndex": 1}
  assert ev.details["before"]["categoryId"] == todo.id
  assert ev.details["after"]["categoryId"] == done.id


@pytest.mark.anyio
async def test_move_clamps_index_and_rejects_bad_targets(services: Services, actor: Actor) -> None:
  _, (todo, done) = await make_board(services, actor)
  _, (foreign, _) = await make_board(services, actor, name="Other")
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id})

  moved = await services.tasks.move(actor, t.id, done.id, 42)
  assert moved.order_index == 0

  with pytest.raises(ValidationError):
    await services.tasks.move(actor, t.id, foreign.id, 0)
  with pytest.raises(ValidationError):
    await services.tasks.move(actor, t.id, 999, 0)
  with pytest.raises(ValidationError):
    await services.tasks.move(actor, t.id, done.id, "first")
  with pytest.raises(NotFoundError):
    await services.tasks.move(actor, 999, done.id, 0)

  await services.tasks.archive(actor, t.id)
  with pytest.raises(ConflictError):
    await services.tasks.move(actor, t.id, todo.id, 0)


@pytest.mark.anyio
async def test_custom_data_view_hides_deleted_fields(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  board, (todo, _) = await make_board(services, actor)
  budget = await services.custom_fields.create(actor, board_id=board.id, name="Budget", field_type="number")
  await services.custom_fields.create(actor, board_id=board.id, name="Stage", field_type="select", options="A,B")
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id, "custom_data": {"Budget": "5", "Stage": "A"}})

  await services.custom_fields.delete(actor, budget.id)
  view = await services.tasks.custom_data_view(t.id)
  assert view.board_id == board.id
  assert [f.name for f in view.fields] == ["Stage"]
  assert view.values == {"Stage": "A"}
  # stored data is retained
  assert store.tasks[t.id].custom_data == {"Budget": "5", "Stage": "A"}

  await services.custom_fields.create(actor, board_id=board.id, name="Budget", field_type="number")
  view = await services.tasks.custom_data_view(t.id)
  assert view.values == {"Budget": "5", "Stage": "A"}


@pytest.mark.anyio
async def test_remove_custom_field_from_task(services: Services, store: MemoryEntityStore, actor: Actor) -> None:
  _, (todo, _) = await make_board(services, actor)
  t = await services.tasks.create(actor, {"title": "T", "category_id": todo.id, "custom_data": {"Budget": "5", "Stage": "A"}})
  t = await services.tasks.remove_custom_field(actor, t.id, "Budget")
  assert t.custom_data == {"Stage": "A"}
  ev = max(store.event_logs.values(), key=lambda ev: ev.id)
  assert ev.details["changedFields"] == ["customData"]
