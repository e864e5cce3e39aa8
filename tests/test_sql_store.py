from __future__ import annotations

import pytest

from taskboard.audit import Actor
from taskboard.entities import EventLogFilter
from taskboard.errors import ConflictError, NotFoundError, StorageError
from taskboard.services import Services
from taskboard.store.sql import SqlEntityStore


@pytest.fixture
def sql_services(sql_store: SqlEntityStore) -> Services:
  return Services(sql_store)


@pytest.fixture
async def sql_actor(sql_store: SqlEntityStore) -> Actor:
  u = await sql_store.create_user({"username": "admin", "password_hash": "x", "role": "admin"})
  return Actor(user_id=u.id, ip_address="127.0.0.1", user_agent="pytest")


@pytest.mark.anyio
async def test_task_lifecycle_against_sql(sql_services: Services, sql_store: SqlEntityStore, sql_actor: Actor) -> None:
  s, actor = sql_services, sql_actor
  board = await s.boards.create(actor, name="B")
  todo = await s.categories.create(actor, board_id=board.id, name="To Do")
  done = await s.categories.create(actor, board_id=board.id, name="Done")
  await s.custom_fields.create(actor, board_id=board.id, name="Budget", field_type="number")

  t = await s.tasks.create(actor, {"title": "T", "category_id": todo.id, "custom_data": {"Budget": "500"}, "assignees": [actor.user_id]})
  assert t.custom_data == {"Budget": "500"}
  assert t.assignees == [actor.user_id]

  t = await s.tasks.update(actor, t.id, {"custom_data": {"Budget": "", "Stage": "A"}})
  assert (await sql_store.get_task(t.id)).custom_data == {"Stage": "A"}

  await s.tasks.archive(actor, t.id)
  assert await s.tasks.list_by_category(todo.id) == []
  assert [x.id for x in await s.tasks.list_archived(board.id)] == [t.id]
  await s.tasks.restore(actor, t.id)

  moved = await s.tasks.move(actor, t.id, done.id, 0)
  assert moved.category_id == done.id
  assert [x.id for x in await s.tasks.list_by_category(done.id)] == [t.id]

  with pytest.raises(ConflictError):
    await s.categories.delete(actor, done.id)

  await s.tasks.delete(actor, t.id)
  with pytest.raises(NotFoundError):
    await s.tasks.get(t.id)

  page = await s.audit.query(entity_type="task")
  assert [ev.event_type for ev in page.logs] == [
    "task.deleted",
    "task.updated",
    "task.restored",
    "task.archived",
    "task.updated",
    "task.created",
  ]
  assert page.logs[0].details["task"]["title"] == "T"
  assert page.logs[0].user is not None
  assert page.logs[0].user.username == "admin"


@pytest.mark.anyio
async def test_category_ordering_and_reorder(sql_services: Services, sql_actor: Actor) -> None:
  s, actor = sql_services, sql_actor
  board = await s.boards.create(actor, name="B")
  cats = [await s.categories.create(actor, board_id=board.id, name=n) for n in ("A", "B", "C")]
  assert [c.order for c in cats] == [0, 1, 2]
  out = await s.categories.reorder(actor, board.id, [cats[2].id, cats[0].id, cats[1].id])
  assert [c.name for c in out] == ["C", "A", "B"]


@pytest.mark.anyio
async def test_board_delete_cascades_in_one_transaction(sql_services: Services, sql_store: SqlEntityStore, sql_actor: Actor) -> None:
  s, actor = sql_services, sql_actor
  board = await s.boards.create(actor, name="B")
  todo = await s.categories.create(actor, board_id=board.id, name="To Do")
  await s.custom_fields.create(actor, board_id=board.id, name="Budget", field_type="number")
  t = await s.tasks.create(actor, {"title": "T", "category_id": todo.id})
  await s.tasks.archive(actor, t.id)

  await s.boards.delete(actor, board.id)
  assert await sql_store.get_board(board.id) is None
  assert await sql_store.get_category(todo.id) is None
  assert await sql_store.get_task(t.id) is None
  assert await sql_store.get_custom_fields_by_board(board.id) == []
  assert await sql_store.delete_board_cascade(board.id) is False


@pytest.mark.anyio
async def test_category_delete_removes_archived_tasks(sql_services: Services, sql_store: SqlEntityStore, sql_actor: Actor) -> None:
  s, actor = sql_services, sql_actor
  board = await s.boards.create(actor, name="B")
  todo = await s.categories.create(actor, board_id=board.id, name="To Do")
  done = await s.categories.create(actor, board_id=board.id, name="Done")
  t = await s.tasks.create(actor, {"title": "T", "category_id": todo.id})
  kept = await s.tasks.create(actor, {"title": "K", "category_id": done.id})
  await s.tasks.archive(actor, t.id)

  await s.categories.delete(actor, todo.id)
  assert await sql_store.get_category(todo.id) is None
  assert await sql_store.get_task(t.id) is None
  assert await sql_store.get_task(kept.id) is not None
  assert await s.tasks.list_archived(board.id) == []
  assert await sql_store.delete_category(todo.id) is False



@pytest.mark.anyio
async def test_event_log_counts_and_filters(sql_services: Services, sql_store: SqlEntityStore, sql_actor: Actor) -> None:
  s, actor = sql_services, sql_actor
  board = await s.boards.create(actor, name="B")
  await s.categories.create(actor, board_id=board.id, name="To Do")
  await s.settings.put(actor, "allow_registrations", "false")

  counts = await s.audit.count_by_entity_type()
  assert (counts["board"], counts["category"], counts["system"], counts["total"]) == (1, 1, 1, 3)
  assert await sql_store.count_event_logs(EventLogFilter(event_type="board.created")) == 1
  assert await sql_store.count_event_logs(EventLogFilter(user_id=actor.user_id + 1)) == 0


@pytest.mark.anyio
async def test_settings_upsert(sql_store: SqlEntityStore) -> None:
  first = await sql_store.put_setting("allow_registrations", "true", "Allow self-registration")
  second = await sql_store.put_setting("allow_registrations", "false")
  assert first.id == second.id
  assert second.value == "false"
  assert second.description == "Allow self-registration"


@pytest.mark.anyio
async def test_constraint_violations_become_storage_errors(sql_store: SqlEntityStore) -> None:
  await sql_store.create_user({"username": "dup", "password_hash": "x"})
  with pytest.raises(StorageError):
    await sql_store.create_user({"username": "dup", "password_hash": "y"})


@pytest.mark.anyio
async def test_missing_rows(sql_store: SqlEntityStore) -> None:
  assert await sql_store.get_task(1) is None
  assert await sql_store.update_task(1, {"title": "x"}) is None
  assert await sql_store.delete_task(1) is False
  assert await sql_store.max_task_order(1) is None
  assert await sql_store.get_event_log(1) is None
