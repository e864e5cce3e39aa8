from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard import entities as e
from taskboard import models as m
from taskboard.errors import StorageError

logger = logging.getLogger(__name__)

Row = TypeVar("Row", bound=m.Base)


def _user(u: m.User) -> e.User:
  return e.User(
    id=u.id,
    username=u.username,
    password_hash=u.password_hash,
    full_name=u.full_name,
    email=u.email,
    role=u.role,
    avatar_color=u.avatar_color,
    is_active=bool(u.is_active),
    created_at=u.created_at,
  )


def _setting(s: m.SystemSetting) -> e.SystemSetting:
  return e.SystemSetting(id=s.id, key=s.key, value=s.value, description=s.description, updated_at=s.updated_at)


def _board(b: m.Board) -> e.Board:
  return e.Board(id=b.id, name=b.name, user_id=b.user_id, is_archived=bool(b.is_archived), created_at=b.created_at)


def _category(c: m.Category) -> e.Category:
  return e.Category(id=c.id, name=c.name, color=c.color, board_id=c.board_id, order=c.order)


def _custom_field(f: m.CustomField) -> e.CustomField:
  return e.CustomField(id=f.id, name=f.name, type=f.type, board_id=f.board_id, options=f.options)


def _task(t: m.Task) -> e.Task:
  return e.Task(
    id=t.id,
    title=t.title,
    category_id=t.category_id,
    description=t.description,
    due_date=t.due_date,
    priority=t.priority,
    is_archived=bool(t.is_archived),
    assignees=list(t.assignees or []),
    custom_data=dict(t.custom_data or {}),
    comments=int(t.comments or 0),
    order_index=int(t.order_index or 0),
    created_at=t.created_at,
  )


def _event_log(ev: m.EventLog, u: m.User | None = None) -> e.EventLogEntry:
  summary = None
  if u is not None:
    summary = e.ActorSummary(id=u.id, username=u.username, email=u.email, role=u.role, avatar_color=u.avatar_color)
  return e.EventLogEntry(
    id=ev.id,
    user_id=ev.user_id,
    event_type=ev.event_type,
    entity_type=ev.entity_type,
    entity_id=ev.entity_id,
    details=dict(ev.details or {}),
    ip_address=ev.ip_address,
    user_agent=ev.user_agent,
    created_at=ev.created_at,
    user=summary,
  )


def _event_filters(flt: e.EventLogFilter) -> list[Any]:
  clauses = []
  if flt.user_id is not None:
    clauses.append(m.EventLog.user_id == flt.user_id)
  if flt.entity_type is not None:
    clauses.append(m.EventLog.entity_type == flt.entity_type)
  if flt.event_type is not None:
    clauses.append(m.EventLog.event_type == flt.event_type)
  return clauses


class SqlEntityStore:
  """EntityStore over SQLAlchemy async sessions; one session per call."""

  def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
    self._sessions = sessions

  @asynccontextmanager
  async def _session(self) -> AsyncIterator[AsyncSession]:
    try:
      async with self._sessions() as db:
        yield db
    except SQLAlchemyError as exc:
      logger.error("Entity store operation failed: %s", exc)
      raise StorageError("Storage operation failed") from exc

  async def _insert(self, row: Row) -> Row:
    async with self._session() as db:
      db.add(row)
      await db.commit()
      await db.refresh(row)
      return row

  async def _update(self, model: type[Row], row_id: int, fields: dict[str, Any]) -> Row | None:
    async with self._session() as db:
      row = await db.get(model, row_id)
      if row is None:
        return None
      for k, v in fields.items():
        setattr(row, k, v)
      await db.commit()
      await db.refresh(row)
      return row

  async def _delete(self, model: type[Row], row_id: int) -> bool:
    async with self._session() as db:
      res = await db.execute(delete(model).where(model.id == row_id))
      await db.commit()
      return (res.rowcount or 0) > 0

  async def _get(self, model: type[Row], row_id: int) -> Row | None:
    async with self._session() as db:
      return await db.get(model, row_id)

  async def _all(self, stmt: Any) -> list[Any]:
    async with self._session() as db:
      res = await db.execute(stmt)
      return list(res.scalars().all())

  # users

  async def list_users(self) -> list[e.User]:
    return [_user(u) for u in await self._all(select(m.User).order_by(m.User.id.asc()))]

  async def get_user(self, user_id: int) -> e.User | None:
    u = await self._get(m.User, user_id)
    return _user(u) if u else None

  async def get_user_by_username(self, username: str) -> e.User | None:
    rows = await self._all(select(m.User).where(m.User.username == username))
    return _user(rows[0]) if rows else None

  async def create_user(self, fields: dict[str, Any]) -> e.User:
    return _user(await self._insert(m.User(**fields)))

  async def update_user(self, user_id: int, fields: dict[str, Any]) -> e.User | None:
    u = await self._update(m.User, user_id, fields)
    return _user(u) if u else None

  async def delete_user(self, user_id: int) -> bool:
    return await self._delete(m.User, user_id)

  # system settings

  async def get_setting(self, key: str) -> e.SystemSetting | None:
    rows = await self._all(select(m.SystemSetting).where(m.SystemSetting.key == key))
    return _setting(rows[0]) if rows else None

  async def put_setting(self, key: str, value: str, description: str | None = None) -> e.SystemSetting:
    async with self._session() as db:
      res = await db.execute(select(m.SystemSetting).where(m.SystemSetting.key == key))
      s = res.scalar_one_or_none()
      if s is None:
        s = m.SystemSetting(key=key, value=value, description=description)
        db.add(s)
      else:
        s.value = value
        if description is not None:
          s.description = description
      await db.commit()
      await db.refresh(s)
      return _setting(s)

  # boards

  async def list_boards(self, user_id: int, *, archived: bool = False) -> list[e.Board]:
    stmt = (
      select(m.Board)
      .where(m.Board.user_id == user_id, m.Board.is_archived.is_(archived))
      .order_by(m.Board.id.asc())
    )
    return [_board(b) for b in await self._all(stmt)]

  async def get_board(self, board_id: int) -> e.Board | None:
    b = await self._get(m.Board, board_id)
    return _board(b) if b else None

  async def create_board(self, fields: dict[str, Any]) -> e.Board:
    return _board(await self._insert(m.Board(**fields)))

  async def update_board(self, board_id: int, fields: dict[str, Any]) -> e.Board | None:
    b = await self._update(m.Board, board_id, fields)
    return _board(b) if b else None

  async def delete_board_cascade(self, board_id: int) -> bool:
    async with self._session() as db:
      async with db.begin():
        category_ids = select(m.Category.id).where(m.Category.board_id == board_id)
        await db.execute(delete(m.Task).where(m.Task.category_id.in_(category_ids)))
        await db.execute(delete(m.Category).where(m.Category.board_id == board_id))
        await db.execute(delete(m.CustomField).where(m.CustomField.board_id == board_id))
        res = await db.execute(delete(m.Board).where(m.Board.id == board_id))
      return (res.rowcount or 0) > 0

  # categories

  async def get_categories_by_board(self, board_id: int) -> list[e.Category]:
    stmt = select(m.Category).where(m.Category.board_id == board_id).order_by(m.Category.order.asc(), m.Category.id.asc())
    return [_category(c) for c in await self._all(stmt)]

  async def get_category(self, category_id: int) -> e.Category | None:
    c = await self._get(m.Category, category_id)
    return _category(c) if c else None

  async def create_category(self, fields: dict[str, Any]) -> e.Category:
    return _category(await self._insert(m.Category(**fields)))

  async def update_category(self, category_id: int, fields: dict[str, Any]) -> e.Category | None:
    c = await self._update(m.Category, category_id, fields)
    return _category(c) if c else None

  async def delete_category(self, category_id: int) -> bool:
    # archived tasks go with their category
    async with self._session() as db:
      async with db.begin():
        await db.execute(delete(m.Task).where(m.Task.category_id == category_id))
        res = await db.execute(delete(m.Category).where(m.Category.id == category_id))
      return (res.rowcount or 0) > 0


  # custom fields

  async def get_custom_fields_by_board(self, board_id: int) -> list[e.CustomField]:
    stmt = select(m.CustomField).where(m.CustomField.board_id == board_id).order_by(m.CustomField.id.asc())
    return [_custom_field(f) for f in await self._all(stmt)]

  async def get_custom_field(self, field_id: int) -> e.CustomField | None:
    f = await self._get(m.CustomField, field_id)
    return _custom_field(f) if f else None

  async def create_custom_field(self, fields: dict[str, Any]) -> e.CustomField:
    return _custom_field(await self._insert(m.CustomField(**fields)))

  async def update_custom_field(self, field_id: int, fields: dict[str, Any]) -> e.CustomField | None:
    f = await self._update(m.CustomField, field_id, fields)
    return _custom_field(f) if f else None

  async def delete_custom_field(self, field_id: int) -> bool:
    return await self._delete(m.CustomField, field_id)

  # tasks

  async def get_task(self, task_id: int) -> e.Task | None:
    t = await self._get(m.Task, task_id)
    return _task(t) if t else None

  async def create_task(self, fields: dict[str, Any]) -> e.Task:
    return _task(await self._insert(m.Task(**fields)))

  async def update_task(self, task_id: int, fields: dict[str, Any]) -> e.Task | None:
    t = await self._update(m.Task, task_id, fields)
    return _task(t) if t else None

  async def delete_task(self, task_id: int) -> bool:
    return await self._delete(m.Task, task_id)

  async def list_tasks_by_category(self, category_id: int, include_archived: bool = False) -> list[e.Task]:
    stmt = select(m.Task).where(m.Task.category_id == category_id)
    if not include_archived:
      stmt = stmt.where(m.Task.is_archived.is_(False))
    stmt = stmt.order_by(m.Task.order_index.asc(), m.Task.id.asc())
    return [_task(t) for t in await self._all(stmt)]

  async def list_archived_tasks_by_board(self, board_id: int) -> list[e.Task]:
    stmt = (
      select(m.Task)
      .join(m.Category, m.Category.id == m.Task.category_id)
      .where(m.Category.board_id == board_id, m.Task.is_archived.is_(True))
      .order_by(m.Task.id.asc())
    )
    return [_task(t) for t in await self._all(stmt)]

  async def max_task_order(self, category_id: int) -> int | None:
    async with self._session() as db:
      res = await db.execute(select(func.max(m.Task.order_index)).where(m.Task.category_id == category_id))
      return res.scalar_one()

  # event logs

  async def append_event_log(self, fields: dict[str, Any]) -> e.EventLogEntry:
    return _event_log(await self._insert(m.EventLog(**fields)))

  async def get_event_log(self, log_id: int) -> e.EventLogEntry | None:
    async with self._session() as db:
      res = await db.execute(
        select(m.EventLog, m.User).outerjoin(m.User, m.User.id == m.EventLog.user_id).where(m.EventLog.id == log_id)
      )
      row = res.first()
      return _event_log(row[0], row[1]) if row else None

  async def query_event_logs(self, flt: e.EventLogFilter, *, limit: int, offset: int) -> list[e.EventLogEntry]:
    stmt = (
      select(m.EventLog, m.User)
      .outerjoin(m.User, m.User.id == m.EventLog.user_id)
      .where(*_event_filters(flt))
      .order_by(m.EventLog.created_at.desc(), m.EventLog.id.desc())
      .limit(limit)
      .offset(offset)
    )
    async with self._session() as db:
      res = await db.execute(stmt)
      return [_event_log(ev, u) for ev, u in res.all()]

  async def count_event_logs(self, flt: e.EventLogFilter) -> int:
    async with self._session() as db:
      res = await db.execute(select(func.count()).select_from(m.EventLog).where(*_event_filters(flt)))
      return int(res.scalar_one() or 0)

  async def count_event_logs_by_entity_type(self) -> dict[str, int]:
    async with self._session() as db:
      res = await db.execute(select(m.EventLog.entity_type, func.count()).group_by(m.EventLog.entity_type))
      return {entity_type: int(n) for entity_type, n in res.all()}
