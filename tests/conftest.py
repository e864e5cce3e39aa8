from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taskboard.audit import Actor
from taskboard.db import init_db
from taskboard.deps import get_store
from taskboard.entities import Board, Category, User
from taskboard.main import app
from taskboard.services import Services
from taskboard.store.memory import MemoryEntityStore
from taskboard.store.sql import SqlEntityStore


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def store() -> MemoryEntityStore:
  return MemoryEntityStore()


@pytest.fixture
def services(store: MemoryEntityStore) -> Services:
  return Services(store)


@pytest.fixture
async def admin(store: MemoryEntityStore) -> User:
  return await store.create_user({"username": "admin", "password_hash": "x", "role": "admin", "full_name": "Admin"})


@pytest.fixture
async def member(store: MemoryEntityStore) -> User:
  return await store.create_user({"username": "member", "password_hash": "x", "role": "user", "full_name": "Member"})


@pytest.fixture
def actor(admin: User) -> Actor:
  return Actor(user_id=admin.id, ip_address="127.0.0.1", user_agent="pytest")


@pytest.fixture
async def client(store: MemoryEntityStore) -> AsyncClient:
  app.dependency_overrides[get_store] = lambda: store
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c
  app.dependency_overrides.clear()


def _enforce_foreign_keys(dbapi_conn, _record) -> None:
  cur = dbapi_conn.cursor()
  cur.execute("PRAGMA foreign_keys = ON")
  cur.close()


@pytest.fixture
async def sql_store() -> SqlEntityStore:
  engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
  event.listen(engine.sync_engine, "connect", _enforce_foreign_keys)
  await init_db(engine)
  yield SqlEntityStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
  await engine.dispose()


def auth(user: User) -> dict[str, str]:
  return {"X-User-Id": str(user.id)}


async def make_board(
  services: Services,
  actor: Actor,
  *,
  name: str = "Board",
  categories: tuple[str, ...] = ("To Do", "Done"),
) -> tuple[Board, list[Category]]:
  board = await services.boards.create(actor, name=name)
  cats = [await services.categories.create(actor, board_id=board.id, name=n) for n in categories]
  return board, cats


def event_types(store: MemoryEntityStore) -> list[str]:
  return [ev.event_type for ev in sorted(store.event_logs.values(), key=lambda ev: ev.id)]
