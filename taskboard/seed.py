from __future__ import annotations

import asyncio
import logging
import secrets

from taskboard.audit import Actor
from taskboard.config import settings
from taskboard.db import SessionLocal, init_db
from taskboard.entities import User
from taskboard.log import setup_logging
from taskboard.security import hash_password
from taskboard.services import Services
from taskboard.store.sql import SqlEntityStore

logger = logging.getLogger(__name__)

DEMO_BOARD = "Demo Board"
DEMO_CATEGORIES = [("To Do", "#6366f1"), ("In Progress", "#f59e0b"), ("Done", "#10b981")]


def _bootstrap_password() -> tuple[str, bool]:
  configured = (settings.seed_admin_password or "").strip()
  if configured:
    return configured, False
  return secrets.token_urlsafe(14), True


async def ensure_admin(services: Services) -> User:
  admin = await services.store.get_user_by_username(settings.primary_admin_username)
  if admin:
    return admin
  password, generated = _bootstrap_password()
  admin = await services.store.create_user(
    {
      "username": settings.primary_admin_username,
      "password_hash": hash_password(password),
      "full_name": "Administrator",
      "role": "admin",
      "is_active": True,
    }
  )
  if generated:
    logger.warning("Created %s with generated password: %s", admin.username, password)
  else:
    logger.info("Created %s from SEED_ADMIN_PASSWORD", admin.username)
  return admin


async def ensure_demo_board(services: Services, admin: User) -> None:
  if any(b.name == DEMO_BOARD for b in await services.boards.list_for_user(admin.id)):
    return
  actor = Actor(user_id=admin.id, user_agent="seed")
  board = await services.boards.create(actor, name=DEMO_BOARD)
  categories = [await services.categories.create(actor, board_id=board.id, name=n, color=c) for n, c in DEMO_CATEGORIES]
  await services.custom_fields.create(actor, board_id=board.id, name="Budget", field_type="number")
  await services.custom_fields.create(actor, board_id=board.id, name="Stage", field_type="select", options="Design,Build,Ship")
  await services.tasks.create(
    actor,
    {
      "title": "Welcome to the board",
      "description": "Drag this card to another column.",
      "category_id": categories[0].id,
      "priority": "medium",
      "custom_data": {"Stage": "Design"},
    },
  )


async def seed(services: Services) -> None:
  admin = await ensure_admin(services)
  await services.settings.ensure_defaults()
  if settings.seed_demo_board:
    await ensure_demo_board(services, admin)


async def _seed_database() -> None:
  await init_db()
  await seed(Services(SqlEntityStore(SessionLocal)))


def main() -> None:
  setup_logging()
  asyncio.run(_seed_database())


if __name__ == "__main__":
  main()
