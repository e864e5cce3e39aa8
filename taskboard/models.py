from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  username: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  full_name: Mapped[str | None] = mapped_column(String, nullable=True)
  email: Mapped[str | None] = mapped_column(String, nullable=True)
  role: Mapped[str] = mapped_column(String, nullable=False, default="user")
  avatar_color: Mapped[str] = mapped_column(String, nullable=False, default="#6366f1")
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class SystemSetting(Base):
  __tablename__ = "system_settings"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  key: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  value: Mapped[str] = mapped_column(Text, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Board(Base):
  __tablename__ = "boards"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
  is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Category(Base):
  __tablename__ = "categories"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  color: Mapped[str] = mapped_column(String, nullable=False)
  board_id: Mapped[int] = mapped_column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
  order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CustomField(Base):
  __tablename__ = "custom_fields"
  __table_args__ = (UniqueConstraint("board_id", "name", name="ux_custom_fields_board_name"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  type: Mapped[str] = mapped_column(String, nullable=False)
  options: Mapped[str | None] = mapped_column(Text, nullable=True)
  board_id: Mapped[int] = mapped_column(Integer, ForeignKey("boards.id"), nullable=False, index=True)


class Task(Base):
  __tablename__ = "tasks"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  due_date: Mapped[str | None] = mapped_column(String, nullable=True)
  priority: Mapped[str | None] = mapped_column(String, nullable=True)
  category_id: Mapped[int] = mapped_column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
  is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  assignees: Mapped[list[int]] = mapped_column(JsonType, nullable=False, default=list)
  custom_data: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)
  comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class EventLog(Base):
  __tablename__ = "event_logs"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  # No FK to users: the audit trail outlives deleted actors.
  user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
  event_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  entity_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
  details: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)
  ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
  user_agent: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
