from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from taskboard.audit import Actor, AuditTrail, EntityTypes, EventTypes
from taskboard.config import settings
from taskboard.entities import USER_ROLES, User
from taskboard.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from taskboard.security import hash_password
from taskboard.store.base import EntityStore
from taskboard.system_settings import ALLOW_REGISTRATIONS

MIN_PASSWORD_LENGTH = 6

USER_FIELDS = ("username", "password", "full_name", "email", "role", "avatar_color", "is_active")

# attribute -> wire name used in audit payloads
_WIRE = {"full_name": "fullName", "avatar_color": "avatarColor", "is_active": "isActive"}


def _public(u: User) -> dict[str, Any]:
  return {"username": u.username, "fullName": u.full_name, "email": u.email, "role": u.role, "isActive": u.is_active}


def _validate_user_fields(data: Mapping[str, Any], *, partial: bool) -> dict[str, str]:
  errors: dict[str, str] = {}
  for key in sorted(set(data) - set(USER_FIELDS)):
    errors[key] = "unknown field"
  if not partial or "username" in data:
    username = data.get("username")
    if not isinstance(username, str) or not username.strip():
      errors["username"] = "required"
  if not partial or "password" in data:
    password = data.get("password")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
      errors["password"] = f"must be at least {MIN_PASSWORD_LENGTH} characters"
  if "role" in data and data["role"] not in USER_ROLES:
    errors["role"] = f"must be one of {', '.join(USER_ROLES)}"
  if "is_active" in data and not isinstance(data["is_active"], bool):
    errors["isActive"] = "must be a boolean"
  return errors


def _to_row(data: Mapping[str, Any]) -> dict[str, Any]:
  row = {k: v for k, v in data.items() if k != "password" and v is not None}
  if "username" in row:
    row["username"] = row["username"].strip()
  if data.get("password") is not None:
    row["password_hash"] = hash_password(data["password"])
  return row


class UserService:
  def __init__(self, store: EntityStore, audit: AuditTrail) -> None:
    self._store = store
    self._audit = audit

  def is_primary_admin(self, u: User) -> bool:
    return u.username == settings.primary_admin_username and u.role == "admin"

  async def _require(self, user_id: int) -> User:
    u = await self._store.get_user(user_id)
    if not u:
      raise NotFoundError("User not found")
    return u

  async def _ensure_unique(self, username: str) -> None:
    if await self._store.get_user_by_username(username.strip()):
      raise ConflictError("Username already exists")

  async def get(self, user_id: int) -> User:
    return await self._require(user_id)

  async def list(self) -> list[User]:
    return await self._store.list_users()

  async def create(self, actor: Actor, data: Mapping[str, Any]) -> User:
    errors = _validate_user_fields(data, partial=False)
    if errors:
      raise ValidationError("Invalid user data", errors)
    await self._ensure_unique(data["username"])
    u = await self._store.create_user(_to_row(data))
    await self._audit.record(actor, EventTypes.USER_CREATED, EntityTypes.USER, u.id, _public(u))
    return u

  async def register(self, data: Mapping[str, Any], *, ip_address: str | None = None, user_agent: str | None = None) -> User:
    setting = await self._store.get_setting(ALLOW_REGISTRATIONS)
    if setting is not None and setting.value.strip().lower() != "true":
      raise ForbiddenError("Registrations are disabled")
    data = {k: v for k, v in data.items() if k not in ("role", "is_active")}
    errors = _validate_user_fields(data, partial=False)
    if errors:
      raise ValidationError("Invalid user data", errors)
    await self._ensure_unique(data["username"])
    u = await self._store.create_user(_to_row({**data, "role": "user", "is_active": True}))
    actor = Actor(user_id=u.id, ip_address=ip_address, user_agent=user_agent)
    await self._audit.record(actor, EventTypes.USER_REGISTERED, EntityTypes.USER, u.id, _public(u))
    return u

  async def update(self, actor: Actor, user_id: int, patch: Mapping[str, Any]) -> User:
    u = await self._require(user_id)
    errors = _validate_user_fields(patch, partial=True)
    if errors:
      raise ValidationError("Invalid user data", errors)
    if self.is_primary_admin(u) and (patch.get("role", "admin") != "admin" or patch.get("is_active") is False):
      raise ForbiddenError("The primary admin account cannot be demoted or disabled")
    if "username" in patch and patch["username"].strip() != u.username:
      await self._ensure_unique(patch["username"])

    fields = _to_row(patch)
    if not fields:
      return u
    updated = await self._store.update_user(user_id, fields)
    if not updated:
      raise NotFoundError("User not found")
    await self._audit.record(
      actor,
      EventTypes.USER_UPDATED,
      EntityTypes.USER,
      user_id,
      {"before": _public(u), "after": _public(updated), "changedFields": sorted(_WIRE.get(k, k) for k in patch)},
    )
    return updated

  async def delete(self, actor: Actor, user_id: int) -> None:
    u = await self._require(user_id)
    if self.is_primary_admin(u):
      raise ForbiddenError("Cannot delete the primary admin user")
    if actor.user_id == user_id:
      raise ValidationError("Cannot delete yourself", {"id": "is the acting user"})
    if not await self._store.delete_user(user_id):
      raise NotFoundError("User not found")
    await self._audit.record(actor, EventTypes.USER_DELETED, EntityTypes.USER, user_id, _public(u))
