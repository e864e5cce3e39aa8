from __future__ import annotations

from typing import Any

from taskboard.audit import Actor, AuditTrail, EntityTypes, EventTypes
from taskboard.config import settings
from taskboard.entities import SystemSetting
from taskboard.errors import NotFoundError, ValidationError
from taskboard.store.base import EntityStore

ALLOW_REGISTRATIONS = "allow_registrations"

DEFAULTS = {
  ALLOW_REGISTRATIONS: "Allow new users to self-register",
}


class SystemSettingService:
  def __init__(self, store: EntityStore, audit: AuditTrail) -> None:
    self._store = store
    self._audit = audit

  async def get(self, key: str) -> SystemSetting:
    s = await self._store.get_setting(key)
    if not s:
      raise NotFoundError(f"Setting '{key}' not found")
    return s

  async def put(self, actor: Actor, key: str, value: Any) -> SystemSetting:
    if not isinstance(value, str):
      raise ValidationError("Invalid setting", {"value": "must be a string"})
    before = await self._store.get_setting(key)
    s = await self._store.put_setting(key, value)
    await self._audit.record(
      actor,
      EventTypes.SYSTEM_SETTING_UPDATED,
      EntityTypes.SYSTEM,
      s.id,
      {"key": key, "before": before.value if before else None, "after": s.value},
    )
    return s

  async def ensure_defaults(self) -> None:
    if not await self._store.get_setting(ALLOW_REGISTRATIONS):
      value = "true" if settings.default_allow_registrations else "false"
      await self._store.put_setting(ALLOW_REGISTRATIONS, value, DEFAULTS[ALLOW_REGISTRATIONS])
