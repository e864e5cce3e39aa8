from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.audit import Actor
from taskboard.deps import get_actor, get_services, require_admin
from taskboard.entities import SystemSetting, User
from taskboard.schemas import SettingOut, SettingUpdateIn
from taskboard.services import Services

router = APIRouter(prefix="/api/settings", tags=["settings"], dependencies=[Depends(require_admin)])


def _setting_out(s: SystemSetting) -> SettingOut:
  return SettingOut(key=s.key, value=s.value, description=s.description, updatedAt=s.updated_at)


@router.get("/{key}", response_model=SettingOut)
async def get_setting(key: str, services: Services = Depends(get_services)) -> SettingOut:
  return _setting_out(await services.settings.get(key))


@router.put("/{key}", response_model=SettingOut)
async def put_setting(
  key: str,
  payload: SettingUpdateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> SettingOut:
  return _setting_out(await services.settings.put(actor, key, payload.value))
