from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.audit import Actor
from taskboard.deps import get_actor, get_current_user, get_services
from taskboard.entities import CustomField, User
from taskboard.schemas import CustomFieldCreateIn, CustomFieldOut, CustomFieldUpdateIn
from taskboard.services import Services

router = APIRouter(prefix="/api", tags=["customFields"])


def field_out(f: CustomField) -> CustomFieldOut:
  return CustomFieldOut(id=f.id, boardId=f.board_id, name=f.name, type=f.type, options=f.options, optionList=f.option_list())


@router.get("/boards/{board_id}/customFields", response_model=list[CustomFieldOut])
async def list_custom_fields(
  board_id: int,
  _user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> list[CustomFieldOut]:
  return [field_out(f) for f in await services.custom_fields.list_for_board(board_id)]


@router.post("/customFields", response_model=CustomFieldOut, status_code=201)
async def create_custom_field(
  payload: CustomFieldCreateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> CustomFieldOut:
  f = await services.custom_fields.create(
    actor,
    board_id=payload.boardId,
    name=payload.name,
    field_type=payload.type,
    options=payload.options,
  )
  return field_out(f)


@router.put("/customFields/{field_id}", response_model=CustomFieldOut)
async def update_custom_field(
  field_id: int,
  payload: CustomFieldUpdateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> CustomFieldOut:
  f = await services.custom_fields.update(
    actor,
    field_id,
    name=payload.name,
    field_type=payload.type,
    options=payload.options,
  )
  return field_out(f)


@router.delete("/customFields/{field_id}")
async def delete_custom_field(field_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> dict:
  await services.custom_fields.delete(actor, field_id)
  return {"ok": True}
