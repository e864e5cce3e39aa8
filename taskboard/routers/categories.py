from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.audit import Actor
from taskboard.deps import get_actor, get_current_user, get_services
from taskboard.entities import Category, User
from taskboard.schemas import CategoryCreateIn, CategoryOut, CategoryReorderIn, CategoryUpdateIn
from taskboard.services import Services

router = APIRouter(prefix="/api", tags=["categories"])


def _category_out(c: Category) -> CategoryOut:
  return CategoryOut(id=c.id, boardId=c.board_id, name=c.name, color=c.color, order=c.order)


@router.get("/boards/{board_id}/categories", response_model=list[CategoryOut])
async def list_categories(
  board_id: int,
  _user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> list[CategoryOut]:
  return [_category_out(c) for c in await services.categories.list_for_board(board_id)]


@router.post("/boards/{board_id}/categories/reorder", response_model=list[CategoryOut])
async def reorder_categories(
  board_id: int,
  payload: CategoryReorderIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> list[CategoryOut]:
  categories = await services.categories.reorder(actor, board_id, payload.categoryIds)
  return [_category_out(c) for c in categories]


@router.post("/categories", response_model=CategoryOut, status_code=201)
async def create_category(
  payload: CategoryCreateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> CategoryOut:
  c = await services.categories.create(actor, board_id=payload.boardId, name=payload.name, color=payload.color)
  return _category_out(c)


@router.put("/categories/{category_id}", response_model=CategoryOut)
async def update_category(
  category_id: int,
  payload: CategoryUpdateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> CategoryOut:
  c = await services.categories.update(actor, category_id, name=payload.name, color=payload.color)
  return _category_out(c)


@router.delete("/categories/{category_id}")
async def delete_category(category_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> dict:
  await services.categories.delete(actor, category_id)
  return {"ok": True}
