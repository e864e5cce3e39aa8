from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.audit import Actor
from taskboard.deps import get_actor, get_current_user, get_services
from taskboard.entities import Board, User
from taskboard.schemas import BoardCreateIn, BoardOut, BoardUpdateIn
from taskboard.services import Services

router = APIRouter(prefix="/api", tags=["boards"])


def _board_out(b: Board) -> BoardOut:
  return BoardOut(id=b.id, name=b.name, userId=b.user_id, isArchived=b.is_archived, createdAt=b.created_at)


@router.get("/boards", response_model=list[BoardOut])
async def list_boards(
  showArchived: bool = False,
  user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> list[BoardOut]:
  boards = await services.boards.list_for_user(user.id, archived=showArchived)
  return [_board_out(b) for b in boards]


@router.post("/boards", response_model=BoardOut, status_code=201)
async def create_board(
  payload: BoardCreateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> BoardOut:
  return _board_out(await services.boards.create(actor, name=payload.name))


@router.get("/boards/{board_id}", response_model=BoardOut)
async def get_board(
  board_id: int,
  _user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> BoardOut:
  return _board_out(await services.boards.get(board_id))


@router.put("/boards/{board_id}", response_model=BoardOut)
async def rename_board(
  board_id: int,
  payload: BoardUpdateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> BoardOut:
  return _board_out(await services.boards.rename(actor, board_id, name=payload.name))


@router.put("/boards/{board_id}/archive", response_model=BoardOut)
async def archive_board(board_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> BoardOut:
  return _board_out(await services.boards.archive(actor, board_id))


@router.put("/boards/{board_id}/restore", response_model=BoardOut)
async def restore_board(board_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> BoardOut:
  return _board_out(await services.boards.restore(actor, board_id))


@router.delete("/boards/{board_id}")
async def delete_board(board_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> dict:
  await services.boards.delete(actor, board_id)
  return {"ok": True}
