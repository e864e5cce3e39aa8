from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from taskboard.audit import Actor
from taskboard.deps import client_ip, get_actor, get_current_user, get_services, require_admin
from taskboard.entities import User
from taskboard.schemas import RegisterIn, UserCreateIn, UserOut, UserUpdateIn
from taskboard.services import Services

router = APIRouter(prefix="/api", tags=["users"])

_ATTRS = {
  "username": "username",
  "password": "password",
  "fullName": "full_name",
  "email": "email",
  "role": "role",
  "avatarColor": "avatar_color",
  "isActive": "is_active",
}


def _user_out(u: User) -> UserOut:
  return UserOut(
    id=u.id,
    username=u.username,
    fullName=u.full_name,
    email=u.email,
    role=u.role,
    avatarColor=u.avatar_color,
    isActive=u.is_active,
    createdAt=u.created_at,
  )


@router.get("/users", response_model=list[UserOut])
async def list_users(_user: User = Depends(get_current_user), services: Services = Depends(get_services)) -> list[UserOut]:
  return [_user_out(u) for u in await services.users.list()]


@router.post("/users", response_model=UserOut, status_code=201)
async def create_user(
  payload: UserCreateIn,
  _admin: User = Depends(require_admin),
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> UserOut:
  data = {_ATTRS[k]: v for k, v in payload.model_dump(exclude_none=True).items()}
  return _user_out(await services.users.create(actor, data))


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(user_id: int, _user: User = Depends(get_current_user), services: Services = Depends(get_services)) -> UserOut:
  return _user_out(await services.users.get(user_id))


@router.put("/users/{user_id}", response_model=UserOut)
async def update_user(
  user_id: int,
  payload: UserUpdateIn,
  _admin: User = Depends(require_admin),
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> UserOut:
  patch = {_ATTRS[k]: v for k, v in payload.model_dump(exclude_unset=True, exclude_none=True).items()}
  return _user_out(await services.users.update(actor, user_id, patch))


@router.delete("/users/{user_id}")
async def delete_user(
  user_id: int,
  _admin: User = Depends(require_admin),
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> dict:
  await services.users.delete(actor, user_id)
  return {"ok": True}


@router.post("/register", response_model=UserOut, status_code=201)
async def register(payload: RegisterIn, request: Request, services: Services = Depends(get_services)) -> UserOut:
  data = {_ATTRS[k]: v for k, v in payload.model_dump(exclude_none=True).items()}
  u = await services.users.register(data, ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))
  return _user_out(u)
