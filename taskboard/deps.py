from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from taskboard.audit import Actor
from taskboard.entities import User
from taskboard.services import Services
from taskboard.store.base import EntityStore


def get_store(request: Request) -> EntityStore:
  return request.app.state.store


def get_services(store: EntityStore = Depends(get_store)) -> Services:
  return Services(store)


def client_ip(request: Request) -> str | None:
  return request.client.host if request.client else None


async def get_current_user(
  services: Services = Depends(get_services),
  x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> User:
  # X-User-Id is set by the authenticating proxy in front of the API.
  if not x_user_id:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
  try:
    uid = int(x_user_id)
  except ValueError:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id")
  u = await services.store.get_user(uid)
  if not u:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
  if not u.is_active:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User disabled")
  return u


async def get_actor(request: Request, user: User = Depends(get_current_user)) -> Actor:
  return Actor(user_id=user.id, ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))


async def require_admin(user: User = Depends(get_current_user)) -> User:
  if user.role != "admin":
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
  return user
