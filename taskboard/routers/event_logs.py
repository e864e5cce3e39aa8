from __future__ import annotations

from fastapi import APIRouter, Depends

from taskboard.deps import get_services, require_admin
from taskboard.entities import EventLogEntry
from taskboard.schemas import ActorSummaryOut, EventLogOut, EventLogPageOut, PaginationOut
from taskboard.services import Services

router = APIRouter(prefix="/api/eventLogs", tags=["eventLogs"], dependencies=[Depends(require_admin)])


def _event_out(ev: EventLogEntry) -> EventLogOut:
  user = None
  if ev.user:
    user = ActorSummaryOut(
      id=ev.user.id,
      username=ev.user.username,
      email=ev.user.email,
      role=ev.user.role,
      avatarColor=ev.user.avatar_color,
    )
  return EventLogOut(
    id=ev.id,
    userId=ev.user_id,
    eventType=ev.event_type,
    entityType=ev.entity_type,
    entityId=ev.entity_id,
    details=ev.details,
    ipAddress=ev.ip_address,
    userAgent=ev.user_agent,
    createdAt=ev.created_at,
    user=user,
  )


@router.get("", response_model=EventLogPageOut)
async def list_event_logs(
  page: int = 1,
  limit: int | None = None,
  userId: int | None = None,
  entityType: str | None = None,
  eventType: str | None = None,
  services: Services = Depends(get_services),
) -> EventLogPageOut:
  result = await services.audit.query(page=page, limit=limit, user_id=userId, entity_type=entityType, event_type=eventType)
  return EventLogPageOut(
    logs=[_event_out(ev) for ev in result.logs],
    pagination=PaginationOut(
      total=result.total,
      page=result.page,
      pageSize=result.page_size,
      totalPages=result.total_pages,
    ),
  )


@router.get("/stats/counts")
async def event_log_counts(services: Services = Depends(get_services)) -> dict[str, int]:
  return await services.audit.count_by_entity_type()


@router.get("/{log_id}", response_model=EventLogOut)
async def get_event_log(log_id: int, services: Services = Depends(get_services)) -> EventLogOut:
  return _event_out(await services.audit.get(log_id))
