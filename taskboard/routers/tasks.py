from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from taskboard.audit import Actor
from taskboard.deps import get_actor, get_current_user, get_services
from taskboard.entities import Task, User
from taskboard.routers.custom_fields import field_out
from taskboard.schemas import TaskCreateIn, TaskCustomDataOut, TaskMoveIn, TaskOut, TaskUpdateIn
from taskboard.services import Services
from taskboard.tasks import TASK_FIELDS

router = APIRouter(prefix="/api", tags=["tasks"])

_ATTRS = {wire: attr for attr, wire in TASK_FIELDS.items()}


def _task_out(t: Task) -> TaskOut:
  return TaskOut(
    id=t.id,
    categoryId=t.category_id,
    title=t.title,
    description=t.description,
    dueDate=t.due_date,
    priority=t.priority,
    isArchived=t.is_archived,
    assignees=t.assignees,
    customData=t.custom_data,
    comments=t.comments,
    orderIndex=t.order_index,
    createdAt=t.created_at,
  )


@router.get("/categories/{category_id}/tasks", response_model=list[TaskOut])
async def list_tasks(
  category_id: int,
  includeArchived: bool = False,
  _user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> list[TaskOut]:
  tasks = await services.tasks.list_by_category(category_id, include_archived=includeArchived)
  return [_task_out(t) for t in tasks]


@router.get("/boards/{board_id}/archivedTasks", response_model=list[TaskOut])
async def list_archived_tasks(
  board_id: int,
  _user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> list[TaskOut]:
  return [_task_out(t) for t in await services.tasks.list_archived(board_id)]


@router.post("/tasks", response_model=TaskOut, status_code=201)
async def create_task(
  payload: TaskCreateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> TaskOut:
  data = {_ATTRS[k]: v for k, v in payload.model_dump().items()}
  return _task_out(await services.tasks.create(actor, data))


@router.get("/tasks/{task_id}", response_model=TaskOut)
async def get_task(task_id: int, _user: User = Depends(get_current_user), services: Services = Depends(get_services)) -> TaskOut:
  return _task_out(await services.tasks.get(task_id))


@router.put("/tasks/{task_id}", response_model=TaskOut)
async def update_task(
  task_id: int,
  payload: TaskUpdateIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> TaskOut:
  patch = {_ATTRS[k]: v for k, v in payload.model_dump(exclude_unset=True).items()}
  return _task_out(await services.tasks.update(actor, task_id, patch))


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> Response:
  deleted = await services.tasks.delete(actor, task_id)
  # Lets clients invalidate the owning column without re-reading the task.
  return Response(status_code=204, headers={"X-Category-ID": str(deleted.category_id)})


@router.put("/tasks/{task_id}/archive", response_model=TaskOut)
async def archive_task(task_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> TaskOut:
  return _task_out(await services.tasks.archive(actor, task_id))


@router.put("/tasks/{task_id}/restore", response_model=TaskOut)
async def restore_task(task_id: int, actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> TaskOut:
  return _task_out(await services.tasks.restore(actor, task_id))


@router.post("/tasks/{task_id}/move", response_model=TaskOut)
async def move_task(
  task_id: int,
  payload: TaskMoveIn,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> TaskOut:
  return _task_out(await services.tasks.move(actor, task_id, payload.categoryId, payload.toIndex))


@router.get("/tasks/{task_id}/customData", response_model=TaskCustomDataOut)
async def get_task_custom_data(
  task_id: int,
  _user: User = Depends(get_current_user),
  services: Services = Depends(get_services),
) -> TaskCustomDataOut:
  view = await services.tasks.custom_data_view(task_id)
  return TaskCustomDataOut(
    taskId=view.task_id,
    boardId=view.board_id,
    fields=[field_out(f) for f in view.fields],
    values=view.values,
  )


@router.delete("/tasks/{task_id}/customData/{field_name}", response_model=TaskOut)
async def remove_task_custom_data(
  task_id: int,
  field_name: str,
  actor: Actor = Depends(get_actor),
  services: Services = Depends(get_services),
) -> TaskOut:
  return _task_out(await services.tasks.remove_custom_field(actor, task_id, field_name))
