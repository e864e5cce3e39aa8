from __future__ import annotations

from typing import Any, Protocol

from taskboard.entities import (
  Board,
  Category,
  CustomField,
  EventLogEntry,
  EventLogFilter,
  SystemSetting,
  Task,
  User,
)


class EntityStore(Protocol):
  """
  Persistence boundary consumed by the services.

  Field mappings passed to create/update use the entity attribute names
  (snake_case). `update_*` returns None when the row does not exist and
  `delete_*` returns False. Implementations raise StorageError on backend
  failures.
  """

  # users
  async def list_users(self) -> list[User]: ...
  async def get_user(self, user_id: int) -> User | None: ...
  async def get_user_by_username(self, username: str) -> User | None: ...
  async def create_user(self, fields: dict[str, Any]) -> User: ...
  async def update_user(self, user_id: int, fields: dict[str, Any]) -> User | None: ...
  async def delete_user(self, user_id: int) -> bool: ...

  # system settings
  async def get_setting(self, key: str) -> SystemSetting | None: ...
  async def put_setting(self, key: str, value: str, description: str | None = None) -> SystemSetting: ...

  # boards
  async def list_boards(self, user_id: int, *, archived: bool = False) -> list[Board]: ...
  async def get_board(self, board_id: int) -> Board | None: ...
  async def create_board(self, fields: dict[str, Any]) -> Board: ...
  async def update_board(self, board_id: int, fields: dict[str, Any]) -> Board | None: ...
  async def delete_board_cascade(self, board_id: int) -> bool: ...

  # categories
  async def get_categories_by_board(self, board_id: int) -> list[Category]: ...
  async def get_category(self, category_id: int) -> Category | None: ...
  async def create_category(self, fields: dict[str, Any]) -> Category: ...
  async def update_category(self, category_id: int, fields: dict[str, Any]) -> Category | None: ...
  async def delete_category(self, category_id: int) -> bool: ...  # removes its remaining (archived) tasks too

  # custom fields
  async def get_custom_fields_by_board(self, board_id: int) -> list[CustomField]: ...
  async def get_custom_field(self, field_id: int) -> CustomField | None: ...
  async def create_custom_field(self, fields: dict[str, Any]) -> CustomField: ...
  async def update_custom_field(self, field_id: int, fields: dict[str, Any]) -> CustomField | None: ...
  async def delete_custom_field(self, field_id: int) -> bool: ...

  # tasks
  async def get_task(self, task_id: int) -> Task | None: ...
  async def create_task(self, fields: dict[str, Any]) -> Task: ...
  async def update_task(self, task_id: int, fields: dict[str, Any]) -> Task | None: ...
  async def delete_task(self, task_id: int) -> bool: ...
  async def list_tasks_by_category(self, category_id: int, include_archived: bool = False) -> list[Task]: ...
  async def list_archived_tasks_by_board(self, board_id: int) -> list[Task]: ...
  async def max_task_order(self, category_id: int) -> int | None: ...

  # event logs
  async def append_event_log(self, fields: dict[str, Any]) -> EventLogEntry: ...
  async def get_event_log(self, log_id: int) -> EventLogEntry | None: ...
  async def query_event_logs(self, flt: EventLogFilter, *, limit: int, offset: int) -> list[EventLogEntry]: ...
  async def count_event_logs(self, flt: EventLogFilter) -> int: ...
  async def count_event_logs_by_entity_type(self) -> dict[str, int]: ...
