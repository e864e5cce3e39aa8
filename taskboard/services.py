from __future__ import annotations

from taskboard.audit import AuditTrail
from taskboard.boards import BoardService
from taskboard.categories import CategoryService
from taskboard.custom_fields import CustomFieldService
from taskboard.dragdrop import DragDropCoordinator
from taskboard.store.base import EntityStore
from taskboard.system_settings import SystemSettingService
from taskboard.tasks import TaskService
from taskboard.users import UserService


class Services:
  """Every service wired against one store and one audit trail."""

  def __init__(self, store: EntityStore) -> None:
    self.store = store
    self.audit = AuditTrail(store)
    self.boards = BoardService(store, self.audit)
    self.categories = CategoryService(store, self.audit)
    self.custom_fields = CustomFieldService(store, self.audit)
    self.tasks = TaskService(store, self.audit)
    self.users = UserService(store, self.audit)
    self.settings = SystemSettingService(store, self.audit)

  def board_view(self) -> DragDropCoordinator:
    return DragDropCoordinator(self.tasks, self.categories)
