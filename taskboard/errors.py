from __future__ import annotations


class CoreError(Exception):
  kind = "error"

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class ValidationError(CoreError):
  kind = "validation"

  def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
    super().__init__(message)
    self.fields = dict(fields or {})


class NotFoundError(CoreError):
  kind = "not_found"


class ConflictError(CoreError):
  kind = "conflict"


class ForbiddenError(CoreError):
  kind = "forbidden"


class StorageError(CoreError):
  kind = "storage"


class AuditError(CoreError):
  """Raised by the audit trail internally; never propagated past it."""

  kind = "audit"
