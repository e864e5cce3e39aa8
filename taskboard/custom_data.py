"""
Reconciliation of a task's `customData` mapping.

Every function here is pure: it never mutates its inputs and never raises.
Anything that is not a mapping degrades to an empty mapping.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from taskboard.entities import CustomField


def _is_empty(value: Any) -> bool:
  return value is None or (isinstance(value, str) and value == "")


def normalize(candidate: Mapping[str, Any] | None) -> dict[str, Any]:
  if not isinstance(candidate, Mapping):
    return {}
  return {k: v for k, v in candidate.items() if isinstance(k, str) and not _is_empty(v)}


def merge_update(existing: Mapping[str, Any] | None, patch: Mapping[str, Any] | None) -> dict[str, Any]:
  """Overlay `patch` on `existing`; keys patched to None or "" are removed."""
  merged: dict[str, Any] = dict(existing) if isinstance(existing, Mapping) else {}
  if isinstance(patch, Mapping):
    merged.update(patch)
  return normalize(merged)


def prune_stale(data: Mapping[str, Any] | None, valid_field_names: Iterable[str]) -> dict[str, Any]:
  # Presentation only; stored customData keeps keys of deleted fields.
  valid = set(valid_field_names)
  return {k: v for k, v in normalize(data).items() if k in valid}


def remove_field(data: Mapping[str, Any] | None, field_name: str) -> dict[str, Any]:
  return merge_update(data, {field_name: None})


def visible_custom_data(data: Mapping[str, Any] | None, fields: Iterable[CustomField]) -> dict[str, Any]:
  return prune_stale(data, (f.name for f in fields))
