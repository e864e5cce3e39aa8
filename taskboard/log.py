from __future__ import annotations

import logging
import sys

from taskboard.config import settings

_LEVELS = {
  "debug": logging.DEBUG,
  "info": logging.INFO,
  "warning": logging.WARNING,
  "error": logging.ERROR,
}


def setup_logging() -> None:
  level = _LEVELS.get(settings.log_level.lower(), logging.INFO)
  logging.basicConfig(
    level=level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
  )
  logging.getLogger("uvicorn").setLevel(level)
  logging.getLogger("uvicorn.access").setLevel(level)
  logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.sql_echo else logging.WARNING)
  logging.getLogger(__name__).info("Logging configured at level: %s", settings.log_level)
