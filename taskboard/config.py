from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://taskboard:taskboard@db:5432/taskboard"
  store_backend: str = "sql"  # sql | memory
  app_version: str = "v2026-10-18"
  build_sha: str = "dev"

  log_level: str = "info"
  sql_echo: bool = False

  cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
  cors_origin_regex: str = r"^http://(localhost|127\.0\.0\.1):5173$"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,api,test"

  event_log_page_size: int = 50
  event_log_max_page_size: int = 500

  primary_admin_username: str = "admin"
  seed_admin_password: str | None = None
  default_allow_registrations: bool = True
  seed_demo_board: bool = False

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()
