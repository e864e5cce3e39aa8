from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from taskboard.config import settings
from taskboard.db import SessionLocal, init_db
from taskboard.errors import CoreError, ValidationError
from taskboard.log import setup_logging
from taskboard.routers.boards import router as boards_router
from taskboard.routers.categories import router as categories_router
from taskboard.routers.custom_fields import router as custom_fields_router
from taskboard.routers.event_logs import router as event_logs_router
from taskboard.routers.settings import router as settings_router
from taskboard.routers.tasks import router as tasks_router
from taskboard.routers.users import router as users_router
from taskboard.seed import seed
from taskboard.services import Services
from taskboard.store.memory import MemoryEntityStore
from taskboard.store.sql import SqlEntityStore

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
  "validation": 400,
  "forbidden": 403,
  "not_found": 404,
  "conflict": 409,
  "storage": 503,
}

app = FastAPI(title="Taskboard API", version=settings.app_version)


@app.exception_handler(CoreError)
async def _core_error_handler(_, exc: CoreError) -> JSONResponse:
  content: dict = {"message": exc.message}
  if isinstance(exc, ValidationError):
    content["errors"] = exc.fields
  return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 500), content=content)


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(_, exc: RequestValidationError) -> JSONResponse:
  return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())})


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_origin_regex=settings.cors_origin_regex,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
  expose_headers=["X-Category-ID"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(boards_router)
app.include_router(categories_router)
app.include_router(custom_fields_router)
app.include_router(tasks_router)
app.include_router(users_router)
app.include_router(settings_router)
app.include_router(event_logs_router)


@app.middleware("http")
async def _security_headers_middleware(request, call_next):
  response = await call_next(request)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


@app.on_event("startup")
async def _startup() -> None:
  setup_logging()
  if settings.store_backend == "memory":
    app.state.store = MemoryEntityStore()
  else:
    await init_db()
    app.state.store = SqlEntityStore(SessionLocal)
  await seed(Services(app.state.store))
  logger.info("Taskboard API %s started with %s store", settings.app_version, settings.store_backend)
