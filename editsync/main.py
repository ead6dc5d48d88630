from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from editsync.api.http import (
    auth_router, documents_router, health_router, sharing_router, users_router
)
from editsync.api.ws.sync import router as websocket_router
from editsync.core.config import settings
from editsync.core.db import create_tables
from editsync.core.errors import register_exception_handlers
from editsync.domains.collaboration import ChangeRelay, SessionRegistry

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    # реестр живет столько же, сколько приложение
    registry = SessionRegistry()
    app.state.session_registry = registry
    app.state.change_relay = ChangeRelay(registry)
    logger.info("EditSync started")
    yield
    logger.info(f"EditSync stopped with {len(registry)} open realtime sessions")


app = FastAPI(
    title="EditSync",
    description="Бэкенд для совместного редактирования документов",
    version="1.0.0",
    lifespan=lifespan
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.1f} ms)")
    return response


register_exception_handlers(app)

# Подключаем роутеры
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(documents_router)
app.include_router(sharing_router)
app.include_router(websocket_router)
