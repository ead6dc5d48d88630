from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from editsync.core.config import settings

# Базовый класс для моделей
Base = declarative_base()

engine_options = {"future": True, "echo": settings.sql_echo}
if settings.database_url.startswith("sqlite"):
    # соединения aiosqlite привязаны к event loop, не переиспользуем их
    engine_options["poolclass"] = NullPool

# Асинхронный движок
engine = create_async_engine(settings.database_url, **engine_options)

# Сессии
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with SessionLocal() as session:
        yield session


async def create_tables() -> None:
    """Создание таблиц для всех моделей"""
    import editsync.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    import editsync.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
