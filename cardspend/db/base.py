"""Engine, session factory and declarative base."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cardspend.core.config import get_settings

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./cardspend.db"


def get_database_url() -> str:
    """Configured database URL, SQLite in the working directory by default."""
    return get_settings().DATABASE_URL or DEFAULT_DATABASE_URL


class Base(DeclarativeBase):
    """Declarative base for all models."""

    pass


engine = create_async_engine(get_database_url(), echo=False, future=True)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
