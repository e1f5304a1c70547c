import uuid

import asyncpg
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from spliteasy.core.config import settings


class NoStatementCacheConnection(asyncpg.Connection):
    # Unique prepared-statement names so a transaction-mode pooler never sees a reused name.
    def _get_unique_id(self, prefix: str) -> str:
        return f"__spliteasy_{prefix}_{uuid.uuid4()}__"


def _get_async_url(url: str) -> str:
    """Rewrite plain Postgres URLs to the asyncpg driver."""
    for scheme in ("postgresql://", "postgres://"):
        if url.startswith(scheme):
            return url.replace(scheme, "postgresql+asyncpg://", 1)
    return url


engine = create_async_engine(
    _get_async_url(settings.database_url),
    echo=False,
    pool_size=5,
    max_overflow=5,
    pool_recycle=300,
    pool_pre_ping=True,
    connect_args={
        "statement_cache_size": 0,
        "connection_class": NoStatementCacheConnection,
    },
)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    """One session per request; closed when the response is sent."""
    async with async_session_factory() as session:
        yield session
