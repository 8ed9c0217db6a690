from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from newsroom.middleware import install_query_counter


class Base(DeclarativeBase):
    pass


class Database:
    """
    Engine plus session factory for one database.

    Built once by ``create_app`` (or by a script / test) and handed to
    whatever needs a session, rather than living as an import-time global.
    Extra keyword arguments go straight to ``create_async_engine`` so tests
    can pass ``poolclass=StaticPool`` for in-memory SQLite.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs: Any) -> None:
        if not url.startswith("sqlite"):
            engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        # Per-request SQL query counter surfaced by TimingMiddleware.
        install_query_counter(self.engine)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Session per request; commits on success, rolls back on any error."""
    database: Database = request.app.state.db
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
