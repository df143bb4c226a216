from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from infrastructure.persistence.models.records import Base


class Database:
    """Async engine over the operational database.

    Sessions opened through ``session()`` commit on exit and roll back on error.
    """

    def __init__(self, db_url: str, echo: bool = False):
        self.url = db_url
        engine_options = {'echo': echo}
        if not db_url.startswith('sqlite'):
            engine_options['pool_pre_ping'] = True
        self.engine = create_async_engine(db_url, **engine_options)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
