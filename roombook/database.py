from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings
from .models import Base


class Database:
    """Owns the engine and session factory built from an explicit ``Settings``."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DB_ECHO,
            future=True,
        )
        if settings.is_sqlite:
            _serialize_sqlite_writers(self.engine)
        self.session_maker = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


def _serialize_sqlite_writers(engine):
    # every transaction takes the write lock at BEGIN, so concurrent writers
    # queue on the busy timeout instead of failing a SHARED -> RESERVED upgrade
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def get_session(request: Request):
    async with request.app.state.db.session_maker() as session:
        yield session
