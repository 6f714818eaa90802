import logging

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from sync_relay.db_models import Base
from sync_relay.settings import DEFAULT_SQLITE_BUSY_TIMEOUT_MS, RelaySettings

logger = logging.getLogger("sync_relay.db")


def _is_sqlite_url(database_url: str) -> bool:
    driver = make_url(database_url).get_backend_name()
    return driver == "sqlite"


def _configure_sqlite_engine(engine: AsyncEngine, busy_timeout_ms: int) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA temp_store=MEMORY")
        cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
        cursor.close()


def create_db_engine(
    database_url: str,
    busy_timeout_ms: int = DEFAULT_SQLITE_BUSY_TIMEOUT_MS,
) -> AsyncEngine:
    connect_args = {}
    if _is_sqlite_url(database_url):
        connect_args["timeout"] = busy_timeout_ms / 1000

    engine = create_async_engine(database_url, future=True, connect_args=connect_args)
    if _is_sqlite_url(database_url):
        _configure_sqlite_engine(engine, busy_timeout_ms)
    return engine


async def init_db_runtime(
    settings: RelaySettings,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_db_engine(settings.database_url, settings.sqlite_busy_timeout_ms)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(
        "Credential store ready (%s)", make_url(settings.database_url).get_backend_name()
    )
    return engine, session_maker
