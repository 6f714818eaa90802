from datetime import datetime

import pytest
from sqlalchemy import inspect, text

from sync_relay.credential_store import StoreNamespace
from sync_relay.db import create_db_engine, init_db_runtime
from sync_relay.db_models import LocalToProvider


@pytest.mark.asyncio
async def test_sqlite_pragmas_are_applied(tmp_path) -> None:
    db_file = tmp_path / "pragmas.db"
    engine = create_db_engine(f"sqlite+aiosqlite:///{db_file}", busy_timeout_ms=7000)

    try:
        async with engine.connect() as conn:
            journal_mode = (
                await conn.execute(text("PRAGMA journal_mode"))
            ).scalar_one_or_none()
            synchronous = (
                await conn.execute(text("PRAGMA synchronous"))
            ).scalar_one_or_none()
            busy_timeout = (
                await conn.execute(text("PRAGMA busy_timeout"))
            ).scalar_one_or_none()

        assert str(journal_mode).lower() == "wal"
        assert int(synchronous) == 1  # NORMAL
        assert int(busy_timeout) == 7000
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_init_db_runtime_creates_both_namespaces(settings) -> None:
    engine, _ = await init_db_runtime(settings)

    try:
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert {"local_to_provider", "provider_to_local"} <= set(tables)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_rows_get_a_creation_timestamp(settings) -> None:
    engine, session_maker = await init_db_runtime(settings)

    try:
        await StoreNamespace("local_to_provider", LocalToProvider, session_maker).put("k", "v")
        async with session_maker() as session:
            row = await session.get(LocalToProvider, "k")
        assert row is not None
        assert isinstance(row.created_at, datetime)
    finally:
        await engine.dispose()
