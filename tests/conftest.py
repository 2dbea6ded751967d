import os
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from allocation.adapters.db import DB


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return os.environ.get("TEST_DB_DSN") or f"sqlite+aiosqlite:///{tmp_path / 'allocation.db'}"


@pytest.fixture
async def db(db_url: str) -> AsyncGenerator[DB, None]:
    db = DB(db_url)
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest.fixture
async def session(db: DB) -> AsyncGenerator[AsyncSession, Any]:
    session = db.new_session()
    yield session
    await session.rollback()
    await session.close()
