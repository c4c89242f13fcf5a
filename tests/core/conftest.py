"""core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest_asyncio
from inkchat.core.store import SqliteMessageStore, SqliteObjectStore


@pytest_asyncio.fixture
async def message_store(db_conn: aiosqlite.Connection) -> SqliteMessageStore:
    """基于临时数据库的消息存储"""
    return SqliteMessageStore(db_conn)


@pytest_asyncio.fixture
async def object_store(
    db_conn: aiosqlite.Connection, tmp_objects_dir: Path
) -> AsyncGenerator[SqliteObjectStore, None]:
    """基于临时目录的对象存储"""
    yield SqliteObjectStore(db_conn, tmp_objects_dir)
