"""gateway 测试配置 -- FastAPI app + httpx AsyncClient"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from inkchat.core.registry import AttachmentRegistry
from inkchat.core.store import create_store_group
from inkchat.gateway.services.attachment_service import AttachmentService
from inkchat.gateway.services.room_hub import RoomHub


@pytest_asyncio.fixture
async def app(tmp_path: Path):
    """创建测试用 FastAPI app，手动初始化 lifespan 状态"""
    os.environ["INKCHAT_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["INKCHAT_OBJECTS_DIR"] = str(tmp_path / "objects")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from inkchat.gateway.main import create_app

    application = create_app()

    # 手动初始化（绕过 lifespan）
    store_group = await create_store_group(
        str(tmp_path / "test.db"),
        tmp_path / "objects",
    )
    registry = AttachmentRegistry(store_group.object_store)
    application.state.store_group = store_group
    application.state.room_hub = RoomHub(store_group.message_store, registry)
    application.state.attachment_service = AttachmentService(
        registry, store_group.object_store, 1024 * 1024
    )

    yield application

    await store_group.conn.close()
    for key in ["INKCHAT_DB_PATH", "INKCHAT_OBJECTS_DIR", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
