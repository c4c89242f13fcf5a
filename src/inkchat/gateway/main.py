"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 房间中枢与附件服务初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from inkchat.core.config import get_db_path, get_max_upload_bytes, get_objects_dir
from inkchat.core.registry import AttachmentRegistry
from inkchat.core.store import create_store_group

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.room_trace_mw import RoomTraceMiddleware
from .routes import attachments, health, rooms
from .services.attachment_service import AttachmentService
from .services.room_hub import RoomHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 Store 与服务，关闭时清理连接"""
    store_group = await create_store_group(get_db_path(), get_objects_dir())
    app.state.store_group = store_group

    # 附件登记表由房间中枢与附件服务共享
    registry = AttachmentRegistry(store_group.object_store)
    app.state.room_hub = RoomHub(store_group.message_store, registry)
    app.state.attachment_service = AttachmentService(
        registry,
        store_group.object_store,
        get_max_upload_bytes(),
    )
    log.info(
        "gateway_started",
        db_path=get_db_path(),
        objects_dir=str(store_group.object_store.objects_dir),
    )

    yield

    # 关闭：清理数据库连接
    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Inkchat Gateway",
        version="0.1.0",
        description="带 SVG 附件与手写输入的实时房间聊天",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 RoomTrace 后 Logging，Logging 在最外层）
    app.add_middleware(RoomTraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(rooms.router, tags=["rooms"])
    app.include_router(attachments.router, tags=["attachments"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
