"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、对象存储目录、磁盘空间和已加载房间数。
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from ..deps import get_store_group

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. objects_dir: 对象存储目录可访问性
    3. disk_space_mb: 磁盘剩余空间
    4. room_count: 当前已加载的房间数（仅信息，不影响就绪状态）
    """
    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = get_store_group(request)
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("ready_check_failed", check="sqlite", error=str(e))
        checks["sqlite"] = f"error: {e}"
        all_ok = False

    # 2. 对象存储目录检查
    try:
        objects_dir = get_store_group(request).object_store.objects_dir
        if objects_dir.is_dir():
            checks["objects_dir"] = "ok"
        else:
            checks["objects_dir"] = "error: directory does not exist"
            all_ok = False
    except Exception as e:
        checks["objects_dir"] = f"error: {e}"
        all_ok = False

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except Exception:
        checks["disk_space_mb"] = 0
        all_ok = False

    hub = getattr(request.app.state, "room_hub", None)
    checks["room_count"] = hub.room_count if hub is not None else 0

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
