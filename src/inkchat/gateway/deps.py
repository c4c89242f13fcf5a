"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
HTTPConnection 同时覆盖 HTTP 请求与 WebSocket。
"""

from inkchat.core.store import StoreGroup
from starlette.requests import HTTPConnection

from .services.attachment_service import AttachmentService
from .services.room_hub import RoomHub


def get_store_group(conn: HTTPConnection) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return conn.app.state.store_group


def get_room_hub(conn: HTTPConnection) -> RoomHub:
    """从 app.state 获取 RoomHub 实例"""
    return conn.app.state.room_hub


def get_attachment_service(conn: HTTPConnection) -> AttachmentService:
    """从 app.state 获取 AttachmentService 实例"""
    return conn.app.state.attachment_service
