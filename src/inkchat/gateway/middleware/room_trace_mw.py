"""RoomTraceMiddleware

为房间相关的 HTTP 请求绑定 room_id，贯穿该请求的日志。
识别 /api/rooms/{room_id}/... 与 /api/svg/svgs/{room_id}/... 两类路径。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_room_id(path: str) -> str | None:
    parts = [p for p in path.split("/") if p]
    if len(parts) >= 3 and parts[:2] == ["api", "rooms"]:
        return parts[2]
    if len(parts) >= 4 and parts[:3] == ["api", "svg", "svgs"]:
        return parts[3]
    return None


class RoomTraceMiddleware(BaseHTTPMiddleware):
    """房间级追踪中间件 -- 为房间请求绑定 room_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        room_id = extract_room_id(request.url.path)
        if room_id:
            structlog.contextvars.bind_contextvars(room_id=room_id)

        return await call_next(request)
