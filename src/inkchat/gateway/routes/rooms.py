"""房间 WebSocket 路由

WS /api/rooms/{room_id}/ws: 加入房间后先收到 snapshot，
之后发送的 add/update 帧被 upsert 并广播给全体成员（含自己）。
"""

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..deps import get_room_hub
from ..services.room_hub import RoomHub, WebSocketConnection

log = structlog.get_logger()

router = APIRouter()


@router.websocket("/api/rooms/{room_id}/ws")
async def room_socket(
    websocket: WebSocket,
    room_id: str,
    hub: RoomHub = Depends(get_room_hub),
) -> None:
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        room_id=room_id,
        connection_id=connection.connection_id,
    )

    try:
        await hub.join(room_id, connection)
    except Exception as e:
        log.error("room_load_failed", error_type=type(e).__name__, error=str(e))
        await websocket.close(code=1011)
        return

    try:
        while True:
            # 文本帧与二进制帧都承载 UTF-8 JSON
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await hub.handle_message(room_id, connection, raw)
    except WebSocketDisconnect:
        log.info("room_socket_disconnected")
    finally:
        await hub.leave(room_id, connection)
