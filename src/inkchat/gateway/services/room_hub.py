"""RoomHub -- 房间成员管理与广播

每个房间持有一个 RoomMessageStore、成员连接表和一把 asyncio.Lock。
同一房间的 join / 写入+广播 / leave 由这把锁串行执行；不同房间互不阻塞。
广播遵循先写入后扇出：store 先 upsert，再在同一临界区内发给全体成员（含发送者）。
"""

import asyncio
from typing import Protocol

import structlog
from inkchat.core.exceptions import PersistenceError, ProtocolError, RoomNotLoadedError
from inkchat.core.protocol import (
    encode_frame,
    error_frame,
    message_frame,
    parse_frame,
    snapshot_frame,
    to_upsert,
)
from inkchat.core.registry import AttachmentRegistry
from inkchat.core.store import MessageStore, RoomMessageStore
from starlette.websockets import WebSocket
from ulid import ULID

log = structlog.get_logger()


class Connection(Protocol):
    """传输层连接：hub 只需要 id 与发送文本"""

    connection_id: str

    async def send_text(self, data: str) -> None: ...


class WebSocketConnection:
    """Starlette WebSocket 适配为 Connection"""

    def __init__(self, websocket: WebSocket) -> None:
        self.connection_id = str(ULID())
        self._websocket = websocket

    async def send_text(self, data: str) -> None:
        await self._websocket.send_text(data)


class _Room:
    def __init__(self, store: RoomMessageStore) -> None:
        self.store = store
        self.members: dict[str, Connection] = {}
        self.lock = asyncio.Lock()


class RoomHub:
    """按房间隔离的同步中枢"""

    def __init__(
        self,
        message_store: MessageStore,
        registry: AttachmentRegistry | None = None,
    ) -> None:
        self._message_store = message_store
        self._registry = registry
        # room_id -> _Room，首次访问时惰性创建
        self._rooms: dict[str, _Room] = {}
        self._rooms_guard = asyncio.Lock()

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def member_count(self, room_id: str) -> int:
        room = self._rooms.get(room_id)
        return len(room.members) if room else 0

    def get_store(self, room_id: str) -> RoomMessageStore | None:
        room = self._rooms.get(room_id)
        return room.store if room else None

    async def _get_room(self, room_id: str) -> _Room:
        async with self._rooms_guard:
            room = self._rooms.get(room_id)
            if room is None:
                room = _Room(RoomMessageStore(room_id, self._message_store))
                self._rooms[room_id] = room
            return room

    async def _discard_unloaded(self, room_id: str, room: _Room) -> None:
        async with self._rooms_guard:
            if self._rooms.get(room_id) is room and not room.members:
                del self._rooms[room_id]

    async def join(self, room_id: str, connection: Connection) -> None:
        """加入房间：加载（如需要）后只向新成员下发 snapshot

        Raises:
            StoreCorruptedError: 房间持久化数据损坏；房间不会被缓存
        """
        while True:
            room = await self._get_room(room_id)
            async with room.lock:
                # 等锁期间房间可能因加载失败被丢弃，重新取一次
                if self._rooms.get(room_id) is not room:
                    continue
                try:
                    await room.store.load()
                except Exception:
                    await self._discard_unloaded(room_id, room)
                    raise
                room.members[connection.connection_id] = connection
                data = encode_frame(snapshot_frame(room.store.snapshot()))
                delivered = await self._send(room, connection, data)
                break

        log.info(
            "room_joined",
            room_id=room_id,
            connection_id=connection.connection_id,
            member_count=len(room.members),
            snapshot_delivered=delivered,
        )

    async def leave(self, room_id: str, connection: Connection) -> None:
        room = self._rooms.get(room_id)
        if room is None:
            return
        async with room.lock:
            room.members.pop(connection.connection_id, None)
        log.info(
            "room_left",
            room_id=room_id,
            connection_id=connection.connection_id,
            member_count=len(room.members),
        )

    async def handle_message(self, room_id: str, connection: Connection, raw: str | bytes) -> None:
        """处理成员发来的一帧：upsert 后广播给全体成员

        无法解析的帧和持久化失败只以 error 帧回报给发起方。
        """
        try:
            upsert = to_upsert(parse_frame(raw))
        except ProtocolError as e:
            log.warning(
                "bad_frame",
                room_id=room_id,
                connection_id=connection.connection_id,
                error=e.message,
            )
            await self.send_to(connection, encode_frame(error_frame(e.code, e.message)))
            return

        room = self._rooms.get(room_id)
        if room is None or not room.store.loaded:
            raise RoomNotLoadedError(f"房间 {room_id} 尚未加载")

        message = upsert.message
        async with room.lock:
            persist_error: PersistenceError | None = None
            try:
                created = await room.store.append(message)
            except PersistenceError as e:
                persist_error = e
                created = None
                log.error(
                    "persist_failed",
                    room_id=room_id,
                    message_id=message.id,
                    error_type=type(e.original_error).__name__,
                )
            else:
                if self._registry is not None:
                    self._registry.mark_persisted(room_id, message)

            await self._broadcast_locked(
                room, encode_frame(message_frame(message, upsert.hint))
            )

            if persist_error is not None:
                await self._send(
                    room,
                    connection,
                    encode_frame(error_frame(persist_error.code, "消息未能持久化")),
                )

        log.info(
            "message_upserted",
            room_id=room_id,
            message_id=message.id,
            hint=upsert.hint,
            created=created,
            attachment_count=len(message.attachments),
        )

    async def broadcast(
        self,
        room_id: str,
        data: str,
        exclude: set[str] | None = None,
    ) -> None:
        """向房间全体成员发送，exclude 为要跳过的 connection_id"""
        room = self._rooms.get(room_id)
        if room is None:
            return
        async with room.lock:
            await self._broadcast_locked(room, data, exclude)

    async def send_to(self, connection: Connection, data: str) -> bool:
        """向单个连接发送；失败返回 False"""
        try:
            await connection.send_text(data)
            return True
        except Exception as e:
            log.warning(
                "send_failed",
                connection_id=connection.connection_id,
                error_type=type(e).__name__,
            )
            return False

    async def _send(self, room: _Room, connection: Connection, data: str) -> bool:
        """房间内单发；发送失败的成员移出房间"""
        delivered = await self.send_to(connection, data)
        if not delivered:
            room.members.pop(connection.connection_id, None)
        return delivered

    async def _broadcast_locked(
        self,
        room: _Room,
        data: str,
        exclude: set[str] | None = None,
    ) -> None:
        """调用方已持有 room.lock"""
        targets = [
            c for cid, c in room.members.items() if not exclude or cid not in exclude
        ]
        results = await asyncio.gather(*(self.send_to(c, data) for c in targets))

        # 清理发送失败的成员，不影响其他成员
        for connection, delivered in zip(targets, results, strict=True):
            if not delivered:
                room.members.pop(connection.connection_id, None)
