"""RoomMessageStore -- 单个房间的权威消息集合

内存中用插入有序的 dict 以 id 为键保存消息：
已存在的 id 原地替换（保留首次位置），新 id 追加到末尾。
所有写操作由房间级 asyncio.Lock 串行化；写穿到持久化层。
"""

import asyncio

import structlog

from ..exceptions import PersistenceError, RoomNotLoadedError
from ..models.message import ChatMessage
from .protocols import MessageStore

log = structlog.get_logger()


class RoomMessageStore:
    """房间消息存储：有序、按 id 索引、单写者"""

    def __init__(self, room_id: str, durable: MessageStore) -> None:
        self.room_id = room_id
        self._durable = durable
        self._messages: dict[str, ChatMessage] = {}
        self._loaded = False
        self._write_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    async def load(self) -> None:
        """从持久化层重建内存状态（幂等）

        Raises:
            StoreCorruptedError: 持久化数据损坏，不提供部分视图
        """
        async with self._write_lock:
            if self._loaded:
                return
            rows = await self._durable.load_all_messages(self.room_id)
            self._messages = {m.id: m for m in rows}
            self._loaded = True
        log.info("room_loaded", room_id=self.room_id, message_count=len(rows))

    async def append(self, message: ChatMessage) -> bool:
        """Upsert：add 与 update 共用的唯一写操作

        内存状态先更新，再写穿持久化层；持久化失败时内存状态保持已应用，
        由调用方把 PersistenceError 回报给发起方。

        Returns:
            True 如果 id 是新插入的，False 如果是原地替换

        Raises:
            RoomNotLoadedError: load() 尚未完成
            PersistenceError: 持久化写入失败（不自动重试）
        """
        self._require_loaded()
        async with self._write_lock:
            created = message.id not in self._messages
            # dict 赋值不改变已有键的位置
            self._messages[message.id] = message
            try:
                await self._durable.upsert_message(self.room_id, message)
            except Exception as e:
                raise PersistenceError(self.room_id, message.id, e) from e
        return created

    def snapshot(self) -> list[ChatMessage]:
        """返回完整有序消息列表（副本）"""
        self._require_loaded()
        return list(self._messages.values())

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RoomNotLoadedError(f"房间 {self.room_id} 尚未加载")
