"""Store Protocol 接口定义

定义 MessageStore、ObjectStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.message import ChatMessage


class MessageStore(Protocol):
    """消息持久化接口 -- 按消息 id upsert"""

    async def upsert_message(self, room_id: str, message: ChatMessage) -> None:
        """插入或按 id 原地更新消息"""
        ...

    async def load_all_messages(self, room_id: str) -> list[ChatMessage]:
        """按首次写入顺序返回房间全部消息"""
        ...


class ObjectStore(Protocol):
    """附件字节存储接口"""

    async def put(self, key: str, data: bytes, content_type: str) -> object:
        """写入对象（同 key 覆盖）"""
        ...

    async def get(self, key: str) -> bytes | None:
        """读取对象字节，不存在返回 None"""
        ...
