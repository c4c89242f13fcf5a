"""MessageStore SQLite 实现

按 (room_id, id) upsert；附件以 JSON 列表存放在消息行内，不单独建表。
加载按 rowid 排序，保证重启后消息顺序与首次写入顺序一致。
"""

import json

import aiosqlite
from pydantic import ValidationError

from ..exceptions import StoreCorruptedError
from ..models.attachment import Attachment
from ..models.message import ChatMessage


class SqliteMessageStore:
    """MessageStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_message(self, room_id: str, message: ChatMessage) -> None:
        """插入或按 id 原地更新消息，并提交事务"""
        attachments_json = (
            json.dumps(
                [a.model_dump() for a in message.attachments],
                ensure_ascii=False,
            )
            if message.attachments
            else None
        )
        try:
            await self._conn.execute(
                """
                INSERT INTO messages (room_id, id, author, role, body,
                                      timestamp, attachments)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (room_id, id) DO UPDATE SET
                    author = excluded.author,
                    role = excluded.role,
                    body = excluded.body,
                    timestamp = excluded.timestamp,
                    attachments = excluded.attachments
                """,
                (
                    room_id,
                    message.id,
                    message.author,
                    message.role.value,
                    message.body,
                    message.timestamp,
                    attachments_json,
                ),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

    async def load_all_messages(self, room_id: str) -> list[ChatMessage]:
        """查询房间全部消息，按首次写入顺序

        Raises:
            StoreCorruptedError: 任意一行无法还原为 ChatMessage
        """
        cursor = await self._conn.execute(
            """
            SELECT id, author, role, body, timestamp, attachments
            FROM messages WHERE room_id = ? ORDER BY rowid ASC
            """,
            (room_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_message(room_id, row) for row in rows]

    async def list_rooms(self) -> list[str]:
        """列出有持久化消息的房间"""
        cursor = await self._conn.execute(
            "SELECT DISTINCT room_id FROM messages ORDER BY room_id"
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    @staticmethod
    def _row_to_message(room_id: str, row: aiosqlite.Row) -> ChatMessage:
        """将数据库行转换为 ChatMessage 模型"""
        try:
            attachments_data = json.loads(row[5]) if row[5] else []
            return ChatMessage(
                id=row[0],
                author=row[1],
                role=row[2],
                body=row[3],
                timestamp=row[4],
                attachments=[Attachment(**a) for a in attachments_data],
            )
        except (ValueError, TypeError, ValidationError) as e:
            raise StoreCorruptedError(
                f"房间 {room_id} 的消息 {row[0]!r} 无法还原: {e}"
            ) from e
