"""SqliteMessageStore 持久化测试

测试内容：
1. WAL 模式生效
2. upsert 不改变首次写入顺序
3. 损坏的行使 load 立即失败
"""

import aiosqlite
import pytest
from inkchat.core.exceptions import StoreCorruptedError
from inkchat.core.models import ChatMessage, Role
from inkchat.core.store import SqliteMessageStore
from inkchat.core.store.sqlite_init import verify_wal_mode


class TestMessageStoreDurability:
    """消息表读写"""

    async def test_wal_mode(self, db_conn: aiosqlite.Connection):
        assert await verify_wal_mode(db_conn)

    async def test_upsert_keeps_rowid_order(self, message_store: SqliteMessageStore):
        await message_store.upsert_message("r1", ChatMessage(id="x", author="a", body="1"))
        await message_store.upsert_message("r1", ChatMessage(id="y", author="a", body="2"))
        await message_store.upsert_message(
            "r1", ChatMessage(id="x", author="a", role=Role.ASSISTANT, body="3")
        )

        messages = await message_store.load_all_messages("r1")
        assert [m.id for m in messages] == ["x", "y"]
        assert messages[0].body == "3"
        assert messages[0].role == Role.ASSISTANT
        assert messages[0].attachments == []
        assert messages[0].timestamp is None

    async def test_list_rooms(self, message_store: SqliteMessageStore):
        await message_store.upsert_message("beta", ChatMessage(id="1", author="a"))
        await message_store.upsert_message("alpha", ChatMessage(id="1", author="a"))
        assert await message_store.list_rooms() == ["alpha", "beta"]

    async def test_corrupt_attachments_fail_load(
        self, db_conn: aiosqlite.Connection, message_store: SqliteMessageStore
    ):
        await message_store.upsert_message("r1", ChatMessage(id="ok", author="a"))
        await db_conn.execute(
            "INSERT INTO messages (room_id, id, author, attachments) VALUES (?, ?, ?, ?)",
            ("r1", "bad", "a", "{not json"),
        )
        await db_conn.commit()

        with pytest.raises(StoreCorruptedError) as exc_info:
            await message_store.load_all_messages("r1")
        assert exc_info.value.code == "STORE_CORRUPTED"

    async def test_unknown_role_fails_load(
        self, db_conn: aiosqlite.Connection, message_store: SqliteMessageStore
    ):
        await db_conn.execute(
            "INSERT INTO messages (room_id, id, author, role) VALUES (?, ?, ?, ?)",
            ("r1", "bad", "a", "robot"),
        )
        await db_conn.commit()

        with pytest.raises(StoreCorruptedError):
            await message_store.load_all_messages("r1")

    async def test_corruption_scoped_to_room(
        self, db_conn: aiosqlite.Connection, message_store: SqliteMessageStore
    ):
        await db_conn.execute(
            "INSERT INTO messages (room_id, id, author, role) VALUES (?, ?, ?, ?)",
            ("broken", "bad", "a", "robot"),
        )
        await db_conn.commit()
        await message_store.upsert_message("r1", ChatMessage(id="ok", author="a"))

        assert [m.id for m in await message_store.load_all_messages("r1")] == ["ok"]
