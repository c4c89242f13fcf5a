"""SQLite 数据库初始化

PRAGMA 配置 + messages/objects 两张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# messages 表 DDL：每行一条消息，附件以 JSON 列表内嵌
# rowid 记录首次插入顺序，ON CONFLICT 更新不会改变 rowid
_MESSAGES_DDL = """
CREATE TABLE IF NOT EXISTS messages (
    room_id      TEXT NOT NULL,
    id           TEXT NOT NULL,
    author       TEXT NOT NULL DEFAULT '',
    role         TEXT NOT NULL DEFAULT 'user',
    body         TEXT NOT NULL DEFAULT '',
    timestamp    INTEGER,
    attachments  TEXT,

    PRIMARY KEY (room_id, id)
);
"""

_MESSAGES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_messages_room_id ON messages(room_id);",
]

# objects 表 DDL：附件字节的元数据，字节本身写文件系统
_OBJECTS_DDL = """
CREATE TABLE IF NOT EXISTS objects (
    key           TEXT PRIMARY KEY,
    content_type  TEXT NOT NULL,
    size          INTEGER NOT NULL DEFAULT 0,
    hash          TEXT NOT NULL DEFAULT '',
    created_at    TEXT NOT NULL
);
"""


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_MESSAGES_DDL)
    await conn.execute(_OBJECTS_DDL)

    for idx_sql in _MESSAGES_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
