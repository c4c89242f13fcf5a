"""inkchat Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from .message_store import SqliteMessageStore
from .object_store import SqliteObjectStore, StoredObject, compute_hash_and_size
from .protocols import MessageStore, ObjectStore
from .room import RoomMessageStore
from .sqlite_init import init_db


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        objects_dir: Path,
    ) -> None:
        self.conn = conn
        self.message_store = SqliteMessageStore(conn)
        self.object_store = SqliteObjectStore(conn, objects_dir)


async def create_store_group(
    db_path: str,
    objects_dir: str | Path,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径
        objects_dir: 附件对象存储目录

    Returns:
        StoreGroup 实例
    """
    objects_path = Path(objects_dir)
    objects_path.mkdir(parents=True, exist_ok=True)

    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, objects_dir=objects_path)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteMessageStore",
    "SqliteObjectStore",
    "StoredObject",
    "RoomMessageStore",
    "MessageStore",
    "ObjectStore",
    "compute_hash_and_size",
    "init_db",
]
