"""ObjectStore SQLite + 文件系统实现

附件字节写入文件系统，元数据（content_type/size/hash）写 SQLite。
key 必须解析到对象根目录之内，防止路径穿越。
"""

import hashlib
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
from pydantic import BaseModel, Field


def compute_hash_and_size(content: bytes) -> tuple[str, int]:
    """计算 SHA-256 hash 和内容大小

    Args:
        content: 原始内容字节

    Returns:
        (sha256_hex, size_bytes) 元组
    """
    return hashlib.sha256(content).hexdigest(), len(content)


class StoredObject(BaseModel):
    """对象元数据"""

    key: str
    content_type: str
    size: int = Field(default=0, description="内容大小（字节）")
    hash: str = Field(default="", description="SHA-256 哈希")
    created_at: datetime


class SqliteObjectStore:
    """ObjectStore 的 SQLite + 文件系统实现"""

    def __init__(self, conn: aiosqlite.Connection, objects_dir: Path) -> None:
        self._conn = conn
        self._objects_dir = objects_dir

    @property
    def objects_dir(self) -> Path:
        return self._objects_dir

    async def put(self, key: str, data: bytes, content_type: str) -> StoredObject:
        """写入对象（同 key 覆盖）

        Raises:
            ValueError: key 解析到对象根目录之外
        """
        file_path = self._resolve(key)
        if file_path is None:
            raise ValueError(f"invalid object key: {key!r}")

        hash_hex, size = compute_hash_and_size(data)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)

        stored = StoredObject(
            key=key,
            content_type=content_type,
            size=size,
            hash=hash_hex,
            created_at=datetime.now(UTC),
        )
        try:
            await self._conn.execute(
                """
                INSERT INTO objects (key, content_type, size, hash, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (key) DO UPDATE SET
                    content_type = excluded.content_type,
                    size = excluded.size,
                    hash = excluded.hash,
                    created_at = excluded.created_at
                """,
                (
                    stored.key,
                    stored.content_type,
                    stored.size,
                    stored.hash,
                    stored.created_at.isoformat(),
                ),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return stored

    async def stat(self, key: str) -> StoredObject | None:
        """查询对象元数据"""
        cursor = await self._conn.execute(
            "SELECT key, content_type, size, hash, created_at FROM objects WHERE key = ?",
            (key,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return StoredObject(
            key=row[0],
            content_type=row[1],
            size=row[2],
            hash=row[3],
            created_at=datetime.fromisoformat(row[4]),
        )

    async def get(self, key: str) -> bytes | None:
        """读取对象字节，不存在返回 None"""
        if await self.stat(key) is None:
            return None
        file_path = self._resolve(key)
        if file_path is None or not file_path.is_file():
            return None
        return file_path.read_bytes()

    def _resolve(self, key: str) -> Path | None:
        """把 key 映射为根目录下的文件路径；越界返回 None"""
        if not key or key.startswith("/") or "\\" in key:
            return None
        root = self._objects_dir.resolve()
        candidate = (root / key).resolve()
        if candidate == root or not candidate.is_relative_to(root):
            return None
        return candidate
