"""CLI 入口模块 -- python -m inkchat.core <command>

支持的命令：
  normalize <file.svg>  输出归一化后的 SVG
  dump-room <room_id>   以 JSON lines 输出房间已持久化的消息
"""

import asyncio
import sys
from pathlib import Path

from .config import get_db_path, get_objects_dir
from .exceptions import GeometryError


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 3:
        print("用法: python -m inkchat.core <command> <arg>")
        print("命令:")
        print("  normalize <file.svg>  输出归一化后的 SVG")
        print("  dump-room <room_id>   输出房间已持久化的消息")
        sys.exit(1)

    command, arg = sys.argv[1], sys.argv[2]

    if command == "normalize":
        sys.exit(normalize_file(Path(arg)))
    elif command == "dump-room":
        sys.exit(asyncio.run(dump_room(arg)))
    else:
        print(f"未知命令: {command}")
        print("可用命令: normalize, dump-room")
        sys.exit(1)


def normalize_file(path: Path) -> int:
    """归一化单个 SVG 文件并打印结果，返回退出码"""
    from .geometry import normalize

    try:
        print(normalize(path.read_text(encoding="utf-8")))
    except GeometryError as e:
        print(f"归一化失败: {e}", file=sys.stderr)
        return 2
    return 0


async def dump_room(room_id: str) -> int:
    """按顺序输出房间消息，房间不存在时返回 1"""
    from .store import RoomMessageStore, create_store_group

    store_group = await create_store_group(get_db_path(), get_objects_dir())
    try:
        if room_id not in await store_group.message_store.list_rooms():
            print(f"房间不存在: {room_id}", file=sys.stderr)
            return 1
        room = RoomMessageStore(room_id, store_group.message_store)
        await room.load()
        for message in room.snapshot():
            print(message.model_dump_json())
    finally:
        await store_group.conn.close()
    return 0


if __name__ == "__main__":
    main()
