"""集成测试配置 -- 通过 lifespan 启动完整应用"""

import os
from collections.abc import Iterator
from pathlib import Path

import pytest


@pytest.fixture
def data_dir(tmp_path: Path) -> Iterator[Path]:
    """设置数据目录环境变量，测试结束后清理"""
    os.environ["INKCHAT_DB_PATH"] = str(tmp_path / "sqlite" / "inkchat.db")
    os.environ["INKCHAT_OBJECTS_DIR"] = str(tmp_path / "objects")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"
    yield tmp_path
    for key in ["INKCHAT_DB_PATH", "INKCHAT_OBJECTS_DIR", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)
