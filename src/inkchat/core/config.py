"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、对象存储目录、附件几何归一化常量等可配置项。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("INKCHAT_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "INKCHAT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "inkchat.db"),
    )


def get_objects_dir() -> Path:
    """获取附件对象存储目录"""
    return Path(
        os.environ.get(
            "INKCHAT_OBJECTS_DIR",
            str(_get_base_dir() / "objects"),
        )
    )


def get_max_upload_bytes() -> int:
    """单个上传文件的最大字节数（超过则跳过该文件）"""
    return int(os.environ.get("INKCHAT_MAX_UPLOAD_BYTES", "1048576"))


# 归一化目标正方形边长
CANONICAL_SIZE: int = 300

# 源文档既无 viewBox 也无 width/height 时的默认边长
DEFAULT_SOURCE_SIZE: float = 100.0

# 手写笔画 padding：max(最大笔宽, MIN_STROKE_WIDTH) + STROKE_PADDING
MIN_STROKE_WIDTH: float = 3.0
STROKE_PADDING: float = 4.0

# 输出数字的小数位数
NUMBER_PRECISION: int = 4

# 附件不可变，可长期缓存（秒）
ATTACHMENT_CACHE_MAX_AGE: int = 31536000

# 附件 URL 前缀与对象 key 前缀
ATTACHMENT_URL_PREFIX: str = "/api/svg/"
ATTACHMENT_KEY_PREFIX: str = "svgs"

SVG_CONTENT_TYPE: str = "image/svg+xml"

# 内存中跟踪的未发送草稿数上限（超过后淘汰最久未动的草稿，不影响已存储对象）
MAX_PENDING_DRAFTS: int = 1024
