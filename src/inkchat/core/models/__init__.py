"""inkchat Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .attachment import Attachment, Bounds, FitTransform, RawVectorPath
from .enums import (
    VALID_TRANSITIONS,
    ConnectionState,
    FrameType,
    Role,
    validate_transition,
)
from .message import ChatMessage

__all__ = [
    # 枚举
    "Role",
    "FrameType",
    "ConnectionState",
    # 状态机
    "VALID_TRANSITIONS",
    "validate_transition",
    # Message
    "ChatMessage",
    # Attachment
    "Attachment",
    "RawVectorPath",
    "Bounds",
    "FitTransform",
]
