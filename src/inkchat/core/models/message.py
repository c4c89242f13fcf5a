"""ChatMessage Domain Model

房间内消息的统一格式。id 由客户端生成，在房间内唯一；
同一 id 的消息只会被原地更新，不会重复出现。
"""

from pydantic import BaseModel, Field

from .attachment import Attachment
from .enums import Role


class ChatMessage(BaseModel):
    """房间消息"""

    id: str = Field(min_length=1, description="消息 ID，客户端生成")
    author: str = Field(description="作者名称")
    role: Role = Field(default=Role.USER, description="作者角色")
    body: str = Field(default="", description="文本内容")
    timestamp: int | None = Field(
        default=None,
        description="创建时间（毫秒时间戳），可选",
    )
    attachments: list[Attachment] = Field(
        default_factory=list,
        description="附件列表，按添加顺序",
    )
