"""房间同步线协议

三种带 type 标签的帧：snapshot / add / update，外加只发给发起方的 error。
add 与 update 线上形状完全相同，解码后都变成同一个内部 Upsert 操作，
标签只作为 hint 保留给客户端选择乐观合并策略。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .exceptions import ProtocolError
from .models.attachment import Attachment
from .models.enums import FrameType, Role
from .models.message import ChatMessage


class _MessageFrame(BaseModel):
    """add/update 共用字段"""

    id: str = Field(min_length=1)
    author: str
    role: Role = Role.USER
    body: str = ""
    timestamp: int | None = None
    attachments: list[Attachment] | None = None

    def to_message(self) -> ChatMessage:
        return ChatMessage(
            id=self.id,
            author=self.author,
            role=self.role,
            body=self.body,
            timestamp=self.timestamp,
            attachments=self.attachments or [],
        )


class AddFrame(_MessageFrame):
    """新消息或编辑后的消息，广播给房间全体成员（含发送者）"""

    type: Literal["add"] = "add"


class UpdateFrame(_MessageFrame):
    """与 add 语义相同，仅作为客户端 hint"""

    type: Literal["update"] = "update"


class SnapshotFrame(BaseModel):
    """加入房间时下发一次的完整状态"""

    type: Literal["snapshot"] = "snapshot"
    messages: list[ChatMessage] = Field(default_factory=list)


class ErrorFrame(BaseModel):
    """仅发送给发起方连接的错误通知"""

    type: Literal["error"] = "error"
    code: str
    message: str = ""


Frame = Annotated[
    AddFrame | UpdateFrame | SnapshotFrame | ErrorFrame,
    Field(discriminator="type"),
]

_FRAME_ADAPTER: TypeAdapter[Frame] = TypeAdapter(Frame)


class Upsert(BaseModel):
    """add/update 统一后的内部写操作"""

    message: ChatMessage
    hint: FrameType = FrameType.ADD


def parse_frame(raw: str | bytes) -> Frame:
    """解析 UTF-8 JSON 帧

    Raises:
        ProtocolError: JSON 无效、type 未知或字段不合法
    """
    try:
        return _FRAME_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise ProtocolError(f"无法解析的帧: {e.error_count()} 个错误") from e


def encode_frame(frame: Frame) -> str:
    """编码为 JSON 文本，省略空的可选字段"""
    return frame.model_dump_json(exclude_none=True)


def to_upsert(frame: Frame) -> Upsert:
    """把 add/update 帧转换为内部 Upsert

    Raises:
        ProtocolError: 帧不是 add/update
    """
    if isinstance(frame, (AddFrame, UpdateFrame)):
        return Upsert(message=frame.to_message(), hint=FrameType(frame.type))
    raise ProtocolError(f"不接受的帧类型: {frame.type}")


def message_frame(message: ChatMessage, hint: FrameType = FrameType.ADD) -> AddFrame | UpdateFrame:
    """由消息构造 add/update 帧"""
    frame_cls = UpdateFrame if hint == FrameType.UPDATE else AddFrame
    return frame_cls(
        id=message.id,
        author=message.author,
        role=message.role,
        body=message.body,
        timestamp=message.timestamp,
        attachments=list(message.attachments) or None,
    )


def snapshot_frame(messages: list[ChatMessage]) -> SnapshotFrame:
    return SnapshotFrame(messages=messages)


def error_frame(code: str, message: str = "") -> ErrorFrame:
    return ErrorFrame(code=code, message=message)
