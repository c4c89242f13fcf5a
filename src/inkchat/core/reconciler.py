"""客户端同步状态机

DISCONNECTED -> AWAITING_SNAPSHOT -> LIVE

本地提交是乐观的：先插入本地条目再发送 add，回显按 id 原地替换。
合并规则是一个纯 reducer：已知 id 原地替换，未知 id 追加到末尾。
"""

from collections.abc import Callable, Mapping
from datetime import UTC, datetime

import structlog
from ulid import ULID

from .models.attachment import Attachment
from .models.enums import ConnectionState, FrameType, Role, validate_transition
from .models.message import ChatMessage
from .protocol import (
    AddFrame,
    ErrorFrame,
    Frame,
    SnapshotFrame,
    UpdateFrame,
    Upsert,
    encode_frame,
    message_frame,
    parse_frame,
    to_upsert,
)

log = structlog.get_logger()


def reduce(view: Mapping[str, ChatMessage], upsert: Upsert) -> dict[str, ChatMessage]:
    """把一次权威 Upsert 合并进有序视图，返回新视图"""
    next_view = dict(view)
    next_view[upsert.message.id] = upsert.message
    return next_view


def _now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


class ClientReconciler:
    """单个客户端连接的本地消息视图"""

    def __init__(
        self,
        author: str,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.author = author
        self._id_factory = id_factory or (lambda: str(ULID()))
        self._clock = clock or _now_ms
        self._state = ConnectionState.DISCONNECTED
        self._view: dict[str, ChatMessage] = {}
        self._pending_ids: set[str] = set()
        self._draft_id: str | None = None
        self._pending_attachments: list[Attachment] = []
        self.last_error: ErrorFrame | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._view.values())

    @property
    def pending_ids(self) -> frozenset[str]:
        """已乐观插入、尚未被回显或 snapshot 确认的消息 id"""
        return frozenset(self._pending_ids)

    @property
    def pending_attachments(self) -> list[Attachment]:
        return list(self._pending_attachments)

    def connect(self) -> None:
        self._transition(ConnectionState.AWAITING_SNAPSHOT)

    def disconnect(self) -> None:
        """断开连接：保留本地视图，等待下次 snapshot 重新同步"""
        if self._state != ConnectionState.DISCONNECTED:
            self._transition(ConnectionState.DISCONNECTED)

    def receive(self, raw: str | bytes | Frame) -> Frame:
        """处理一条来自服务端的帧

        Raises:
            ProtocolError: 帧无法解析
            ValueError: 在非法状态下收到 snapshot
        """
        frame = parse_frame(raw) if isinstance(raw, (str, bytes)) else raw

        if isinstance(frame, SnapshotFrame):
            self._transition(ConnectionState.LIVE)
            self._view = {m.id: m for m in frame.messages}
            # snapshot 之后，未出现在其中的乐观条目已被整体替换掉
            self._pending_ids.clear()
        elif isinstance(frame, (AddFrame, UpdateFrame)):
            upsert = to_upsert(frame)
            self._view = reduce(self._view, upsert)
            self._pending_ids.discard(upsert.message.id)
        elif isinstance(frame, ErrorFrame):
            self.last_error = frame
            log.warning("server_error_frame", code=frame.code, message=frame.message)
        return frame

    def draft_message_id(self) -> str:
        """当前草稿消息 id；上传附件与最终提交共用同一个 id"""
        if self._draft_id is None:
            self._draft_id = self._id_factory()
        return self._draft_id

    def add_pending_attachments(self, attachments: list[Attachment]) -> None:
        self._pending_attachments.extend(attachments)

    def remove_pending_attachment(self, attachment_id: str) -> None:
        """移除待发送附件；全部移除后释放草稿 id"""
        self._pending_attachments = [
            a for a in self._pending_attachments if a.id != attachment_id
        ]
        if not self._pending_attachments:
            self._draft_id = None

    def submit(
        self,
        body: str,
        role: Role = Role.USER,
    ) -> tuple[ChatMessage, str] | None:
        """乐观提交一条消息

        Returns:
            (本地插入的消息, 待发送的 add 帧文本)；正文为空且无附件时返回 None
        """
        if not body.strip() and not self._pending_attachments:
            return None

        message = ChatMessage(
            id=self.draft_message_id(),
            author=self.author,
            role=role,
            body=body,
            timestamp=self._clock(),
            attachments=list(self._pending_attachments),
        )
        self._view = reduce(self._view, Upsert(message=message, hint=FrameType.ADD))
        self._pending_ids.add(message.id)

        self._pending_attachments = []
        self._draft_id = None
        return message, encode_frame(message_frame(message, FrameType.ADD))

    def edit(self, message_id: str, body: str) -> tuple[ChatMessage, str]:
        """乐观编辑已有消息，发送 update 帧

        Raises:
            KeyError: 本地视图中没有该消息
        """
        current = self._view[message_id]
        edited = current.model_copy(update={"body": body})
        self._view = reduce(self._view, Upsert(message=edited, hint=FrameType.UPDATE))
        self._pending_ids.add(message_id)
        return edited, encode_frame(message_frame(edited, FrameType.UPDATE))

    def _transition(self, to_state: ConnectionState) -> None:
        if not validate_transition(self._state, to_state):
            raise ValueError(f"Cannot transition from {self._state} to {to_state}")
        self._state = to_state
