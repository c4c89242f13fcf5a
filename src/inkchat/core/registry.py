"""AttachmentRegistry -- 规范化附件的登记处

为归一化后的 SVG 分配稳定 id，写入对象存储，并记录它属于哪条
尚未发送（pending）的草稿消息；消息持久化后解除 pending 记录。
从未发送的草稿遗留的附件不回收。
"""

import re
from collections import OrderedDict

import structlog
from ulid import ULID

from .config import (
    ATTACHMENT_KEY_PREFIX,
    ATTACHMENT_URL_PREFIX,
    MAX_PENDING_DRAFTS,
    SVG_CONTENT_TYPE,
)
from .exceptions import UploadError
from .models.attachment import Attachment
from .models.message import ChatMessage
from .store.protocols import ObjectStore

log = structlog.get_logger()

_UNSAFE_SEGMENT_RE = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_segment(value: str) -> str:
    """把路径片段限制在 [A-Za-z0-9_-]，其余字符替换为 _"""
    return _UNSAFE_SEGMENT_RE.sub("_", value) or "_"


def sanitize_filename(filename: str) -> str:
    """文件名主干按片段规则清洗，统一保留 .svg 后缀"""
    stem = filename[:-4] if filename.lower().endswith(".svg") else filename
    return f"{sanitize_segment(stem)}.svg"


def build_key(
    room_id: str,
    author: str,
    message_id: str,
    attachment_id: str,
    filename: str,
) -> str:
    """svgs/<room>/<author>/<message_id>/<attachment_id>-<filename>，每段均已清洗

    文件名清洗会把非 ASCII 字符折叠为 _，附件 id 前缀保证 key 唯一，
    已存储的对象不会被同一草稿里的同名文件覆盖。
    """
    return "/".join(
        [
            ATTACHMENT_KEY_PREFIX,
            sanitize_segment(room_id),
            sanitize_segment(author),
            sanitize_segment(message_id),
            f"{sanitize_segment(attachment_id)}-{sanitize_filename(filename)}",
        ]
    )


def url_for_key(key: str) -> str:
    return f"{ATTACHMENT_URL_PREFIX}{key}"


class AttachmentRegistry:
    """附件登记处：对象存储写入 + pending 关联"""

    def __init__(
        self,
        object_store: ObjectStore,
        max_pending_drafts: int = MAX_PENDING_DRAFTS,
    ) -> None:
        self._object_store = object_store
        self._max_pending_drafts = max_pending_drafts
        # (room_id, message_id) -> 已上传但所属消息尚未持久化的附件
        # 按最近上传排序，超过上限时淘汰最久未动的草稿
        self._pending: OrderedDict[tuple[str, str], list[Attachment]] = OrderedDict()

    @property
    def pending_draft_count(self) -> int:
        return len(self._pending)

    async def register(
        self,
        room_id: str,
        author: str,
        message_id: str,
        filename: str,
        document: str,
    ) -> Attachment:
        """写入规范化文档并登记为 pending 附件

        Raises:
            UploadError: 对象存储写入失败
        """
        attachment_id = str(ULID())
        key = build_key(room_id, author, message_id, attachment_id, filename)
        try:
            await self._object_store.put(key, document.encode("utf-8"), SVG_CONTENT_TYPE)
        except Exception as e:
            log.error(
                "attachment_store_failed",
                room_id=room_id,
                key=key,
                error_type=type(e).__name__,
            )
            raise UploadError(f"附件写入失败: {key}") from e

        attachment = Attachment(id=attachment_id, url=url_for_key(key), filename=filename)
        self._remember(room_id, message_id, attachment)
        log.info(
            "attachment_registered",
            room_id=room_id,
            message_id=message_id,
            attachment_id=attachment.id,
            key=key,
        )
        return attachment

    def _remember(self, room_id: str, message_id: str, attachment: Attachment) -> None:
        draft = (room_id, message_id)
        self._pending.setdefault(draft, []).append(attachment)
        self._pending.move_to_end(draft)
        while len(self._pending) > self._max_pending_drafts:
            (evicted_room, evicted_id), evicted = self._pending.popitem(last=False)
            log.info(
                "pending_draft_evicted",
                room_id=evicted_room,
                message_id=evicted_id,
                attachment_count=len(evicted),
            )

    def pending_for(self, room_id: str, message_id: str) -> list[Attachment]:
        return list(self._pending.get((room_id, message_id), []))

    def mark_persisted(self, room_id: str, message: ChatMessage) -> list[Attachment]:
        """消息已持久化：解除 pending 关联

        Returns:
            同一草稿上传过、但消息最终没有引用的附件（孤儿，不回收）
        """
        pending = self._pending.pop((room_id, message.id), [])
        referenced = {a.id for a in message.attachments}
        orphans = [a for a in pending if a.id not in referenced]
        if orphans:
            log.info(
                "attachment_orphaned",
                room_id=room_id,
                message_id=message.id,
                orphan_count=len(orphans),
            )
        return orphans
