"""AttachmentService -- SVG 上传与手写保存业务逻辑

上传流程：
1. 跳过非 SVG 文件（既不是 image/svg+xml 也不以 .svg 结尾）
2. 跳过超过大小上限、非 UTF-8 或几何归一化失败的文件
3. 归一化后写入对象存储并登记为 pending 附件
4. 没有任何有效文件时整个批次失败
"""

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog
from inkchat.core.config import SVG_CONTENT_TYPE
from inkchat.core.exceptions import GeometryError, NotFoundError, UploadError
from inkchat.core.geometry import normalize
from inkchat.core.ink import encode_and_normalize
from inkchat.core.models import Attachment, RawVectorPath
from inkchat.core.registry import AttachmentRegistry
from inkchat.core.store import SqliteObjectStore, StoredObject
from pydantic import BaseModel

log = structlog.get_logger()


class UploadedFile(BaseModel):
    """上传批次中的单个文件"""

    filename: str
    content_type: str | None = None
    data: bytes


def is_svg(filename: str, content_type: str | None) -> bool:
    return content_type == SVG_CONTENT_TYPE or filename.lower().endswith(".svg")


class AttachmentService:
    """附件业务服务"""

    def __init__(
        self,
        registry: AttachmentRegistry,
        object_store: SqliteObjectStore,
        max_upload_bytes: int,
    ) -> None:
        self._registry = registry
        self._object_store = object_store
        self._max_upload_bytes = max_upload_bytes

    async def fetch(self, key: str) -> tuple[StoredObject, bytes]:
        """按对象 key 读取附件

        Raises:
            NotFoundError: key 不存在或字节已丢失
        """
        stored = await self._object_store.stat(key)
        content = await self._object_store.get(key) if stored is not None else None
        if stored is None or content is None:
            raise NotFoundError(f"Attachment {key} does not exist")
        return stored, content

    async def upload_svgs(
        self,
        room_id: str,
        author: str,
        message_id: str,
        files: Sequence[UploadedFile],
    ) -> list[Attachment]:
        """归一化并存储一批 SVG，按提交顺序返回附件描述符

        Raises:
            UploadError: 没有文件 / 没有有效文件（NO_VALID_FILES），
                或对象存储写入失败（同批已写入的附件不回滚）
        """
        if not files:
            raise UploadError("No files uploaded", code="NO_VALID_FILES")

        attachments: list[Attachment] = []
        for file in files:
            document = self._normalize_upload(room_id, file)
            if document is None:
                continue
            attachment = await self._registry.register(
                room_id, author, message_id, file.filename, document
            )
            attachments.append(attachment)

        if not attachments:
            raise UploadError("No valid SVG files uploaded", code="NO_VALID_FILES")
        return attachments

    async def save_ink(
        self,
        room_id: str,
        author: str,
        message_id: str,
        strokes: Sequence[RawVectorPath],
    ) -> Attachment:
        """手写笔画 -> 规范 SVG -> 附件

        Raises:
            EncodingError: 画布为空
            GeometryError: 笔画范围无法归一化（例如坐标溢出）
            UploadError: 对象存储写入失败
        """
        document = encode_and_normalize(strokes)
        stamp = int(datetime.now(UTC).timestamp() * 1000)
        return await self._registry.register(
            room_id, author, message_id, f"handwriting-{stamp}.svg", document
        )

    def _normalize_upload(self, room_id: str, file: UploadedFile) -> str | None:
        """返回规范文档；文件应被跳过时返回 None"""
        if not is_svg(file.filename, file.content_type):
            log.debug("upload_file_skipped", room_id=room_id, filename=file.filename, reason="not_svg")
            return None
        if len(file.data) > self._max_upload_bytes:
            log.warning(
                "upload_file_skipped",
                room_id=room_id,
                filename=file.filename,
                reason="too_large",
                size=len(file.data),
            )
            return None
        try:
            return normalize(file.data.decode("utf-8"))
        except UnicodeDecodeError:
            log.warning("upload_file_skipped", room_id=room_id, filename=file.filename, reason="not_utf8")
        except GeometryError as e:
            log.warning(
                "upload_file_skipped",
                room_id=room_id,
                filename=file.filename,
                reason="geometry",
                error=e.message,
            )
        return None
