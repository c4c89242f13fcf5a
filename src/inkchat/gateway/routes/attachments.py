"""附件路由

POST /api/svg/upload: multipart 上传一个或多个 SVG，归一化后存储。
POST /api/ink: 提交手写笔画，编码 + 归一化后存储。
GET /api/svg/{key}: 按对象 key 返回附件字节，长期缓存。
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from inkchat.core.config import ATTACHMENT_CACHE_MAX_AGE
from inkchat.core.exceptions import EncodingError, GeometryError, NotFoundError, UploadError
from inkchat.core.models import Attachment, RawVectorPath
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse, Response
from ulid import ULID

from ..deps import get_attachment_service
from ..services.attachment_service import UploadedFile

router = APIRouter()


class AttachmentListResponse(BaseModel):
    """上传响应：按提交顺序的附件描述符"""

    svgs: list[Attachment]


class InkRequest(BaseModel):
    """手写保存请求体"""

    model_config = ConfigDict(populate_by_name=True)

    room: str = Field(default="default", description="房间 ID")
    user: str = Field(default="anonymous", description="作者名称")
    message_id: str | None = Field(
        default=None,
        alias="messageId",
        description="草稿消息 ID，缺省时生成新的",
    )
    strokes: list[RawVectorPath] = Field(default_factory=list, description="笔画序列")


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def _upload_error_response(e: UploadError) -> JSONResponse:
    if e.code == "NO_VALID_FILES":
        return _error(400, e.code, e.message)
    return _error(500, e.code, "Upload failed")


@router.post("/api/svg/upload", response_model=AttachmentListResponse)
async def upload_svgs(
    svgs: list[UploadFile] | None = File(default=None),
    room: str = Form(default=""),
    user: str = Form(default=""),
    message_id: str = Form(default="", alias="messageId"),
    service=Depends(get_attachment_service),
):
    """上传 SVG 批次

    - 非 SVG 文件静默跳过
    - 没有任何有效文件返回 400
    - 对象存储写入失败返回 500
    """
    files = [
        UploadedFile(
            filename=upload.filename or "upload.svg",
            content_type=upload.content_type,
            data=await upload.read(),
        )
        for upload in svgs or []
    ]

    try:
        attachments = await service.upload_svgs(
            room or "default",
            user or "anonymous",
            message_id or str(ULID()),
            files,
        )
    except UploadError as e:
        return _upload_error_response(e)

    return AttachmentListResponse(svgs=attachments)


@router.post("/api/ink", response_model=AttachmentListResponse)
async def save_ink(
    body: InkRequest,
    service=Depends(get_attachment_service),
):
    """保存手写画布为一个附件；空画布或无法归一化的笔画返回 400"""
    try:
        attachment = await service.save_ink(
            body.room or "default",
            body.user or "anonymous",
            body.message_id or str(ULID()),
            body.strokes,
        )
    except (EncodingError, GeometryError) as e:
        return _error(400, e.code, e.message)
    except UploadError as e:
        return _upload_error_response(e)

    return AttachmentListResponse(svgs=[attachment])


@router.get("/api/svg/{key:path}")
async def get_svg(
    key: str,
    service=Depends(get_attachment_service),
):
    """按 key 返回附件字节；附件不可变，可长期缓存"""
    try:
        stored, content = await service.fetch(key)
    except NotFoundError as e:
        return _error(404, e.code, e.message)

    return Response(
        content=content,
        media_type=stored.content_type,
        headers={
            "Cache-Control": f"public, max-age={ATTACHMENT_CACHE_MAX_AGE}",
            "ETag": f'"{stored.hash}"',
        },
    )
