"""inkchat 异常体系

几何/编码错误是纯本地错误，只中止单个附件操作；
存储与传输错误只回报给发起方连接，不影响房间内其他成员。
"""


class InkchatError(Exception):
    """inkchat 基础异常"""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            code: 机器可读错误码，缺省使用类级别 code
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class GeometryError(InkchatError):
    """源文档边界退化或无法解析，调用方不得展示或存储结果"""

    code = "GEOMETRY_ERROR"


class EncodingError(InkchatError):
    """手写笔画为空，UI 应禁用触发动作"""

    code = "EMPTY_CANVAS"


class UploadError(InkchatError):
    """上传批次中没有有效文件，或对象存储写入失败"""

    code = "UPLOAD_FAILED"


class NotFoundError(InkchatError):
    """请求的附件 key 不存在"""

    code = "ATTACHMENT_NOT_FOUND"


class ProtocolError(InkchatError):
    """无法解析的线协议帧"""

    code = "BAD_FRAME"


class PersistenceError(InkchatError):
    """持久化写入失败；内存状态仍然是权威状态"""

    code = "PERSIST_FAILED"

    def __init__(self, room_id: str, message_id: str, original_error: Exception) -> None:
        super().__init__(
            f"持久化失败: room={room_id} id={message_id} -- {original_error}",
        )
        self.room_id = room_id
        self.message_id = message_id
        self.original_error = original_error


class StoreCorruptedError(InkchatError):
    """持久化数据损坏，load() 立即失败而不是返回部分视图"""

    code = "STORE_CORRUPTED"


class RoomNotLoadedError(InkchatError):
    """房间在 load() 完成前被读取或写入"""

    code = "ROOM_NOT_LOADED"
