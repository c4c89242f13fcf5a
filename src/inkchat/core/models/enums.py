"""枚举定义

包含消息角色、线协议帧类型、客户端连接状态机，
以及 VALID_TRANSITIONS 合法流转映射。
"""

from enum import StrEnum


class Role(StrEnum):
    """消息作者角色"""

    USER = "user"
    ASSISTANT = "assistant"


class FrameType(StrEnum):
    """线协议帧类型"""

    SNAPSHOT = "snapshot"
    ADD = "add"
    UPDATE = "update"
    # 扩展：仅发送给发起方连接的错误通知
    ERROR = "error"


class ConnectionState(StrEnum):
    """客户端同步状态机"""

    DISCONNECTED = "DISCONNECTED"
    AWAITING_SNAPSHOT = "AWAITING_SNAPSHOT"
    LIVE = "LIVE"


VALID_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.DISCONNECTED: {ConnectionState.AWAITING_SNAPSHOT},
    ConnectionState.AWAITING_SNAPSHOT: {
        ConnectionState.LIVE,
        ConnectionState.DISCONNECTED,
    },
    # 重连后服务端会重新下发 snapshot
    ConnectionState.LIVE: {
        ConnectionState.DISCONNECTED,
        ConnectionState.LIVE,
    },
}


def validate_transition(from_state: ConnectionState, to_state: ConnectionState) -> bool:
    """验证状态流转是否合法

    Args:
        from_state: 当前状态
        to_state: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_state, set())
    return to_state in allowed
