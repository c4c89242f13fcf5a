"""客户端同步状态机测试

测试内容：
1. DISCONNECTED -> AWAITING_SNAPSHOT -> LIVE 流转
2. 自己的回显只留下一条
3. snapshot 整体替换视图
4. 草稿 id 在附件上传与提交之间共享
"""

import itertools
import json

import pytest
from inkchat.core.models import Attachment, ChatMessage, ConnectionState, FrameType
from inkchat.core.protocol import (
    Upsert,
    encode_frame,
    error_frame,
    message_frame,
    snapshot_frame,
)
from inkchat.core.reconciler import ClientReconciler, reduce


def _reconciler(author: str = "alice") -> ClientReconciler:
    counter = itertools.count(1)
    return ClientReconciler(
        author,
        id_factory=lambda: f"local-{next(counter)}",
        clock=lambda: 1700000000000,
    )


def _live(author: str = "alice", messages: list[ChatMessage] | None = None) -> ClientReconciler:
    reconciler = _reconciler(author)
    reconciler.connect()
    reconciler.receive(encode_frame(snapshot_frame(messages or [])))
    return reconciler


def _msg(message_id: str, body: str, author: str = "bob") -> ChatMessage:
    return ChatMessage(id=message_id, author=author, body=body)


class TestReduce:
    """纯 reducer"""

    def test_unknown_id_appended(self):
        view = {"a": _msg("a", "1")}
        result = reduce(view, Upsert(message=_msg("b", "2")))
        assert list(result) == ["a", "b"]

    def test_known_id_replaced_in_place(self):
        view = {"a": _msg("a", "1"), "b": _msg("b", "2")}
        result = reduce(view, Upsert(message=_msg("a", "3"), hint=FrameType.UPDATE))
        assert list(result) == ["a", "b"]
        assert result["a"].body == "3"

    def test_input_untouched(self):
        view = {"a": _msg("a", "1")}
        reduce(view, Upsert(message=_msg("a", "2")))
        assert view["a"].body == "1"


class TestConnectionStates:
    """连接状态机"""

    def test_happy_path(self):
        reconciler = _reconciler()
        assert reconciler.state == ConnectionState.DISCONNECTED
        reconciler.connect()
        assert reconciler.state == ConnectionState.AWAITING_SNAPSHOT
        reconciler.receive(encode_frame(snapshot_frame([])))
        assert reconciler.state == ConnectionState.LIVE

    def test_snapshot_while_disconnected_rejected(self):
        reconciler = _reconciler()
        with pytest.raises(ValueError):
            reconciler.receive(encode_frame(snapshot_frame([])))

    def test_disconnect_keeps_view(self):
        reconciler = _live(messages=[_msg("a", "hi")])
        reconciler.disconnect()
        assert reconciler.state == ConnectionState.DISCONNECTED
        assert [m.id for m in reconciler.messages] == ["a"]
        # 重复断开无副作用
        reconciler.disconnect()

    def test_reconnect_resyncs(self):
        reconciler = _live(messages=[_msg("a", "hi")])
        reconciler.disconnect()
        reconciler.connect()
        reconciler.receive(encode_frame(snapshot_frame([_msg("a", "hi"), _msg("b", "missed")])))
        assert reconciler.state == ConnectionState.LIVE
        assert [m.id for m in reconciler.messages] == ["a", "b"]


class TestOptimisticSubmit:
    """乐观提交"""

    def test_own_echo_leaves_one_entry(self):
        reconciler = _live()
        result = reconciler.submit("hello")
        assert result is not None
        message, wire = result

        assert json.loads(wire)["type"] == "add"
        assert reconciler.pending_ids == {message.id}

        reconciler.receive(wire)
        assert len(reconciler.messages) == 1
        assert reconciler.messages[0].body == "hello"
        assert reconciler.pending_ids == frozenset()

    def test_blank_submit_ignored(self):
        reconciler = _live()
        assert reconciler.submit("   ") is None
        assert reconciler.messages == []

    def test_remote_add_appended(self):
        reconciler = _live(messages=[_msg("a", "1")])
        reconciler.receive(encode_frame(message_frame(_msg("b", "2"))))
        assert [m.id for m in reconciler.messages] == ["a", "b"]

    def test_update_for_unknown_id_inserted(self):
        reconciler = _live()
        reconciler.receive(encode_frame(message_frame(_msg("z", "late"), FrameType.UPDATE)))
        assert [m.id for m in reconciler.messages] == ["z"]

    def test_snapshot_discards_unconfirmed_entries(self):
        reconciler = _live()
        message, _ = reconciler.submit("lost")
        reconciler.disconnect()
        reconciler.connect()
        reconciler.receive(encode_frame(snapshot_frame([_msg("a", "server")])))

        assert [m.id for m in reconciler.messages] == ["a"]
        assert message.id not in reconciler.pending_ids

    def test_frames_before_snapshot_replaced(self):
        reconciler = _reconciler()
        reconciler.connect()
        reconciler.receive(encode_frame(message_frame(_msg("early", "x"))))
        assert [m.id for m in reconciler.messages] == ["early"]

        reconciler.receive(encode_frame(snapshot_frame([_msg("a", "1")])))
        assert [m.id for m in reconciler.messages] == ["a"]

    def test_edit_sends_update(self):
        reconciler = _live(messages=[_msg("a", "typo", author="alice")])
        edited, wire = reconciler.edit("a", "fixed")
        assert edited.body == "fixed"
        assert json.loads(wire)["type"] == "update"
        assert reconciler.messages[0].body == "fixed"

    def test_edit_unknown_message(self):
        reconciler = _live()
        with pytest.raises(KeyError):
            reconciler.edit("missing", "x")

    def test_error_frame_recorded(self):
        reconciler = _live()
        reconciler.receive(encode_frame(error_frame("PERSIST_FAILED", "not saved")))
        assert reconciler.last_error is not None
        assert reconciler.last_error.code == "PERSIST_FAILED"


class TestDraftAttachments:
    """草稿附件"""

    def test_draft_id_reused_on_submit(self):
        reconciler = _live()
        draft_id = reconciler.draft_message_id()
        assert reconciler.draft_message_id() == draft_id

        attachment = Attachment(id="a1", url=f"/api/svg/svgs/r/alice/{draft_id}/a.svg", filename="a.svg")
        reconciler.add_pending_attachments([attachment])

        message, _ = reconciler.submit("")
        assert message.id == draft_id
        assert message.attachments == [attachment]
        assert reconciler.pending_attachments == []
        assert reconciler.draft_message_id() != draft_id

    def test_removing_last_attachment_releases_draft(self):
        reconciler = _live()
        draft_id = reconciler.draft_message_id()
        reconciler.add_pending_attachments(
            [
                Attachment(id="a1", url="/api/svg/1.svg", filename="1.svg"),
                Attachment(id="a2", url="/api/svg/2.svg", filename="2.svg"),
            ]
        )

        reconciler.remove_pending_attachment("a1")
        assert reconciler.draft_message_id() == draft_id
        reconciler.remove_pending_attachment("a2")
        assert reconciler.draft_message_id() != draft_id
