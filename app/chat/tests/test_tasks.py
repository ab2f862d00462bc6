"""
Tests for chat Celery tasks.

The tasks are thin wrappers; these tests check they build the fan-out
from settings and hand over their arguments intact.
"""

import pytest

from chat.constants import GroupEvent
from chat.fanout import NotificationFanout, PushNotice, TaskPushDispatcher
from chat.storage import StorageCleanupError
from chat.tasks import delete_attachment_files, fan_out_group_event, fan_out_message
from chat.tests.factories import GroupChatFactory, MembershipFactory, MessageFactory
from chat.tests.fakes import FakePush, FakeRealtime
from notifications.tests.factories import DeviceTokenFactory


class TestFanOutTasks:
    def test_group_event_rebuilds_push_notice(self, mocker, member_user):
        push = FakePush()
        mocker.patch(
            "chat.tasks.NotificationFanout.from_settings",
            return_value=NotificationFanout(FakeRealtime(), push),
        )
        DeviceTokenFactory(user=member_user)
        notice = PushNotice.lifecycle("A group was deleted", 9, GroupEvent.DELETED)

        stats = fan_out_group_event(
            [member_user.id], GroupEvent.DELETED, {"chat_id": 9}, notice.to_dict()
        )

        assert stats["push"] == 1
        assert push.notified == [(member_user.id, notice)]

    def test_fan_out_message_uses_configured_gateway(
        self, mocker, admin_user, member_user
    ):
        gateway = FakeRealtime(online={member_user.id})
        mocker.patch("chat.realtime.import_string", return_value=lambda: gateway)
        group = GroupChatFactory()
        MembershipFactory(group=group, user=admin_user, is_admin=True)
        MembershipFactory(group=group, user=member_user)
        message = MessageFactory(group=group, sender=admin_user)

        stats = fan_out_message(message.id)

        assert stats["realtime"] == 1
        assert gateway.emitted[0][0] == member_user.id


class TestTaskPushDispatcher:
    def test_offline_push_goes_through_notification_task(self, mocker, member_user):
        delay = mocker.patch("notifications.tasks.send_push_notification.delay")
        fanout = NotificationFanout(FakeRealtime(), TaskPushDispatcher())
        DeviceTokenFactory(user=member_user)
        notice = PushNotice.lifecycle("A group was deleted", 9, GroupEvent.DELETED)

        fanout.deliver_group_event([member_user.id], GroupEvent.DELETED, {}, notice)

        delay.assert_called_once_with(member_user.id, notice.title, notice.body, notice.data)


class TestDeleteAttachmentFiles:
    def test_deletes_from_default_storage(self, mocker):
        delete = mocker.patch("chat.tasks.AttachmentStorage.delete", return_value=[])

        assert delete_attachment_files(["a.png", "b.pdf"]) == 2
        delete.assert_called_once_with(["a.png", "b.pdf"])

    def test_failed_paths_raise_for_retry(self, mocker):
        """
        Why it matters: storage errors are reported as failed paths, so the
        task must raise on its own or orphaned files are never retried.
        """
        mocker.patch("chat.tasks.AttachmentStorage.delete", return_value=["b.pdf"])

        with pytest.raises(StorageCleanupError) as excinfo:
            delete_attachment_files(["a.png", "b.pdf"])

        assert excinfo.value.paths == ["b.pdf"]

    def test_retry_carries_only_failed_paths(self, mocker):
        mocker.patch("chat.tasks.AttachmentStorage.delete", return_value=["b.pdf"])
        retry = mocker.patch("celery.app.task.Task.retry", side_effect=RuntimeError("retrying"))

        with pytest.raises(RuntimeError):
            delete_attachment_files(["a.png", "b.pdf"])

        assert retry.call_args.kwargs["args"] == [["b.pdf"]]
        assert isinstance(retry.call_args.kwargs["exc"], StorageCleanupError)
