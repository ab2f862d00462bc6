"""
Tests for chat models.

Covers:
- GroupChat membership helpers (participant_ids, admin_ids, unread_counts)
- Membership constraints (one row per user, non-negative counter)
- ReplySnapshot capture and serialization
- Message ordering and reactions uniqueness
"""

import pytest
from django.db import IntegrityError, transaction

from authentication.tests.factories import UserFactory
from chat.models import GroupChat, Membership, ReplySnapshot
from chat.tests.factories import (
    GroupChatFactory,
    MembershipFactory,
    MessageAttachmentFactory,
    MessageFactory,
    MessageReactionFactory,
)


# =============================================================================
# GroupChat
# =============================================================================


class TestGroupChatMembershipHelpers:
    """
    Tests for the membership-derived properties of GroupChat.

    Why it matters: fan-out and permission checks read these on every call.
    """

    def test_participant_and_admin_ids(self, db):
        group = GroupChatFactory()
        admin = MembershipFactory(group=group, is_admin=True)
        member = MembershipFactory(group=group)

        assert sorted(group.participant_ids) == sorted([admin.user_id, member.user_id])
        assert group.admin_ids == [admin.user_id]

    def test_unread_counts_maps_every_participant(self, db):
        group = GroupChatFactory()
        first = MembershipFactory(group=group, unread_count=3)
        second = MembershipFactory(group=group)

        assert group.unread_counts == {first.user_id: 3, second.user_id: 0}

    def test_get_membership_returns_none_for_outsider(self, db):
        group = GroupChatFactory()
        MembershipFactory(group=group)

        assert group.get_membership(UserFactory().id) is None

    def test_for_user_lists_only_joined_groups(self, db):
        user = UserFactory()
        mine = GroupChatFactory()
        MembershipFactory(group=mine, user=user)
        GroupChatFactory()

        assert list(GroupChat.objects.for_user(user.id)) == [mine]


# =============================================================================
# Membership
# =============================================================================


class TestMembershipConstraints:
    """
    Why it matters: the database is the last line of defence for the
    one-membership-per-user and non-negative counter rules.
    """

    def test_user_cannot_join_same_group_twice(self, db):
        membership = MembershipFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            Membership.objects.create(group=membership.group, user=membership.user)

    def test_unread_count_cannot_go_negative(self, db):
        membership = MembershipFactory(unread_count=0)

        with pytest.raises(IntegrityError), transaction.atomic():
            Membership.objects.filter(pk=membership.pk).update(unread_count=-1)


# =============================================================================
# ReplySnapshot
# =============================================================================


class TestReplySnapshot:
    """
    Why it matters: replies must keep showing what was replied to, even
    after the original is edited.
    """

    def test_captures_sender_content_and_attachments(self, db):
        original = MessageFactory(content="Meet at the trailhead")
        MessageAttachmentFactory(message=original, position=0, file_type="image")

        snapshot = ReplySnapshot.from_message(original)

        assert snapshot.message_id == original.id
        assert snapshot.sender_id == original.sender_id
        assert snapshot.sender_username == original.sender.username
        assert snapshot.content == "Meet at the trailhead"
        assert snapshot.attachments[0]["file_type"] == "image"

    def test_truncates_long_content(self, db):
        original = MessageFactory(content="x" * 500)

        snapshot = ReplySnapshot.from_message(original)

        assert len(snapshot.content) == 200

    def test_dict_form_restores_equal_snapshot(self, db):
        snapshot = ReplySnapshot.from_message(MessageFactory())

        assert ReplySnapshot.from_dict(snapshot.to_dict()) == snapshot

    def test_message_exposes_snapshot(self, db):
        original = MessageFactory()
        reply = MessageFactory(
            group=original.group,
            reply_to=ReplySnapshot.from_message(original).to_dict(),
        )

        assert reply.reply_snapshot.message_id == original.id
        assert MessageFactory().reply_snapshot is None


# =============================================================================
# Message and reactions
# =============================================================================


class TestMessageModel:
    def test_messages_order_oldest_first(self, db):
        group = GroupChatFactory()
        first = MessageFactory(group=group)
        second = MessageFactory(group=group)

        assert list(group.messages.all()) == [first, second]

    def test_one_reaction_per_user_per_message(self, db):
        reaction = MessageReactionFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            MessageReactionFactory(message=reaction.message, user=reaction.user, emoji="🎉")

    def test_str_previews_content(self, db):
        message = MessageFactory(content="y" * 80)

        assert str(message).endswith("y" * 50 + "...")
