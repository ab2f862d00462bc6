"""
Group chat service layer.

This module provides the business logic for group chats, encapsulating
all operations on groups, memberships, join requests, invite links and
messages.

Services:
    MessagePermissionGate: Who may post what in a group (read only)
    GroupLifecycleService: Group creation, membership changes, join requests, invite links
    MessageService: Sending, listing, read receipts, edits, per-user delete, reactions

Design Principles:
    - Expected failures return ServiceResult with an error_code and an ErrorKind
    - Groups the caller is not in are reported as not_found, hiding their existence
    - Every mutation runs in one transaction that first locks the group row
      (select_for_update), so membership changes and sends on one group serialize
    - Unread counters only change through F() expressions in single UPDATEs
    - Notifications are scheduled through the injected notifier and only
      leave the process after commit

Usage:
    from chat.services import GroupLifecycleService, MessageService

    result = GroupLifecycleService().create_group(
        creator=user, name="Weekend hike", participant_ids=[5, 6]
    )
    if result.success:
        group = result.data

    result = MessageService().send_message(group.id, user, content="Hello everyone!")
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.db.models import Exists, F, OuterRef, Subquery
from django.utils import timezone

from chat.constants import (
    ATTACHMENT_CONFIG,
    INVITE_CONFIG,
    MESSAGE_CONFIG,
    PUSH_TEXT,
    REACTION_CONFIG,
    GroupEvent,
)
from chat.fanout import CeleryNotifier, PushNotice, group_payload
from chat.models import (
    GroupChat,
    JoinRequest,
    Membership,
    Message,
    MessageAttachment,
    MessageReaction,
    ReplySnapshot,
    SendPermission,
)
from chat.storage import AttachmentStorage
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from authentication.models import User

GROUP_NOT_FOUND = "Group chat not found or you're not a participant"


def _permits(permission: str, is_admin: bool) -> bool:
    if permission == SendPermission.ALL:
        return True
    if permission == SendPermission.ADMINS:
        return is_admin
    return False


class MessagePermissionGate:
    """
    Decides whether a user may send into a group.

    Rules:
        - not_found if the group does not exist or the user is not a participant
        - forbidden if send_messages_permission excludes the user
        - with attachments, forbidden if send_media_permission excludes the user
    """

    @staticmethod
    def evaluate(
        group: GroupChat | None,
        user: User,
        has_attachments: bool = False,
    ) -> ServiceResult | None:
        """Return a failed ServiceResult, or None when sending is allowed."""
        membership = group.get_membership(user.id) if group is not None else None
        if membership is None:
            return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")

        if not _permits(group.send_messages_permission, membership.is_admin):
            return ServiceResult.forbidden(
                "You are not allowed to send messages in this group",
                "SEND_NOT_ALLOWED",
            )

        if has_attachments and not _permits(
            group.send_media_permission, membership.is_admin
        ):
            return ServiceResult.forbidden(
                "You are not allowed to send media in this group",
                "MEDIA_NOT_ALLOWED",
            )

        return None

    @classmethod
    def check(
        cls,
        group_id: int,
        user: User,
        has_attachments: bool = False,
    ) -> ServiceResult[GroupChat]:
        group = GroupChat.objects.filter(pk=group_id).first()
        denied = cls.evaluate(group, user, has_attachments)
        if denied is not None:
            return denied
        return ServiceResult.success(group)


class _GroupServiceMixin:
    """Shared lookups for services that lock a group before acting."""

    @staticmethod
    def _lock_group(group_id: int) -> GroupChat | None:
        return GroupChat.objects.select_for_update().filter(pk=group_id).first()

    @staticmethod
    def _membership(group: GroupChat | None, user_id: int) -> Membership | None:
        if group is None:
            return None
        return group.get_membership(user_id)

    @classmethod
    def _admin_failure(
        cls,
        group: GroupChat | None,
        actor: User,
        action: str,
    ) -> ServiceResult | None:
        """not_found for non-participants, forbidden for non-admins, else None."""
        membership = cls._membership(group, actor.id)
        if membership is None:
            return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")
        if not membership.is_admin:
            return ServiceResult.forbidden(f"Only group admins can {action}", "NOT_ADMIN")
        return None

    @staticmethod
    def _participant_ids(group: GroupChat, exclude: set[int] | None = None) -> list[int]:
        ids = group.memberships.values_list("user_id", flat=True)
        return [user_id for user_id in ids if user_id not in (exclude or set())]


class GroupLifecycleService(_GroupServiceMixin, BaseService):
    """
    Service for group and membership lifecycle.

    Methods:
        create_group: Create a group with the creator as sole admin
        update_group: Change name/description/avatar/send permissions
        add_participants: Admin adds users
        remove_participant: Admin removes a participant
        leave_group: Participant leaves (promotes or deletes as needed)
        delete_group: Admin deletes the group
        request_to_join: Non-participant asks to join
        resolve_join_request: Admin approves or rejects a request
        list_join_requests: Admin lists pending requests
        generate_invite_link: Admin creates a fresh invite link
        join_via_link: User joins with an invite token
        revoke_invite_link: Admin disables the invite link
        list_groups / discover_groups / get_group: Reads
    """

    def __init__(self, notifier=None):
        self.notifier = notifier or CeleryNotifier()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _seed_unread(group: GroupChat, user_id: int) -> int:
        """Existing messages the joining user did not send."""
        return Message.objects.filter(group=group).exclude(sender_id=user_id).count()

    def _join(self, group: GroupChat, user_id: int) -> Membership:
        membership = Membership.objects.create(
            group=group,
            user_id=user_id,
            unread_count=self._seed_unread(group, user_id),
        )
        JoinRequest.objects.filter(group=group, user_id=user_id).delete()
        return membership

    @staticmethod
    def _touch(group: GroupChat) -> None:
        group.last_activity = timezone.now()
        group.save(update_fields=["last_activity", "updated_at"])

    # -------------------------------------------------------------------------
    # Creation and settings
    # -------------------------------------------------------------------------

    def create_group(
        self,
        creator: User,
        name: str,
        participant_ids: list[int],
        description: str = "",
        avatar: str = "",
    ) -> ServiceResult[GroupChat]:
        """
        Create a new group chat.

        The creator becomes the sole admin. Every other participant starts
        with one unread item (the group itself).

        Error codes:
            NAME_REQUIRED: Group name cannot be empty
            NOT_ENOUGH_PARTICIPANTS: Fewer than two users besides the creator
            USERS_NOT_FOUND: Some participant ids do not exist
        """
        name = name.strip() if name else ""
        if not name:
            return ServiceResult.failure("Group name is required", "NAME_REQUIRED")

        member_ids = {int(pk) for pk in participant_ids or []} - {creator.id}
        if len(member_ids) < 2:
            return ServiceResult.failure(
                "A group needs at least two participants besides you",
                "NOT_ENOUGH_PARTICIPANTS",
            )

        found = set(
            get_user_model()
            .objects.filter(pk__in=member_ids, is_active=True)
            .values_list("pk", flat=True)
        )
        missing = sorted(member_ids - found)
        if missing:
            return ServiceResult.failure(
                "One or more users not found",
                "USERS_NOT_FOUND",
                errors={"participant_ids": [str(pk) for pk in missing]},
            )

        with self.atomic():
            group = GroupChat.objects.create(
                name=name,
                description=description or "",
                avatar=avatar or "",
                created_by=creator,
                last_activity=timezone.now(),
            )
            Membership.objects.create(group=group, user=creator, is_admin=True)
            Membership.objects.bulk_create(
                [
                    Membership(group=group, user_id=user_id, unread_count=1)
                    for user_id in sorted(member_ids)
                ]
            )

            self.notifier.group_event(
                member_ids,
                GroupEvent.ADDED,
                group_payload(group),
                push=PushNotice.lifecycle(
                    PUSH_TEXT.ADDED.format(name=group.name), group.pk, GroupEvent.ADDED
                ),
            )

        self.get_logger().info(
            f"User {creator.id} created group {group.id} '{name}' "
            f"with {len(member_ids) + 1} participants"
        )
        return ServiceResult.success(group)

    UPDATABLE_FIELDS = (
        "name",
        "description",
        "avatar",
        "send_messages_permission",
        "send_media_permission",
    )

    def update_group(self, group_id: int, actor: User, **changes) -> ServiceResult[GroupChat]:
        """
        Update group details (admins only).

        Error codes:
            NOTHING_TO_UPDATE: No updatable field supplied
            NAME_REQUIRED: Name supplied but blank
            INVALID_PERMISSION: Unknown send permission value
        """
        changes = {
            key: value
            for key, value in changes.items()
            if key in self.UPDATABLE_FIELDS and value is not None
        }

        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "update group details")
            if failure:
                return failure

            if not changes:
                return ServiceResult.failure("Nothing to update", "NOTHING_TO_UPDATE")
            if "name" in changes:
                changes["name"] = changes["name"].strip()
                if not changes["name"]:
                    return ServiceResult.failure("Group name is required", "NAME_REQUIRED")
            for key in ("send_messages_permission", "send_media_permission"):
                if key in changes and changes[key] not in SendPermission.values:
                    return ServiceResult.failure(
                        f"Invalid value for {key}", "INVALID_PERMISSION"
                    )

            for key, value in changes.items():
                setattr(group, key, value)
            group.last_activity = timezone.now()
            group.save(update_fields=[*changes, "last_activity", "updated_at"])

            self.notifier.group_event(
                self._participant_ids(group, exclude={actor.id}),
                GroupEvent.UPDATED,
                group_payload(group),
                push=PushNotice.lifecycle(PUSH_TEXT.UPDATED, group.pk, GroupEvent.UPDATED),
            )

        self.get_logger().info(
            f"User {actor.id} updated group {group_id}: {sorted(changes)}"
        )
        return ServiceResult.success(group)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def add_participants(
        self,
        group_id: int,
        actor: User,
        user_ids: list[int],
    ) -> ServiceResult[GroupChat]:
        """
        Add users to a group (admins only).

        Already-present users are ignored. Each new participant's unread
        counter is seeded with the number of existing messages they did not send.

        Error codes:
            NO_USERS: Empty list
            ALREADY_MEMBERS: Every listed user is already a participant
            USERS_NOT_FOUND: Some new ids do not exist
        """
        requested = {int(pk) for pk in user_ids or []}

        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "add participants")
            if failure:
                return failure

            if not requested:
                return ServiceResult.failure("Participants list is required", "NO_USERS")

            existing = set(self._participant_ids(group))
            new_ids = requested - existing
            if not new_ids:
                return ServiceResult.failure(
                    "All users are already in the group", "ALREADY_MEMBERS"
                )

            found = set(
                get_user_model()
                .objects.filter(pk__in=new_ids, is_active=True)
                .values_list("pk", flat=True)
            )
            missing = sorted(new_ids - found)
            if missing:
                return ServiceResult.failure(
                    "One or more users not found",
                    "USERS_NOT_FOUND",
                    errors={"participant_ids": [str(pk) for pk in missing]},
                )

            for user_id in sorted(new_ids):
                self._join(group, user_id)
            self._touch(group)

            payload = group_payload(group)
            self.notifier.group_event(
                existing - {actor.id}, GroupEvent.UPDATED, payload
            )
            self.notifier.group_event(
                new_ids,
                GroupEvent.ADDED,
                payload,
                push=PushNotice.lifecycle(
                    PUSH_TEXT.ADDED.format(name=group.name), group.pk, GroupEvent.ADDED
                ),
            )

        self.get_logger().info(
            f"User {actor.id} added {sorted(new_ids)} to group {group_id}"
        )
        return ServiceResult.success(group)

    def remove_participant(
        self,
        group_id: int,
        actor: User,
        participant_id: int,
    ) -> ServiceResult[GroupChat]:
        """
        Remove a participant (admins only).

        The membership row carries the admin flag and unread counter, so
        both go with it.

        Error codes:
            USE_LEAVE: Admins remove themselves with leave_group
            NOT_A_MEMBER: Target is not a participant
        """
        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "remove participants")
            if failure:
                return failure

            if participant_id == actor.id:
                return ServiceResult.failure(
                    "Use leave to remove yourself from the group", "USE_LEAVE"
                )

            membership = self._membership(group, participant_id)
            if membership is None:
                return ServiceResult.failure(
                    "User is not a participant of this group", "NOT_A_MEMBER"
                )

            membership.delete()
            self._touch(group)

            payload = group_payload(group)
            self.notifier.group_event(
                self._participant_ids(group, exclude={actor.id}),
                GroupEvent.UPDATED,
                payload,
            )
            self.notifier.group_event(
                [participant_id],
                GroupEvent.REMOVED,
                {"chat_id": group.pk},
                push=PushNotice.lifecycle(PUSH_TEXT.REMOVED, group.pk, GroupEvent.REMOVED),
            )

        self.get_logger().info(
            f"User {actor.id} removed user {participant_id} from group {group_id}"
        )
        return ServiceResult.success(group)

    def leave_group(self, group_id: int, user: User) -> ServiceResult[dict]:
        """
        Leave a group.

        The last participant leaving deletes the group with its messages and
        files. If the leaver was the only admin, the earliest-joined remaining
        participant is promoted.

        Returns:
            ServiceResult with {"group_deleted": bool, "promoted_user_id": int | None}
        """
        with self.atomic():
            group = self._lock_group(group_id)
            membership = self._membership(group, user.id)
            if membership is None:
                return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")

            remaining = list(
                group.memberships.exclude(pk=membership.pk).order_by("joined_at", "id")
            )

            if not remaining:
                paths = self._attachment_paths(group)
                group.delete()
                self.notifier.discard_files(paths)
                self.notifier.group_event(
                    [user.id],
                    GroupEvent.LEFT,
                    {"chat_id": group_id, "group_deleted": True},
                )
                self.get_logger().info(
                    f"User {user.id} left group {group_id} as last participant; group deleted"
                )
                return ServiceResult.success(
                    {"group_deleted": True, "promoted_user_id": None}
                )

            membership.delete()

            promoted_user_id = None
            if not any(m.is_admin for m in remaining):
                successor = remaining[0]
                successor.is_admin = True
                successor.save(update_fields=["is_admin"])
                promoted_user_id = successor.user_id

            self._touch(group)

            self.notifier.group_event(
                [m.user_id for m in remaining], GroupEvent.UPDATED, group_payload(group)
            )
            self.notifier.group_event(
                [user.id],
                GroupEvent.LEFT,
                {"chat_id": group_id, "group_deleted": False},
            )

        self.get_logger().info(
            f"User {user.id} left group {group_id}"
            + (f"; promoted user {promoted_user_id}" if promoted_user_id else "")
        )
        return ServiceResult.success(
            {"group_deleted": False, "promoted_user_id": promoted_user_id}
        )

    @staticmethod
    def _attachment_paths(group: GroupChat) -> list[str]:
        return list(
            MessageAttachment.objects.filter(message__group=group).values_list(
                "storage_path", flat=True
            )
        )

    def delete_group(self, group_id: int, actor: User) -> ServiceResult[None]:
        """Delete a group with all messages (admins only); files go after commit."""
        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "delete the group")
            if failure:
                return failure

            recipients = self._participant_ids(group, exclude={actor.id})
            paths = self._attachment_paths(group)
            group.delete()

            self.notifier.discard_files(paths)
            self.notifier.group_event(
                recipients,
                GroupEvent.DELETED,
                {"chat_id": group_id},
                push=PushNotice.lifecycle(PUSH_TEXT.DELETED, group_id, GroupEvent.DELETED),
            )

        self.get_logger().info(f"User {actor.id} deleted group {group_id}")
        return ServiceResult.success(None)

    # -------------------------------------------------------------------------
    # Join requests
    # -------------------------------------------------------------------------

    def request_to_join(
        self,
        group_id: int,
        user: User,
        message: str = "",
    ) -> ServiceResult[JoinRequest]:
        """
        Ask to join a group.

        Error codes:
            GROUP_NOT_FOUND: No such group
            LINK_ONLY: Group only accepts invite-link joins
            ALREADY_MEMBER: Caller is already a participant
            ALREADY_REQUESTED: Caller already has a pending request
        """
        with self.atomic():
            group = self._lock_group(group_id)
            if group is None:
                return ServiceResult.not_found("Group chat not found", "GROUP_NOT_FOUND")

            if group.join_by_link:
                return ServiceResult.failure(
                    "This group allows joining by link only", "LINK_ONLY"
                )
            if self._membership(group, user.id) is not None:
                return ServiceResult.failure(
                    "You are already a member of this group", "ALREADY_MEMBER"
                )
            if group.join_requests.filter(user=user).exists():
                return ServiceResult.failure(
                    "You have already requested to join this group", "ALREADY_REQUESTED"
                )

            join_request = JoinRequest.objects.create(
                group=group, user=user, message=(message or "").strip()
            )

            self.notifier.group_event(
                group.admin_ids,
                GroupEvent.JOIN_REQUESTED,
                {
                    "chat_id": group.pk,
                    "user_id": user.id,
                    "username": user.username,
                    "message": join_request.message,
                    "requested_at": join_request.requested_at.isoformat(),
                },
                push=PushNotice.lifecycle(
                    PUSH_TEXT.JOIN_REQUESTED.format(username=user.username),
                    group.pk,
                    GroupEvent.JOIN_REQUESTED,
                ),
            )

        self.get_logger().info(f"User {user.id} requested to join group {group_id}")
        return ServiceResult.success(join_request)

    def resolve_join_request(
        self,
        group_id: int,
        actor: User,
        user_id: int,
        approve: bool,
    ) -> ServiceResult[GroupChat]:
        """
        Approve or reject a pending join request (admins only).

        Error codes:
            REQUEST_NOT_FOUND: No pending request from that user
            USER_NOT_FOUND: Requesting account no longer exists
        """
        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "handle join requests")
            if failure:
                return failure

            join_request = group.join_requests.filter(user_id=user_id).first()
            if join_request is None:
                return ServiceResult.not_found(
                    "Join request not found", "REQUEST_NOT_FOUND"
                )
            if not get_user_model().objects.filter(pk=user_id, is_active=True).exists():
                return ServiceResult.not_found("User not found", "USER_NOT_FOUND")

            if not approve:
                join_request.delete()
                self.notifier.group_event(
                    [user_id],
                    GroupEvent.JOIN_REJECTED,
                    {"chat_id": group.pk},
                    push=PushNotice.lifecycle(
                        PUSH_TEXT.JOIN_REJECTED.format(name=group.name),
                        group.pk,
                        GroupEvent.JOIN_REJECTED,
                    ),
                )
                self.get_logger().info(
                    f"User {actor.id} rejected join request of {user_id} to group {group_id}"
                )
                return ServiceResult.success(group)

            self._join(group, user_id)
            self._touch(group)

            payload = group_payload(group)
            self.notifier.group_event(
                [user_id],
                GroupEvent.JOIN_APPROVED,
                payload,
                push=PushNotice.lifecycle(
                    PUSH_TEXT.JOIN_APPROVED.format(name=group.name),
                    group.pk,
                    GroupEvent.JOIN_APPROVED,
                ),
            )
            self.notifier.group_event(
                set(group.admin_ids) - {actor.id}, GroupEvent.JOIN_APPROVED, payload
            )
            self.notifier.group_event(
                self._participant_ids(group, exclude={actor.id, user_id}),
                GroupEvent.UPDATED,
                payload,
            )

        self.get_logger().info(
            f"User {actor.id} approved join request of {user_id} to group {group_id}"
        )
        return ServiceResult.success(group)

    def list_join_requests(self, group_id: int, actor: User) -> ServiceResult[list[JoinRequest]]:
        group = GroupChat.objects.filter(pk=group_id).first()
        failure = self._admin_failure(group, actor, "view join requests")
        if failure:
            return failure
        return ServiceResult.success(list(group.join_requests.select_related("user")))

    # -------------------------------------------------------------------------
    # Invite links
    # -------------------------------------------------------------------------

    def generate_invite_link(
        self,
        group_id: int,
        actor: User,
        expires_in_hours: float | None = None,
    ) -> ServiceResult[dict]:
        """
        Create a fresh invite token, replacing any previous one.

        Returns:
            ServiceResult with {"token": str, "expires_at": datetime | None}

        Error codes:
            INVALID_EXPIRY: expires_in_hours not a positive number within bounds
        """
        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "manage invite links")
            if failure:
                return failure

            if expires_in_hours is not None:
                try:
                    hours = float(expires_in_hours)
                except (TypeError, ValueError):
                    hours = -1
                if not 0 < hours <= INVITE_CONFIG.MAX_EXPIRY_HOURS:
                    return ServiceResult.failure(
                        "expires_in_hours must be a positive number of hours",
                        "INVALID_EXPIRY",
                    )
                expires_at = timezone.now() + timedelta(hours=hours)
            else:
                expires_at = None

            group.invite_link_token = secrets.token_hex(INVITE_CONFIG.TOKEN_BYTES)
            group.invite_link_expires_at = expires_at
            group.join_by_link = True
            group.save(
                update_fields=[
                    "invite_link_token",
                    "invite_link_expires_at",
                    "join_by_link",
                    "updated_at",
                ]
            )

        self.get_logger().info(f"User {actor.id} generated invite link for group {group_id}")
        return ServiceResult.success(
            {"token": group.invite_link_token, "expires_at": expires_at}
        )

    def join_via_link(self, token: str, user: User) -> ServiceResult[GroupChat]:
        """
        Join a group with an invite token.

        Error codes:
            INVALID_INVITE: Unknown or revoked token
            INVITE_EXPIRED: Token past its expiry
            ALREADY_MEMBER: Caller is already a participant (conflict when a
                concurrent join of the same user won)
        """
        if not token:
            return ServiceResult.not_found("Invalid or expired invite link", "INVALID_INVITE")

        try:
            with self.atomic():
                group = (
                    GroupChat.objects.select_for_update()
                    .filter(invite_link_token=token, join_by_link=True)
                    .first()
                )
                if group is None:
                    return ServiceResult.not_found(
                        "Invalid or expired invite link", "INVALID_INVITE"
                    )
                if (
                    group.invite_link_expires_at is not None
                    and timezone.now() > group.invite_link_expires_at
                ):
                    return ServiceResult.failure(
                        "This invite link has expired", "INVITE_EXPIRED"
                    )
                if self._membership(group, user.id) is not None:
                    return ServiceResult.failure(
                        "You are already a member of this group", "ALREADY_MEMBER"
                    )

                self._join(group, user.id)
                self._touch(group)

                self.notifier.group_event(
                    self._participant_ids(group, exclude={user.id}),
                    GroupEvent.UPDATED,
                    group_payload(group),
                )
        except IntegrityError:
            self.get_logger().warning(
                f"Concurrent invite-link join of user {user.id} lost the race"
            )
            return ServiceResult.conflict(
                "You are already a member of this group", "ALREADY_MEMBER"
            )

        self.get_logger().info(f"User {user.id} joined group {group.id} via invite link")
        return ServiceResult.success(group)

    def revoke_invite_link(self, group_id: int, actor: User) -> ServiceResult[None]:
        with self.atomic():
            group = self._lock_group(group_id)
            failure = self._admin_failure(group, actor, "manage invite links")
            if failure:
                return failure

            group.join_by_link = False
            group.invite_link_token = None
            group.invite_link_expires_at = None
            group.save(
                update_fields=[
                    "join_by_link",
                    "invite_link_token",
                    "invite_link_expires_at",
                    "updated_at",
                ]
            )

        self.get_logger().info(f"User {actor.id} revoked invite link of group {group_id}")
        return ServiceResult.success(None)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def _my_unread(user: User) -> Subquery:
        return Subquery(
            Membership.objects.filter(group=OuterRef("pk"), user=user).values(
                "unread_count"
            )[:1]
        )

    def list_groups(self, user: User, search: str | None = None):
        """
        The caller's groups, newest activity first.

        Each group is annotated with `my_unread_count`.
        """
        queryset = (
            GroupChat.objects.for_user(user.id)
            .annotate(my_unread_count=self._my_unread(user))
            .select_related("last_message__sender")
            .order_by(F("last_activity").desc(nulls_last=True), "-id")
        )
        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        return queryset

    def discover_groups(self, user: User, search: str | None = None):
        """All groups, annotated with `is_joined` and `has_requested` for the caller."""
        queryset = GroupChat.objects.annotate(
            is_joined=Exists(
                Membership.objects.filter(group=OuterRef("pk"), user=user)
            ),
            has_requested=Exists(
                JoinRequest.objects.filter(group=OuterRef("pk"), user=user)
            ),
        ).order_by(F("last_activity").desc(nulls_last=True), "-id")
        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        return queryset

    def get_group(self, group_id: int, user: User) -> ServiceResult[GroupChat]:
        group = (
            GroupChat.objects.for_user(user.id)
            .filter(pk=group_id)
            .annotate(my_unread_count=self._my_unread(user))
            .first()
        )
        if group is None:
            return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")
        return ServiceResult.success(group)


class MessageService(_GroupServiceMixin, BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Post text and/or attachments, optionally as a reply
        list_messages: Newest-first history for a participant (marks all seen)
        mark_group_seen: Mark every message from others as seen
        mark_message_seen: Mark one message as seen (idempotent)
        edit_message: Sender changes content
        delete_for_me: Hide a message from the caller's own view
        react / remove_reaction: One emoji per user per message
    """

    def __init__(self, notifier=None, storage=None):
        self.notifier = notifier or CeleryNotifier()
        self.storage = storage or AttachmentStorage()

    def _participant_failure(self, group_id: int, user: User) -> ServiceResult | None:
        if not Membership.objects.filter(group_id=group_id, user=user).exists():
            return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")
        return None

    @staticmethod
    def _message_in_group(group_id: int, message_id: int) -> Message | None:
        return Message.objects.filter(pk=message_id, group_id=group_id).first()

    @staticmethod
    def _with_relations(queryset):
        return queryset.select_related("sender").prefetch_related(
            "attachments", "reactions__user"
        )

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def send_message(
        self,
        group_id: int,
        sender: User,
        content: str = "",
        files: list | None = None,
        reply_to_id: int | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a message to a group.

        Files are stored before the transaction; if the transaction fails
        (or the permission gate denies on the locked row) they are deleted.

        Error codes:
            GROUP_NOT_FOUND: Not a participant
            SEND_NOT_ALLOWED / MEDIA_NOT_ALLOWED: Group settings forbid it
            EMPTY_MESSAGE: No content and no files
            CONTENT_TOO_LONG: Content over the limit
            TOO_MANY_ATTACHMENTS: More files than allowed
            INVALID_REPLY: reply_to_id is not a message of this group
        """
        files = list(files or [])
        content = content or ""
        if not content.strip():
            content = ""

        gate = MessagePermissionGate.check(group_id, sender, bool(files))
        if not gate:
            return gate

        if not content and not files:
            return ServiceResult.failure(
                "Message content or attachment is required", "EMPTY_MESSAGE"
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                "CONTENT_TOO_LONG",
            )
        if len(files) > ATTACHMENT_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE:
            return ServiceResult.failure(
                f"A message can have at most "
                f"{ATTACHMENT_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE} attachments",
                "TOO_MANY_ATTACHMENTS",
            )

        snapshot = None
        if reply_to_id is not None:
            replied = (
                Message.objects.select_related("sender")
                .prefetch_related("attachments")
                .filter(pk=reply_to_id, group_id=group_id)
                .first()
            )
            if replied is None:
                return ServiceResult.failure(
                    "Replied message not found in this chat", "INVALID_REPLY"
                )
            snapshot = ReplySnapshot.from_message(replied)

        stored: list[dict] = []
        try:
            for uploaded in files:
                stored.append(self.storage.store(group_id, uploaded))

            with self.atomic():
                group = self._lock_group(group_id)
                denied = MessagePermissionGate.evaluate(group, sender, bool(files))
                if denied is not None:
                    self.storage.delete([meta["storage_path"] for meta in stored])
                    return denied

                message = Message.objects.create(
                    group=group,
                    sender=sender,
                    content=content,
                    reply_to=snapshot.to_dict() if snapshot else None,
                )
                MessageAttachment.objects.bulk_create(
                    [
                        MessageAttachment(message=message, position=position, **meta)
                        for position, meta in enumerate(stored)
                    ]
                )

                group.last_message = message
                group.last_activity = message.created_at
                group.save(update_fields=["last_message", "last_activity", "updated_at"])

                Membership.objects.filter(group=group).exclude(user=sender).update(
                    unread_count=F("unread_count") + 1
                )

                self.notifier.message_sent(message.pk)
        except Exception:
            self.storage.delete([meta["storage_path"] for meta in stored])
            raise

        self.get_logger().debug(
            f"User {sender.id} sent message {message.id} to group {group_id} "
            f"with {len(stored)} attachment(s)"
        )
        return ServiceResult.success(
            self._with_relations(Message.objects.filter(pk=message.pk)).get()
        )

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def list_messages(self, group_id: int, reader: User) -> ServiceResult:
        """
        Message history, newest first, without messages the reader hid.

        Reading the history marks the whole conversation seen.
        """
        failure = self._participant_failure(group_id, reader)
        if failure:
            return failure

        self.mark_group_seen(group_id, reader)

        queryset = self._with_relations(
            Message.objects.filter(group_id=group_id)
            .exclude(deleted_for=reader)
            .order_by("-created_at", "-id")
        )
        return ServiceResult.success(queryset)

    def mark_group_seen(self, group_id: int, reader: User) -> ServiceResult[dict]:
        """
        Mark every message from others as seen and reset the reader's counter.

        Returns:
            ServiceResult with {"marked": number of newly seen messages}
        """
        failure = self._participant_failure(group_id, reader)
        if failure:
            return failure

        with self.atomic():
            # Same lock as send_message: a send must not land between the
            # read markers below and the counter reset
            if self._lock_group(group_id) is None:
                return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")

            unseen = list(
                Message.objects.filter(group_id=group_id)
                .exclude(sender=reader)
                .exclude(seen_by=reader)
                .values_list("pk", flat=True)
            )
            if unseen:
                through = Message.seen_by.through
                through.objects.bulk_create(
                    [through(message_id=pk, user_id=reader.id) for pk in unseen],
                    ignore_conflicts=True,
                )
                Message.objects.filter(pk__in=unseen, is_read=False).update(is_read=True)

            reset = Membership.objects.filter(
                group_id=group_id, user=reader, unread_count__gt=0
            ).update(unread_count=0)

            if unseen or reset:
                self.notifier.group_event(
                    Membership.objects.filter(group_id=group_id)
                    .exclude(user=reader)
                    .values_list("user_id", flat=True),
                    GroupEvent.MESSAGE_READ,
                    {
                        "chat_id": group_id,
                        "reader_id": reader.id,
                        "message_ids": unseen,
                        "read_at": timezone.now().isoformat(),
                    },
                )

        return ServiceResult.success({"marked": len(unseen)})

    def mark_message_seen(
        self,
        group_id: int,
        message_id: int,
        reader: User,
    ) -> ServiceResult[dict]:
        """
        Mark one message as seen by the reader.

        Idempotent: own messages and already-seen messages change nothing.
        Otherwise the reader's counter drops by one, never below zero.

        Returns:
            ServiceResult with {"message_id": int, "changed": bool}
        """
        failure = self._participant_failure(group_id, reader)
        if failure:
            return failure

        with self.atomic():
            if self._lock_group(group_id) is None:
                return ServiceResult.not_found(GROUP_NOT_FOUND, "GROUP_NOT_FOUND")
            message = (
                Message.objects.select_for_update()
                .filter(pk=message_id, group_id=group_id)
                .first()
            )
            if message is None:
                return ServiceResult.not_found("Message not found", "MESSAGE_NOT_FOUND")

            if (
                message.sender_id == reader.id
                or message.seen_by.filter(pk=reader.pk).exists()
            ):
                return ServiceResult.success({"message_id": message.pk, "changed": False})

            message.seen_by.add(reader)
            if not message.is_read:
                Message.objects.filter(pk=message.pk).update(is_read=True)
            Membership.objects.filter(
                group_id=group_id, user=reader, unread_count__gt=0
            ).update(unread_count=F("unread_count") - 1)

        return ServiceResult.success({"message_id": message.pk, "changed": True})

    # -------------------------------------------------------------------------
    # Editing, hiding, reactions
    # -------------------------------------------------------------------------

    def edit_message(
        self,
        group_id: int,
        message_id: int,
        user: User,
        content: str,
    ) -> ServiceResult[Message]:
        """
        Change the content of one's own message.

        Error codes:
            MESSAGE_NOT_FOUND: Not a message of this group
            NOT_SENDER: Only the sender can edit
            EMPTY_MESSAGE / CONTENT_TOO_LONG: Invalid new content
        """
        failure = self._participant_failure(group_id, user)
        if failure:
            return failure

        message = self._message_in_group(group_id, message_id)
        if message is None:
            return ServiceResult.not_found("Message not found", "MESSAGE_NOT_FOUND")
        if message.sender_id != user.id:
            return ServiceResult.forbidden(
                "You can only edit your own messages", "NOT_SENDER"
            )

        content = (content or "").strip()
        if not content:
            return ServiceResult.failure("Message content cannot be empty", "EMPTY_MESSAGE")
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                "CONTENT_TOO_LONG",
            )

        message.content = content
        message.edited = True
        message.save(update_fields=["content", "edited", "updated_at"])

        self.get_logger().debug(f"User {user.id} edited message {message_id}")
        return ServiceResult.success(
            self._with_relations(Message.objects.filter(pk=message.pk)).get()
        )

    def delete_for_me(self, group_id: int, message_id: int, user: User) -> ServiceResult[None]:
        """Hide a message from the caller's history; others still see it."""
        failure = self._participant_failure(group_id, user)
        if failure:
            return failure

        message = self._message_in_group(group_id, message_id)
        if message is None:
            return ServiceResult.not_found("Message not found", "MESSAGE_NOT_FOUND")

        message.deleted_for.add(user)
        return ServiceResult.success(None)

    def react(
        self,
        group_id: int,
        message_id: int,
        user: User,
        emoji: str,
    ) -> ServiceResult[MessageReaction]:
        """
        React to a message. A user's newer reaction replaces the older one.

        Error codes:
            INVALID_EMOJI: Empty or too long
        """
        failure = self._participant_failure(group_id, user)
        if failure:
            return failure

        emoji = (emoji or "").strip()
        if not emoji or len(emoji) > REACTION_CONFIG.MAX_EMOJI_LENGTH:
            return ServiceResult.failure("Invalid emoji", "INVALID_EMOJI")

        message = self._message_in_group(group_id, message_id)
        if message is None:
            return ServiceResult.not_found("Message not found", "MESSAGE_NOT_FOUND")

        reaction, _ = MessageReaction.objects.update_or_create(
            message=message, user=user, defaults={"emoji": emoji}
        )
        return ServiceResult.success(reaction)

    def remove_reaction(self, group_id: int, message_id: int, user: User) -> ServiceResult[None]:
        failure = self._participant_failure(group_id, user)
        if failure:
            return failure

        deleted, _ = MessageReaction.objects.filter(
            message_id=message_id, message__group_id=group_id, user=user
        ).delete()
        if not deleted:
            return ServiceResult.not_found("Reaction not found", "REACTION_NOT_FOUND")
        return ServiceResult.success(None)
