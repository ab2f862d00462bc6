"""
Tests for the group chat API views.

This module tests the HTTP layer:
- GroupViewSet: CRUD, membership, join requests, invite links, messages
- GroupMessageViewSet: edit, delete for me, seen, reactions
- JoinViaLinkView

Testing Philosophy:
    Tests focus on observable HTTP behavior:
    - Response status codes and error body shape
    - Pagination envelope
    - Database state changes
"""

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from chat.models import GroupChat, JoinRequest, Membership, MessageReaction
from chat.tests.factories import JoinRequestFactory


# =============================================================================
# URL Helpers
# =============================================================================


GROUPS_URL = "/api/v1/chat/groups/"


def group_url(group_id, suffix=""):
    return f"{GROUPS_URL}{group_id}/{suffix}"


def message_url(group_id, message_id, suffix=""):
    return f"{GROUPS_URL}{group_id}/messages/{message_id}/{suffix}"


@pytest.fixture(autouse=True)
def _services_use_fakes(recording_notifier, memory_storage):
    """Every view test runs services with the in-memory notifier and storage."""


# =============================================================================
# Group CRUD
# =============================================================================


class TestGroupCreate:
    def test_create_returns_201_with_details(
        self, admin_client, admin_user, member_user, second_member
    ):
        response = admin_client.post(
            GROUPS_URL,
            {"name": "Book club", "participant_ids": [member_user.id, second_member.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["name"] == "Book club"
        assert response.data["admin_ids"] == [admin_user.id]
        assert response.data["unread_counts"][str(member_user.id)] == 1
        assert len(response.data["participants"]) == 3

    def test_validation_failure_uses_service_error_body(self, admin_client, member_user):
        response = admin_client.post(
            GROUPS_URL, {"name": "Pair", "participant_ids": [member_user.id]}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {
            "success": False,
            "error": response.data["error"],
            "error_code": "NOT_ENOUGH_PARTICIPANTS",
            "error_kind": "bad_request",
        }

    def test_requires_authentication(self, api_client):
        response = api_client.post(GROUPS_URL, {}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error_kind"] == "forbidden"
        assert response.data["error_code"] == "NOT_AUTHENTICATED"


class TestGroupList:
    def test_lists_own_groups_with_pagination_envelope(self, member_client, group):
        response = member_client.get(GROUPS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["page"] == 1
        assert response.data["limit"] == 20
        assert response.data["total_pages"] == 1
        [row] = response.data["results"]
        assert row["id"] == group.id
        assert row["unread_count"] == 1

    def test_outsider_sees_nothing(self, outsider_client, group):
        assert outsider_client.get(GROUPS_URL).data["count"] == 0

    @pytest.mark.parametrize("query", ["page=abc", "page=0", "limit=-1", "limit=x"])
    def test_invalid_pagination_is_400(self, member_client, group, query):
        response = member_client.get(f"{GROUPS_URL}?{query}")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_kind"] == "bad_request"

    def test_page_past_end_is_404(self, member_client, group):
        response = member_client.get(f"{GROUPS_URL}?page=5")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_kind"] == "not_found"

    def test_limit_is_capped(self, member_client, group):
        assert member_client.get(f"{GROUPS_URL}?limit=500").data["limit"] == 100

    def test_discover_lists_all_groups(self, outsider_client, group):
        response = outsider_client.get(f"{GROUPS_URL}discover/")

        [row] = response.data["results"]
        assert row["id"] == group.id
        assert row["is_joined"] is False
        assert row["participant_count"] == 3


class TestGroupDetail:
    def test_detail_embeds_messages_and_marks_seen(
        self, member_client, messaging, group, admin_user, member_user
    ):
        messaging.send_message(group.id, admin_user, content="Hello")

        response = member_client.get(group_url(group.id))

        assert response.status_code == status.HTTP_200_OK
        assert [m["content"] for m in response.data["messages"]] == ["Hello"]
        assert response.data["has_more_messages"] is False
        assert response.data["unread_counts"][str(member_user.id)] == 0

    def test_outsider_gets_404(self, outsider_client, group):
        assert outsider_client.get(group_url(group.id)).status_code == 404

    def test_member_update_is_403(self, member_client, group):
        response = member_client.patch(group_url(group.id), {"name": "x"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_ADMIN"

    def test_admin_update(self, admin_client, group):
        response = admin_client.put(
            group_url(group.id),
            {"description": "Every Sunday", "send_media_permission": "admins"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["description"] == "Every Sunday"
        assert response.data["send_media_permission"] == "admins"

    def test_admin_delete(self, admin_client, group):
        response = admin_client.delete(group_url(group.id))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not GroupChat.objects.filter(pk=group.id).exists()


# =============================================================================
# Membership
# =============================================================================


class TestMembershipEndpoints:
    def test_add_and_remove(self, admin_client, group, outsider):
        add = admin_client.put(
            group_url(group.id, "add/"), {"participant_ids": [outsider.id]}, format="json"
        )
        assert add.status_code == status.HTTP_200_OK
        assert Membership.objects.filter(group=group, user=outsider).exists()

        remove = admin_client.put(
            group_url(group.id, "remove/"), {"participant_id": outsider.id}, format="json"
        )
        assert remove.status_code == status.HTTP_200_OK
        assert not Membership.objects.filter(group=group, user=outsider).exists()

    def test_leave_reports_promotion(self, admin_client, group, member_user):
        response = admin_client.put(group_url(group.id, "leave/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"group_deleted": False, "promoted_user_id": member_user.id}

    def test_malformed_payload_uses_error_body(self, admin_client, group):
        """
        Why it matters: clients branch on error_kind for every failure,
        including the ones DRF raises before a service is reached.
        """
        response = admin_client.put(
            group_url(group.id, "add/"), {"participant_ids": "x"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["success"] is False
        assert response.data["error_kind"] == "bad_request"
        assert response.data["error_code"] == "INVALID"
        assert "participant_ids" in response.data["details"]


# =============================================================================
# Join requests and invite links
# =============================================================================


class TestJoinEndpoints:
    def test_request_and_approve(self, outsider_client, admin_client, group, outsider):
        response = outsider_client.post(
            group_url(group.id, "join/"), {"message": "Hi!"}, format="json"
        )
        assert response.status_code == status.HTTP_201_CREATED

        listed = admin_client.get(group_url(group.id, "requests/"))
        assert [r["user"]["id"] for r in listed.data] == [outsider.id]

        resolved = admin_client.put(
            group_url(group.id, f"join/{outsider.id}/"), {"approve": True}, format="json"
        )
        assert resolved.status_code == status.HTTP_200_OK
        assert Membership.objects.filter(group=group, user=outsider).exists()

    def test_member_cannot_resolve(self, member_client, group):
        join_request = JoinRequestFactory(group=group)

        response = member_client.put(
            group_url(group.id, f"join/{join_request.user_id}/"),
            {"approve": False},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert JoinRequest.objects.filter(pk=join_request.pk).exists()

    def test_invite_link_round_trip(self, admin_client, outsider_client, group, outsider):
        created = admin_client.post(
            group_url(group.id, "invite-link/"), {"expires_in_hours": 48}, format="json"
        )
        assert created.status_code == status.HTTP_200_OK
        token = created.data["token"]
        assert created.data["join_link"].endswith(f"/api/v1/chat/groups/join/{token}/")

        joined = outsider_client.post(f"{GROUPS_URL}join/{token}/")
        assert joined.status_code == status.HTTP_200_OK
        assert outsider.id in [p["id"] for p in joined.data["participants"]]

    def test_revoked_link_is_404(self, admin_client, outsider_client, group):
        token = admin_client.post(group_url(group.id, "invite-link/"), format="json").data[
            "token"
        ]
        revoke = admin_client.delete(group_url(group.id, "invite-link/"))
        assert revoke.status_code == status.HTTP_204_NO_CONTENT

        response = outsider_client.post(f"{GROUPS_URL}join/{token}/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "INVALID_INVITE"


# =============================================================================
# Messages
# =============================================================================


class TestMessageEndpoints:
    def test_send_json_and_list(self, member_client, admin_client, group):
        sent = member_client.post(
            group_url(group.id, "messages/"), {"content": "On my way"}, format="json"
        )
        assert sent.status_code == status.HTTP_201_CREATED
        assert sent.data["sender"]["username"] == "bob"

        listed = admin_client.get(group_url(group.id, "messages/"))
        assert listed.status_code == status.HTTP_200_OK
        assert [m["id"] for m in listed.data["results"]] == [sent.data["id"]]

    def test_send_multipart_with_attachments(self, member_client, group, memory_storage):
        response = member_client.post(
            group_url(group.id, "messages/"),
            {
                "content": "Photos",
                "attachments": [
                    SimpleUploadedFile("a.png", b"one", content_type="image/png"),
                    SimpleUploadedFile("b.pdf", b"two", content_type="application/pdf"),
                ],
            },
            format="multipart",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert [a["file_name"] for a in response.data["attachments"]] == ["a.png", "b.pdf"]
        assert len(memory_storage.stored) == 2

    def test_send_permission_denied_is_403(self, member_client, group):
        GroupChat.objects.filter(pk=group.pk).update(send_messages_permission="admins")

        response = member_client.post(
            group_url(group.id, "messages/"), {"content": "hi"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "SEND_NOT_ALLOWED"

    def test_read_seen_edit_delete_react(
        self, admin_client, member_client, messaging, group, admin_user, member_user
    ):
        message = messaging.send_message(group.id, admin_user, content="Trail closed").data

        seen = member_client.post(message_url(group.id, message.id, "seen/"))
        assert seen.data == {"message_id": message.id, "changed": True}

        read = member_client.post(group_url(group.id, "read/"))
        assert read.status_code == status.HTTP_200_OK

        edited = admin_client.patch(
            message_url(group.id, message.id), {"content": "Trail open"}, format="json"
        )
        assert edited.data["edited"] is True

        not_mine = member_client.patch(
            message_url(group.id, message.id), {"content": "nope"}, format="json"
        )
        assert not_mine.status_code == status.HTTP_403_FORBIDDEN

        reacted = member_client.post(
            message_url(group.id, message.id, "reactions/"), {"emoji": "👍"}, format="json"
        )
        assert reacted.data["emoji"] == "👍"
        unreacted = member_client.delete(message_url(group.id, message.id, "reactions/"))
        assert unreacted.status_code == status.HTTP_204_NO_CONTENT
        assert not MessageReaction.objects.exists()

        hidden = member_client.delete(message_url(group.id, message.id))
        assert hidden.status_code == status.HTTP_204_NO_CONTENT
        assert member_client.get(group_url(group.id, "messages/")).data["count"] == 0
        assert admin_client.get(group_url(group.id, "messages/")).data["count"] == 1
