"""
ViewSets for the group chat API.

This module provides REST API endpoints for group chats:
- GroupViewSet: Group CRUD, membership, join requests, invite links, message list/send
- GroupMessageViewSet: Per-message actions (edit, delete for me, seen, reactions)
- JoinViaLinkView: Join with an invite token

URL Structure:
    /api/v1/chat/groups/                                  GET, POST
    /api/v1/chat/groups/discover/                         GET
    /api/v1/chat/groups/join/{token}/                     POST
    /api/v1/chat/groups/{id}/                             GET, PUT, PATCH, DELETE
    /api/v1/chat/groups/{id}/add/                         PUT
    /api/v1/chat/groups/{id}/remove/                      PUT
    /api/v1/chat/groups/{id}/leave/                       PUT
    /api/v1/chat/groups/{id}/messages/                    GET, POST
    /api/v1/chat/groups/{id}/read/                        POST
    /api/v1/chat/groups/{id}/join/                        POST
    /api/v1/chat/groups/{id}/join/{user_id}/              PUT
    /api/v1/chat/groups/{id}/requests/                    GET
    /api/v1/chat/groups/{id}/invite-link/                 POST, DELETE
    /api/v1/chat/groups/{id}/messages/{mid}/              PATCH, DELETE
    /api/v1/chat/groups/{id}/messages/{mid}/seen/         POST
    /api/v1/chat/groups/{id}/messages/{mid}/reactions/    POST, DELETE

Design Decisions:
    - Views only parse input and shape output; every rule lives in chat.services
    - Failed ServiceResults become responses through core.views.service_error_response
    - Groups the caller is not in answer 404
"""

from __future__ import annotations

from django.urls import reverse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.constants import MESSAGE_CONFIG
from chat.pagination import ChatPagination
from chat.serializers import (
    AddParticipantsSerializer,
    GroupChatSerializer,
    GroupCreateSerializer,
    GroupDiscoverSerializer,
    GroupListSerializer,
    GroupUpdateSerializer,
    InviteLinkSerializer,
    JoinRequestCreateSerializer,
    JoinRequestSerializer,
    MessageCreateSerializer,
    MessageEditSerializer,
    MessageReactionSerializer,
    MessageSerializer,
    ReactionSerializer,
    RemoveParticipantSerializer,
    ResolveJoinRequestSerializer,
)
from chat.services import GroupLifecycleService, MessageService
from core.views import service_error_response

SEARCH_PARAMETER = OpenApiParameter(
    name="search",
    type=OpenApiTypes.STR,
    location=OpenApiParameter.QUERY,
    required=False,
    description="Case-insensitive substring of the group name",
)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_groups",
        summary="List my groups",
        parameters=[SEARCH_PARAMETER],
        responses=GroupListSerializer(many=True),
        tags=["Chat - Groups"],
    ),
    create=extend_schema(
        operation_id="create_group",
        summary="Create group",
        request=GroupCreateSerializer,
        responses={201: GroupChatSerializer},
        tags=["Chat - Groups"],
    ),
    retrieve=extend_schema(
        operation_id="get_group",
        summary="Get group with latest messages",
        description="Returns the group and its newest messages, and marks the conversation seen.",
        responses=GroupChatSerializer,
        tags=["Chat - Groups"],
    ),
    update=extend_schema(
        operation_id="replace_group",
        summary="Update group (admin)",
        request=GroupUpdateSerializer,
        responses=GroupChatSerializer,
        tags=["Chat - Groups"],
    ),
    partial_update=extend_schema(
        operation_id="update_group",
        summary="Update group (admin)",
        request=GroupUpdateSerializer,
        responses=GroupChatSerializer,
        tags=["Chat - Groups"],
    ),
    destroy=extend_schema(
        operation_id="delete_group",
        summary="Delete group (admin)",
        responses={204: None},
        tags=["Chat - Groups"],
    ),
)
class GroupViewSet(viewsets.GenericViewSet):
    """
    ViewSet for group chats.

    list:
        Groups the caller participates in, most recent activity first,
        each with the caller's unread count.

    create:
        Create a group. The caller becomes its admin.

    retrieve:
        Group details plus the newest page of messages.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = ChatPagination
    serializer_class = GroupChatSerializer
    lookup_value_regex = r"\d+"

    def get_lifecycle_service(self) -> GroupLifecycleService:
        return GroupLifecycleService()

    def get_message_service(self) -> MessageService:
        return MessageService()

    def _paginated(self, queryset, serializer_class):
        page = self.paginate_queryset(queryset)
        serializer = serializer_class(page, many=True, context=self.get_serializer_context())
        return self.get_paginated_response(serializer.data)

    def _group_response(self, group, status_code=status.HTTP_200_OK) -> Response:
        serializer = GroupChatSerializer(group, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def list(self, request):
        queryset = self.get_lifecycle_service().list_groups(
            request.user, search=request.query_params.get("search")
        )
        return self._paginated(queryset, GroupListSerializer)

    def create(self, request):
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_lifecycle_service().create_group(
            creator=request.user, **serializer.validated_data
        )
        if not result:
            return service_error_response(result)
        return self._group_response(result.data, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        service = self.get_lifecycle_service()
        result = service.get_group(int(pk), request.user)
        if not result:
            return service_error_response(result)

        messages = self.get_message_service().list_messages(int(pk), request.user)
        if not messages:
            return service_error_response(messages)

        group = service.get_group(int(pk), request.user).data
        data = GroupChatSerializer(group, context=self.get_serializer_context()).data
        latest = messages.data[: MESSAGE_CONFIG.DETAIL_PAGE_SIZE]
        data["messages"] = MessageSerializer(latest, many=True).data
        data["has_more_messages"] = messages.data.count() > MESSAGE_CONFIG.DETAIL_PAGE_SIZE
        return Response(data)

    def update(self, request, pk=None):
        serializer = GroupUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = self.get_lifecycle_service().update_group(
            int(pk), request.user, **serializer.validated_data
        )
        if not result:
            return service_error_response(result)
        return self._group_response(result.data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        result = self.get_lifecycle_service().delete_group(int(pk), request.user)
        if not result:
            return service_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="discover_groups",
        summary="Discover groups",
        parameters=[SEARCH_PARAMETER],
        responses=GroupDiscoverSerializer(many=True),
        tags=["Chat - Groups"],
    )
    @action(detail=False, methods=["get"])
    def discover(self, request):
        queryset = self.get_lifecycle_service().discover_groups(
            request.user, search=request.query_params.get("search")
        )
        return self._paginated(queryset, GroupDiscoverSerializer)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    @extend_schema(
        operation_id="add_group_participants",
        summary="Add participants (admin)",
        request=AddParticipantsSerializer,
        responses=GroupChatSerializer,
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["put"])
    def add(self, request, pk=None):
        serializer = AddParticipantsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_lifecycle_service().add_participants(
            int(pk), request.user, serializer.validated_data["participant_ids"]
        )
        if not result:
            return service_error_response(result)
        return self._group_response(result.data)

    @extend_schema(
        operation_id="remove_group_participant",
        summary="Remove participant (admin)",
        request=RemoveParticipantSerializer,
        responses=GroupChatSerializer,
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["put"])
    def remove(self, request, pk=None):
        serializer = RemoveParticipantSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_lifecycle_service().remove_participant(
            int(pk), request.user, serializer.validated_data["participant_id"]
        )
        if not result:
            return service_error_response(result)
        return self._group_response(result.data)

    @extend_schema(
        operation_id="leave_group",
        summary="Leave group",
        request=None,
        responses={
            200: OpenApiResponse(
                description='{"group_deleted": bool, "promoted_user_id": int | null}'
            )
        },
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["put"])
    def leave(self, request, pk=None):
        result = self.get_lifecycle_service().leave_group(int(pk), request.user)
        if not result:
            return service_error_response(result)
        return Response(result.data)

    # -------------------------------------------------------------------------
    # Join requests and invite links
    # -------------------------------------------------------------------------

    @extend_schema(
        operation_id="request_to_join_group",
        summary="Request to join",
        request=JoinRequestCreateSerializer,
        responses={201: JoinRequestSerializer},
        tags=["Chat - Join"],
    )
    @action(detail=True, methods=["post"], url_path="join")
    def request_join(self, request, pk=None):
        serializer = JoinRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_lifecycle_service().request_to_join(
            int(pk), request.user, serializer.validated_data["message"]
        )
        if not result:
            return service_error_response(result)
        return Response(
            JoinRequestSerializer(result.data).data, status=status.HTTP_201_CREATED
        )

    @extend_schema(
        operation_id="resolve_group_join_request",
        summary="Approve or reject a join request (admin)",
        request=ResolveJoinRequestSerializer,
        responses=GroupChatSerializer,
        tags=["Chat - Join"],
    )
    @action(detail=True, methods=["put"], url_path=r"join/(?P<user_id>\d+)")
    def resolve_join(self, request, pk=None, user_id=None):
        serializer = ResolveJoinRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_lifecycle_service().resolve_join_request(
            int(pk), request.user, int(user_id), serializer.validated_data["approve"]
        )
        if not result:
            return service_error_response(result)
        return self._group_response(result.data)

    @extend_schema(
        operation_id="list_group_join_requests",
        summary="Pending join requests (admin)",
        responses=JoinRequestSerializer(many=True),
        tags=["Chat - Join"],
    )
    @action(detail=True, methods=["get"])
    def requests(self, request, pk=None):
        result = self.get_lifecycle_service().list_join_requests(int(pk), request.user)
        if not result:
            return service_error_response(result)
        return Response(JoinRequestSerializer(result.data, many=True).data)

    @extend_schema(
        operation_id="manage_group_invite_link",
        summary="Generate (POST) or revoke (DELETE) the invite link (admin)",
        request=InviteLinkSerializer,
        responses={
            200: OpenApiResponse(description='{"token", "expires_at", "join_link"}'),
            204: None,
        },
        tags=["Chat - Join"],
    )
    @action(detail=True, methods=["post", "delete"], url_path="invite-link")
    def invite_link(self, request, pk=None):
        service = self.get_lifecycle_service()

        if request.method == "DELETE":
            result = service.revoke_invite_link(int(pk), request.user)
            if not result:
                return service_error_response(result)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = InviteLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = service.generate_invite_link(
            int(pk), request.user, serializer.validated_data["expires_in_hours"]
        )
        if not result:
            return service_error_response(result)

        join_path = reverse("chat:group-join-link", kwargs={"token": result.data["token"]})
        return Response(
            {
                "token": result.data["token"],
                "expires_at": result.data["expires_at"],
                "join_link": request.build_absolute_uri(join_path),
            }
        )

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    @extend_schema(
        methods=["GET"],
        operation_id="list_group_messages",
        summary="List messages (newest first, marks seen)",
        responses=MessageSerializer(many=True),
        tags=["Chat - Messages"],
    )
    @extend_schema(
        methods=["POST"],
        operation_id="send_group_message",
        summary="Send message",
        description="JSON or multipart: `content`, `attachments` (files), `reply_to`.",
        request={
            "application/json": MessageCreateSerializer,
            "multipart/form-data": MessageCreateSerializer,
        },
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    @action(
        detail=True,
        methods=["get", "post"],
        parser_classes=[JSONParser, MultiPartParser, FormParser],
    )
    def messages(self, request, pk=None):
        service = self.get_message_service()

        if request.method == "GET":
            result = service.list_messages(int(pk), request.user)
            if not result:
                return service_error_response(result)
            return self._paginated(result.data, MessageSerializer)

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = service.send_message(
            int(pk),
            request.user,
            content=serializer.validated_data["content"],
            files=serializer.validated_data["attachments"],
            reply_to_id=serializer.validated_data["reply_to"],
        )
        if not result:
            return service_error_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="mark_group_read",
        summary="Mark whole conversation read",
        request=None,
        responses={200: OpenApiResponse(description='{"marked": int}')},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        result = self.get_message_service().mark_group_seen(int(pk), request.user)
        if not result:
            return service_error_response(result)
        return Response(result.data)


@extend_schema_view(
    partial_update=extend_schema(
        operation_id="edit_group_message",
        summary="Edit own message",
        request=MessageEditSerializer,
        responses=MessageSerializer,
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_group_message_for_me",
        summary="Delete message for me",
        responses={204: None},
        tags=["Chat - Messages"],
    ),
    seen=extend_schema(
        operation_id="mark_group_message_seen",
        summary="Mark one message seen",
        request=None,
        responses={200: OpenApiResponse(description='{"message_id": int, "changed": bool}')},
        tags=["Chat - Messages"],
    ),
)
class GroupMessageViewSet(viewsets.ViewSet):
    """Actions on a single message of a group."""

    permission_classes = [IsAuthenticated]

    def get_message_service(self) -> MessageService:
        return MessageService()

    def partial_update(self, request, group_pk=None, pk=None):
        serializer = MessageEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_message_service().edit_message(
            int(group_pk), int(pk), request.user, serializer.validated_data["content"]
        )
        if not result:
            return service_error_response(result)
        return Response(MessageSerializer(result.data).data)

    def destroy(self, request, group_pk=None, pk=None):
        result = self.get_message_service().delete_for_me(
            int(group_pk), int(pk), request.user
        )
        if not result:
            return service_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def seen(self, request, group_pk=None, pk=None):
        result = self.get_message_service().mark_message_seen(
            int(group_pk), int(pk), request.user
        )
        if not result:
            return service_error_response(result)
        return Response(result.data)

    @extend_schema(
        methods=["POST"],
        operation_id="react_to_group_message",
        summary="React to message",
        request=ReactionSerializer,
        responses=MessageReactionSerializer,
        tags=["Chat - Messages"],
    )
    @extend_schema(
        methods=["DELETE"],
        operation_id="remove_group_message_reaction",
        summary="Remove own reaction",
        request=None,
        responses={204: None},
        tags=["Chat - Messages"],
    )
    def reactions(self, request, group_pk=None, pk=None):
        service = self.get_message_service()

        if request.method == "DELETE":
            result = service.remove_reaction(int(group_pk), int(pk), request.user)
            if not result:
                return service_error_response(result)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = ReactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = service.react(
            int(group_pk), int(pk), request.user, serializer.validated_data["emoji"]
        )
        if not result:
            return service_error_response(result)
        return Response(MessageReactionSerializer(result.data).data)


class JoinViaLinkView(APIView):
    """Join a group with an invite token."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="join_group_via_link",
        summary="Join via invite link",
        request=None,
        responses={200: GroupChatSerializer},
        tags=["Chat - Join"],
    )
    def post(self, request, token):
        result = GroupLifecycleService().join_via_link(token, request.user)
        if not result:
            return service_error_response(result)
        return Response(GroupChatSerializer(result.data).data)
