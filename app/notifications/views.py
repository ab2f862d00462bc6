"""
Views for notification API.

Endpoints:
    POST   /api/v1/notifications/devices/      - Register a device token
    DELETE /api/v1/notifications/devices/      - Unregister a device token
    GET    /api/v1/notifications/preferences/  - Get group chat push level
    PUT    /api/v1/notifications/preferences/  - Set group chat push level
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import NotFoundError
from core.views import service_error_response
from notifications.serializers import (
    DeviceTokenSerializer,
    DeviceUnregisterSerializer,
    NotificationPreferenceSerializer,
)
from notifications.services import DeviceService, PreferenceService


class DeviceTokenView(APIView):
    """Register or unregister the caller's push device tokens."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="register_device_token",
        summary="Register device token",
        description="Register a push token for the current user. "
        "A token previously registered by another account is moved to this one.",
        request=DeviceTokenSerializer,
        responses={201: DeviceTokenSerializer},
        tags=["Notifications"],
    )
    def post(self, request):
        serializer = DeviceTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = DeviceService.register_device(
            user=request.user,
            token=serializer.validated_data["token"],
            platform=serializer.validated_data["platform"],
        )
        if not result:
            return service_error_response(result)

        return Response(
            DeviceTokenSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="unregister_device_token",
        summary="Unregister device token",
        request=DeviceUnregisterSerializer,
        responses={
            204: OpenApiResponse(description="Token removed"),
            404: OpenApiResponse(description="Token not registered to this user"),
        },
        tags=["Notifications"],
    )
    def delete(self, request):
        serializer = DeviceUnregisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = DeviceService.unregister_device(
            user=request.user,
            token=serializer.validated_data["token"],
        )
        if not result:
            raise NotFoundError(result.error, error_code=result.error_code)

        return Response(status=status.HTTP_204_NO_CONTENT)


class NotificationPreferenceView(APIView):
    """Read or change the caller's group chat push level."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_notification_preferences",
        summary="Get notification preferences",
        responses={200: NotificationPreferenceSerializer},
        tags=["Notifications"],
    )
    def get(self, request):
        result = PreferenceService.get_preference(request.user)
        return Response(NotificationPreferenceSerializer(result.data).data)

    @extend_schema(
        operation_id="update_notification_preferences",
        summary="Update notification preferences",
        request=NotificationPreferenceSerializer,
        responses={200: NotificationPreferenceSerializer},
        tags=["Notifications"],
    )
    def put(self, request):
        serializer = NotificationPreferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PreferenceService.set_group_chats(
            request.user, serializer.validated_data["group_chats"]
        )
        if not result:
            return service_error_response(result)

        return Response(NotificationPreferenceSerializer(result.data).data)
