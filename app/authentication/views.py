"""
Views for the authentication app.

Token issuance is provided by rest_framework_simplejwt (see urls.py).
This module only exposes the caller's own account.
"""

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from authentication.serializers import UserSerializer


@extend_schema_view(
    get=extend_schema(
        operation_id="get_current_user",
        summary="Get current user",
        tags=["Auth"],
    ),
    put=extend_schema(
        operation_id="replace_current_user",
        summary="Replace current user profile",
        tags=["Auth"],
    ),
    patch=extend_schema(
        operation_id="update_current_user",
        summary="Update current user profile",
        tags=["Auth"],
    ),
)
class CurrentUserView(generics.RetrieveUpdateAPIView):
    """Read or update the authenticated user's username and avatar."""

    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user
