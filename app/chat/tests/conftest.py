"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (an admin, two members and an outsider)
- Services wired to in-memory fakes (notifier, storage)
- A ready group built through GroupLifecycleService
- API client helpers for authenticated requests

Usage:
    def test_example(group, admin_client):
        response = admin_client.get(f'/api/v1/chat/groups/{group.id}/')
        assert response.status_code == 200
"""

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.services import GroupLifecycleService, MessageService
from chat.tests.fakes import FakePush, FakeRealtime, FakeStorage, RecordingNotifier


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def admin_user(db):
    """Creator and admin of `group`."""
    return UserFactory(username="alice")


@pytest.fixture
def member_user(db):
    return UserFactory(username="bob")


@pytest.fixture
def second_member(db):
    return UserFactory(username="carol")


@pytest.fixture
def outsider(db):
    """A user who is not in any test group."""
    return UserFactory(username="dave")


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def lifecycle(notifier):
    return GroupLifecycleService(notifier=notifier)


@pytest.fixture
def messaging(notifier, storage):
    return MessageService(notifier=notifier, storage=storage)


@pytest.fixture
def realtime():
    return FakeRealtime()


@pytest.fixture
def push():
    return FakePush()


# =============================================================================
# Group Fixtures
# =============================================================================


@pytest.fixture
def make_group(lifecycle, notifier):
    """
    Build a group through the service, then forget its creation events.

    Usage:
        group = make_group(admin_user, [member_user, second_member])
    """

    def _make(creator, members, name="Weekend hike", **kwargs):
        result = lifecycle.create_group(
            creator=creator,
            name=name,
            participant_ids=[m.id for m in members],
            **kwargs,
        )
        assert result.success, result.error
        notifier.events.clear()
        return result.data

    return _make


@pytest.fixture
def group(make_group, admin_user, member_user, second_member):
    """Group of alice (admin), bob and carol; bob and carol start with unread 1."""
    return make_group(admin_user, [member_user, second_member])


@pytest.fixture
def image_file():
    return SimpleUploadedFile("photo.png", b"\x89PNG fake bytes", content_type="image/png")


@pytest.fixture
def pdf_file():
    return SimpleUploadedFile("notes.pdf", b"%PDF-1.4 fake", content_type="application/pdf")


# =============================================================================
# API Client Fixtures
# =============================================================================


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def member_client(member_user):
    return _client_for(member_user)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)


@pytest.fixture
def recording_notifier(mocker, notifier):
    """
    Make services built inside views use the RecordingNotifier.

    Views construct services with default collaborators, so patch the
    default notifier class.
    """
    mocker.patch("chat.services.CeleryNotifier", return_value=notifier)
    return notifier


@pytest.fixture
def memory_storage(mocker, storage):
    """Make services built inside views store files in FakeStorage."""
    mocker.patch("chat.services.AttachmentStorage", return_value=storage)
    return storage
