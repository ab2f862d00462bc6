"""
Tests for push providers.

Covers:
- DeliveryError classification
- FCMPushProvider mapping firebase-admin errors to permanent/transient
- get_push_provider honoring the PUSH_PROVIDER setting
"""

import pytest
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from notifications.providers import (
    DeliveryError,
    FCMPushProvider,
    LoggingPushProvider,
    get_push_provider,
)


class TestDeliveryError:
    """Tests for DeliveryError.is_permanent defaults."""

    @pytest.mark.parametrize("code", ["unregistered", "invalid_token", "sender_id_mismatch"])
    def test_dead_token_codes_are_permanent(self, code):
        assert DeliveryError("x", code).is_permanent is True

    @pytest.mark.parametrize("code", ["rate_limited", "timeout", "provider_unavailable"])
    def test_other_codes_are_transient(self, code):
        assert DeliveryError("x", code).is_permanent is False

    def test_explicit_flag_wins(self):
        assert DeliveryError("x", "timeout", is_permanent=True).is_permanent is True


class TestFCMPushProvider:
    """
    Tests for FCMPushProvider.send.

    Why it matters: a misclassified error either spams a dead token with
    retries or silently gives up on a live device.
    """

    @pytest.fixture
    def provider(self, mocker):
        provider = FCMPushProvider(credentials_file="")
        mocker.patch.object(provider, "_get_app", return_value=None)
        return provider

    def test_sends_message_with_string_data(self, provider, mocker):
        send = mocker.patch(
            "notifications.providers.messaging.send", return_value="projects/p/messages/1"
        )

        message_id = provider.send("tok", "Title", "Body", {"chat_id": 7, "x": None})

        assert message_id == "projects/p/messages/1"
        message = send.call_args.args[0]
        assert message.token == "tok"
        assert message.data == {"chat_id": "7", "x": ""}
        assert message.notification.title == "Title"

    @pytest.mark.parametrize(
        "error, code, permanent",
        [
            (messaging.UnregisteredError("gone"), "unregistered", True),
            (firebase_exceptions.InvalidArgumentError("bad token"), "invalid_token", True),
            (firebase_exceptions.UnavailableError("down"), "provider_unavailable", False),
            (firebase_exceptions.DeadlineExceededError("slow"), "timeout", False),
        ],
    )
    def test_maps_firebase_errors(self, provider, mocker, error, code, permanent):
        mocker.patch("notifications.providers.messaging.send", side_effect=error)

        with pytest.raises(DeliveryError) as exc_info:
            provider.send("tok", "Title", "Body")

        assert exc_info.value.code == code
        assert exc_info.value.is_permanent is permanent


class TestGetPushProvider:
    def test_defaults_to_logging_provider(self, settings):
        settings.PUSH_PROVIDER = "notifications.providers.LoggingPushProvider"

        assert isinstance(get_push_provider(), LoggingPushProvider)

    def test_logging_provider_never_fails(self):
        assert LoggingPushProvider().send("abcdefghijkl", "t", "b").startswith("logged-")
