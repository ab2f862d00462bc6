"""
Push notification providers.

Providers implement core.protocols.PushProvider. The active provider is
selected with the PUSH_PROVIDER setting (dotted path) and built by
get_push_provider().

Providers:
    LoggingPushProvider: Logs instead of sending; default for development and tests
    FCMPushProvider: Firebase Cloud Messaging via firebase-admin

Error classification:
    DeliveryError.is_permanent=True means the token is dead and should be
    deactivated. Anything else is transient and the caller may retry.
"""

from __future__ import annotations

import logging
from typing import Any

import firebase_admin
from django.conf import settings
from django.utils.module_loading import import_string
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)


# Codes after which a token is never retried
PERMANENT_ERRORS = {
    "unregistered",
    "invalid_token",
    "sender_id_mismatch",
}


class DeliveryError(Exception):
    """Base exception for delivery failures."""

    def __init__(self, message: str, code: str, is_permanent: bool | None = None):
        super().__init__(message)
        self.code = code
        if is_permanent is None:
            is_permanent = code in PERMANENT_ERRORS
        self.is_permanent = is_permanent


def _stringify(data: dict[str, Any] | None) -> dict[str, str]:
    """FCM data payloads only accept string values."""
    if not data:
        return {}
    return {key: "" if value is None else str(value) for key, value in data.items()}


class LoggingPushProvider:
    """Provider that only logs; never fails."""

    def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> str:
        logger.info(f"[push] token=...{token[-8:]} title={title!r} body={body!r}")
        return f"logged-{token[-8:]}"


class FCMPushProvider:
    """
    Firebase Cloud Messaging provider.

    The default firebase app is initialized lazily from
    FIREBASE_CREDENTIALS_FILE (service account JSON). When the setting is
    empty, application default credentials are used.
    """

    def __init__(self, credentials_file: str | None = None):
        self.credentials_file = (
            credentials_file
            if credentials_file is not None
            else getattr(settings, "FIREBASE_CREDENTIALS_FILE", "")
        )
        self._app = None

    def _get_app(self):
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            cred = (
                credentials.Certificate(self.credentials_file)
                if self.credentials_file
                else credentials.ApplicationDefault()
            )
            self._app = firebase_admin.initialize_app(cred)
        return self._app

    def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> str:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=_stringify(data),
            token=token,
        )
        try:
            return messaging.send(message, app=self._get_app())
        except messaging.UnregisteredError as e:
            raise DeliveryError(str(e), "unregistered") from e
        except messaging.SenderIdMismatchError as e:
            raise DeliveryError(str(e), "sender_id_mismatch") from e
        except firebase_exceptions.InvalidArgumentError as e:
            raise DeliveryError(str(e), "invalid_token") from e
        except messaging.QuotaExceededError as e:
            raise DeliveryError(str(e), "rate_limited") from e
        except firebase_exceptions.UnavailableError as e:
            raise DeliveryError(str(e), "provider_unavailable") from e
        except firebase_exceptions.DeadlineExceededError as e:
            raise DeliveryError(str(e), "timeout") from e
        except firebase_exceptions.FirebaseError as e:
            raise DeliveryError(str(e), "connection_error") from e


def get_push_provider():
    """Instantiate the provider named by settings.PUSH_PROVIDER."""
    path = getattr(
        settings, "PUSH_PROVIDER", "notifications.providers.LoggingPushProvider"
    )
    return import_string(path)()
