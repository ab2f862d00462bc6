"""
Tests for notifications app.

This package contains test modules for:
- test_models.py: DeviceToken, NotificationPreference model tests
- test_providers.py: Push provider error classification
- test_tasks.py: send_push_notification task
- test_views.py: Device and preference API endpoints
"""
