"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Group, membership, message model tests
- test_services.py: GroupLifecycleService and MessageService tests
- test_fanout.py: Realtime/push fan-out tests
- test_tasks.py: Celery task tests
- test_views.py: REST API endpoint tests
- test_consumers.py: WebSocket consumer and middleware tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_services.py
"""
