"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager creation paths
- test_models.py: User model, username validation and presence helpers
- test_views.py: Token issuance and current-user API

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_models.py
"""
