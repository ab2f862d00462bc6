"""
Authentication application.

Custom username-based User model (with presence fields used by the chat
websocket), JWT token endpoints and the current-user view.

Usage:
    from authentication.models import User
"""
