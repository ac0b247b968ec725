"""
Session Binding
===============
Client sessions, the challenge store and lockout accounting.
"""

from .models import ClientSession
from .store import SessionStore, InMemorySessionStore
from .lockout import LockoutTracker

__all__ = [
    "ClientSession",
    "SessionStore",
    "InMemorySessionStore",
    "LockoutTracker",
]
