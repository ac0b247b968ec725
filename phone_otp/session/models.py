"""
Session Models
==============
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClientSession:
    """
    The client making an issue/verify call.

    ``session_id`` must be the server-side session identity (for example
    the key of a server-managed session cookie), never a value the client
    chooses freely. ``ip`` and ``user_agent`` are the fingerprint a
    challenge is bound to.
    """
    session_id: str
    ip: str
    user_agent: str = ""
