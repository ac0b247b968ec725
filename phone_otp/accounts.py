"""
Account Collaborators
=====================
Interfaces to the user-account store and the sign-in mechanism. Both are
implemented by the embedding application; this package never writes to the
account store.
"""

from typing import Any, Optional, Protocol

from .session.models import ClientSession


class AccountStore(Protocol):
    async def find_account_by_phone(self, phone: str) -> Optional[Any]:
        """Return the account registered to a canonical phone number, if any."""
        ...


class SignIn(Protocol):
    async def sign_in(self, account: Any, session: ClientSession) -> None:
        """Establish an authenticated session for a resolved account."""
        ...
