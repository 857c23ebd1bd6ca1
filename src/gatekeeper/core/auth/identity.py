"""Identity store interface.

The token authority reads user identity and active status from an
external store and delegates password checks to it. Any object with
these methods can be injected; ``gatekeeper.modules.users`` provides
the SQLAlchemy implementation.
"""

from typing import Any, Protocol


class UserRecord(Protocol):
    """Fields the token authority reads from a user."""

    id: Any
    email: str
    first_name: str | None
    last_name: str | None
    is_active: bool


class IdentityStore(Protocol):
    """User lookups and the credential oracle."""

    async def find_by_email(self, email: str) -> UserRecord | None:
        """Return the user registered under ``email``."""
        ...

    async def find_by_id(self, user_id: str) -> UserRecord | None:
        """Return the user with id ``user_id``."""
        ...

    async def update_last_login(self, user_id: str) -> None:
        """Record a successful login."""
        ...

    async def verify_password(self, user: UserRecord, password: str) -> bool:
        """Check ``password`` against the user's stored credential."""
        ...
