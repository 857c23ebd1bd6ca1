"""User factory and in-memory identity store for tests."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


DEFAULT_PASSWORD = "CorrectHorse123!"


@dataclass
class FakeUser:
    """Stand-in for a user row."""

    email: str = field(default_factory=lambda: f"user-{uuid4().hex[:8]}@example.com")
    id: UUID = field(default_factory=uuid4)
    first_name: str | None = "Test"
    last_name: str | None = "User"
    is_active: bool = True
    password: str = DEFAULT_PASSWORD
    last_login_at: datetime | None = None


class InMemoryIdentityStore:
    """IdentityStore double that compares plaintext passwords."""

    def __init__(self, *users: FakeUser) -> None:
        self.users: dict[str, FakeUser] = {str(user.id): user for user in users}
        self.fail_last_login_update = False

    def add(self, user: FakeUser) -> FakeUser:
        self.users[str(user.id)] = user
        return user

    async def find_by_email(self, email: str) -> FakeUser | None:
        return next((u for u in self.users.values() if u.email == email), None)

    async def find_by_id(self, user_id: str) -> FakeUser | None:
        return self.users.get(user_id)

    async def update_last_login(self, user_id: str) -> None:
        if self.fail_last_login_update:
            raise RuntimeError("database is read-only")
        self.users[user_id].last_login_at = datetime.now(UTC)

    async def verify_password(self, user: FakeUser, password: str) -> bool:
        return user.password == password


def make_user(**overrides) -> FakeUser:
    """Create a FakeUser with optional field overrides."""
    return FakeUser(**overrides)
