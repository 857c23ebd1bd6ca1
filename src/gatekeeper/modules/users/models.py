"""User database models."""

from datetime import datetime

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.core.constants import MAX_EMAIL_LENGTH, MAX_NAME_LENGTH
from gatekeeper.core.database.base import Base, RecordMixin


class User(RecordMixin, Base):
    """User account consulted by the token authority.

    Attributes:
        email: Unique email address
        password_hash: Bcrypt-hashed password
        first_name: Given name
        last_name: Family name
        is_active: Whether the user can log in
        last_login_at: Time of the last successful login
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    first_name: Mapped[str | None] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=True,
    )
    last_name: Mapped[str | None] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, is_active={self.is_active})>"
