"""Users module - account records consulted during authentication."""

from gatekeeper.modules.users.models import User
from gatekeeper.modules.users.repos import UserRepository


__all__ = ["User", "UserRepository"]
