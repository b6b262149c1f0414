from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ..core.enums import Role
from .model import GoogleProfile, User, UserStats


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, *, profile: GoogleProfile, role: Role, locale: str) -> Optional[int]:
        """Insert a user; None when the external id or email is already taken."""

        raise NotImplementedError

    def record_login(self, *, external_id: str, profile: GoogleProfile) -> bool:
        """Refresh profile fields, set last_login and increment login_count."""

        raise NotImplementedError

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def get_stats(self, *, today: date) -> UserStats:
        raise NotImplementedError
