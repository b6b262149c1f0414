from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import as_local
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_LOCALE
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, Unauthenticated, ValidationError
from .model import GoogleProfile, User, UserStats
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    name: str
    email: str
    role: Role
    is_new_user: bool = False


class AuthService:
    """Use case: sign a user in from a verified Google profile."""

    def __init__(self, users: UserRepository):
        self._users = users

    def login_with_google(self, profile: GoogleProfile) -> SessionUser:
        try:
            require_non_empty(profile.external_id, "Google 帳號識別碼")
            require_non_empty(profile.email, "電子郵件")
        except ValidationError as e:
            raise AuthenticationError("無法取得 Google 帳號資料") from e

        user = self._users.get_by_external_id(profile.external_id)
        if user:
            return self._login_existing(user, profile)

        other = self._users.get_by_email(profile.email)
        if other:
            raise AuthenticationError("此電子郵件已被其他帳號使用")

        user_id = self._users.create_user(
            profile=profile,
            role=Role.USER,
            locale=profile.locale or DEFAULT_LOCALE,
        )
        if user_id is None:
            # Lost a race against a concurrent first login of the same identity.
            user = self._users.get_by_external_id(profile.external_id)
            if not user:
                raise AuthenticationError("此電子郵件已被其他帳號使用")
            return self._login_existing(user, profile)

        logger.info("Created user %s for %s", user_id, profile.email)
        return SessionUser(
            user_id=user_id,
            name=profile.name or profile.email,
            email=profile.email,
            role=Role.USER,
            is_new_user=True,
        )

    def _login_existing(self, user: User, profile: GoogleProfile) -> SessionUser:
        if not user.is_active:
            raise AuthenticationError("帳號已被停用，請聯絡管理員")

        self._users.record_login(external_id=user.external_id, profile=profile)
        return SessionUser(
            user_id=user.user_id,
            name=profile.name or user.name,
            email=profile.email,
            role=user.role,
        )


class UserService:
    """Use case: read accounts (profile page, admin overview)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get_profile(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise Unauthenticated("請先登入")
        return user

    def deactivate(self, user_id: int) -> bool:
        return self._users.set_active(user_id, is_active=False)

    def stats(self, *, now: Optional[datetime] = None) -> UserStats:
        return self._users.get_stats(today=as_local(now).date())
