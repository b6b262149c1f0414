from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import BindingStatus, Role


@dataclass(frozen=True)
class User:
    """Domain entity: an account created from an external (Google) identity.

    Plain data object, no database access here.
    """

    user_id: int
    external_id: str
    email: str
    name: str
    avatar_url: Optional[str]
    locale: str
    verified_email: bool
    role: Role
    login_count: int
    is_active: bool = True
    student_id: Optional[str] = None
    binding_status: BindingStatus = BindingStatus.UNBOUND
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @property
    def is_bound(self) -> bool:
        return self.binding_status == BindingStatus.BOUND and self.student_id is not None


@dataclass(frozen=True)
class GoogleProfile:
    """Identity returned by Google after a successful login."""

    external_id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    locale: Optional[str] = None
    verified_email: bool = False


@dataclass(frozen=True)
class UserStats:
    total_users: int
    new_users_today: int
    new_users_this_month: int
    active_users_today: int
    total_logins: int
