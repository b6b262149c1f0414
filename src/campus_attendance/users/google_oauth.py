from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import requests

from ..core.exceptions import AuthenticationError
from .model import GoogleProfile

logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ("openid", "email", "profile")


@dataclass(frozen=True)
class OAuthClientConfig:
    client_id: str
    client_secret: str
    callback_url: str
    timeout_seconds: float = 10.0


def new_state() -> str:
    return secrets.token_urlsafe(24)


class GoogleOAuthClient:
    """Authorization-code flow against Google's OpenID Connect endpoints."""

    def __init__(self, config: OAuthClientConfig, *, session: Optional[requests.Session] = None):
        self._config = config
        self._session = session or requests.Session()

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.callback_url,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "state": state,
            "prompt": "select_account",
        }
        return f"{AUTHORIZATION_ENDPOINT}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> GoogleProfile:
        if not code:
            raise AuthenticationError("Google 登入失敗，請重新登入")

        access_token = self._exchange_code(code)
        try:
            response = self._session.get(
                USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self._config.timeout_seconds,
            )
            response.raise_for_status()
            info = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Google userinfo request failed: %s", e)
            raise AuthenticationError("無法取得 Google 帳號資料") from e

        return self._to_profile(info)

    def _exchange_code(self, code: str) -> str:
        payload = {
            "code": code,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "redirect_uri": self._config.callback_url,
            "grant_type": "authorization_code",
        }
        try:
            response = self._session.post(TOKEN_ENDPOINT, data=payload, timeout=self._config.timeout_seconds)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Google token exchange failed: %s", e)
            raise AuthenticationError("Google 登入失敗，請重新登入") from e

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise AuthenticationError("Google 登入失敗，請重新登入")
        return str(token)

    @staticmethod
    def _to_profile(info) -> GoogleProfile:
        if not isinstance(info, dict) or not info.get("sub") or not info.get("email"):
            raise AuthenticationError("無法取得 Google 帳號資料")

        email = str(info["email"])
        return GoogleProfile(
            external_id=str(info["sub"]),
            email=email,
            name=str(info.get("name") or email.split("@")[0]),
            avatar_url=info.get("picture"),
            locale=info.get("locale"),
            verified_email=bool(info.get("email_verified", False)),
        )
