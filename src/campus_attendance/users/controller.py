from __future__ import annotations

import logging
import secrets
from dataclasses import asdict

from flask import Flask, jsonify, redirect, request, session, url_for

from ..common.auth_guards import admin_required, current_user_id, login_required
from ..container import Container
from ..core.exceptions import AuthenticationError
from .google_oauth import new_state

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/", endpoint="index")
    def index():
        if "user_id" in session:
            return redirect(url_for("dashboard"))
        return redirect(url_for("login"))

    @app.route("/login", endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        error = request.args.get("error")
        if error:
            return jsonify(success=False, error=error, login_url=url_for("login")), 401

        state = new_state()
        session["oauth_state"] = state
        return redirect(container.oauth_client.authorization_url(state))

    @app.route("/auth/google/callback", endpoint="google_callback")
    def google_callback():
        try:
            if request.args.get("error"):
                raise AuthenticationError("Google 登入已取消")

            expected = session.pop("oauth_state", None)
            state = request.args.get("state") or ""
            if not expected or not secrets.compare_digest(state, expected):
                raise AuthenticationError("登入驗證失敗，請重新登入")

            profile = container.oauth_client.fetch_profile(request.args.get("code") or "")
            s_user = container.auth_service.login_with_google(profile)
        except AuthenticationError as e:
            logger.warning("Google login failed: %s", e)
            return redirect(url_for("login", error=str(e)))

        session.clear()
        session.permanent = True
        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["email"] = s_user.email
        session["role"] = s_user.role.value

        binding = container.binding_service.resolve_binding(s_user.user_id)
        if not binding.bound:
            return redirect(url_for("bind_student"))
        return redirect(url_for("dashboard"))

    @app.route("/logout", endpoint="logout")
    def logout():
        session.clear()
        return redirect(url_for("login"))

    @app.route("/profile", endpoint="profile")
    @login_required
    def profile():
        user = container.user_service.get_profile(current_user_id())
        binding = container.binding_service.resolve_binding(user.user_id)
        return jsonify(
            user={
                "id": user.user_id,
                "email": user.email,
                "name": user.name,
                "avatar_url": user.avatar_url,
                "locale": user.locale,
                "role": user.role.value,
                "login_count": user.login_count,
                "last_login": user.last_login.isoformat() if user.last_login else None,
                "created_at": user.created_at.isoformat() if user.created_at else None,
            },
            binding=binding.to_dict(),
        )

    @app.route("/admin/overview", endpoint="admin_overview")
    @admin_required
    def admin_overview():
        user_stats = container.user_service.stats()
        student_stats = container.student_service.stats()
        return jsonify(users=asdict(user_stats), students=asdict(student_stats))
