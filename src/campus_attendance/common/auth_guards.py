from __future__ import annotations

from functools import wraps

from flask import g, jsonify, redirect, session, url_for

from ..core.enums import Role


def current_user_id() -> int:
    return int(session["user_id"])


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return redirect(url_for("login"))

        if session.get("role") != Role.ADMIN.value:
            return jsonify(success=False, error="您沒有權限執行此操作"), 403

        return view(*args, **kwargs)

    return wrapper


def binding_required(binding_service):
    """Build a guard that lets only users with a confirmed binding through.

    The resolved binding is left on ``flask.g.binding`` for the view.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return redirect(url_for("login"))

            binding = binding_service.resolve_binding(current_user_id())
            if not binding.bound:
                return redirect(url_for("bind_student"))

            g.binding = binding
            return view(*args, **kwargs)

        return wrapper

    return decorator
