from __future__ import annotations

from flask import Flask, jsonify, redirect, request, session, url_for

from ..common.auth_guards import current_user_id, login_required
from ..container import Container
from ..core.exceptions import AlreadyBound, BindingError, ValidationError
from ..students.model import student_summary


def register(app: Flask, container: Container) -> None:
    @app.route("/bind-student", methods=["GET", "POST"], endpoint="bind_student")
    @login_required
    def bind_student():
        user_id = current_user_id()
        binding = container.binding_service.resolve_binding(user_id)
        if binding.bound:
            if request.method == "POST":
                return jsonify(success=False, error="您已經綁定過學號", binding=binding.to_dict()), 409
            return redirect(url_for("dashboard"))

        if request.method == "GET":
            return jsonify(
                user={"id": user_id, "name": session.get("name"), "email": session.get("email")},
                binding=binding.to_dict(),
            )

        data = request.get_json(silent=True) or request.form
        student_id = data.get("studentId", data.get("student_id", ""))
        confirm_name = data.get("confirmName", data.get("name", ""))
        action = data.get("_action", "bind")

        try:
            if action == "validate":
                student = container.binding_service.preview(user_id, student_id, confirm_name)
                return jsonify(success=True, step="confirm", student=student_summary(student))

            bound = container.binding_service.bind(user_id, student_id, confirm_name)
        except AlreadyBound as e:
            return jsonify(success=False, error=str(e)), 409
        except (ValidationError, BindingError) as e:
            return jsonify(success=False, step="input", error=str(e)), 400

        return jsonify(success=True, message="學號綁定成功", binding=bound.to_dict())
