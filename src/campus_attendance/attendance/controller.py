from __future__ import annotations

from flask import Flask, g, jsonify, request, session

from ..common.auth_guards import admin_required, binding_required, current_user_id, login_required
from ..common.validators import parse_float
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import DuplicateCheckIn, ValidationError
from ..geolocation.accuracy import accuracy_level, format_accuracy


def _record_json(record) -> dict:
    data = record.to_dict()
    data["accuracy_text"] = format_accuracy(record.accuracy)
    data["accuracy_level"] = accuracy_level(record.accuracy)
    return data


def _optional_int(value, message: str):
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)


def register(app: Flask, container: Container) -> None:
    bound_only = binding_required(container.binding_service)

    @app.route("/dashboard", endpoint="dashboard")
    @login_required
    def dashboard():
        user_id = current_user_id()
        binding = container.binding_service.resolve_binding(user_id)
        stats = container.attendance_service.stats(user_id) if binding.bound else None
        return jsonify(
            user={
                "id": user_id,
                "name": session.get("name"),
                "email": session.get("email"),
                "role": session.get("role"),
            },
            binding=binding.to_dict(),
            has_checked_in_today=container.attendance_service.has_checked_in_today(user_id),
            stats=stats.to_dict() if stats else None,
        )

    @app.route("/attendance", methods=["GET", "POST"], endpoint="attendance")
    @bound_only
    def attendance():
        user_id = current_user_id()

        if request.method == "GET":
            today = container.attendance_service.today_records(user_id)
            return jsonify(
                binding=g.binding.to_dict(),
                has_checked_in_today=bool(today),
                today_records=[_record_json(r) for r in today],
                stats=container.attendance_service.stats(user_id).to_dict(),
            )

        data = request.get_json(silent=True) or request.form
        try:
            record = container.attendance_service.record(
                user_id,
                data.get("student_id") or None,
                parse_float(data.get("latitude")),
                parse_float(data.get("longitude")),
                parse_float(data.get("accuracy")),
                device_info=request.headers.get("User-Agent"),
                ip_address=request.remote_addr,
                notes=data.get("notes"),
                course_id=_optional_int(data.get("course_id"), "無效的課程"),
            )
        except (ValidationError, DuplicateCheckIn) as e:
            return jsonify(success=False, error=str(e)), 400

        return jsonify(success=True, message="點名成功！", record=_record_json(record)), 201

    @app.route("/attendance/history", endpoint="attendance_history")
    @bound_only
    def attendance_history():
        limit = request.args.get("limit", DEFAULT_HISTORY_LIMIT, type=int)
        records = container.attendance_service.history(current_user_id(), limit)
        return jsonify(records=[_record_json(r) for r in records])

    @app.route("/api/attendance/stats", endpoint="attendance_stats")
    @login_required
    def attendance_stats():
        return jsonify(container.attendance_service.stats(current_user_id()).to_dict())

    @app.route("/admin/courses/<int:course_id>/attendance", endpoint="admin_course_attendance")
    @admin_required
    def admin_course_attendance(course_id: int):
        rows = container.attendance_service.course_attendance(course_id)
        return jsonify(records=[r.to_dict() for r in rows])

    @app.route("/admin/attendance/<int:record_id>/status", methods=["POST"], endpoint="admin_update_status")
    @admin_required
    def admin_update_status(record_id: int):
        data = request.get_json(silent=True) or request.form
        try:
            container.attendance_service.update_status(record_id, data.get("status", ""), data.get("notes") or None)
        except ValidationError as e:
            return jsonify(success=False, error=str(e)), 400
        return jsonify(success=True)

    @app.route("/admin/attendance/<int:record_id>/delete", methods=["POST"], endpoint="admin_delete_attendance")
    @admin_required
    def admin_delete_attendance(record_id: int):
        data = request.get_json(silent=True) or request.form
        try:
            user_id = _optional_int(data.get("user_id"), "無效的使用者編號")
            if user_id is None:
                raise ValidationError("缺少使用者編號")
            container.attendance_service.delete(record_id, user_id)
        except ValidationError as e:
            return jsonify(success=False, error=str(e)), 400
        return jsonify(success=True)
