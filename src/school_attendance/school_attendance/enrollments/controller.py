from __future__ import annotations

from flask import Flask

from ..common.web import admin_required, current_user_id, int_or_none, json_errors, login_required, ok, request_data
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    svc = container.enrollment_service

    @app.route("/classes/<int:class_id>/students", methods=["POST"], endpoint="enroll_student")
    @admin_required
    @json_errors
    def enroll_student(class_id: int):
        data = request_data()
        enrollment_id = svc.assign_student_to_class(
            int_or_none(data.get("student_id")) or 0, class_id, enrolled_by=current_user_id()
        )
        return ok({"enrollment_id": enrollment_id}), 201

    @app.route("/classes/<int:class_id>/students/<int:student_id>/remove", methods=["POST"], endpoint="unenroll_student")
    @admin_required
    @json_errors
    def unenroll_student(class_id: int, student_id: int):
        data = request_data()
        change = svc.remove_student_from_class(student_id, class_id, current_user_id(), data.get("reason", ""))
        return ok(change)

    @app.route("/enrollments/status", methods=["POST"], endpoint="update_enrollment_status")
    @admin_required
    @json_errors
    def update_enrollment_status():
        data = request_data()
        change = svc.update_enrollment_status(
            int_or_none(data.get("student_id")) or 0,
            int_or_none(data.get("class_id")) or 0,
            data.get("status", ""),
            current_user_id(),
            data.get("reason", ""),
        )
        return ok(change)

    @app.route("/enrollments/transfer", methods=["POST"], endpoint="transfer_student")
    @admin_required
    @json_errors
    def transfer_student():
        data = request_data()
        message = svc.transfer_student(
            int_or_none(data.get("student_id")) or 0,
            int_or_none(data.get("from_class_id")) or 0,
            int_or_none(data.get("to_class_id")) or 0,
            current_user_id(),
            data.get("reason", ""),
        )
        return ok(message=message)

    @app.route("/enrollments/move", methods=["POST"], endpoint="move_students")
    @admin_required
    @json_errors
    def move_students():
        data = request_data()
        raw = data.get("assignments") or {}
        if not isinstance(raw, dict):
            raise ValidationError("assignments must map student ID to class ID")
        try:
            assignments = {int(s): int(c) for s, c in raw.items()}
        except (TypeError, ValueError):
            raise ValidationError("assignments must map student ID to class ID")

        result = svc.move_students_to_classes(assignments, enrolled_by=current_user_id())
        if result.error:
            return fail(result.error, 500, data=result)
        return ok(result)

    @app.route("/students/<int:student_id>/enrollments", methods=["GET"], endpoint="enrollment_history")
    @login_required
    @json_errors
    def enrollment_history(student_id: int):
        return ok(svc.history(student_id))
