from __future__ import annotations

from flask import Flask, request

from ..common.web import admin_required, int_or_none, json_errors, login_required, ok, request_data
from ..container import Container
from ..core.constants import DEFAULT_MAX_CAPACITY
from ..core.exceptions import NotFoundError


def register(app: Flask, container: Container) -> None:
    svc = container.class_service

    def _year_or_active(value) -> int:
        year_id = int_or_none(value)
        if year_id:
            return year_id
        active = container.school_year_service.get_active()
        if not active:
            raise NotFoundError("No active school year")
        return active.id

    @app.route("/classes", methods=["GET"], endpoint="classes")
    @login_required
    @json_errors
    def classes():
        year_id = _year_or_active(request.args.get("school_year_id"))
        return ok(svc.list_by_school_year(year_id), school_year_id=year_id)

    @app.route("/classes", methods=["POST"], endpoint="create_class")
    @admin_required
    @json_errors
    def create_class():
        data = request_data()
        class_id = svc.create(
            grade_level=data.get("grade_level", ""),
            section=data.get("section", ""),
            teacher_id=int_or_none(data.get("teacher_id")) or 0,
            school_year_id=_year_or_active(data.get("school_year_id")),
            max_capacity=int_or_none(data.get("max_capacity")) or DEFAULT_MAX_CAPACITY,
        )
        return ok({"id": class_id}), 201

    @app.route("/classes/<int:class_id>", methods=["GET"], endpoint="class_detail")
    @login_required
    @json_errors
    def class_detail(class_id: int):
        return ok(svc.get(class_id))

    @app.route("/classes/<int:class_id>", methods=["POST"], endpoint="update_class")
    @admin_required
    @json_errors
    def update_class(class_id: int):
        data = request_data()
        svc.update(
            class_id=class_id,
            grade_level=data.get("grade_level", ""),
            section=data.get("section", ""),
            teacher_id=int_or_none(data.get("teacher_id")) or 0,
            max_capacity=int_or_none(data.get("max_capacity")),
        )
        return ok(svc.get(class_id))

    @app.route("/classes/<int:class_id>/deactivate", methods=["POST"], endpoint="deactivate_class")
    @admin_required
    @json_errors
    def deactivate_class(class_id: int):
        svc.deactivate(class_id)
        return ok()

    @app.route("/teachers", methods=["GET"], endpoint="teachers")
    @admin_required
    @json_errors
    def teachers():
        return ok([{"id": t.id, "full_name": t.full_name} for t in container.users_repo.list_teachers()])
