from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_optional_date
from ..common.web import admin_required, current_user_id, json_errors, login_required, ok, request_data
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    svc = container.school_year_service

    @app.route("/school-years", methods=["GET"], endpoint="school_years")
    @login_required
    @json_errors
    def school_years():
        return ok(svc.list_all(), active=svc.get_active())

    @app.route("/school-years", methods=["POST"], endpoint="create_school_year")
    @admin_required
    @json_errors
    def create_school_year():
        data = request_data()
        try:
            start = parse_optional_date(data.get("start_date"))
            end = parse_optional_date(data.get("end_date"))
        except ValueError:
            raise ValidationError("Invalid date (YYYY-MM-DD)")
        year_id = svc.create(data.get("name", ""), start, end)
        return ok({"id": year_id}), 201

    @app.route("/school-years/<int:year_id>/activate", methods=["POST"], endpoint="activate_school_year")
    @admin_required
    @json_errors
    def activate_school_year(year_id: int):
        svc.set_active(year_id)
        return ok(svc.get(year_id))

    @app.route("/school-years/<int:year_id>/lock", methods=["POST"], endpoint="lock_school_year")
    @admin_required
    @json_errors
    def lock_school_year(year_id: int):
        return ok(svc.lock(year_id, locked_by=current_user_id()))

    @app.route("/school-years/<int:year_id>/unlock", methods=["POST"], endpoint="unlock_school_year")
    @admin_required
    @json_errors
    def unlock_school_year(year_id: int):
        return ok(svc.unlock(year_id, unlocked_by=current_user_id()))
