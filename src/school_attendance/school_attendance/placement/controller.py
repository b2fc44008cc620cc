from __future__ import annotations

from flask import Flask, request, session

from ..common.web import admin_required, current_user_id, fail, int_or_none, json_errors, ok, request_data
from ..container import Container
from ..core.exceptions import NotFoundError, ValidationError
from ..retry.handlers import EXPORT_OPERATION
from .eligibility import filter_students, get_filter_options
from .session import PlacementSession

_SESSION_KEY = "placement_session_id"


def _session_view(ps: PlacementSession) -> dict:
    return {
        "session_id": ps.session_id,
        "source_year_id": ps.source_year_id,
        "target_year_id": ps.target_year_id,
        "pending": {str(k): v for k, v in ps.get_pending_placements().items()},
        "pending_count": ps.pending_count,
        "undo_stack_size": ps.undo_stack_size,
    }


def _id_list(raw) -> list[int]:
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("student_ids must be a list")
    try:
        return [int(v) for v in raw]
    except (TypeError, ValueError):
        raise ValidationError("student_ids must be a list of integers")


def register(app: Flask, container: Container) -> None:
    store = container.placement_sessions
    svc = container.placement_service

    def _placement_session() -> PlacementSession:
        ps = store.get_or_create(session.get(_SESSION_KEY))
        session[_SESSION_KEY] = ps.session_id
        return ps

    def _years(ps: PlacementSession, data, *, need_source: bool = True) -> tuple[int, int]:
        """Source/target year from the request, then the session, then the active year."""
        source = int_or_none(data.get("source_year_id")) or ps.source_year_id or 0
        target = int_or_none(data.get("target_year_id")) or ps.target_year_id
        if not target:
            active = container.school_year_service.get_active()
            if not active:
                raise NotFoundError("No active school year")
            target = active.id
        if need_source and not source:
            raise ValidationError("Source school year is required")
        return source, target

    @app.route("/placement/session", methods=["GET"], endpoint="placement_session")
    @admin_required
    @json_errors
    def placement_session():
        return ok(_session_view(_placement_session()))

    @app.route("/placement/session", methods=["POST"], endpoint="init_placement_session")
    @admin_required
    @json_errors
    def init_placement_session():
        data = request_data()
        ps = _placement_session()
        ps.init(int_or_none(data.get("source_year_id")), int_or_none(data.get("target_year_id")))
        return ok(_session_view(ps))

    @app.route("/placement/eligible", methods=["GET"], endpoint="eligible_students")
    @admin_required
    @json_errors
    def eligible_students():
        ps = _placement_session()
        source, target = _years(ps, request.args)
        students = container.eligibility.get_eligible_students_with_suggestions(source, target)
        filtered = filter_students(students, request.args.get("grade_level"), request.args.get("section"))
        return ok(
            filtered,
            total=len(students),
            filters=get_filter_options(students),
            pending={str(k): v for k, v in ps.get_pending_placements().items()},
        )

    @app.route("/placement/target-classes", methods=["GET"], endpoint="target_classes")
    @admin_required
    @json_errors
    def target_classes():
        ps = _placement_session()
        _, target = _years(ps, request.args, need_source=False)
        return ok(container.eligibility.get_available_target_classes(target, request.args.get("grade_level")))

    @app.route("/placement/bulk-assign", methods=["POST"], endpoint="bulk_assign")
    @admin_required
    @json_errors
    def bulk_assign():
        data = request_data()
        result = svc.bulk_assign(
            _placement_session(),
            _id_list(data.get("student_ids") or []),
            int_or_none(data.get("class_id")) or 0,
            current_user_id(),
        )
        if not result.success:
            return fail(result.error or "", 400, data=result)
        return ok(result)

    @app.route("/placement/assign", methods=["POST"], endpoint="assign_student")
    @admin_required
    @json_errors
    def assign_student():
        data = request_data()
        result = svc.assign_individual(
            _placement_session(),
            int_or_none(data.get("student_id")) or 0,
            int_or_none(data.get("class_id")) or 0,
            current_user_id(),
        )
        if not result.success:
            return fail(result.message, 400, data=result)
        return ok(result)

    @app.route("/placement/remove", methods=["POST"], endpoint="remove_placement")
    @admin_required
    @json_errors
    def remove_placement():
        data = request_data()
        removed = svc.remove_pending(
            _placement_session(),
            int_or_none(data.get("student_id")) or 0,
            int_or_none(data.get("class_id")),
        )
        if not removed:
            raise NotFoundError("No pending placement for this student")
        return ok()

    @app.route("/placement/undo", methods=["POST"], endpoint="undo_placement")
    @admin_required
    @json_errors
    def undo_placement():
        result = svc.undo_last(_placement_session())
        if not result.success:
            return fail(result.message, 400, data=result)
        return ok(result)

    @app.route("/placement/reset", methods=["POST"], endpoint="reset_placement")
    @admin_required
    @json_errors
    def reset_placement():
        ps = _placement_session()
        svc.reset(ps)
        return ok(_session_view(ps))

    @app.route("/placement/validate", methods=["POST"], endpoint="validate_placement")
    @admin_required
    @json_errors
    def validate_placement():
        data = request_data()
        class_id = int_or_none(data.get("class_id")) or 0
        if "student_ids" in data:
            return ok(container.placement_validator.validate_bulk_placement(_id_list(data["student_ids"]), class_id))
        return ok(container.placement_validator.validate_placement(int_or_none(data.get("student_id")) or 0, class_id))

    @app.route("/placement/capacity/<int:class_id>", methods=["GET"], endpoint="class_capacity")
    @admin_required
    @json_errors
    def class_capacity(class_id: int):
        additional = int_or_none(request.args.get("additional")) or 1
        return ok(container.placement_validator.check_class_capacity(class_id, additional))

    @app.route("/placement/save", methods=["POST"], endpoint="save_placements")
    @admin_required
    @json_errors
    def save_placements():
        result = container.placement_committer.save_placements(_placement_session(), current_user_id())
        if not result.success:
            return fail(result.error or "", 400, data=result)
        return ok(result)

    @app.route("/placement/distribution", methods=["GET"], endpoint="class_distribution")
    @admin_required
    @json_errors
    def class_distribution():
        ps = _placement_session()
        _, target = _years(ps, request.args, need_source=False)
        include_pending = request.args.get("include_pending", "1") not in ("0", "false")
        return ok(
            svc.get_class_distribution(ps, target, include_pending),
            summary=svc.get_class_distribution_summary(ps, target),
        )

    @app.route("/placement/review", methods=["GET"], endpoint="placement_review")
    @admin_required
    @json_errors
    def placement_review():
        ps = _placement_session()
        source, target = _years(ps, request.args)
        return ok(svc.get_classes_with_students(ps, target, source))

    @app.route("/placement/stats", methods=["GET"], endpoint="placement_stats")
    @admin_required
    @json_errors
    def placement_stats():
        ps = _placement_session()
        source, target = _years(ps, request.args)
        return ok(svc.get_placement_stats(ps, source, target), eligible=container.eligibility.get_eligible_count(source, target))

    @app.route("/placement/export.csv", methods=["GET"], endpoint="export_placement_preview")
    @admin_required
    @json_errors
    def export_placement_preview():
        ps = _placement_session()
        source, target = _years(ps, request.args)
        export = container.placement_exporter.export_placement_preview(ps, source, target)
        return app.response_class(
            export.to_bytes(),
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
        )

    @app.route("/placement/export/queue", methods=["POST"], endpoint="queue_placement_export")
    @admin_required
    @json_errors
    def queue_placement_export():
        ps = _placement_session()
        source, target = _years(ps, request_data())
        queue_id = container.retry_service.enqueue(
            EXPORT_OPERATION,
            {"source_year_id": source, "target_year_id": target, "requested_by": current_user_id()},
        )
        return ok({"queue_id": queue_id}), 202

    @app.route("/retry-queue/stats", methods=["GET"], endpoint="retry_queue_stats")
    @admin_required
    @json_errors
    def retry_queue_stats():
        return ok(container.retry_service.stats())
