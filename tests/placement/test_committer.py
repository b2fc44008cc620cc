from __future__ import annotations

from src.school_attendance.school_attendance.placement.committer import CONCURRENT_MODIFICATION


def _enrolled_in_source(db, two_years, first, last="Student"):
    s = db.add_student(first, last)
    db.add_enrollment(s.id, two_years.g6a.id)
    return s


def test_year_to_year_promotion_commits_and_clears_session(services, db, two_years, session):
    ana = _enrolled_in_source(db, two_years, "Ana")
    assert [s.id for s in services.eligibility.get_eligible_students(two_years.src.id, two_years.tgt.id)] == [ana.id]

    services.placement.assign_individual(session, ana.id, two_years.g7a.id, enrolled_by=1)
    result = services.committer.save_placements(session, committed_by=1)

    assert result.success
    assert result.created_count == 1
    assert result.skipped_count == 0
    assert [(e.student_id, e.class_id) for e in result.enrollments] == [(ana.id, two_years.g7a.id)]
    assert session.pending_count == 0
    assert session.undo_stack_size == 0
    assert db.active_in_year(ana.id, two_years.tgt.id)
    assert services.eligibility.get_eligible_students(two_years.src.id, two_years.tgt.id) == []


def test_capacity_is_advisory_at_commit(services, db, two_years, session):
    one_seat = db.add_class("Grade 7", "C", two_years.tgt, teacher_id=2, max_capacity=1)
    a = _enrolled_in_source(db, two_years, "Ana")
    b = _enrolled_in_source(db, two_years, "Ben")

    check = services.validator.validate_bulk_placement([a.id, b.id], one_seat.id)
    assert check.valid
    assert check.capacity_warning

    services.placement.bulk_assign(session, [a.id, b.id], one_seat.id, enrolled_by=1)
    result = services.committer.save_placements(session, committed_by=1)

    assert result.created_count == 2
    assert len(db.active_rows(class_id=one_seat.id)) == 2


def test_storage_failure_rolls_back_everything(services, repos, db, two_years, session):
    a = _enrolled_in_source(db, two_years, "Ana")
    b = _enrolled_in_source(db, two_years, "Ben")
    services.placement.bulk_assign(session, [a.id, b.id], two_years.g7a.id, enrolled_by=1)
    repos.enrollments.fail_on_insert = 2

    result = services.committer.save_placements(session, committed_by=1)

    assert not result.success
    assert result.created_count == 0
    assert result.enrollments == []
    assert result.error == "Database error while saving placements. No changes were saved."
    assert db.active_rows(class_id=two_years.g7a.id) == []
    # Staged work survives so the operator can retry.
    assert session.pending_count == 2


def test_concurrent_enrollment_is_skipped_not_duplicated(services, repos, db, two_years, session):
    a = _enrolled_in_source(db, two_years, "Ana")
    b = _enrolled_in_source(db, two_years, "Ben")
    services.placement.bulk_assign(session, [a.id, b.id], two_years.g7a.id, enrolled_by=1)
    repos.enrollments.race = lambda: db.add_enrollment(b.id, two_years.g7b.id)

    result = services.committer.save_placements(session, committed_by=1)

    assert result.success
    assert result.created_count == 1
    assert [(s.student_id, s.reason) for s in result.skipped] == [(b.id, CONCURRENT_MODIFICATION)]
    assert len(db.active_in_year(b.id, two_years.tgt.id)) == 1


def test_prevalidation_skips_are_reported(services, db, two_years, session):
    a = _enrolled_in_source(db, two_years, "Ana")
    b = _enrolled_in_source(db, two_years, "Ben")
    session.add_pending_placement(a.id, two_years.g7a.id)
    session.add_pending_placement(b.id, 999)

    result = services.committer.save_placements(session, committed_by=1)

    assert result.success
    assert result.created_count == 1
    assert [(s.student_id, s.class_id, s.reason) for s in result.skipped] == [
        (b.id, 999, "Target class does not exist")
    ]


def test_nothing_valid_to_save(services, db, two_years, session):
    assert services.committer.save_placements(session, committed_by=1).error == "No placements to save"

    gone = db.add_student("Gone", "Away", is_active=False)
    session.add_pending_placement(gone.id, two_years.g7a.id)
    result = services.committer.save_placements(session, committed_by=1)
    assert not result.success
    assert result.error == "No valid placements to save"
    assert result.skipped_count == 1
    assert session.pending_count == 1


def test_commit_reactivates_an_earlier_row(services, db, two_years, session):
    a = _enrolled_in_source(db, two_years, "Ana")
    old_id = db.add_enrollment(a.id, two_years.g7a.id, is_active=False)
    session.add_pending_placement(a.id, two_years.g7a.id)

    result = services.committer.save_placements(session, committed_by=1)

    assert result.enrollments[0].enrollment_id == old_id
    assert result.enrollments[0].reactivated
    assert len([r for r in db.enrollments.values() if r["class_id"] == two_years.g7a.id]) == 1


def test_explicit_placements_override_the_session(services, db, two_years, session):
    a = _enrolled_in_source(db, two_years, "Ana")
    b = _enrolled_in_source(db, two_years, "Ben")
    session.add_pending_placement(a.id, two_years.g7a.id)

    result = services.committer.save_placements(session, committed_by=1, placements={b.id: two_years.g7b.id})

    assert [e.student_id for e in result.enrollments] == [b.id]
    assert not db.active_in_year(a.id, two_years.tgt.id)


def test_each_class_is_looked_up_once_per_placement(services, repos, db, two_years, session, monkeypatch):
    ana = _enrolled_in_source(db, two_years, "Ana")
    ben = _enrolled_in_source(db, two_years, "Ben")
    session.add_pending_placement(ana.id, two_years.g7a.id)
    session.add_pending_placement(ben.id, two_years.g7b.id)

    lookups = []
    get_by_id = repos.classes.get_by_id

    def counting(class_id):
        lookups.append(class_id)
        return get_by_id(class_id)

    monkeypatch.setattr(repos.classes, "get_by_id", counting)
    result = services.committer.save_placements(session, committed_by=1)

    assert result.created_count == 2
    assert sorted(lookups) == sorted([two_years.g7a.id, two_years.g7b.id])


def test_validation_reports_the_target_year(services, db, two_years):
    ana = _enrolled_in_source(db, two_years, "Ana")
    check = services.validator.validate_placement(ana.id, two_years.g7a.id)
    assert check.valid
    assert check.school_year_id == two_years.tgt.id
