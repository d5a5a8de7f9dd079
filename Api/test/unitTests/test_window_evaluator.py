from datetime import date, datetime, timedelta, timezone

from clearance.engine.ClearanceWindowEvaluator import ClearanceWindowEvaluator, as_utc
from clearance.models.ClearancePeriod import ClearancePeriod

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
evaluator = ClearanceWindowEvaluator()


def make_period(deadline, extended=None, active=True) -> ClearancePeriod:
    return ClearancePeriod(
        id=1,
        is_active=active,
        deadline=deadline,
        extended_deadline=extended,
        academic_year="2023-2024",
        semester_type="2nd Semester",
    )


def test_no_period_is_not_configured():
    window = evaluator.evaluate(None, NOW)
    assert window.is_configured is False
    assert window.is_open is False
    assert window.is_overdue is False
    assert window.effective_deadline is None


def test_active_period_before_deadline_is_open_with_ceiling_days():
    window = evaluator.evaluate(make_period(NOW + timedelta(days=2, hours=1)), NOW)
    assert window.is_open is True
    assert window.is_overdue is False
    assert window.days_remaining == 3


def test_inactive_period_is_never_open():
    window = evaluator.evaluate(make_period(NOW + timedelta(days=5), active=False), NOW)
    assert window.is_configured is True
    assert window.is_open is False
    assert window.is_overdue is False


def test_passed_deadline_is_overdue_with_positive_days():
    window = evaluator.evaluate(make_period(NOW - timedelta(days=3, hours=5)), NOW)
    assert window.is_open is False
    assert window.is_overdue is True
    assert window.days_remaining == 3


def test_extension_replaces_the_deadline():
    period = make_period(NOW - timedelta(days=1), extended=NOW + timedelta(days=4))
    window = evaluator.evaluate(period, NOW)
    assert window.is_open is True
    assert window.is_overdue is False
    assert window.effective_deadline == NOW + timedelta(days=4)


def test_deadline_exactly_now_is_still_open():
    window = evaluator.evaluate(make_period(NOW), NOW)
    assert window.is_open is True
    assert window.days_remaining == 0


def test_naive_deadline_is_read_as_utc():
    naive = datetime(2024, 3, 5)
    window = evaluator.evaluate(make_period(naive), NOW)
    assert window.effective_deadline == datetime(2024, 3, 5, tzinfo=timezone.utc)


def test_date_means_midnight_utc():
    assert as_utc(date(2024, 3, 5)) == datetime(2024, 3, 5, 0, 0, tzinfo=timezone.utc)
