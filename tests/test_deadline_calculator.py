"""
Tests for the deadline calculator.

Tests cover:
- Business-day and calendar-day deadlines
- Alert level thresholds
- Extensions added to the base period
- Terminal and externally gated stages
- Holiday calendars
- Idempotence
"""
from datetime import date, datetime, timezone

import pytest

from karinpilot.calendars import ChileCalendar, FixedHolidayCalendar
from karinpilot.engine import DeadlineCalculator, alert_level_for
from karinpilot.exceptions import ValidationError
from karinpilot.models import AlertLevel

from tests.helpers import CLT, MONDAY, business_day, make_case, make_rule_table


def on(day: date, hour: int = 10) -> datetime:
    return datetime(day.year, day.month, day.day, hour, 0, tzinfo=CLT)


# =============================================================================
# Alert Level Tests
# =============================================================================

class TestAlertLevelFor:
    """Tests for the alert threshold function."""

    def test_negative_is_overdue(self):
        assert alert_level_for(-1, 30) is AlertLevel.OVERDUE

    def test_urgent_floor_of_two_days(self):
        assert alert_level_for(2, 3) is AlertLevel.URGENT
        assert alert_level_for(0, 3) is AlertLevel.URGENT

    def test_urgent_scales_with_period(self):
        # 30 // 5 = 6
        assert alert_level_for(6, 30) is AlertLevel.URGENT
        assert alert_level_for(7, 30) is AlertLevel.OK

    def test_approaching(self):
        assert alert_level_for(5, 15) is AlertLevel.APPROACHING
        assert alert_level_for(4, 15) is AlertLevel.APPROACHING
        assert alert_level_for(3, 15) is AlertLevel.URGENT

    def test_ok(self):
        assert alert_level_for(6, 15) is AlertLevel.OK


# =============================================================================
# Business-Day Deadline Tests
# =============================================================================

class TestBusinessDayDeadline:
    """Investigation: 30 business days."""

    def test_deadline_date(self, calculator):
        info = calculator.compute_deadline(make_case("investigation"), now=MONDAY)

        assert info.has_deadline
        assert info.deadline == date(2025, 4, 14)
        assert info.days_remaining == 30
        assert info.total_days == 30
        assert not info.is_calendar_days
        assert info.alert_level is AlertLevel.OK
        assert info.article == "Art. 211-C CT"

    def test_one_day_left_is_urgent(self, calculator):
        info = calculator.compute_deadline(make_case("investigation"), now=business_day(29))
        assert info.days_remaining == 1
        assert info.alert_level is AlertLevel.URGENT
        assert info.message == "1 business days remaining"

    def test_deadline_day(self, calculator):
        info = calculator.compute_deadline(make_case("investigation"), now=business_day(30))
        assert info.days_remaining == 0
        assert info.alert_level is AlertLevel.URGENT
        assert info.message == "Deadline is today"

    def test_day_after_is_overdue(self, calculator):
        info = calculator.compute_deadline(make_case("investigation"), now=on(date(2025, 4, 15)))
        assert info.days_remaining == -1
        assert info.alert_level is AlertLevel.OVERDUE
        assert info.is_overdue

    def test_overdue_counts_business_days(self, calculator):
        # Saturday 19 April: 15, 16, 17 and 18 elapsed
        info = calculator.compute_deadline(make_case("investigation"), now=on(date(2025, 4, 19)))
        assert info.days_remaining == -4

    def test_overdue_weekend_only_is_minus_one(self, calculator):
        # Reception entered Tuesday 4 March, due Friday 7 March
        case = make_case("reception", entered_at=business_day(1))
        info = calculator.compute_deadline(case, now=on(date(2025, 3, 8)))
        assert info.deadline == date(2025, 3, 7)
        assert info.days_remaining == -1

    def test_short_stage_approaching(self, calculator):
        info = calculator.compute_deadline(make_case("reception"), now=MONDAY)
        assert info.deadline == date(2025, 3, 6)
        assert info.days_remaining == 3
        assert info.alert_level is AlertLevel.APPROACHING

    def test_weekend_entry(self, calculator):
        saturday = on(date(2025, 3, 8))
        info = calculator.compute_deadline(make_case("reception", entered_at=saturday), now=saturday)
        assert info.deadline == date(2025, 3, 12)

    def test_reference_time_converted_to_case_zone(self, calculator):
        # 01:00 UTC on Tuesday is still Monday evening in Chile
        now = datetime(2025, 3, 4, 1, 0, tzinfo=timezone.utc)
        info = calculator.compute_deadline(make_case("reception"), now=now)
        assert info.days_remaining == 3


# =============================================================================
# Calendar-Day Deadline Tests
# =============================================================================

class TestCalendarDayDeadline:
    """Measures adoption: 15 calendar days."""

    def test_deadline_date(self, calculator):
        info = calculator.compute_deadline(make_case("measures_adoption"), now=MONDAY)
        assert info.deadline == date(2025, 3, 18)
        assert info.is_calendar_days

    @pytest.mark.parametrize("day,remaining,level", [
        (10, 8, AlertLevel.OK),
        (14, 4, AlertLevel.APPROACHING),
        (16, 2, AlertLevel.URGENT),
        (18, 0, AlertLevel.URGENT),
        (20, -2, AlertLevel.OVERDUE),
    ])
    def test_levels(self, calculator, day, remaining, level):
        info = calculator.compute_deadline(make_case("measures_adoption"), now=on(date(2025, 3, day)))
        assert info.days_remaining == remaining
        assert info.alert_level is level

    def test_overdue_message(self, calculator):
        info = calculator.compute_deadline(make_case("measures_adoption"), now=on(date(2025, 3, 20)))
        assert info.message == "Deadline passed 2 calendar days ago"


# =============================================================================
# Extension Tests
# =============================================================================

class TestExtendedDeadline:
    """Approved extensions add to the base period."""

    def test_extension_moves_deadline(self, calculator):
        case = make_case("investigation", extension_days=10)
        info = calculator.compute_deadline(case, now=MONDAY)

        assert info.deadline == date(2025, 4, 28)
        assert info.base_days == 30
        assert info.extension_days == 10
        assert info.total_days == 40

    def test_extension_relaxes_alert(self, calculator):
        now = business_day(29)
        plain = calculator.compute_deadline(make_case("investigation"), now=now)
        extended = calculator.compute_deadline(make_case("investigation", extension_days=10), now=now)

        assert plain.alert_level is AlertLevel.URGENT
        assert extended.days_remaining == 11
        assert extended.alert_level is AlertLevel.OK


# =============================================================================
# No-Deadline Tests
# =============================================================================

class TestNoDeadline:
    """Closed and externally gated stages carry no deadline."""

    def test_closed(self, calculator):
        info = calculator.compute_deadline(make_case("closed"), now=MONDAY)
        assert not info.has_deadline
        assert info.deadline is None
        assert info.days_remaining is None
        assert info.alert_level is AlertLevel.OK

    def test_dt_resolution_is_gated(self, calculator):
        info = calculator.compute_deadline(make_case("dt_resolution"), now=on(date(2026, 1, 1)))
        assert not info.has_deadline
        assert info.alert_level is AlertLevel.OK
        assert "external authority" in info.message


# =============================================================================
# Calendar and Table Tests
# =============================================================================

class TestCalendars:
    """The calculator honours its calendar and rule table."""

    def test_holidays_skipped(self, rule_table):
        calendar = FixedHolidayCalendar.from_dates(date(2025, 3, 5))
        calculator = DeadlineCalculator(rule_table=rule_table, calendar=calendar)
        info = calculator.compute_deadline(make_case("reception"), now=MONDAY)
        assert info.deadline == date(2025, 3, 7)

    def test_chile_calendar_good_friday(self, rule_table):
        calculator = DeadlineCalculator(rule_table=rule_table, calendar=ChileCalendar())
        entered = on(date(2025, 4, 16))
        info = calculator.compute_deadline(make_case("reception", entered_at=entered), now=entered)
        assert info.deadline == date(2025, 4, 22)

    def test_rule_table_override(self):
        calculator = DeadlineCalculator(rule_table=make_rule_table(reception=5))
        info = calculator.compute_deadline(make_case("reception"), now=MONDAY)
        assert info.deadline == date(2025, 3, 10)
        assert info.total_days == 5


# =============================================================================
# Purity Tests
# =============================================================================

class TestPurity:
    """Same inputs give the same output."""

    def test_idempotent(self, calculator):
        case = make_case("investigation")
        now = business_day(12)
        assert calculator.compute_deadline(case, now=now) == calculator.compute_deadline(case, now=now)

    def test_naive_now_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.compute_deadline(make_case(), now=datetime(2025, 3, 3, 9, 0))
