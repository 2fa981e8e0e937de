"""
KarinPilot Calendars

Business-day policies for statutory deadline calculation.

Provides:
- HolidayCalendar: what the deadline calculator needs from a calendar
- BaseCalendar: weekend set plus a per-subclass holiday lookup
- WeekendCalendar (default policy: weekends only)
- ChileCalendar for Chilean national and regional holidays

Usage:
    from karinpilot.calendars import ChileCalendar, calendar_for_policy

    calendar = calendar_for_policy("chile", region="XV")
    deadline = calendar.add_business_days(date(2024, 6, 3), 10)
"""
from __future__ import annotations

from typing import Optional

from ..exceptions import ValidationError
from .base import (
    BaseCalendar,
    FixedHolidayCalendar,
    HolidayCalendar,
    WeekendCalendar,
)
from .chile import REGIONAL_HOLIDAYS, ChileCalendar, national_holidays


def calendar_for_policy(policy: str, region: Optional[str] = None) -> BaseCalendar:
    """
    Build the calendar named by a configuration value.

    Args:
        policy: "weekends" or "chile"
        region: Optional Chilean region code (only used by "chile")

    Raises:
        ValidationError: If the policy name is unknown
    """
    if policy == "weekends":
        return WeekendCalendar()
    if policy == "chile":
        return ChileCalendar(region=region)
    raise ValidationError(message=f"Unknown calendar policy: {policy}")


__all__ = [
    "HolidayCalendar",
    "BaseCalendar",
    "WeekendCalendar",
    "FixedHolidayCalendar",
    "ChileCalendar",
    "REGIONAL_HOLIDAYS",
    "national_holidays",
    "calendar_for_policy",
]
