"""
KarinPilot Business-Day Calendars

The deadline calculator only needs three questions answered: is this day
counted, which day is N counted days after this one, and how many counted
days separate two dates. Calendars answer them from a weekend set plus a
holiday lookup supplied by each subclass.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import count, islice
from typing import Iterator, Optional, Protocol, runtime_checkable

SATURDAY, SUNDAY = 5, 6


@runtime_checkable
class HolidayCalendar(Protocol):
    """What the deadline calculator requires of a calendar."""

    def is_business_day(self, d: date) -> bool:
        ...

    def add_business_days(self, start: date, days: int) -> date:
        ...

    def business_days_between(self, start: date, end: date) -> int:
        ...


@dataclass
class BaseCalendar(ABC):
    """
    Weekend set plus a holiday lookup.

    Subclasses implement ``holiday_name``; every other operation derives
    from it. Counting always excludes the start date, so one business day
    after a Friday is the following Monday.
    """

    weekend_days: frozenset[int] = field(default_factory=lambda: frozenset({SATURDAY, SUNDAY}))

    @abstractmethod
    def holiday_name(self, d: date) -> Optional[str]:
        """Name of the holiday falling on ``d``, or None."""

    def is_holiday(self, d: date) -> bool:
        return self.holiday_name(d) is not None

    def is_business_day(self, d: date) -> bool:
        return d.weekday() not in self.weekend_days and not self.is_holiday(d)

    def iter_business_days(self, start: date, end: date) -> Iterator[date]:
        """Business days in (start, end], oldest first."""
        day = start + timedelta(days=1)
        while day <= end:
            if self.is_business_day(day):
                yield day
            day += timedelta(days=1)

    def add_business_days(self, start: date, days: int) -> date:
        """
        The date ``days`` business days away from ``start``.

        Negative values walk backwards. Zero returns ``start`` unchanged,
        even when it is not a business day.
        """
        if days == 0:
            return start
        direction = 1 if days > 0 else -1
        walked = (start + timedelta(days=direction * n) for n in count(1))
        counted = (d for d in walked if self.is_business_day(d))
        return next(islice(counted, abs(days) - 1, None))

    def business_days_between(self, start: date, end: date) -> int:
        """Number of business days in (start, end]; 0 when end <= start."""
        return sum(1 for _ in self.iter_business_days(start, end))


@dataclass
class WeekendCalendar(BaseCalendar):
    """Default policy: Monday to Friday count, no holiday table."""

    def holiday_name(self, d: date) -> Optional[str]:
        return None


@dataclass
class FixedHolidayCalendar(BaseCalendar):
    """Holidays handed in by the caller, e.g. from an HR system export."""

    holidays: dict[date, str] = field(default_factory=dict)

    def holiday_name(self, d: date) -> Optional[str]:
        return self.holidays.get(d)

    @classmethod
    def from_dates(cls, *dates: date, name: str = "Feriado") -> FixedHolidayCalendar:
        return cls(holidays={d: name for d in dates})
