"""
Chile Holiday Calendar

National public holidays used when counting business days for Labor Code
deadlines (Código del Trabajo, artículos 211-A a 211-G).

National holidays:
- Año Nuevo (January 1)
- Viernes Santo and Sábado Santo (Easter based)
- Día Nacional del Trabajo (May 1)
- Día de las Glorias Navales (May 21)
- Día Nacional de los Pueblos Indígenas (winter solstice, since 2021)
- San Pedro y San Pablo (June 29, moved to Monday per Ley 19.668)
- Virgen del Carmen (July 16)
- Asunción de la Virgen (August 15)
- Independencia Nacional (September 18)
- Glorias del Ejército (September 19)
- Encuentro de Dos Mundos (October 12, moved to Monday per Ley 19.668)
- Iglesias Evangélicas y Protestantes (October 31, since 2008, moved to Friday)
- Todos los Santos (November 1)
- Inmaculada Concepción (December 8)
- Navidad (December 25)

Regional holidays are added only when a region code is configured.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache
from typing import Optional

from .base import BaseCalendar


# Region code -> (month, day, name)
REGIONAL_HOLIDAYS: dict[str, tuple[tuple[int, int, str], ...]] = {
    "XV": ((6, 7, "Asalto y Toma del Morro de Arica"),),
    "XVI": ((8, 20, "Nacimiento del Prócer de la Independencia"),),
}

# Solstice dates decreed for Día Nacional de los Pueblos Indígenas
_INDIGENOUS_PEOPLES_DAY = {
    2021: date(2021, 6, 21),
    2022: date(2022, 6, 21),
    2023: date(2023, 6, 21),
    2024: date(2024, 6, 20),
    2025: date(2025, 6, 20),
    2026: date(2026, 6, 21),
    2027: date(2027, 6, 21),
}


def _calculate_easter(year: int) -> date:
    """Easter Sunday by the Anonymous Gregorian algorithm."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _move_to_monday(holiday: date) -> date:
    """
    Ley 19.668: Tuesday to Thursday move back to the preceding Monday,
    Friday moves forward to the following Monday.
    """
    weekday = holiday.weekday()
    if weekday in (1, 2, 3):
        return holiday - timedelta(days=weekday)
    if weekday == 4:
        return holiday + timedelta(days=3)
    return holiday


def _evangelical_day(year: int) -> date:
    """October 31; Tuesday moves to the Friday before, Wednesday to the Friday after."""
    holiday = date(year, 10, 31)
    if holiday.weekday() == 1:
        return holiday - timedelta(days=4)
    if holiday.weekday() == 2:
        return holiday + timedelta(days=2)
    return holiday


@lru_cache(maxsize=64)
def national_holidays(year: int) -> dict[date, str]:
    """National holidays of ``year`` keyed by date."""
    easter = _calculate_easter(year)
    table = {
        date(year, 1, 1): "Año Nuevo",
        easter - timedelta(days=2): "Viernes Santo",
        easter - timedelta(days=1): "Sábado Santo",
        date(year, 5, 1): "Día Nacional del Trabajo",
        date(year, 5, 21): "Día de las Glorias Navales",
        _move_to_monday(date(year, 6, 29)): "San Pedro y San Pablo",
        date(year, 7, 16): "Día de la Virgen del Carmen",
        date(year, 8, 15): "Asunción de la Virgen",
        date(year, 9, 18): "Independencia Nacional",
        date(year, 9, 19): "Día de las Glorias del Ejército",
        _move_to_monday(date(year, 10, 12)): "Encuentro de Dos Mundos",
        date(year, 11, 1): "Día de Todos los Santos",
        date(year, 12, 8): "Inmaculada Concepción",
        date(year, 12, 25): "Navidad",
    }
    if year >= 2021:
        table[_INDIGENOUS_PEOPLES_DAY.get(year, date(year, 6, 21))] = (
            "Día Nacional de los Pueblos Indígenas"
        )
    if year >= 2008:
        table[_evangelical_day(year)] = "Día de las Iglesias Evangélicas y Protestantes"
    return table


@dataclass
class ChileCalendar(BaseCalendar):
    """
    Chilean national holidays, plus regional ones when a region is set.

    Election days and one-off holidays decreed by law go in
    ``extra_holidays``; national names win when both fall on one date.
    """

    region: Optional[str] = None
    extra_holidays: frozenset[date] = field(default_factory=frozenset)

    def holiday_name(self, d: date) -> Optional[str]:
        name = national_holidays(d.year).get(d)
        if name is not None:
            return name
        if self.region:
            for month, day, regional in REGIONAL_HOLIDAYS.get(self.region.upper(), ()):
                if (d.month, d.day) == (month, day):
                    return regional
        if d in self.extra_holidays:
            return "Feriado legal"
        return None

    def holidays_for_year(self, year: int) -> list[tuple[date, str]]:
        """Every holiday of ``year`` as (date, name), sorted by date."""
        table = dict(national_holidays(year))
        for month, day, regional in REGIONAL_HOLIDAYS.get((self.region or "").upper(), ()):
            table.setdefault(date(year, month, day), regional)
        for extra in self.extra_holidays:
            if extra.year == year:
                table.setdefault(extra, "Feriado legal")
        return sorted(table.items())
