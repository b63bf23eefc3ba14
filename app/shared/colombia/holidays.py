"""Colombian public holiday calendar and working-day arithmetic.

Colombia observes 18 public holidays. Several move to the following Monday
when they fall on another weekday (Ley Emiliani), and five are computed
from Easter Sunday.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache
from typing import Optional

from dateutil.easter import easter

FIXED_HOLIDAYS = [
    (1, 1, "Año Nuevo", "civic"),
    (5, 1, "Día del Trabajo", "civic"),
    (7, 20, "Día de la Independencia", "national"),
    (8, 7, "Batalla de Boyacá", "national"),
    (12, 8, "Inmaculada Concepción", "religious"),
    (12, 25, "Navidad", "religious"),
]

MONDAY_HOLIDAYS = [
    (1, 6, "Día de los Reyes Magos", "religious"),
    (3, 19, "Día de San José", "religious"),
    (6, 29, "San Pedro y San Pablo", "religious"),
    (8, 15, "Asunción de la Virgen", "religious"),
    (10, 12, "Día de la Raza", "civic"),
    (11, 1, "Día de Todos los Santos", "religious"),
    (11, 11, "Independencia de Cartagena", "national"),
]

# (offset from Easter Sunday in days, name, moved to Monday)
EASTER_HOLIDAYS = [
    (-3, "Jueves Santo", False),
    (-2, "Viernes Santo", False),
    (39, "Ascensión del Señor", True),
    (60, "Corpus Christi", True),
    (68, "Sagrado Corazón de Jesús", True),
]

COLOMBIAN_BUSINESS_CONFIG = {
    "BUSINESS_HOURS": {"START": 8, "END": 18, "LUNCH_START": 12, "LUNCH_END": 14},
    # Sunday = 0 ... Saturday = 6; many businesses open Saturday
    "WORKING_DAYS": [1, 2, 3, 4, 5, 6],
    "TIMEZONE": "America/Bogota",
    "APPOINTMENT_DURATIONS": {"SHORT": 15, "STANDARD": 30, "LONG": 60, "EXTENDED": 120},
}


@dataclass(frozen=True)
class ColombianHoliday:
    name: str
    date: date
    type: str
    is_fixed: bool
    description: Optional[str] = None


def move_to_monday(day: date) -> date:
    """Return the same date if it is a Monday, otherwise the following Monday."""
    return day + timedelta(days=(7 - day.weekday()) % 7)


@lru_cache(maxsize=32)
def _holidays_for_year(year: int) -> tuple:
    holidays = []

    for month, day, name, kind in FIXED_HOLIDAYS:
        holidays.append(ColombianHoliday(name=name, date=date(year, month, day), type=kind, is_fixed=True))

    for month, day, name, kind in MONDAY_HOLIDAYS:
        original = date(year, month, day)
        observed = move_to_monday(original)
        description = f"Trasladado desde {original.isoformat()}" if observed != original else None
        holidays.append(
            ColombianHoliday(name=name, date=observed, type=kind, is_fixed=False, description=description)
        )

    easter_sunday = easter(year)
    for offset, name, moves in EASTER_HOLIDAYS:
        day = easter_sunday + timedelta(days=offset)
        if moves:
            day = move_to_monday(day)
        holidays.append(
            ColombianHoliday(name=name, date=day, type="religious", is_fixed=False, description="Basado en Pascua")
        )

    return tuple(sorted(holidays, key=lambda h: h.date))


def get_colombian_holidays(year: Optional[int] = None) -> list[ColombianHoliday]:
    """All observed holidays of the year, sorted by date."""
    return list(_holidays_for_year(year or date.today().year))


def is_colombian_holiday(day: date) -> bool:
    return any(h.date == day for h in _holidays_for_year(day.year))


def get_next_holiday(from_date: Optional[date] = None) -> Optional[ColombianHoliday]:
    """First holiday strictly after ``from_date`` (today by default)."""
    start = from_date or date.today()
    for holiday in _holidays_for_year(start.year):
        if holiday.date > start:
            return holiday
    next_year = _holidays_for_year(start.year + 1)
    return next_year[0] if next_year else None


def is_working_day(day: date) -> bool:
    """Monday to Friday and not a public holiday."""
    if day.weekday() >= 5:
        return False
    return not is_colombian_holiday(day)


def get_next_working_day(from_date: Optional[date] = None, include_from_date: bool = False) -> date:
    day = from_date or date.today()
    if not include_from_date:
        day += timedelta(days=1)
    while not is_working_day(day):
        day += timedelta(days=1)
    return day


def get_working_days_between(start_date: date, end_date: date) -> int:
    """Working days in [start_date, end_date)."""
    count = 0
    day = start_date
    while day < end_date:
        if is_working_day(day):
            count += 1
        day += timedelta(days=1)
    return count
