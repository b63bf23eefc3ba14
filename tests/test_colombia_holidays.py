from datetime import date

from app.shared.colombia import (
    get_colombian_holidays,
    get_next_holiday,
    get_next_working_day,
    get_working_days_between,
    is_colombian_holiday,
    is_working_day,
    move_to_monday,
)


def test_move_to_monday():
    assert move_to_monday(date(2024, 1, 8)) == date(2024, 1, 8)  # already Monday
    assert move_to_monday(date(2024, 1, 6)) == date(2024, 1, 8)  # Saturday


def test_fixed_holidays():
    for day in (date(2024, 1, 1), date(2024, 5, 1), date(2024, 7, 20), date(2024, 8, 7), date(2024, 12, 8), date(2024, 12, 25)):
        assert is_colombian_holiday(day), day


def test_emiliani_holidays_move_to_monday():
    # Epiphany 2024 falls on a Saturday
    assert is_colombian_holiday(date(2024, 1, 8))
    assert not is_colombian_holiday(date(2024, 1, 6))


def test_easter_based_holidays_2024():
    # Easter Sunday 2024 is March 31
    assert is_colombian_holiday(date(2024, 3, 28))  # Holy Thursday
    assert is_colombian_holiday(date(2024, 3, 29))  # Good Friday
    assert is_colombian_holiday(date(2024, 5, 13))  # Ascension, moved
    assert is_colombian_holiday(date(2024, 6, 3))  # Corpus Christi, moved
    assert is_colombian_holiday(date(2024, 6, 10))  # Sacred Heart, moved


def test_holidays_are_sorted():
    holidays = get_colombian_holidays(2024)
    dates = [h.date for h in holidays]
    assert dates == sorted(dates)
    assert all(h.date.year == 2024 for h in holidays)


def test_next_holiday_crosses_year_end():
    holiday = get_next_holiday(date(2024, 12, 26))
    assert holiday.date == date(2025, 1, 1)


def test_working_days():
    assert is_working_day(date(2024, 1, 2))
    assert not is_working_day(date(2024, 1, 1))  # holiday
    assert not is_working_day(date(2024, 1, 6))  # Saturday


def test_next_working_day():
    assert get_next_working_day(date(2024, 3, 27)) == date(2024, 4, 1)
    assert get_next_working_day(date(2024, 1, 2), include_from_date=True) == date(2024, 1, 2)


def test_working_days_between_excludes_end():
    assert get_working_days_between(date(2024, 1, 1), date(2024, 1, 8)) == 4
    assert get_working_days_between(date(2024, 1, 2), date(2024, 1, 2)) == 0
