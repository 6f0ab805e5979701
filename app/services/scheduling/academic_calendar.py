"""
Academic calendar analysis.

Counts how many real teaching dates each weekday gets over a session once
weekly off days and holidays are taken out. Weekdays that lose many dates to
holidays are flagged, and heavy subjects lean towards the reliable ones.
"""

from datetime import date, timedelta
from typing import Iterable, Optional


# a weekday is flagged below this share of the busiest weekday's dates
FEWER_DAYS_THRESHOLD = 0.8


def weekday_of(d: date) -> int:
    """Weekday number with 0=Sunday."""
    return (d.weekday() + 1) % 7


def parse_holidays(values: Optional[Iterable]) -> set[date]:
    holidays = set()
    for value in values or []:
        holidays.add(value if isinstance(value, date) else date.fromisoformat(str(value)))
    return holidays


def count_instructional_days(
    start: date,
    end: date,
    weekly_off_days: Iterable[int],
    holidays: Iterable[date] = (),
) -> dict[int, int]:
    """Teaching dates per weekday between start and end, both inclusive."""
    off = set(weekly_off_days or [])
    skipped = set(holidays)
    counts: dict[int, int] = {}

    current = start
    while current <= end:
        weekday = weekday_of(current)
        if weekday not in off and current not in skipped:
            counts[weekday] = counts.get(weekday, 0) + 1
        current += timedelta(days=1)
    return counts


def day_reliability(counts: dict[int, int]) -> dict[int, float]:
    """
    Scale each weekday to 0.5..1.0 by its share of the busiest weekday's dates.
    An empty calendar leaves every day at 0.5.
    """
    busiest = max(counts.values(), default=0) or 1
    return {day: 0.5 + (counts.get(day, 0) / busiest) * 0.5 for day in range(7)}


def short_weekdays(counts: dict[int, int], working_days: Iterable[int]) -> list[tuple[int, int]]:
    """(weekday, dates) for working days well below the busiest weekday."""
    if not counts:
        return []
    busiest = max(counts.values())
    return [
        (day, counts.get(day, 0))
        for day in sorted(working_days)
        if counts.get(day, 0) < busiest * FEWER_DAYS_THRESHOLD
    ]
