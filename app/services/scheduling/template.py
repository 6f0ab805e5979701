"""
Template resolution.
Expands a period template into the concrete cells of each working day.
"""

from datetime import time
from typing import Iterable, Optional

from .errors import InvalidTemplate
from .types import GenerationRules, ScheduleCell, SlotKind, Template


MINUTES_PER_DAY = 24 * 60

_RULE_INT_FIELDS = (
    "max_consecutive_hours_teacher",
    "max_periods_per_subject_per_day",
    "max_periods_per_teacher_per_day",
)
_RULE_BOOL_FIELDS = (
    "allow_double_periods",
    "balance_subject_distribution",
)


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM string into a time."""
    try:
        hours, minutes = (int(p) for p in value.strip().split(":"))
        return time(hours, minutes)
    except (AttributeError, ValueError) as e:
        raise InvalidTemplate(f"start_time must be HH:MM, got {value!r}") from e


def format_hhmm(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def rules_from_dict(data: Optional[dict]) -> GenerationRules:
    """
    Build GenerationRules from a template's JSON rules column.
    Missing keys fall back to defaults, unknown keys are ignored.
    """
    if not data:
        return GenerationRules()

    values = {}
    for name in _RULE_INT_FIELDS:
        if data.get(name) is None:
            continue
        try:
            number = int(data[name])
        except (TypeError, ValueError) as e:
            raise InvalidTemplate(f"{name} must be an integer, got {data[name]!r}") from e
        if number < 1:
            raise InvalidTemplate(f"{name} must be at least 1, got {number}")
        values[name] = number

    for name in _RULE_BOOL_FIELDS:
        if data.get(name) is not None:
            values[name] = bool(data[name])

    return GenerationRules(**values)


def working_days_from_off_days(weekly_off_days: Iterable[int]) -> list[int]:
    """Working days (0=Sun..6=Sat) are all weekdays not marked as off."""
    off = set(weekly_off_days or [])
    return [d for d in range(7) if d not in off]


def validate_template(template: Template) -> None:
    """Raise InvalidTemplate if the period structure is inconsistent."""
    total = template.total_slots_per_day
    if total < 1:
        raise InvalidTemplate(f"total_slots_per_day must be at least 1, got {total}")
    if template.slot_duration_minutes < 1:
        raise InvalidTemplate(
            f"slot_duration_minutes must be positive, got {template.slot_duration_minutes}"
        )

    out_of_range = sorted(s for s in template.break_slots if not 1 <= s <= total)
    if out_of_range:
        raise InvalidTemplate(
            f"Break slots {out_of_range} outside 1..{total}", break_slots=out_of_range
        )

    lunch = template.lunch_slot
    if lunch is not None:
        if not 1 <= lunch <= total:
            raise InvalidTemplate(f"Lunch slot {lunch} outside 1..{total}", lunch_slot=lunch)
        if lunch in template.break_slots:
            raise InvalidTemplate(f"Lunch slot {lunch} is also a break slot", lunch_slot=lunch)


def slot_window(template: Template, slot_number: int) -> tuple[time, time]:
    """Start/end of a slot, wrapping at midnight."""
    start = template.start_time.hour * 60 + template.start_time.minute
    start += (slot_number - 1) * template.slot_duration_minutes
    end = start + template.slot_duration_minutes
    start %= MINUTES_PER_DAY
    end %= MINUTES_PER_DAY
    return time(start // 60, start % 60), time(end // 60, end % 60)


def slot_kind(template: Template, slot_number: int) -> SlotKind:
    if slot_number == template.lunch_slot:
        return SlotKind.LUNCH
    if slot_number in template.break_slots:
        return SlotKind.BREAK
    return SlotKind.REGULAR


def resolve_template(template: Template, working_days: list[int]) -> dict[int, list[ScheduleCell]]:
    """
    Expand a template into ordered cells for each working day.

    Returns:
        day -> cells in slot order, each tagged REGULAR (teachable) or BREAK/LUNCH
    """
    validate_template(template)
    if not working_days:
        raise InvalidTemplate("Session has no working days")

    windows = {n: slot_window(template, n) for n in range(1, template.total_slots_per_day + 1)}

    grid = {}
    for day in sorted(set(working_days)):
        grid[day] = [
            ScheduleCell(
                day=day,
                slot_number=n,
                kind=slot_kind(template, n),
                start_time=windows[n][0],
                end_time=windows[n][1],
            )
            for n in range(1, template.total_slots_per_day + 1)
        ]
    return grid


def teachable_cells(grid: dict[int, list[ScheduleCell]]) -> list[ScheduleCell]:
    """Flatten a resolved grid to its teachable cells, in day then slot order."""
    return [cell for day in sorted(grid) for cell in grid[day] if cell.teachable]
