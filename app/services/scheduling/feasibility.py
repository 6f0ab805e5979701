"""
Pre-search feasibility checks.

Cheap counting checks run first and name the subject at fault. A CP-SAT
model then checks that every subject's demand can be met at once given
teacher availability, before the backtracking search spends its budget.
Adjacency and soft rules are left to the search.
"""

import logging
from typing import Optional

from ortools.sat.python import cp_model

from app.core.config import settings

from .errors import Infeasible
from .teacher_calendar import TeacherCalendar
from .types import DAY_NAMES, ScheduleCell, SubjectDemand


logger = logging.getLogger(__name__)


def _free_teachers(demand: SubjectDemand, calendar: TeacherCalendar, cell: ScheduleCell) -> list[int]:
    return [
        t for t in demand.qualified_teacher_ids
        if calendar.is_free(t, cell.day, cell.slot_number)
    ]


def check_capacity(remaining: dict[int, int], open_cells: list[ScheduleCell]) -> None:
    """Total demand must fit in the open teachable cells."""
    total = sum(remaining.values())
    if total > len(open_cells):
        raise Infeasible(
            f"{total} periods required but only {len(open_cells)} open teachable slots",
            required=total,
            available=len(open_cells),
        )


def check_subject_coverage(
    demands: list[SubjectDemand],
    remaining: dict[int, int],
    open_cells: list[ScheduleCell],
    calendar: TeacherCalendar,
) -> None:
    """Each subject needs at least as many cells with a free qualified teacher as periods left."""
    for demand in sorted(demands, key=lambda d: d.subject_id):
        needed = remaining.get(demand.subject_id, 0)
        if needed <= 0:
            continue

        usable = [c for c in open_cells if _free_teachers(demand, calendar, c)]
        if len(usable) >= needed:
            continue

        usable_days = {c.day for c in usable}
        blocked_days = sorted({c.day for c in open_cells} - usable_days)
        day = blocked_days[0] if blocked_days else None
        where = f", no qualified teacher free on {DAY_NAMES[day]}" if day is not None else ""
        raise Infeasible(
            f"Subject {demand.subject_id} needs {needed} periods but qualified teachers "
            f"are free in only {len(usable)} slots{where}",
            subject_id=demand.subject_id,
            day=day,
            required=needed,
            available=len(usable),
        )


def check_hard_feasibility(
    demands: list[SubjectDemand],
    remaining: dict[int, int],
    open_cells: list[ScheduleCell],
    calendar: TeacherCalendar,
    time_limit_seconds: Optional[float] = None,
) -> bool:
    """
    Joint check of all subjects against teacher availability with CP-SAT.

    Returns:
        True if a placement exists, False if the solver gave up within the time limit

    Raises:
        Infeasible: no assignment can meet every subject's remaining demand
    """
    if time_limit_seconds is None:
        time_limit_seconds = settings.FEASIBILITY_TIME_LIMIT_SECONDS

    model = cp_model.CpModel()

    # x[(cell, subject)] = 1 if the subject is taught in that cell
    cell_vars: dict[tuple[int, int], list] = {}
    subject_vars: dict[int, list] = {}
    for demand in demands:
        if remaining.get(demand.subject_id, 0) <= 0:
            continue
        subject_vars[demand.subject_id] = []
        for cell in open_cells:
            if not _free_teachers(demand, calendar, cell):
                continue
            var = model.NewBoolVar(f"x_d{cell.day}_s{cell.slot_number}_sub{demand.subject_id}")
            cell_vars.setdefault(cell.key, []).append(var)
            subject_vars[demand.subject_id].append(var)

    if not subject_vars:
        return True

    for variables in cell_vars.values():
        model.AddAtMostOne(variables)

    for subject_id, variables in subject_vars.items():
        if not variables:
            raise Infeasible(
                f"Subject {subject_id} has no slot with a free qualified teacher",
                subject_id=subject_id,
            )
        model.Add(sum(variables) == remaining[subject_id])

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = time_limit_seconds
    status = solver.Solve(model)

    if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        return True

    if status == cp_model.INFEASIBLE:
        subjects = sorted(subject_vars)
        raise Infeasible(
            f"Subjects {subjects} cannot all be placed: their qualified teachers "
            f"share too few free slots",
            subject_ids=subjects,
        )

    logger.warning(
        f"Feasibility check inconclusive ({solver.StatusName(status)}) after "
        f"{time_limit_seconds}s, continuing with search"
    )
    return False


def run_preflight(
    demands: list[SubjectDemand],
    remaining: dict[int, int],
    open_cells: list[ScheduleCell],
    calendar: TeacherCalendar,
) -> None:
    """All feasibility checks in order of cost."""
    check_capacity(remaining, open_cells)
    check_subject_coverage(demands, remaining, open_cells, calendar)
    check_hard_feasibility(demands, remaining, open_cells, calendar)
