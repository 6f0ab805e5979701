"""
Timetable solver using most-constrained-first search with backtracking.

Strategy:
1. Place the fixed slots from subject preferences; the search never revisits them
2. Pick the open cell with the fewest valid (subject, teacher) pairs
3. Try clean candidates first, then leaving the cell free while there is
   spare capacity, then candidates that break a soft rule or a preference
4. Forward-check remaining demand after every placement, counting only
   non-adjacent cells when double periods are off, and backtrack on a dead end
5. If the search runs out of options or node budget, keep the best partial
   timetable and report what could not be placed
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .academic_calendar import day_reliability, short_weekdays
from .constraints import ConstraintSet, Placement
from .teacher_calendar import TeacherCalendar
from .template import teachable_cells
from .types import (
    CellState,
    GenerationResult,
    GenerationRules,
    ScheduleCell,
    SlotAssignment,
    SlotKind,
    SubjectDemand,
)
from .warning_collector import WarningCollector


logger = logging.getLogger(__name__)


DEFAULT_NODE_BUDGET = 5000
LEAVE_FREE = None  # candidate meaning "no period in this cell"

Candidate = Optional[tuple[int, int]]


class SearchOutcome(str, Enum):
    COMPLETE = "complete"
    EXHAUSTED = "exhausted"
    BUDGET = "budget"


@dataclass
class _Frame:
    """One decision on the search stack: a cell and its ranked candidates."""
    cell: ScheduleCell
    options: list[Candidate]
    index: int = 0

    @property
    def current(self) -> Candidate:
        return self.options[self.index]


class TimetableSolver:
    """
    Constraint satisfaction solver for one section's weekly timetable.

    Pinned cells are placed up front and never touched. Every tentative
    booking goes through the calendar so other sections' commitments and
    this run's own placements are checked the same way.
    """

    def __init__(
        self,
        section_id: int,
        grid: dict[int, list[ScheduleCell]],
        demands: list[SubjectDemand],
        rules: GenerationRules,
        calendar: TeacherCalendar,
        pinned: Optional[list[SlotAssignment]] = None,
        node_budget: int = DEFAULT_NODE_BUDGET,
        session_id: int = 0,
        instructional_days: Optional[dict[int, int]] = None,
    ):
        self.section_id = section_id
        self.session_id = session_id
        self.grid = grid
        self.calendar = calendar
        self.instructional_days = instructional_days or {}
        lunch = next((c.slot_number for cells in grid.values() for c in cells if c.kind == SlotKind.LUNCH), None)
        self.constraints = ConstraintSet(
            rules,
            demands,
            list(grid),
            total_slots=max((len(cells) for cells in grid.values()), default=0),
            lunch_slot=lunch,
            day_reliability=day_reliability(self.instructional_days) if self.instructional_days else None,
        )
        self.node_budget = node_budget
        self.collector = WarningCollector()

        self.pinned = {p.key: p for p in (pinned or [])}
        self.cells = teachable_cells(grid)
        self._cells_by_key = {c.key: c for c in self.cells}
        self.open_cells = [c for c in self.cells if c.key not in self.pinned]

        self.demands = demands
        self.required = {d.subject_id: d.required_weekly_periods for d in demands}
        self._initial_remaining = {}
        for subject_id, required in self.required.items():
            pinned_count = sum(1 for p in self.pinned.values() if p.subject_id == subject_id)
            self._initial_remaining[subject_id] = max(required - pinned_count, 0)

        self.placed: Placement = {}
        self.remaining: dict[int, int] = {}
        self.visited: set[tuple[int, int]] = set()
        self.states: dict[tuple[int, int], CellState] = {}
        self.fixed: dict[tuple[int, int], tuple[int, int]] = {}
        self._reset_state()
        self.fixed = self._place_fixed_slots()

        self.nodes = 0
        self._best: dict[tuple[int, int], tuple[int, int]] = dict(self.fixed)
        self._best_count = len(self.fixed)

    def solve(self) -> GenerationResult:
        """
        Main solving method.

        Returns:
            GenerationResult with pinned and generated assignments, cell
            states and any warnings
        """
        outcome = self._search()

        if outcome == SearchOutcome.BUDGET:
            logger.warning(
                f"Section {self.section_id}: node budget {self.node_budget} exhausted, "
                f"keeping best partial ({self._best_count} placements)"
            )
            self._restore_best()
            self.collector.budget_exhausted(self.nodes, self.node_budget)
        elif outcome == SearchOutcome.EXHAUSTED:
            logger.info(
                f"Section {self.section_id}: no complete timetable satisfies the hard rules, "
                f"completing best partial ({self._best_count} placements)"
            )
            self._restore_best()
            self._complete_greedily()

        return self._build_result(budget_exhausted=outcome == SearchOutcome.BUDGET)

    # -- search ----------------------------------------------------------------

    def _search(self) -> SearchOutcome:
        stack: list[_Frame] = []

        while True:
            if self._total_remaining() == 0:
                return SearchOutcome.COMPLETE
            if self.nodes >= self.node_budget:
                return SearchOutcome.BUDGET

            frame = self._expand()
            if frame is not None:
                stack.append(frame)
                self._apply(frame.cell, frame.current)
                continue

            if not self._backtrack(stack):
                return SearchOutcome.EXHAUSTED

    def _expand(self) -> Optional[_Frame]:
        """Open a new decision, or None when the current state is a dead end."""
        unvisited = self._unvisited()
        rooms = self._rooms(unvisited)
        if self._dead_end(unvisited, rooms):
            return None

        selected = self._select_cell()
        if selected is None:
            return None

        cell, pairs = selected
        tight = {s for s, room in rooms.items() if room <= self.remaining[s]}
        options = self._rank_options(cell, pairs, tight)
        if not options:
            return None

        self.nodes += 1
        return _Frame(cell=cell, options=options)

    def _backtrack(self, stack: list[_Frame]) -> bool:
        """Move the deepest frame with options left to its next candidate."""
        while stack:
            frame = stack[-1]
            self._undo(frame.cell, frame.current)
            frame.index += 1
            if frame.index < len(frame.options):
                self.nodes += 1
                self._apply(frame.cell, frame.current)
                return True
            stack.pop()
        return False

    def _rooms(self, unvisited: list[ScheduleCell]) -> dict[int, int]:
        """Periods each subject with demand left can still fit into the unvisited cells."""
        return {
            subject_id: self.constraints.room(self.calendar, self.placed, self.remaining, unvisited, subject_id)
            for subject_id in sorted(self.remaining)
            if self.remaining[subject_id] > 0
        }

    def _dead_end(self, unvisited: list[ScheduleCell], rooms: dict[int, int]) -> bool:
        """Forward check: can the unvisited cells still absorb the remaining demand?"""
        if self._total_remaining() > len(unvisited):
            return True
        return any(room < self.remaining[subject_id] for subject_id, room in rooms.items())

    def _select_cell(self) -> Optional[tuple[ScheduleCell, list[tuple[int, int]]]]:
        """Most constrained unvisited cell; ties go to the earliest (day, slot)."""
        best = None
        for cell in self._unvisited():
            pairs = self.constraints.hard_candidates(self.calendar, self.placed, self.remaining, cell)
            if best is None or len(pairs) < len(best[1]):
                best = (cell, pairs)
                if not pairs:
                    break
        return best

    def _rank_options(
        self,
        cell: ScheduleCell,
        pairs: list[tuple[int, int]],
        tight: Optional[set[int]] = None,
    ) -> list[Candidate]:
        """
        Order candidates for a cell.

        Subjects whose remaining demand needs every cell they still fit go
        first. Then come clean pairs, then leaving the cell free (only while
        the remaining cells outnumber the remaining demand), then pairs that
        break a soft rule or land on an avoided day or slot.
        """
        tight = tight or set()
        forced = []
        clean = []
        costly = []
        for subject_id, teacher_id in pairs:
            key = self._score(cell, subject_id, teacher_id)
            violations, avoided, spread = key[1], key[2], key[3]
            if subject_id in tight:
                forced.append((key, (subject_id, teacher_id)))
            elif violations == 0 and avoided == 0 and spread == 0:
                clean.append((key, (subject_id, teacher_id)))
            else:
                costly.append((key, (subject_id, teacher_id)))

        options: list[Candidate] = [pair for _, pair in sorted(forced)]
        options.extend(pair for _, pair in sorted(clean))
        if self._slack() > 0:
            options.append(LEAVE_FREE)
        options.extend(pair for _, pair in sorted(costly))
        return options

    def _score(self, cell: ScheduleCell, subject_id: int, teacher_id: int) -> tuple:
        """Sort key for a candidate; lower is better."""
        urgency = self._urgency(subject_id)
        constraints = self.constraints
        violations = len(constraints.soft_violations(
            self.calendar, self.placed, cell, subject_id, teacher_id
        ))
        avoided = constraints.avoided(cell, subject_id)
        spread = constraints.distribution_penalty(self.placed, cell, subject_id, urgency)
        preferred = constraints.preferred(cell, subject_id)
        bonus = constraints.double_period_bonus(self.placed, cell, subject_id, urgency)
        gap = 0
        if constraints.rules.balance_subject_distribution:
            gap = constraints.min_day_gap(self.placed, subject_id, cell.day)
        reliability = constraints.reliability(subject_id, cell.day)
        priority = constraints.preferences(subject_id).priority
        return (
            -urgency, violations, avoided, spread, -preferred, -bonus, -gap,
            -reliability, -priority, subject_id, teacher_id,
        )

    def _urgency(self, subject_id: int) -> float:
        """Remaining periods per working day that still has an open cell."""
        left = self.remaining.get(subject_id, 0)
        days = len({cell.day for cell in self._unvisited()})
        return left / days if days else float(left)

    # -- state -----------------------------------------------------------------

    def _apply(self, cell: ScheduleCell, option: Candidate) -> None:
        self.visited.add(cell.key)
        if option is LEAVE_FREE:
            return
        self._place(cell, option[0], option[1])
        count = len(self.placed) - len(self.pinned)
        if count > self._best_count:
            self._best_count = count
            self._best = {k: v for k, v in self.placed.items() if k not in self.pinned}

    def _undo(self, cell: ScheduleCell, option: Candidate) -> None:
        self.visited.discard(cell.key)
        if option is LEAVE_FREE:
            return
        subject_id, teacher_id = option
        del self.placed[cell.key]
        self.remaining[subject_id] += 1
        self.calendar.release(teacher_id, cell.day, cell.slot_number)
        self.states[cell.key] = CellState.UNFILLED

    def _place(self, cell: ScheduleCell, subject_id: int, teacher_id: int) -> None:
        self.placed[cell.key] = (subject_id, teacher_id)
        self.remaining[subject_id] -= 1
        self.calendar.commit(teacher_id, cell.day, cell.slot_number, self.section_id)
        self.states[cell.key] = CellState.TENTATIVE

    def _reset_state(self) -> None:
        self.calendar.reset()
        self.placed = {key: (p.subject_id, p.teacher_id) for key, p in self.pinned.items()}
        self.remaining = dict(self._initial_remaining)
        self.visited = set()
        self.states = {
            cell.key: CellState.COMMITTED if cell.key in self.pinned else CellState.UNFILLED
            for cell in self.cells
        }
        for key, (subject_id, teacher_id) in sorted(self.fixed.items()):
            self._place(self._cells_by_key[key], subject_id, teacher_id)
            self.visited.add(key)

    def _place_fixed_slots(self) -> dict[tuple[int, int], tuple[int, int]]:
        """
        Book each subject's fixed (day, slot) wishes before the search, highest
        priority first. A fixed slot is skipped when the cell is not an open
        teaching cell or breaks a hard rule; soft rules do not apply.
        """
        fixed = {}
        ordered = sorted(
            self.demands,
            key=lambda d: (-d.preferences.priority, -d.required_weekly_periods, d.subject_id),
        )
        for demand in ordered:
            for day, slot in demand.preferences.fixed_slots:
                if self.remaining.get(demand.subject_id, 0) <= 0:
                    break
                cell = self._cells_by_key.get((day, slot))
                if cell is None or cell.key in self.placed:
                    logger.info(
                        f"Section {self.section_id}: fixed slot day {day} slot {slot} "
                        f"for subject {demand.subject_id} is not an open teaching cell"
                    )
                    continue
                teachers = [
                    t for t in demand.qualified_teacher_ids
                    if self.constraints.is_hard_valid(
                        self.calendar, self.placed, self.remaining, cell, demand.subject_id, t
                    )
                ]
                if not teachers:
                    logger.info(
                        f"Section {self.section_id}: no free teacher for fixed slot "
                        f"day {day} slot {slot} of subject {demand.subject_id}"
                    )
                    continue
                teacher_id = min(teachers, key=lambda t: self._score(cell, demand.subject_id, t))
                self._place(cell, demand.subject_id, teacher_id)
                self.visited.add(cell.key)
                fixed[cell.key] = (demand.subject_id, teacher_id)
        return fixed

    def _restore_best(self) -> None:
        self._reset_state()
        for key in sorted(self._best):
            if key in self.placed:
                continue
            subject_id, teacher_id = self._best[key]
            self._place(self._cells_by_key[key], subject_id, teacher_id)

    def _complete_greedily(self) -> None:
        """
        Fill what the search left open, one cell at a time, without
        backtracking. Any valid pair is accepted, soft rules are reported later.
        """
        progress = True
        while progress and self._total_remaining() > 0:
            progress = False
            for cell in self.open_cells:
                if cell.key in self.placed:
                    continue
                pairs = self.constraints.hard_candidates(self.calendar, self.placed, self.remaining, cell)
                if not pairs:
                    continue
                subject_id, teacher_id = min(pairs, key=lambda p: self._score(cell, p[0], p[1]))
                self._place(cell, subject_id, teacher_id)
                progress = True
                if self._total_remaining() == 0:
                    break

    def _unvisited(self) -> list[ScheduleCell]:
        return [c for c in self.open_cells if c.key not in self.visited]

    def _total_remaining(self) -> int:
        return sum(self.remaining.values())

    def _slack(self) -> int:
        return len(self._unvisited()) - self._total_remaining()

    # -- result ----------------------------------------------------------------

    def _build_result(self, budget_exhausted: bool) -> GenerationResult:
        for day, count in short_weekdays(self.instructional_days, self.grid):
            self.collector.fewer_instructional_days(day, count)

        new_keys = {key for key in self.placed if key not in self.pinned}
        unmet = {s: left for s, left in self.remaining.items() if left > 0}

        for subject_id in sorted(unmet):
            self.collector.unfilled(subject_id, unmet[subject_id], self.required[subject_id])

        for cell in self.open_cells:
            if cell.key in new_keys:
                self.states[cell.key] = CellState.COMMITTED
            elif unmet:
                self.states[cell.key] = CellState.UNFILLABLE
                self.collector.unfillable_cell(cell.day, cell.slot_number)
            else:
                # spare capacity, left as a free period
                self.states[cell.key] = CellState.UNFILLED

        self.collector.collect_soft_violations(self.constraints, self.calendar, self.placed, new_keys)

        assignments = list(self.pinned.values())
        for key in sorted(new_keys):
            cell = self._cells_by_key[key]
            subject_id, teacher_id = self.placed[key]
            assignments.append(SlotAssignment(
                section_id=self.section_id,
                day=cell.day,
                slot_number=cell.slot_number,
                subject_id=subject_id,
                teacher_id=teacher_id,
                start_time=cell.start_time,
                end_time=cell.end_time,
            ))
        assignments.sort(key=lambda a: a.key)

        logger.info(
            f"Section {self.section_id}: placed {len(new_keys)} periods "
            f"({len(self.pinned)} pinned), {len(self.collector)} warnings, {self.nodes} nodes"
        )

        return GenerationResult(
            section_id=self.section_id,
            session_id=self.session_id,
            assignments=assignments,
            warnings=self.collector.warnings,
            cell_states=dict(self.states),
            nodes_expanded=self.nodes,
            budget_exhausted=budget_exhausted,
        )


def solve_timetable(
    section_id: int,
    session_id: int,
    grid: dict[int, list[ScheduleCell]],
    demands: list[SubjectDemand],
    rules: GenerationRules,
    calendar: TeacherCalendar,
    pinned: Optional[list[SlotAssignment]] = None,
    node_budget: int = DEFAULT_NODE_BUDGET,
    instructional_days: Optional[dict[int, int]] = None,
) -> GenerationResult:
    """
    Main entry point for solving one section's timetable.

    Args:
        section_id: section being generated
        session_id: academic session the result belongs to
        grid: resolved cells per working day
        demands: per-subject weekly demand with qualified teachers
        rules: generation rules from the template
        calendar: teacher calendar snapshot; tentative bookings are added to it
        pinned: locked cells of this section, returned unchanged
        node_budget: maximum node expansions before giving up on a full search
        instructional_days: teaching dates per weekday over the session, if known

    Returns:
        GenerationResult
    """
    solver = TimetableSolver(
        section_id=section_id,
        grid=grid,
        demands=demands,
        rules=rules,
        calendar=calendar,
        pinned=pinned,
        node_budget=node_budget,
        session_id=session_id,
        instructional_days=instructional_days,
    )
    return solver.solve()
