"""
Timetable generator - main orchestration layer.

This module provides the high-level API for generating timetables,
combining data loading, solving and committing into a single flow.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings

from .commit import commit_generation
from .data_loader import load_generation_context
from .demand import build_subject_demands
from .errors import InvalidCurriculum
from .feasibility import run_preflight
from .guard import generation_guard
from .solver import solve_timetable
from .teacher_calendar import TeacherCalendar
from .template import resolve_template, teachable_cells
from .types import GenerationContext, GenerationResult, TeacherCommitment


logger = logging.getLogger(__name__)


def generate_timetable(
    db: Session,
    section_id: int,
    session_id: int,
    template_id: Optional[int] = None,
    node_budget: Optional[int] = None,
) -> GenerationResult:
    """
    Generate and store the weekly timetable for one section.

    main entry point for timetable generation. This function:
    1. Rejects a second in-flight request for the same section/session
    2. Loads the template, curriculum, teachers and calendar snapshot
    3. Runs the feasibility checks and the solver
    4. Commits the result, re-validating against the live calendar

    Args:
        db: Database session
        section_id: The section to generate for
        session_id: The academic session
        template_id: Explicit template, else the default one
        node_budget: Search budget, defaults to settings.SOLVER_NODE_BUDGET

    Returns:
        GenerationResult containing:
        - assignments: pinned and generated cells, in day/slot order
        - warnings: soft-rule violations and unplaced demand
        - cell_states: final state of every teachable cell

    Raises:
        InvalidTemplate, InvalidCurriculum, NoQualifiedTeacher, Infeasible: fix inputs first
        GenerationInProgress, StaleCalendar: safe to retry
        ResourceNotFound, SessionNotEditable

    Example:
        from app.services.scheduling import generate_timetable

        result = generate_timetable(db, section_id=3, session_id=1)
        for warning in result.warnings:
            print(warning.kind, warning.message)
    """
    with generation_guard.acquire(section_id, session_id):
        context = load_generation_context(db, section_id, session_id, template_id)
        result = generate_timetable_from_context(context, node_budget=node_budget)
        commit_generation(db, context, result)
    return result


def generate_timetable_from_context(
    context: GenerationContext,
    node_budget: Optional[int] = None,
) -> GenerationResult:
    """
    Generate a timetable from a pre-loaded context.

    Useful for testing or when context is already available. Nothing is
    written; the caller decides whether to commit.
    """
    if node_budget is None:
        node_budget = settings.SOLVER_NODE_BUDGET

    grid = resolve_template(context.template, context.working_days)
    demands = build_subject_demands(context.curriculum, context.teachers)
    if not demands and not context.pinned:
        raise InvalidCurriculum(
            f"No subjects configured for section {context.section_id}",
            section_id=context.section_id,
        )

    # pinned teachers are busy in their own cells even if the caller left them out
    pinned_commitments = [
        TeacherCommitment(
            teacher_id=p.teacher_id,
            day=p.day,
            slot_number=p.slot_number,
            section_id=context.section_id,
        )
        for p in context.pinned
        if p.teacher_id is not None
    ]
    calendar = TeacherCalendar(list(context.commitments) + pinned_commitments)

    pinned_keys = {p.key for p in context.pinned}
    open_cells = [c for c in teachable_cells(grid) if c.key not in pinned_keys]
    remaining = {}
    for demand in demands:
        pinned_count = sum(1 for p in context.pinned if p.subject_id == demand.subject_id)
        remaining[demand.subject_id] = max(demand.required_weekly_periods - pinned_count, 0)

    logger.info(
        f"Generating section {context.section_id} session {context.session_id}: "
        f"{len(demands)} subjects, {sum(remaining.values())} periods to place "
        f"in {len(open_cells)} open slots"
    )

    run_preflight(demands, remaining, open_cells, calendar)

    return solve_timetable(
        section_id=context.section_id,
        session_id=context.session_id,
        grid=grid,
        demands=demands,
        rules=context.template.generation_rules,
        calendar=calendar,
        pinned=context.pinned,
        node_budget=node_budget,
        instructional_days=context.instructional_days,
    )
