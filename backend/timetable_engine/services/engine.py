from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from time import perf_counter

from timetable_engine.core.config import get_settings
from timetable_engine.core.exceptions import UnknownReferenceError
from timetable_engine.schemas.conflict import ConflictSeverity
from timetable_engine.schemas.editor import MoveSuggestion
from timetable_engine.schemas.generator import GenerationResult, GenerationStats, SearchBudget
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.requirement import Requirement, RequirementViolation
from timetable_engine.schemas.schedule import Assignment, Schedule
from timetable_engine.services.conflict_service import ConflictService, detect_conflicts
from timetable_engine.services.partitioning import partition_requirements
from timetable_engine.services.scheduler import BacktrackingScheduler, SolveOutcome
from timetable_engine.services.validation import ensure_valid, validate_requirements

logger = logging.getLogger(__name__)


def default_search_budget() -> SearchBudget:
    settings = get_settings()
    return SearchBudget(
        max_backtracks=settings.default_max_backtracks,
        max_retries_per_task=settings.default_max_retries_per_task,
    )


def validate(
    requirements: list[Requirement],
    master_data: MasterData,
    pinned: list[Assignment] | None = None,
) -> list[RequirementViolation]:
    return validate_requirements(requirements, master_data, pinned)


def _solve_partition(
    requirements: list[Requirement],
    *,
    master_data: MasterData,
    budget: SearchBudget,
    schedule_id: str,
    pinned: list[Assignment],
    cancel_event: threading.Event | None,
) -> SolveOutcome:
    scheduler = BacktrackingScheduler(
        requirements=requirements,
        master_data=master_data,
        budget=budget,
        schedule_id=schedule_id,
        pinned=pinned,
        cancel_event=cancel_event,
    )
    return scheduler.solve()


def generate(
    requirements: list[Requirement],
    master_data: MasterData,
    budget: SearchBudget | None = None,
    *,
    schedule_id: str = "schedule",
    schedule_name: str | None = None,
    pinned: list[Assignment] | None = None,
    cancel_event: threading.Event | None = None,
    parallel: bool | None = None,
) -> GenerationResult:
    """Validate the input, then search for a conflict-free schedule.

    Infeasible input is not an error: the result carries status ``partial`` and
    lists every unplaced slot unit in ``unmet``. ``complete`` means nothing is
    unmet and no blocking conflict remains. Invalid input, including duplicate or
    mutually conflicting pinned assignments, raises ``InvalidRequirementError``
    before any search starts.
    """
    settings = get_settings()
    budget = budget or default_search_budget()
    parallel = settings.solver_parallel_partitions if parallel is None else parallel
    pinned = list(pinned or [])
    started = perf_counter()

    logger.info(
        "SCHEDULE GENERATION START | schedule_id=%s | requirements=%s | pinned=%s | max_backtracks=%s | "
        "max_retries_per_task=%s | parallel=%s",
        schedule_id,
        len(requirements),
        len(pinned),
        budget.max_backtracks,
        budget.max_retries_per_task,
        parallel,
    )
    ensure_valid(requirements, master_data, pinned)

    partitions = partition_requirements(requirements, master_data) if parallel else [list(requirements)]
    if not partitions:
        partitions = [[]]

    solve_kwargs = {
        "master_data": master_data,
        "budget": budget,
        "schedule_id": schedule_id,
        "pinned": pinned,
        "cancel_event": cancel_event,
    }
    if parallel and len(partitions) > 1:
        workers = max(1, min(settings.solver_max_workers, len(partitions)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="timetable-solver") as pool:
            futures = [pool.submit(_solve_partition, group, **solve_kwargs) for group in partitions]
            outcomes = [future.result() for future in futures]
    else:
        outcomes = [_solve_partition(group, **solve_kwargs) for group in partitions]

    pinned_assignments = outcomes[0].pinned
    generated = [item for outcome in outcomes for item in outcome.generated]
    unmet = [item for outcome in outcomes for item in outcome.unmet]
    schedule = Schedule(id=schedule_id, name=schedule_name, assignments=tuple(pinned_assignments + generated))
    conflicts = detect_conflicts(schedule.assignments, master_data)

    cancelled = any(outcome.cancelled for outcome in outcomes)
    if cancelled:
        status = "cancelled"
    elif unmet or any(item.severity == ConflictSeverity.blocking for item in conflicts):
        status = "partial"
    else:
        status = "complete"

    runtime_ms = int((perf_counter() - started) * 1000)
    stats = GenerationStats(
        required_tasks=sum(outcome.required_tasks for outcome in outcomes),
        placed_tasks=len(generated),
        pinned_tasks=sum(outcome.pinned_tasks for outcome in outcomes),
        unmet_tasks=len(unmet),
        backtracks=sum(outcome.backtracks for outcome in outcomes),
        partitions=len(partitions),
        budget_exhausted=any(outcome.budget_exhausted for outcome in outcomes),
        runtime_ms=runtime_ms,
    )
    log = logger.warning if unmet else logger.info
    log(
        "SCHEDULE GENERATION COMPLETE | schedule_id=%s | status=%s | placed=%s | unmet=%s | conflicts=%s | "
        "backtracks=%s | partitions=%s | runtime_ms=%s",
        schedule_id,
        status,
        stats.placed_tasks,
        stats.unmet_tasks,
        len(conflicts),
        stats.backtracks,
        stats.partitions,
        runtime_ms,
    )
    return GenerationResult(status=status, schedule=schedule, unmet=unmet, conflicts=conflicts, stats=stats)


def suggest_moves(
    schedule: Schedule,
    assignment_id: str,
    master_data: MasterData,
    limit: int | None = None,
) -> list[MoveSuggestion]:
    if schedule.find(assignment_id) is None:
        raise UnknownReferenceError("Assignment", assignment_id)
    limit = limit or get_settings().suggestion_limit
    return ConflictService(schedule.assignments, master_data).suggest_moves(assignment_id, limit=limit)
