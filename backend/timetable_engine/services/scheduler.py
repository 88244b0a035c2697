from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field

from timetable_engine.schemas.generator import SearchBudget
from timetable_engine.schemas.master_data import MasterData, Room, TimeSlot
from timetable_engine.schemas.requirement import Requirement, RequirementTask
from timetable_engine.schemas.schedule import Assignment
from timetable_engine.services.constraint_index import ConstraintIndex, ResourceKind

logger = logging.getLogger(__name__)


def assignment_id_for(schedule_id: str, requirement_id: str, ordinal: int) -> str:
    return f"{schedule_id}:{requirement_id}:{ordinal}"


@dataclass(frozen=True)
class PlacementOption:
    time_slot_id: str
    room_id: str


@dataclass(frozen=True)
class SlotTask:
    requirement: Requirement
    ordinal: int
    assignment_id: str

    def as_requirement_task(self) -> RequirementTask:
        return RequirementTask.from_requirement(self.requirement, self.ordinal)


@dataclass(frozen=True)
class PlacementFrame:
    """One decision on the search stack. `assignment` is None for a task given up as unmet."""

    task_index: int
    options: tuple[PlacementOption, ...]
    cursor: int
    assignment: Assignment | None


@dataclass
class BacktrackEpisode:
    task_index: int
    snapshot: list[PlacementFrame]
    retries: int = 0


@dataclass
class SolveOutcome:
    generated: list[Assignment]
    unmet: list[RequirementTask]
    pinned: list[Assignment]
    pinned_tasks: int = 0
    required_tasks: int = 0
    backtracks: int = 0
    budget_exhausted: bool = False
    cancelled: bool = False
    requirement_order: list[str] = field(default_factory=list)


class BacktrackingScheduler:
    """Places requirement periods one slot unit at a time with bounded backtracking.

    Requirements are expanded into slot tasks and processed most constrained
    first. Every candidate check is a constraint-index lookup; the index and the
    placement stack are updated together so the in-progress schedule is always
    the list of placed frames.

    Spending the global backtrack budget does not end the run: every remaining
    task still gets a greedy first-fit attempt without backtracking, and only the
    tasks that find no free cell are reported as unmet.
    """

    def __init__(
        self,
        *,
        requirements: list[Requirement],
        master_data: MasterData,
        budget: SearchBudget,
        schedule_id: str,
        pinned: list[Assignment] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.requirements = list(requirements)
        self.master_data = master_data
        self.budget = budget
        self.schedule_id = schedule_id
        self.cancel_event = cancel_event
        self.pinned = [item.model_copy(update={"schedule_id": schedule_id}) for item in (pinned or [])]

        self.index = ConstraintIndex.build(self.pinned)
        self.slots_by_teacher = self._build_teacher_slots()
        self.rooms_by_requirement = self._build_requirement_rooms()
        self.pinned_count_by_requirement = self._count_pinned()
        self.requirement_order = self._requirement_priority_order()
        self.tasks = self._build_tasks()
        self.backtracks = 0
        self.budget_exhausted = False

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _build_teacher_slots(self) -> dict[str, tuple[TimeSlot, ...]]:
        slots: dict[str, tuple[TimeSlot, ...]] = {}
        for requirement in self.requirements:
            if requirement.teacher_id in slots:
                continue
            teacher = self.master_data.teacher_by_id[requirement.teacher_id]
            slots[teacher.id] = tuple(
                slot for slot in self.master_data.ordered_time_slots if teacher.is_available(slot.id)
            )
        return slots

    def _build_requirement_rooms(self) -> dict[str, tuple[Room, ...]]:
        return {
            requirement.id: tuple(
                self.master_data.eligible_rooms(
                    self.master_data.subject_by_id[requirement.subject_id],
                    self.master_data.class_by_id[requirement.class_id],
                )
            )
            for requirement in self.requirements
        }

    def _count_pinned(self) -> dict[str, int]:
        by_id = {requirement.id: requirement for requirement in self.requirements}
        by_triple = {
            (requirement.class_id, requirement.subject_id, requirement.teacher_id): requirement.id
            for requirement in self.requirements
        }
        counts: dict[str, int] = defaultdict(int)
        for item in self.pinned:
            requirement_id = item.requirement_id if item.requirement_id in by_id else None
            if requirement_id is None:
                requirement_id = by_triple.get((item.class_id, item.subject_id, item.teacher_id))
            if requirement_id is not None:
                counts[requirement_id] += 1
        return counts

    def _remaining_periods(self, requirement: Requirement) -> int:
        return max(0, requirement.periods_per_week - self.pinned_count_by_requirement.get(requirement.id, 0))

    def _valid_combination_count(self, requirement: Requirement) -> int:
        rooms = self.rooms_by_requirement[requirement.id]
        total = 0
        for slot in self.slots_by_teacher[requirement.teacher_id]:
            if not self.index.is_free(ResourceKind.teacher, requirement.teacher_id, slot.id):
                continue
            if not self.index.is_free(ResourceKind.school_class, requirement.class_id, slot.id):
                continue
            total += sum(1 for room in rooms if self.index.is_free(ResourceKind.room, room.id, slot.id))
        return total

    def _requirement_priority_order(self) -> list[Requirement]:
        """Most constrained first: fewest valid (slot, room) combinations per period still needed."""
        ranked: list[tuple[float, str, Requirement]] = []
        for requirement in self.requirements:
            needed = self._remaining_periods(requirement)
            if needed == 0:
                continue
            ratio = self._valid_combination_count(requirement) / needed
            ranked.append((ratio, requirement.id, requirement))
        ranked.sort(key=lambda item: (item[0], item[1]))
        return [item[2] for item in ranked]

    def _build_tasks(self) -> list[SlotTask]:
        taken = {item.id for item in self.pinned}
        tasks: list[SlotTask] = []
        for requirement in self.requirement_order:
            needed = self._remaining_periods(requirement)
            ordinal = 0
            while needed > 0:
                assignment_id = assignment_id_for(self.schedule_id, requirement.id, ordinal)
                if assignment_id not in taken:
                    tasks.append(SlotTask(requirement=requirement, ordinal=ordinal, assignment_id=assignment_id))
                    needed -= 1
                ordinal += 1
        return tasks

    # ------------------------------------------------------------------
    # Placement primitives
    # ------------------------------------------------------------------

    def _candidate_options(self, task: SlotTask) -> tuple[PlacementOption, ...]:
        requirement = task.requirement
        rooms = self.rooms_by_requirement[requirement.id]
        options: list[PlacementOption] = []
        for slot in self.slots_by_teacher[requirement.teacher_id]:
            if not self.index.is_free(ResourceKind.teacher, requirement.teacher_id, slot.id):
                continue
            if not self.index.is_free(ResourceKind.school_class, requirement.class_id, slot.id):
                continue
            for room in rooms:
                if self.index.is_free(ResourceKind.room, room.id, slot.id):
                    options.append(PlacementOption(time_slot_id=slot.id, room_id=room.id))
        return tuple(options)

    def _assignment_for(self, task: SlotTask, option: PlacementOption) -> Assignment:
        requirement = task.requirement
        return Assignment(
            id=task.assignment_id,
            schedule_id=self.schedule_id,
            class_id=requirement.class_id,
            subject_id=requirement.subject_id,
            teacher_id=requirement.teacher_id,
            room_id=option.room_id,
            time_slot_id=option.time_slot_id,
            requirement_id=requirement.id,
        )

    def _place(
        self,
        stack: list[PlacementFrame],
        task_index: int,
        options: tuple[PlacementOption, ...],
        cursor: int,
    ) -> None:
        assignment = self._assignment_for(self.tasks[task_index], options[cursor])
        self.index.insert(assignment)
        stack.append(PlacementFrame(task_index=task_index, options=options, cursor=cursor, assignment=assignment))

    def _backtrack(self, stack: list[PlacementFrame]) -> int | None:
        """Undo the most recent decision and move it to its next option.

        Returns the task index to resume from, or None when no earlier decision
        has an untried option left.
        """
        while stack:
            frame = stack.pop()
            if frame.assignment is None:
                # Previously given-up task; it is retried when the search moves forward again.
                continue
            self.index.remove(frame.assignment)
            self.backtracks += 1
            next_cursor = frame.cursor + 1
            if next_cursor < len(frame.options):
                self._place(stack, frame.task_index, frame.options, next_cursor)
                return frame.task_index + 1
        return None

    def _restore(self, stack: list[PlacementFrame], snapshot: list[PlacementFrame]) -> list[PlacementFrame]:
        for frame in stack:
            if frame.assignment is not None:
                self.index.remove(frame.assignment)
        for frame in snapshot:
            if frame.assignment is not None:
                self.index.insert(frame.assignment)
        return list(snapshot)

    def _can_backtrack(self) -> bool:
        if self.backtracks >= self.budget.max_backtracks:
            if not self.budget_exhausted:
                self.budget_exhausted = True
                logger.warning(
                    "SCHEDULE SEARCH BUDGET EXHAUSTED | schedule_id=%s | backtracks=%s | continuing greedily",
                    self.schedule_id,
                    self.backtracks,
                )
            return False
        return self.budget.max_retries_per_task > 0

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def solve(self) -> SolveOutcome:
        stack: list[PlacementFrame] = []
        episode: BacktrackEpisode | None = None
        position = 0
        cancelled = False

        while position < len(self.tasks):
            if self._cancelled():
                cancelled = True
                logger.info(
                    "SCHEDULE SEARCH CANCELLED | schedule_id=%s | position=%s | tasks=%s",
                    self.schedule_id,
                    position,
                    len(self.tasks),
                )
                break

            options = self._candidate_options(self.tasks[position])
            if options:
                self._place(stack, position, options, 0)
                if episode is not None and position == episode.task_index:
                    logger.debug(
                        "BACKTRACK EPISODE RESOLVED | task=%s | retries=%s",
                        self.tasks[position].assignment_id,
                        episode.retries,
                    )
                    episode = None
                position += 1
                continue

            if episode is None:
                if not self._can_backtrack():
                    stack.append(PlacementFrame(task_index=position, options=(), cursor=0, assignment=None))
                    position += 1
                    continue
                episode = BacktrackEpisode(task_index=position, snapshot=list(stack))
                logger.debug("BACKTRACK EPISODE START | task=%s", self.tasks[position].assignment_id)

            episode.retries += 1
            resume = None
            if episode.retries <= self.budget.max_retries_per_task and self._can_backtrack():
                resume = self._backtrack(stack)

            if resume is None:
                task = self.tasks[episode.task_index]
                logger.warning(
                    "SCHEDULE TASK UNMET | schedule_id=%s | requirement_id=%s | ordinal=%s | retries=%s",
                    self.schedule_id,
                    task.requirement.id,
                    task.ordinal,
                    episode.retries,
                )
                stack = self._restore(stack, episode.snapshot)
                stack.append(PlacementFrame(task_index=episode.task_index, options=(), cursor=0, assignment=None))
                position = episode.task_index + 1
                episode = None
            else:
                position = resume

        if episode is not None:
            stack = self._restore(stack, episode.snapshot)

        placed_indices = {frame.task_index for frame in stack if frame.assignment is not None}
        unmet = [
            task.as_requirement_task()
            for task_index, task in enumerate(self.tasks)
            if task_index not in placed_indices
        ]
        return SolveOutcome(
            generated=[frame.assignment for frame in stack if frame.assignment is not None],
            unmet=unmet,
            pinned=self.pinned,
            pinned_tasks=sum(
                min(self.pinned_count_by_requirement.get(requirement.id, 0), requirement.periods_per_week)
                for requirement in self.requirements
            ),
            required_tasks=sum(requirement.periods_per_week for requirement in self.requirements),
            backtracks=self.backtracks,
            budget_exhausted=self.budget_exhausted,
            cancelled=cancelled,
            requirement_order=[requirement.id for requirement in self.requirement_order],
        )
