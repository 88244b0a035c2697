from __future__ import annotations

import logging

from timetable_engine.core.exceptions import ConcurrentEditConflictError, UnknownReferenceError
from timetable_engine.schemas.conflict import Conflict
from timetable_engine.schemas.editor import EditResult
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.schedule import Schedule
from timetable_engine.services.conflict_service import ConflictService
from timetable_engine.services.constraint_index import ConstraintIndex

logger = logging.getLogger(__name__)


def _diff(before: list[Conflict], after: list[Conflict]) -> tuple[list[Conflict], list[Conflict]]:
    before_set = set(before)
    after_set = set(after)
    introduced = [item for item in after if item not in before_set]
    resolved = [item for item in before if item not in after_set]
    return introduced, resolved


def apply_edit(
    schedule: Schedule,
    assignment_id: str,
    *,
    master_data: MasterData,
    new_room_id: str | None = None,
    new_time_slot_id: str | None = None,
    override: bool | None = None,
    expected_revision: int | None = None,
) -> EditResult:
    """Move one assignment and/or change its override flag.

    Every other assignment is carried over untouched. The returned conflict list
    is recomputed over the whole schedule; `introduced` and `resolved` are its
    difference against the list before the edit.
    """
    if expected_revision is not None and expected_revision != schedule.revision:
        raise ConcurrentEditConflictError(schedule.id, expected_revision, schedule.revision)

    current = schedule.find(assignment_id)
    if current is None:
        raise UnknownReferenceError("Assignment", assignment_id)
    if new_room_id is not None and new_room_id not in master_data.room_by_id:
        raise UnknownReferenceError("Room", new_room_id)
    if new_time_slot_id is not None and new_time_slot_id not in master_data.time_slot_by_id:
        raise UnknownReferenceError("TimeSlot", new_time_slot_id)

    before = ConflictService(schedule.assignments, master_data).detect_conflicts()

    index = ConstraintIndex.build(schedule.assignments)
    index.remove(current)

    candidate = current.model_copy(
        update={
            "room_id": new_room_id if new_room_id is not None else current.room_id,
            "time_slot_id": new_time_slot_id if new_time_slot_id is not None else current.time_slot_id,
            "override": current.override if override is None else override,
            "manually_edited": True,
        }
    )

    service = ConflictService(schedule.assignments, master_data)
    # Evaluated without the override so an exempt pair still counts as a collision.
    placement_conflicts = service.detect_for_placement(index, candidate.model_copy(update={"override": False}))
    if not placement_conflicts and candidate.override:
        candidate = candidate.model_copy(update={"override": False})
    index.insert(candidate)

    assignments = tuple(candidate if item.id == current.id else item for item in schedule.assignments)
    updated = schedule.model_copy(update={"assignments": assignments, "revision": schedule.revision + 1})

    after = ConflictService(updated.assignments, master_data).detect_conflicts()
    introduced, resolved = _diff(before, after)

    logger.info(
        "SCHEDULE EDIT APPLIED | schedule_id=%s | assignment_id=%s | room=%s | slot=%s | override=%s | "
        "placement_conflicts=%s | total_conflicts=%s | revision=%s",
        schedule.id,
        assignment_id,
        candidate.room_id,
        candidate.time_slot_id,
        candidate.override,
        len(placement_conflicts),
        len(after),
        updated.revision,
    )
    return EditResult(
        assignment=candidate,
        schedule=updated,
        conflicts=after,
        introduced=introduced,
        resolved=resolved,
    )
