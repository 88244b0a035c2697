from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from itertools import combinations

from timetable_engine.schemas.conflict import Conflict, ConflictSeverity, ConflictType
from timetable_engine.schemas.editor import MoveSuggestion
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.schedule import Assignment
from timetable_engine.services.constraint_index import ConstraintIndex, ResourceKind, resource_id_for

DOUBLE_BOOKING_TYPES = {
    ResourceKind.teacher: ConflictType.teacher_double_booked,
    ResourceKind.room: ConflictType.room_double_booked,
    ResourceKind.school_class: ConflictType.class_double_booked,
}


def sort_conflicts(conflicts: Iterable[Conflict]) -> list[Conflict]:
    return sorted(conflicts, key=lambda item: item.sort_key)


class ConflictService:
    def __init__(self, assignments: Iterable[Assignment], master_data: MasterData | None = None):
        self.assignments = list(assignments)
        self.master_data = master_data
        self.assignment_by_id = {item.id: item for item in self.assignments}

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def _resource_label(self, kind: ResourceKind, resource_id: str) -> str:
        if self.master_data is None:
            return resource_id
        if kind == ResourceKind.teacher:
            teacher = self.master_data.teacher_by_id.get(resource_id)
            return teacher.code if teacher else resource_id
        if kind == ResourceKind.room:
            room = self.master_data.room_by_id.get(resource_id)
            return room.name if room else resource_id
        school_class = self.master_data.class_by_id.get(resource_id)
        return school_class.name if school_class else resource_id

    def _slot_label(self, time_slot_id: str) -> str:
        if self.master_data is None:
            return time_slot_id
        slot = self.master_data.time_slot_by_id.get(time_slot_id)
        return slot.label() if slot else time_slot_id

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _pair_conflict(self, kind: ResourceKind, first: Assignment, second: Assignment) -> Conflict | None:
        if first.override and second.override:
            return None
        low, high = sorted((first, second), key=lambda item: item.id)
        severity = ConflictSeverity.warning if (first.override or second.override) else ConflictSeverity.blocking
        resource_id = resource_id_for(first, kind)
        label = self._resource_label(kind, resource_id)
        return Conflict(
            type=DOUBLE_BOOKING_TYPES[kind],
            severity=severity,
            first_assignment_id=low.id,
            second_assignment_id=high.id,
            resource_id=resource_id,
            time_slot_id=first.time_slot_id,
            description=(
                f"{kind.value.capitalize()} {label} is double-booked at "
                f"{self._slot_label(first.time_slot_id)}: {low.id} and {high.id}"
            ),
        )

    def _single_conflicts(self, assignment: Assignment) -> list[Conflict]:
        if self.master_data is None:
            return []
        master = self.master_data
        severity = ConflictSeverity.warning if assignment.override else ConflictSeverity.blocking

        def conflict(conflict_type: ConflictType, resource_id: str | None, description: str, *, level=severity) -> Conflict:
            return Conflict(
                type=conflict_type,
                severity=level,
                first_assignment_id=assignment.id,
                resource_id=resource_id,
                time_slot_id=assignment.time_slot_id,
                description=description,
            )

        found: list[Conflict] = []
        teacher = master.teacher_by_id.get(assignment.teacher_id)
        room = master.room_by_id.get(assignment.room_id)
        subject = master.subject_by_id.get(assignment.subject_id)
        school_class = master.class_by_id.get(assignment.class_id)
        slot = master.time_slot_by_id.get(assignment.time_slot_id)

        for label, resource_id, record in (
            ("teacher", assignment.teacher_id, teacher),
            ("room", assignment.room_id, room),
            ("subject", assignment.subject_id, subject),
            ("class", assignment.class_id, school_class),
            ("time slot", assignment.time_slot_id, slot),
        ):
            if record is None:
                found.append(
                    conflict(
                        ConflictType.unknown_reference,
                        resource_id,
                        f"Assignment {assignment.id} references unknown {label} id {resource_id}",
                        level=ConflictSeverity.blocking,
                    )
                )

        if room is not None and not room.is_active:
            found.append(
                conflict(
                    ConflictType.room_inactive,
                    room.id,
                    f"Room {room.name} is not active",
                )
            )
        if room is not None and subject is not None and subject.required_room_type:
            if room.type != subject.required_room_type:
                found.append(
                    conflict(
                        ConflictType.room_type_mismatch,
                        room.id,
                        f"Subject {subject.name} requires a {subject.required_room_type} room, "
                        f"{room.name} is {room.type}",
                    )
                )
        if room is not None and school_class is not None and school_class.student_count:
            if room.capacity < school_class.student_count:
                found.append(
                    conflict(
                        ConflictType.room_capacity_exceeded,
                        room.id,
                        f"Room {room.name} capacity ({room.capacity}) < class {school_class.name} "
                        f"students ({school_class.student_count})",
                    )
                )
        if teacher is not None and slot is not None and not teacher.is_available(slot.id):
            found.append(
                conflict(
                    ConflictType.teacher_unavailable,
                    teacher.id,
                    f"Teacher {teacher.code} is unavailable at {slot.label()}",
                )
            )
        return found

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect_conflicts(self) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for kind in ResourceKind:
            groups: dict[tuple[str, str], list[Assignment]] = defaultdict(list)
            for assignment in self.assignments:
                groups[(resource_id_for(assignment, kind), assignment.time_slot_id)].append(assignment)
            for members in groups.values():
                if len(members) < 2:
                    continue
                for first, second in combinations(members, 2):
                    item = self._pair_conflict(kind, first, second)
                    if item is not None:
                        conflicts.append(item)

        for assignment in self.assignments:
            conflicts.extend(self._single_conflicts(assignment))
        return sort_conflicts(conflicts)

    def detect_for_placement(self, index: ConstraintIndex, assignment: Assignment) -> list[Conflict]:
        """Conflicts `assignment` would take part in, looked up only at its own cells."""
        conflicts: list[Conflict] = []
        for kind, other_ids in index.colliding(assignment).items():
            for other_id in other_ids:
                other = self.assignment_by_id.get(other_id)
                if other is None:
                    continue
                item = self._pair_conflict(kind, assignment, other)
                if item is not None:
                    conflicts.append(item)
        conflicts.extend(self._single_conflicts(assignment))
        return sort_conflicts(conflicts)

    def suggest_moves(self, assignment_id: str, *, limit: int = 20) -> list[MoveSuggestion]:
        """Conflict-free (room, slot) targets for one assignment, in candidate order."""
        assignment = self.assignment_by_id.get(assignment_id)
        if assignment is None or self.master_data is None:
            return []
        master = self.master_data
        teacher = master.teacher_by_id.get(assignment.teacher_id)
        subject = master.subject_by_id.get(assignment.subject_id)
        school_class = master.class_by_id.get(assignment.class_id)
        if teacher is None or subject is None or school_class is None:
            return []

        index = ConstraintIndex.build(item for item in self.assignments if item.id != assignment_id)
        rooms = master.eligible_rooms(subject, school_class)
        suggestions: list[MoveSuggestion] = []
        for slot in master.ordered_time_slots:
            if not teacher.is_available(slot.id):
                continue
            if not index.is_free(ResourceKind.teacher, teacher.id, slot.id):
                continue
            if not index.is_free(ResourceKind.school_class, school_class.id, slot.id):
                continue
            for room in rooms:
                if room.id == assignment.room_id and slot.id == assignment.time_slot_id:
                    continue
                if not index.is_free(ResourceKind.room, room.id, slot.id):
                    continue
                suggestions.append(
                    MoveSuggestion(
                        assignment_id=assignment.id,
                        room_id=room.id,
                        time_slot_id=slot.id,
                        label=f"{room.name} at {slot.label()}",
                    )
                )
                if len(suggestions) >= limit:
                    return suggestions
        return suggestions


def detect_conflicts(assignments: Iterable[Assignment], master_data: MasterData | None = None) -> list[Conflict]:
    return ConflictService(assignments, master_data).detect_conflicts()
