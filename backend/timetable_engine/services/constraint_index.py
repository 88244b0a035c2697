from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from timetable_engine.schemas.schedule import Assignment


class ResourceKind(str, Enum):
    teacher = "teacher"
    room = "room"
    school_class = "class"


def resource_id_for(assignment: Assignment, kind: ResourceKind) -> str:
    if kind == ResourceKind.teacher:
        return assignment.teacher_id
    if kind == ResourceKind.room:
        return assignment.room_id
    return assignment.class_id


class ConstraintIndex:
    """Occupancy of teachers, rooms and classes per time slot.

    Each mapping is keyed by (resource id, time slot id) and holds the ids of the
    assignments occupying that cell in insertion order. A conflict-free schedule
    has at most one id per cell; overridden collisions may hold more.
    """

    def __init__(self) -> None:
        self._occupancy: dict[ResourceKind, dict[tuple[str, str], list[str]]] = {
            kind: {} for kind in ResourceKind
        }

    @classmethod
    def build(cls, assignments: Iterable[Assignment]) -> "ConstraintIndex":
        index = cls()
        for assignment in assignments:
            index.insert(assignment)
        return index

    def is_free(self, kind: ResourceKind, resource_id: str, time_slot_id: str) -> bool:
        return (resource_id, time_slot_id) not in self._occupancy[kind]

    def occupied_by(self, kind: ResourceKind, resource_id: str, time_slot_id: str) -> tuple[str, ...]:
        return tuple(self._occupancy[kind].get((resource_id, time_slot_id), ()))

    def placement_is_free(self, *, teacher_id: str, room_id: str, class_id: str, time_slot_id: str) -> bool:
        return (
            self.is_free(ResourceKind.teacher, teacher_id, time_slot_id)
            and self.is_free(ResourceKind.room, room_id, time_slot_id)
            and self.is_free(ResourceKind.school_class, class_id, time_slot_id)
        )

    def colliding(self, assignment: Assignment) -> dict[ResourceKind, tuple[str, ...]]:
        """Ids already holding the cells `assignment` would occupy, excluding itself."""
        found: dict[ResourceKind, tuple[str, ...]] = {}
        for kind in ResourceKind:
            key = (resource_id_for(assignment, kind), assignment.time_slot_id)
            others = tuple(item for item in self._occupancy[kind].get(key, ()) if item != assignment.id)
            if others:
                found[kind] = others
        return found

    def insert(self, assignment: Assignment) -> None:
        for kind in ResourceKind:
            key = (resource_id_for(assignment, kind), assignment.time_slot_id)
            occupants = self._occupancy[kind].setdefault(key, [])
            if assignment.id not in occupants:
                occupants.append(assignment.id)

    def remove(self, assignment: Assignment) -> None:
        for kind in ResourceKind:
            key = (resource_id_for(assignment, kind), assignment.time_slot_id)
            occupants = self._occupancy[kind].get(key)
            if not occupants:
                continue
            if assignment.id in occupants:
                occupants.remove(assignment.id)
            if not occupants:
                del self._occupancy[kind][key]

    def __len__(self) -> int:
        # Every assignment occupies exactly one class cell.
        return sum(len(items) for items in self._occupancy[ResourceKind.school_class].values())
