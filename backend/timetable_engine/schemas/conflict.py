from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, computed_field


class ConflictType(str, Enum):
    class_double_booked = "class-double-booked"
    room_capacity_exceeded = "room-capacity-exceeded"
    room_double_booked = "room-double-booked"
    room_inactive = "room-inactive"
    room_type_mismatch = "room-type-mismatch"
    teacher_double_booked = "teacher-double-booked"
    teacher_unavailable = "teacher-unavailable"
    unknown_reference = "unknown-reference"


class ConflictSeverity(str, Enum):
    blocking = "blocking"
    warning = "warning"


class Conflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ConflictType
    severity: ConflictSeverity
    first_assignment_id: str
    second_assignment_id: str | None = None
    resource_id: str | None = None
    time_slot_id: str | None = None
    description: str

    @property
    def sort_key(self) -> tuple[str, str, str, str, str]:
        return (
            self.type.value,
            self.first_assignment_id,
            self.second_assignment_id or "",
            self.resource_id or "",
            self.description,
        )

    def involves(self, assignment_id: str) -> bool:
        return assignment_id in (self.first_assignment_id, self.second_assignment_id)


class ConflictReport(BaseModel):
    conflicts: list[Conflict]

    @computed_field
    @property
    def blocking_count(self) -> int:
        return sum(1 for item in self.conflicts if item.severity == ConflictSeverity.blocking)

    @computed_field
    @property
    def warning_count(self) -> int:
        return sum(1 for item in self.conflicts if item.severity == ConflictSeverity.warning)
