from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Assignment(BaseModel):
    """One placed period (a schedule detail)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=200)
    schedule_id: str = Field(min_length=1, max_length=64)
    class_id: str = Field(min_length=1, max_length=64)
    subject_id: str = Field(min_length=1, max_length=64)
    teacher_id: str = Field(min_length=1, max_length=64)
    room_id: str = Field(min_length=1, max_length=64)
    time_slot_id: str = Field(min_length=1, max_length=64)
    requirement_id: str | None = None
    manually_edited: bool = False
    override: bool = False


class Schedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=64)
    name: str | None = Field(default=None, max_length=200)
    revision: int = Field(default=0, ge=0)
    assignments: tuple[Assignment, ...] = ()

    @model_validator(mode="after")
    def validate_assignment_ids(self) -> "Schedule":
        seen: set[str] = set()
        duplicates: set[str] = set()
        for item in self.assignments:
            if item.id in seen:
                duplicates.add(item.id)
            else:
                seen.add(item.id)
        if duplicates:
            raise ValueError(f"Duplicate assignment id(s): {', '.join(sorted(duplicates))}")
        return self

    def find(self, assignment_id: str) -> Assignment | None:
        for item in self.assignments:
            if item.id == assignment_id:
                return item
        return None
