from __future__ import annotations

import re
from functools import cached_property

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

DAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class MasterRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=64)


class Teacher(MasterRecord):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    specialization: str | None = None
    is_active: bool = True
    unavailable_slot_ids: frozenset[str] = frozenset()
    # Empty means the teacher may teach any subject.
    subject_ids: frozenset[str] = frozenset()

    def is_available(self, time_slot_id: str) -> bool:
        return time_slot_id not in self.unavailable_slot_ids


class Room(MasterRecord):
    name: str = Field(min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=50)
    capacity: int = Field(ge=0, le=10_000)
    is_active: bool = True

    @field_validator("type")
    @classmethod
    def normalize_type(cls, value: str) -> str:
        return value.strip().lower()


class Subject(MasterRecord):
    name: str = Field(min_length=1, max_length=200)
    code: str | None = Field(default=None, max_length=50)
    required_room_type: str | None = Field(default=None, max_length=50)

    @field_validator("required_room_type")
    @classmethod
    def normalize_room_type(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip().lower()
        return cleaned or None


class SchoolClass(MasterRecord):
    name: str = Field(min_length=1, max_length=100)
    grade_level: int = Field(ge=0, le=20)
    student_count: int | None = Field(default=None, ge=1, le=10_000)
    is_active: bool = True


class TimeSlot(MasterRecord):
    day_of_week: int = Field(ge=1, le=7)
    period: int = Field(ge=0, le=48)
    duration_minutes: int = Field(default=45, ge=1, le=600)
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is not None and not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeSlot":
        if self.start_time and self.end_time:
            if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
                raise ValueError("end_time must be after start_time")
        return self

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.day_of_week, self.period, self.id)

    def label(self) -> str:
        day = DAY_NAMES[self.day_of_week]
        if self.start_time and self.end_time:
            return f"{day} {self.start_time}-{self.end_time}"
        return f"{day} period {self.period}"


class MasterData(BaseModel):
    """Reference data supplied in full on every engine call."""

    model_config = ConfigDict(frozen=True)

    teachers: tuple[Teacher, ...] = ()
    rooms: tuple[Room, ...] = ()
    subjects: tuple[Subject, ...] = ()
    classes: tuple[SchoolClass, ...] = ()
    time_slots: tuple[TimeSlot, ...] = ()

    @cached_property
    def teacher_by_id(self) -> dict[str, Teacher]:
        return {item.id: item for item in self.teachers}

    @cached_property
    def room_by_id(self) -> dict[str, Room]:
        return {item.id: item for item in self.rooms}

    @cached_property
    def subject_by_id(self) -> dict[str, Subject]:
        return {item.id: item for item in self.subjects}

    @cached_property
    def class_by_id(self) -> dict[str, SchoolClass]:
        return {item.id: item for item in self.classes}

    @cached_property
    def time_slot_by_id(self) -> dict[str, TimeSlot]:
        return {item.id: item for item in self.time_slots}

    @cached_property
    def ordered_time_slots(self) -> tuple[TimeSlot, ...]:
        return tuple(sorted(self.time_slots, key=lambda slot: slot.sort_key))

    @cached_property
    def ordered_rooms(self) -> tuple[Room, ...]:
        return tuple(sorted(self.rooms, key=lambda room: room.id))

    def room_fits(self, room: Room, subject: Subject | None, school_class: SchoolClass | None) -> bool:
        if not room.is_active:
            return False
        if subject is not None and subject.required_room_type and room.type != subject.required_room_type:
            return False
        if school_class is not None and school_class.student_count and room.capacity < school_class.student_count:
            return False
        return True

    def eligible_rooms(self, subject: Subject | None, school_class: SchoolClass | None) -> list[Room]:
        return [room for room in self.ordered_rooms if self.room_fits(room, subject, school_class)]
