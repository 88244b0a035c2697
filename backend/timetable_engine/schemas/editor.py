from __future__ import annotations

from pydantic import BaseModel, Field

from timetable_engine.schemas.conflict import Conflict
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.schedule import Assignment, Schedule


class EditScheduleRequest(BaseModel):
    schedule: Schedule
    assignment_id: str = Field(min_length=1, max_length=200)
    new_room_id: str | None = None
    new_time_slot_id: str | None = None
    override: bool | None = None
    master_data: MasterData
    expected_revision: int | None = Field(default=None, ge=0)


class EditResult(BaseModel):
    assignment: Assignment
    schedule: Schedule
    conflicts: list[Conflict]
    introduced: list[Conflict]
    resolved: list[Conflict]


class DetectConflictsRequest(BaseModel):
    assignments: list[Assignment]
    master_data: MasterData | None = None


class MoveSuggestion(BaseModel):
    assignment_id: str
    room_id: str
    time_slot_id: str
    label: str


class SuggestMovesRequest(BaseModel):
    schedule: Schedule
    assignment_id: str = Field(min_length=1, max_length=200)
    master_data: MasterData
    limit: int | None = Field(default=None, ge=1, le=500)
