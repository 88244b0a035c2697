from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from timetable_engine.schemas.conflict import Conflict
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.requirement import Requirement, RequirementTask, RequirementViolation
from timetable_engine.schemas.schedule import Assignment, Schedule

GenerationStatus = Literal["complete", "partial", "cancelled"]


class SearchBudget(BaseModel):
    max_backtracks: int = Field(default=10_000, ge=0, le=10_000_000)
    max_retries_per_task: int = Field(default=200, ge=0, le=1_000_000)


class GenerationStats(BaseModel):
    required_tasks: int = 0
    placed_tasks: int = 0
    pinned_tasks: int = 0
    unmet_tasks: int = 0
    backtracks: int = 0
    partitions: int = 1
    budget_exhausted: bool = False
    runtime_ms: int = 0


class GenerationResult(BaseModel):
    status: GenerationStatus
    schedule: Schedule
    unmet: list[RequirementTask]
    conflicts: list[Conflict]
    stats: GenerationStats


class ValidateRequirementsRequest(BaseModel):
    requirements: list[Requirement]
    master_data: MasterData
    pinned: list[Assignment] = Field(default_factory=list)


class ValidateRequirementsResponse(BaseModel):
    valid: bool
    violations: list[RequirementViolation]


class GenerateScheduleRequest(BaseModel):
    requirements: list[Requirement]
    master_data: MasterData
    budget: SearchBudget | None = None
    schedule_id: str = Field(default="schedule", min_length=1, max_length=64)
    schedule_name: str | None = Field(default=None, max_length=200)
    pinned: list[Assignment] = Field(default_factory=list)
    parallel: bool | None = None
