from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ViolationCode = Literal[
    "co-teaching",
    "duplicate-id",
    "duplicate-requirement",
    "inactive-class",
    "inactive-teacher",
    "non-positive-periods",
    "pinned-conflict",
    "too-many-periods",
    "unknown-reference",
    "unqualified-teacher",
    "unsatisfiable-room-type",
]


class Requirement(BaseModel):
    """Weekly teaching obligation for one class and subject."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=64)
    class_id: str = Field(min_length=1, max_length=64)
    subject_id: str = Field(min_length=1, max_length=64)
    teacher_id: str = Field(min_length=1, max_length=64)
    # Range is checked by validation so callers get a structured violation.
    periods_per_week: int


class RequirementTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    requirement_id: str
    ordinal: int = Field(ge=0)
    class_id: str
    subject_id: str
    teacher_id: str

    @classmethod
    def from_requirement(cls, requirement: Requirement, ordinal: int) -> "RequirementTask":
        return cls(
            requirement_id=requirement.id,
            ordinal=ordinal,
            class_id=requirement.class_id,
            subject_id=requirement.subject_id,
            teacher_id=requirement.teacher_id,
        )


class RequirementViolation(BaseModel):
    model_config = ConfigDict(frozen=True)

    requirement_id: str | None = None
    code: ViolationCode
    message: str
