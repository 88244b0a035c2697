from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timetable_engine.schemas.requirement import RequirementViolation


class AppError(Exception):
    """Base class for all engine exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequirementError(AppError):
    """Raised when requirements or master data fail validation before generation."""
    def __init__(self, violations: list[RequirementViolation]):
        self.violations = list(violations)
        codes = sorted({item.code for item in self.violations})
        super().__init__(
            f"{len(self.violations)} requirement violation(s): {', '.join(codes)}",
            status_code=422,
            details={"violations": [item.model_dump(mode="json") for item in self.violations]},
        )


class UnknownReferenceError(AppError):
    """Raised when an id does not resolve in the supplied schedule or master data."""
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConcurrentEditConflictError(AppError):
    """Raised when an edit targets a schedule revision that has since changed."""
    def __init__(self, schedule_id: str, expected_revision: int, actual_revision: int):
        self.schedule_id = schedule_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Schedule {schedule_id} is at revision {actual_revision}, edit was based on {expected_revision}",
            status_code=409,
            details={
                "schedule_id": schedule_id,
                "expected_revision": expected_revision,
                "actual_revision": actual_revision,
            },
        )
