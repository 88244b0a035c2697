"""School timetable generation and conflict-detection engine."""

from timetable_engine.core.exceptions import (
    AppError,
    ConcurrentEditConflictError,
    InvalidRequirementError,
    UnknownReferenceError,
)
from timetable_engine.services.conflict_service import detect_conflicts
from timetable_engine.services.edit_coordinator import EditCoordinator
from timetable_engine.services.editor import apply_edit
from timetable_engine.services.engine import generate, suggest_moves, validate

__all__ = [
    "AppError",
    "ConcurrentEditConflictError",
    "EditCoordinator",
    "InvalidRequirementError",
    "UnknownReferenceError",
    "apply_edit",
    "detect_conflicts",
    "generate",
    "suggest_moves",
    "validate",
]
