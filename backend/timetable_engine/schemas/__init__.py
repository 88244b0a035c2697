from timetable_engine.schemas.conflict import Conflict, ConflictReport, ConflictSeverity, ConflictType
from timetable_engine.schemas.editor import EditResult, MoveSuggestion
from timetable_engine.schemas.generator import GenerationResult, GenerationStats, SearchBudget
from timetable_engine.schemas.master_data import MasterData, Room, SchoolClass, Subject, Teacher, TimeSlot
from timetable_engine.schemas.requirement import Requirement, RequirementTask, RequirementViolation
from timetable_engine.schemas.schedule import Assignment, Schedule

__all__ = [
    "Assignment",
    "Conflict",
    "ConflictReport",
    "ConflictSeverity",
    "ConflictType",
    "EditResult",
    "GenerationResult",
    "GenerationStats",
    "MasterData",
    "MoveSuggestion",
    "Requirement",
    "RequirementTask",
    "RequirementViolation",
    "Room",
    "Schedule",
    "SchoolClass",
    "SearchBudget",
    "Subject",
    "Teacher",
    "TimeSlot",
]
