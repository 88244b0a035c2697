from fastapi import APIRouter

from timetable_engine.schemas.conflict import ConflictReport
from timetable_engine.schemas.editor import DetectConflictsRequest, MoveSuggestion, SuggestMovesRequest
from timetable_engine.services.conflict_service import detect_conflicts
from timetable_engine.services.engine import suggest_moves

router = APIRouter()


@router.post("/detect", response_model=ConflictReport)
def detect(payload: DetectConflictsRequest) -> ConflictReport:
    return ConflictReport(conflicts=detect_conflicts(payload.assignments, payload.master_data))


@router.post("/suggestions", response_model=list[MoveSuggestion])
def suggestions(payload: SuggestMovesRequest) -> list[MoveSuggestion]:
    return suggest_moves(payload.schedule, payload.assignment_id, payload.master_data, payload.limit)
