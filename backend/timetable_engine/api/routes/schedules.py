import logging
from time import perf_counter

from fastapi import APIRouter, Depends

from timetable_engine.api.deps import get_edit_coordinator
from timetable_engine.schemas.editor import EditResult, EditScheduleRequest
from timetable_engine.schemas.generator import GenerateScheduleRequest, GenerationResult
from timetable_engine.services.edit_coordinator import EditCoordinator
from timetable_engine.services.engine import generate

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=GenerationResult)
def generate_schedule(
    payload: GenerateScheduleRequest,
    coordinator: EditCoordinator = Depends(get_edit_coordinator),
) -> GenerationResult:
    started = perf_counter()
    try:
        result = generate(
            payload.requirements,
            payload.master_data,
            payload.budget,
            schedule_id=payload.schedule_id,
            schedule_name=payload.schedule_name,
            pinned=payload.pinned,
            parallel=payload.parallel,
        )
    except Exception:
        logger.exception(
            "SCHEDULE GENERATION REQUEST FAILED | schedule_id=%s | requirements=%s | wall_ms=%s",
            payload.schedule_id,
            len(payload.requirements),
            int((perf_counter() - started) * 1000),
        )
        raise
    # A regenerated schedule starts again at revision 0.
    coordinator.forget(payload.schedule_id)
    return result


@router.post("/edit", response_model=EditResult)
def edit_schedule(
    payload: EditScheduleRequest,
    coordinator: EditCoordinator = Depends(get_edit_coordinator),
) -> EditResult:
    return coordinator.apply(
        payload.schedule,
        payload.assignment_id,
        master_data=payload.master_data,
        new_room_id=payload.new_room_id,
        new_time_slot_id=payload.new_time_slot_id,
        override=payload.override,
        expected_revision=payload.expected_revision,
    )
