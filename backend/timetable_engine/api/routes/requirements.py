from fastapi import APIRouter

from timetable_engine.schemas.generator import ValidateRequirementsRequest, ValidateRequirementsResponse
from timetable_engine.services.engine import validate

router = APIRouter()


@router.post("/validate", response_model=ValidateRequirementsResponse)
def validate_requirements(payload: ValidateRequirementsRequest) -> ValidateRequirementsResponse:
    violations = validate(payload.requirements, payload.master_data, payload.pinned)
    return ValidateRequirementsResponse(valid=not violations, violations=violations)
