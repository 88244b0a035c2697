from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from timetable_engine.api.deps import get_app_settings
from timetable_engine.core.config import Settings

router = APIRouter()


@router.get("/health")
def health(settings: Settings = Depends(get_app_settings)) -> dict:
    return {"status": "ok", "environment": settings.environment}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
