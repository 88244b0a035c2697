from fastapi import Request

from timetable_engine.core.config import Settings, get_settings
from timetable_engine.services.edit_coordinator import EditCoordinator


def get_app_settings() -> Settings:
    return get_settings()


def get_edit_coordinator(request: Request) -> EditCoordinator:
    return request.app.state.edit_coordinator
