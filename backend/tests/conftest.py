import pytest
from fastapi.testclient import TestClient

from timetable_engine.main import app
from timetable_fixtures import (
    make_class,
    make_master_data,
    make_requirement,
    make_room,
    make_slots,
    make_subject,
    make_teacher,
)


@pytest.fixture()
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.state.edit_coordinator.clear()


@pytest.fixture()
def school_master_data():
    """Three classes, math in any room, chemistry in the lab, two days of four periods."""
    return make_master_data(
        teachers=[make_teacher("t1"), make_teacher("t2"), make_teacher("t3")],
        rooms=[make_room("lab1", "lab"), make_room("r1"), make_room("r2")],
        subjects=[make_subject("math"), make_subject("chem", "lab")],
        classes=[make_class("c1"), make_class("c2"), make_class("c3")],
        time_slots=make_slots(days=2, periods=4),
    )


@pytest.fixture()
def school_requirements():
    return [
        make_requirement("c1-math", class_id="c1", subject_id="math", teacher_id="t1", periods=3),
        make_requirement("c2-math", class_id="c2", subject_id="math", teacher_id="t1", periods=3),
        make_requirement("c3-math", class_id="c3", subject_id="math", teacher_id="t2", periods=3),
        make_requirement("c1-chem", class_id="c1", subject_id="chem", teacher_id="t3", periods=2),
        make_requirement("c2-chem", class_id="c2", subject_id="chem", teacher_id="t3", periods=2),
        make_requirement("c3-chem", class_id="c3", subject_id="chem", teacher_id="t3", periods=2),
    ]
