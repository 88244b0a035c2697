import pytest

from timetable_engine.schemas.conflict import ConflictReport, ConflictSeverity, ConflictType
from timetable_engine.services.conflict_service import ConflictService, detect_conflicts
from timetable_engine.services.constraint_index import ConstraintIndex
from timetable_fixtures import (
    make_assignment,
    make_class,
    make_master_data,
    make_room,
    make_subject,
    make_teacher,
)


@pytest.fixture
def master_data():
    return make_master_data(
        teachers=[make_teacher("t1"), make_teacher("t2", unavailable_slot_ids=["d1p5"])],
        rooms=[make_room("r1"), make_room("r2"), make_room("small", capacity=10)],
        subjects=[make_subject("s1"), make_subject("lab-work", "lab")],
        classes=[make_class("c1", student_count=25), make_class("c2")],
    )


def test_teacher_and_room_double_booking_are_reported_as_pairs():
    assignments = [
        make_assignment("a2", class_id="c2"),
        make_assignment("a1", class_id="c1"),
    ]

    conflicts = detect_conflicts(assignments)

    assert [item.type for item in conflicts] == [
        ConflictType.room_double_booked,
        ConflictType.teacher_double_booked,
    ]
    for item in conflicts:
        assert item.severity == ConflictSeverity.blocking
        assert (item.first_assignment_id, item.second_assignment_id) == ("a1", "a2")
        assert item.time_slot_id == "d1p1"
    assert conflicts[1].description == "Teacher t1 is double-booked at d1p1: a1 and a2"


def test_class_double_booking_uses_master_data_labels(master_data):
    assignments = [
        make_assignment("a1", teacher_id="t1", room_id="r1"),
        make_assignment("a2", teacher_id="t2", room_id="r2"),
    ]

    conflicts = detect_conflicts(assignments, master_data)

    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.class_double_booked
    assert conflicts[0].resource_id == "c1"
    assert conflicts[0].description == "Class Class c1 is double-booked at Monday period 1: a1 and a2"


def test_three_way_collision_reports_every_pair():
    assignments = [make_assignment(f"a{n}", class_id=f"c{n}", room_id=f"r{n}") for n in range(1, 4)]

    conflicts = detect_conflicts(assignments)

    assert [(item.first_assignment_id, item.second_assignment_id) for item in conflicts] == [
        ("a1", "a2"),
        ("a1", "a3"),
        ("a2", "a3"),
    ]
    assert {item.type for item in conflicts} == {ConflictType.teacher_double_booked}


def test_different_slots_do_not_collide(master_data):
    assignments = [
        make_assignment("a1", time_slot_id="d1p1"),
        make_assignment("a2", time_slot_id="d1p2"),
    ]

    assert detect_conflicts(assignments, master_data) == []


def test_one_sided_override_downgrades_to_warning():
    assignments = [
        make_assignment("a1", class_id="c1", room_id="r1"),
        make_assignment("a2", class_id="c2", room_id="r2", override=True),
    ]

    conflicts = detect_conflicts(assignments)

    assert len(conflicts) == 1
    assert conflicts[0].severity == ConflictSeverity.warning


def test_override_on_both_sides_is_exempt():
    assignments = [
        make_assignment("a1", class_id="c1", room_id="r1", override=True),
        make_assignment("a2", class_id="c2", room_id="r2", override=True),
    ]

    assert detect_conflicts(assignments) == []


def test_room_type_mismatch_and_capacity(master_data):
    assignments = [
        make_assignment("a1", subject_id="lab-work", room_id="r1", class_id="c2"),
        make_assignment("a2", room_id="small", class_id="c1", time_slot_id="d1p2"),
    ]

    conflicts = detect_conflicts(assignments, master_data)

    assert [(item.type, item.first_assignment_id) for item in conflicts] == [
        (ConflictType.room_capacity_exceeded, "a2"),
        (ConflictType.room_type_mismatch, "a1"),
    ]
    assert all(item.second_assignment_id is None for item in conflicts)
    assert "capacity (10)" in conflicts[0].description


def test_teacher_unavailability_respects_override(master_data):
    blocked = make_assignment("a1", teacher_id="t2", time_slot_id="d1p5")
    waived = make_assignment("a2", teacher_id="t2", time_slot_id="d1p5", class_id="c2", room_id="r2", override=True)

    conflicts = detect_conflicts([blocked], master_data)
    assert [(item.type, item.severity) for item in conflicts] == [
        (ConflictType.teacher_unavailable, ConflictSeverity.blocking)
    ]

    conflicts = detect_conflicts([waived], master_data)
    assert [(item.type, item.severity) for item in conflicts] == [
        (ConflictType.teacher_unavailable, ConflictSeverity.warning)
    ]


def test_unknown_references_are_always_blocking(master_data):
    conflicts = detect_conflicts([make_assignment("a1", room_id="ghost", override=True)], master_data)

    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.unknown_reference
    assert conflicts[0].severity == ConflictSeverity.blocking
    assert conflicts[0].resource_id == "ghost"


def test_detection_without_master_data_skips_reference_checks():
    assert detect_conflicts([make_assignment("a1", room_id="ghost")]) == []


def test_detect_for_placement_only_looks_at_its_cells(master_data):
    existing = [
        make_assignment("a1", time_slot_id="d1p1"),
        make_assignment("a2", class_id="c2", teacher_id="t2", room_id="r2", time_slot_id="d1p2"),
    ]
    service = ConflictService(existing, master_data)
    index = ConstraintIndex.build(existing)

    candidate = make_assignment("new", class_id="c2", teacher_id="t2", room_id="r1", time_slot_id="d1p1")
    conflicts = service.detect_for_placement(index, candidate)

    assert [(item.type, item.first_assignment_id, item.second_assignment_id) for item in conflicts] == [
        (ConflictType.room_double_booked, "a1", "new"),
    ]


def test_detection_is_repeatable_and_order_independent(master_data):
    assignments = [
        make_assignment("a3", teacher_id="t2", room_id="small"),
        make_assignment("a1"),
        make_assignment("a2", class_id="c2", room_id="r2"),
    ]

    first = detect_conflicts(assignments, master_data)
    second = detect_conflicts(list(reversed(assignments)), master_data)

    assert first == second
    assert [item.model_dump_json() for item in first] == [item.model_dump_json() for item in second]


def test_report_counts_by_severity():
    assignments = [
        make_assignment("a1", class_id="c1"),
        make_assignment("a2", class_id="c2", override=True),
        make_assignment("a3", class_id="c3", teacher_id="t3", room_id="r3"),
        make_assignment("a4", class_id="c3", teacher_id="t4", room_id="r4"),
    ]

    report = ConflictReport(conflicts=detect_conflicts(assignments))

    assert report.blocking_count == 1
    assert report.warning_count == 2


def test_suggest_moves_lists_free_cells_in_slot_order(master_data):
    assignments = [
        make_assignment("a1", time_slot_id="d1p1", room_id="r1"),
        make_assignment("a2", class_id="c2", teacher_id="t2", room_id="r1", time_slot_id="d1p2"),
    ]
    service = ConflictService(assignments, master_data)

    suggestions = service.suggest_moves("a1", limit=3)

    assert [(item.room_id, item.time_slot_id) for item in suggestions] == [
        ("r2", "d1p1"),
        ("r2", "d1p2"),
        ("r1", "d1p3"),
    ]
    assert suggestions[0].label == "Room r2 at Monday period 1"


def test_suggest_moves_skips_unavailable_teacher_slots(master_data):
    service = ConflictService(
        [make_assignment("a1", teacher_id="t2", class_id="c2", time_slot_id="d1p1")],
        master_data,
    )

    slots = {item.time_slot_id for item in service.suggest_moves("a1", limit=100)}

    assert "d1p5" not in slots
    assert "d1p4" in slots


def test_suggest_moves_for_unknown_assignment_is_empty(master_data):
    assert ConflictService([], master_data).suggest_moves("missing") == []


def test_inactive_room_is_reported():
    master = make_master_data(rooms=[make_room("r1", is_active=False), make_room("r2")])

    conflicts = detect_conflicts([make_assignment("a1", room_id="r1")], master)
    assert [(item.type, item.severity, item.resource_id) for item in conflicts] == [
        (ConflictType.room_inactive, ConflictSeverity.blocking, "r1")
    ]

    waived = detect_conflicts([make_assignment("a1", room_id="r1", override=True)], master)
    assert [(item.type, item.severity) for item in waived] == [
        (ConflictType.room_inactive, ConflictSeverity.warning)
    ]
