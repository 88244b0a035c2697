from timetable_fixtures import (
    make_assignment,
    make_class,
    make_master_data,
    make_requirement,
    make_room,
    make_schedule,
    make_slots,
    make_subject,
    make_teacher,
)


def dump(model):
    return model.model_dump(mode="json")


def test_validate_endpoint_reports_violations(client, school_master_data):
    response = client.post(
        "/api/requirements/validate",
        json={
            "requirements": [dump(make_requirement("bad", class_id="c1", subject_id="math", periods=0))],
            "master_data": dump(school_master_data),
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["valid"] is False
    assert payload["violations"] == [
        {"requirement_id": "bad", "code": "non-positive-periods", "message": "periods_per_week must be positive, got 0"}
    ]


def test_validate_endpoint_accepts_good_input(client, school_master_data, school_requirements):
    response = client.post(
        "/api/requirements/validate",
        json={
            "requirements": [dump(item) for item in school_requirements],
            "master_data": dump(school_master_data),
        },
    )

    assert response.status_code == 200
    assert response.json() == {"valid": True, "violations": []}


def test_generate_endpoint_returns_complete_schedule(client, school_master_data, school_requirements):
    response = client.post(
        "/api/schedules/generate",
        json={
            "requirements": [dump(item) for item in school_requirements],
            "master_data": dump(school_master_data),
            "schedule_id": "term-1",
            "schedule_name": "Autumn term",
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "complete"
    assert payload["unmet"] == []
    assert payload["schedule"]["id"] == "term-1"
    assert payload["schedule"]["name"] == "Autumn term"
    assert len(payload["schedule"]["assignments"]) == 15
    assert all(item["id"].startswith("term-1:") for item in payload["schedule"]["assignments"])
    assert payload["stats"]["required_tasks"] == 15


def test_generate_endpoint_reports_unmet_tasks(client):
    master = make_master_data(
        teachers=[make_teacher("t1")],
        rooms=[make_room("r1"), make_room("r2")],
        subjects=[make_subject("s1"), make_subject("s2")],
        classes=[make_class("c1"), make_class("c2")],
        time_slots=make_slots(days=1, periods=1),
    )
    response = client.post(
        "/api/schedules/generate",
        json={
            "requirements": [
                dump(make_requirement("rA", class_id="c1", subject_id="s1")),
                dump(make_requirement("rB", class_id="c2", subject_id="s2")),
            ],
            "master_data": dump(master),
            "budget": {"max_backtracks": 50, "max_retries_per_task": 5},
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "partial"
    assert [item["requirement_id"] for item in payload["unmet"]] == ["rB"]


def test_generate_endpoint_rejects_invalid_requirements(client):
    response = client.post(
        "/api/schedules/generate",
        json={
            "requirements": [dump(make_requirement(teacher_id="ghost"))],
            "master_data": dump(make_master_data()),
        },
    )

    assert response.status_code == 422
    payload = response.json()
    assert "requirement violation" in payload["message"]
    assert payload["details"]["violations"][0]["code"] == "unknown-reference"


def test_detect_endpoint_counts_conflicts(client):
    response = client.post(
        "/api/conflicts/detect",
        json={
            "assignments": [
                dump(make_assignment("a1", class_id="c1")),
                dump(make_assignment("a2", class_id="c2")),
            ],
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert [item["type"] for item in payload["conflicts"]] == ["room-double-booked", "teacher-double-booked"]
    assert payload["blocking_count"] == 2
    assert payload["warning_count"] == 0


def test_edit_endpoint_applies_move(client):
    schedule = make_schedule([make_assignment("a1"), make_assignment("a2", time_slot_id="d1p2")])
    response = client.post(
        "/api/schedules/edit",
        json={
            "schedule": dump(schedule),
            "assignment_id": "a1",
            "new_time_slot_id": "d1p3",
            "master_data": dump(make_master_data()),
            "expected_revision": 0,
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["schedule"]["revision"] == 1
    assert payload["assignment"]["time_slot_id"] == "d1p3"
    assert payload["assignment"]["manually_edited"] is True
    assert payload["conflicts"] == []


def test_edit_endpoint_rejects_stale_revision(client):
    schedule = make_schedule([make_assignment("a1")], revision=3)
    response = client.post(
        "/api/schedules/edit",
        json={
            "schedule": dump(schedule),
            "assignment_id": "a1",
            "new_time_slot_id": "d1p2",
            "master_data": dump(make_master_data()),
            "expected_revision": 2,
        },
    )

    assert response.status_code == 409
    assert response.json()["details"]["actual_revision"] == 3


def test_edit_endpoint_rejects_unknown_assignment(client):
    response = client.post(
        "/api/schedules/edit",
        json={
            "schedule": dump(make_schedule([make_assignment("a1")])),
            "assignment_id": "missing",
            "master_data": dump(make_master_data()),
        },
    )

    assert response.status_code == 404
    assert response.json()["details"] == {"resource_type": "Assignment", "resource_id": "missing"}


def test_suggestions_endpoint_lists_free_cells(client):
    response = client.post(
        "/api/conflicts/suggestions",
        json={
            "schedule": dump(make_schedule([make_assignment("a1")])),
            "assignment_id": "a1",
            "master_data": dump(make_master_data()),
            "limit": 2,
        },
    )

    assert response.status_code == 200
    assert [(item["room_id"], item["time_slot_id"]) for item in response.json()] == [
        ("r1", "d1p2"),
        ("r1", "d1p3"),
    ]


def test_suggestions_endpoint_rejects_unknown_assignment(client):
    response = client.post(
        "/api/conflicts/suggestions",
        json={
            "schedule": dump(make_schedule([])),
            "assignment_id": "missing",
            "master_data": dump(make_master_data()),
        },
    )

    assert response.status_code == 404


def test_edit_endpoint_rejects_second_edit_from_the_same_snapshot(client):
    body = {
        "schedule": dump(make_schedule([make_assignment("a1")])),
        "assignment_id": "a1",
        "new_time_slot_id": "d1p2",
        "master_data": dump(make_master_data()),
        "expected_revision": 0,
    }

    assert client.post("/api/schedules/edit", json=body).status_code == 200

    second = client.post("/api/schedules/edit", json={**body, "new_time_slot_id": "d1p3"})
    assert second.status_code == 409
    assert second.json()["details"]["actual_revision"] == 1


def test_regenerating_a_schedule_resets_its_revision(client):
    master = make_master_data()
    edit_body = {
        "schedule": dump(make_schedule([make_assignment("a1")], schedule_id="term-2")),
        "assignment_id": "a1",
        "new_time_slot_id": "d1p2",
        "master_data": dump(master),
    }
    assert client.post("/api/schedules/edit", json=edit_body).status_code == 200

    generated = client.post(
        "/api/schedules/generate",
        json={"requirements": [dump(make_requirement())], "master_data": dump(master), "schedule_id": "term-2"},
    )
    assert generated.status_code == 200

    regenerated = generated.json()["schedule"]
    response = client.post(
        "/api/schedules/edit",
        json={
            "schedule": regenerated,
            "assignment_id": "term-2:req1:0",
            "new_time_slot_id": "d1p3",
            "master_data": dump(master),
            "expected_revision": 0,
        },
    )
    assert response.status_code == 200
    assert response.json()["schedule"]["revision"] == 1


def test_generate_endpoint_rejects_duplicate_pins(client):
    response = client.post(
        "/api/schedules/generate",
        json={
            "requirements": [dump(make_requirement(periods=3))],
            "master_data": dump(make_master_data()),
            "pinned": [
                dump(make_assignment("p1", time_slot_id="d1p1")),
                dump(make_assignment("p1", time_slot_id="d1p2")),
            ],
        },
    )

    assert response.status_code == 422
    assert response.json()["details"]["violations"][0]["code"] == "duplicate-id"
