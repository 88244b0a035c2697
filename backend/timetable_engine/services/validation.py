from __future__ import annotations

import logging
from collections import defaultdict

from timetable_engine.core.exceptions import InvalidRequirementError
from timetable_engine.schemas.conflict import ConflictSeverity
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.requirement import Requirement, RequirementViolation
from timetable_engine.schemas.schedule import Assignment
from timetable_engine.services.conflict_service import detect_conflicts

logger = logging.getLogger(__name__)


def _duplicate_ids(items) -> list[str]:
    seen: set[str] = set()
    duplicates: set[str] = set()
    for item in items:
        if item.id in seen:
            duplicates.add(item.id)
        else:
            seen.add(item.id)
    return sorted(duplicates)


def _master_data_violations(master_data: MasterData) -> list[RequirementViolation]:
    violations: list[RequirementViolation] = []
    for label, items in (
        ("teacher", master_data.teachers),
        ("room", master_data.rooms),
        ("subject", master_data.subjects),
        ("class", master_data.classes),
        ("time slot", master_data.time_slots),
    ):
        duplicates = _duplicate_ids(items)
        if duplicates:
            violations.append(
                RequirementViolation(
                    code="duplicate-id",
                    message=f"Duplicate {label} id(s): {', '.join(duplicates)}",
                )
            )
    return violations


def _pinned_violations(pinned: list[Assignment], master_data: MasterData) -> list[RequirementViolation]:
    """Pinned assignments are kept as is, so they must be unique and free of blocking conflicts."""
    duplicates = _duplicate_ids(pinned)
    if duplicates:
        return [
            RequirementViolation(
                code="duplicate-id",
                message=f"Duplicate pinned assignment id(s): {', '.join(duplicates)}",
            )
        ]
    return [
        RequirementViolation(
            code="pinned-conflict",
            message=f"Pinned assignments cannot be kept: {conflict.description}",
        )
        for conflict in detect_conflicts(pinned, master_data)
        if conflict.severity == ConflictSeverity.blocking
    ]


def validate_requirements(
    requirements: list[Requirement],
    master_data: MasterData,
    pinned: list[Assignment] | None = None,
) -> list[RequirementViolation]:
    """Check every requirement, and any pinned assignments, against the master data.

    Returns an empty list when the input is fit for generation. Violations are
    reported in requirement order, with master-data level problems first and
    pinned-assignment problems last.
    """
    violations = _master_data_violations(master_data)

    duplicate_requirements = set(_duplicate_ids(requirements))
    teachers_by_pair: dict[tuple[str, str], set[str]] = defaultdict(set)
    for requirement in requirements:
        teachers_by_pair[(requirement.class_id, requirement.subject_id)].add(requirement.teacher_id)

    reported_duplicates: set[str] = set()
    reported_pairs: set[tuple[str, str]] = set()
    slot_count = len(master_data.time_slots)

    for requirement in requirements:
        def add(code: str, message: str) -> None:
            violations.append(RequirementViolation(requirement_id=requirement.id, code=code, message=message))

        if requirement.id in duplicate_requirements and requirement.id not in reported_duplicates:
            reported_duplicates.add(requirement.id)
            add("duplicate-requirement", f"Requirement id {requirement.id} is used more than once")

        pair = (requirement.class_id, requirement.subject_id)
        if len(teachers_by_pair[pair]) > 1 and pair not in reported_pairs:
            reported_pairs.add(pair)
            add(
                "co-teaching",
                f"Class {requirement.class_id} / subject {requirement.subject_id} is assigned to "
                f"{len(teachers_by_pair[pair])} teachers: {', '.join(sorted(teachers_by_pair[pair]))}",
            )

        teacher = master_data.teacher_by_id.get(requirement.teacher_id)
        school_class = master_data.class_by_id.get(requirement.class_id)
        subject = master_data.subject_by_id.get(requirement.subject_id)

        if teacher is None:
            add("unknown-reference", f"Unknown teacher id {requirement.teacher_id}")
        elif not teacher.is_active:
            add("inactive-teacher", f"Teacher {teacher.code} is not active")
        if school_class is None:
            add("unknown-reference", f"Unknown class id {requirement.class_id}")
        elif not school_class.is_active:
            add("inactive-class", f"Class {school_class.name} is not active")
        if subject is None:
            add("unknown-reference", f"Unknown subject id {requirement.subject_id}")

        if requirement.periods_per_week <= 0:
            add("non-positive-periods", f"periods_per_week must be positive, got {requirement.periods_per_week}")
        else:
            available = slot_count
            if teacher is not None:
                available = sum(1 for slot in master_data.time_slots if teacher.is_available(slot.id))
            if requirement.periods_per_week > available:
                add(
                    "too-many-periods",
                    f"periods_per_week {requirement.periods_per_week} exceeds the {available} "
                    "time slot(s) available in the week",
                )

        if teacher is not None and subject is not None and teacher.subject_ids and subject.id not in teacher.subject_ids:
            add("unqualified-teacher", f"Teacher {teacher.code} is not qualified for subject {subject.name}")

        if subject is not None and not master_data.eligible_rooms(subject, school_class):
            required = subject.required_room_type or "any"
            add(
                "unsatisfiable-room-type",
                f"No active room of type {required} can host subject {subject.name}"
                + (f" for class {school_class.name}" if school_class is not None else ""),
            )

    violations.extend(_pinned_violations(list(pinned or []), master_data))

    if violations:
        logger.info(
            "REQUIREMENT VALIDATION FAILED | requirements=%s | violations=%s",
            len(requirements),
            len(violations),
        )
    return violations


def ensure_valid(
    requirements: list[Requirement],
    master_data: MasterData,
    pinned: list[Assignment] | None = None,
) -> None:
    violations = validate_requirements(requirements, master_data, pinned)
    if violations:
        raise InvalidRequirementError(violations)
