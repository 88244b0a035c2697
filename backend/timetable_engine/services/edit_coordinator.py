from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock

from timetable_engine.core.exceptions import ConcurrentEditConflictError
from timetable_engine.schemas.editor import EditResult
from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.schedule import Schedule
from timetable_engine.services.editor import apply_edit

logger = logging.getLogger(__name__)


class EditCoordinator:
    """Serializes edits per schedule id and rejects edits built on a stale revision.

    The coordinator remembers the latest revision it produced for each schedule.
    An edit whose snapshot (or `expected_revision`) is older than that revision
    raises `ConcurrentEditConflictError`. Per-schedule locks only live while
    someone holds or waits for them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._holders: dict[str, int] = {}
        self._revisions: dict[str, int] = {}
        self._guard = Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, schedule_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(schedule_id)
            if lock is None:
                lock = Lock()
                self._locks[schedule_id] = lock
            self._holders[schedule_id] = self._holders.get(schedule_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[schedule_id] -= 1
                if not self._holders[schedule_id]:
                    del self._holders[schedule_id]
                    del self._locks[schedule_id]

    def latest_revision(self, schedule_id: str) -> int | None:
        with self._guard:
            return self._revisions.get(schedule_id)

    def apply(
        self,
        schedule: Schedule,
        assignment_id: str,
        *,
        master_data: MasterData,
        new_room_id: str | None = None,
        new_time_slot_id: str | None = None,
        override: bool | None = None,
        expected_revision: int | None = None,
    ) -> EditResult:
        with self.hold(schedule.id):
            latest = self.latest_revision(schedule.id)
            based_on = schedule.revision if expected_revision is None else expected_revision
            if latest is not None and based_on < latest:
                logger.warning(
                    "SCHEDULE EDIT REJECTED | schedule_id=%s | assignment_id=%s | based_on=%s | latest=%s",
                    schedule.id,
                    assignment_id,
                    based_on,
                    latest,
                )
                raise ConcurrentEditConflictError(schedule.id, based_on, latest)

            result = apply_edit(
                schedule,
                assignment_id,
                master_data=master_data,
                new_room_id=new_room_id,
                new_time_slot_id=new_time_slot_id,
                override=override,
                expected_revision=expected_revision,
            )
            with self._guard:
                self._revisions[schedule.id] = result.schedule.revision
            return result

    def forget(self, schedule_id: str) -> None:
        """Drop the revision record, e.g. after the schedule was regenerated or deleted."""
        with self._guard:
            self._revisions.pop(schedule_id, None)

    def clear(self) -> None:
        with self._guard:
            self._revisions.clear()
