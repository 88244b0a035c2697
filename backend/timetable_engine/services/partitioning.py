from __future__ import annotations

from timetable_engine.schemas.master_data import MasterData
from timetable_engine.schemas.requirement import Requirement


class _DisjointSet:
    def __init__(self) -> None:
        self._parent: dict[str, str] = {}

    def find(self, key: str) -> str:
        self._parent.setdefault(key, key)
        root = key
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[key] != root:
            self._parent[key], key = root, self._parent[key]
        return root

    def union(self, left: str, right: str) -> None:
        left_root, right_root = self.find(left), self.find(right)
        if left_root == right_root:
            return
        # Smaller key wins so roots do not depend on union order.
        if right_root < left_root:
            left_root, right_root = right_root, left_root
        self._parent[right_root] = left_root


def partition_requirements(requirements: list[Requirement], master_data: MasterData) -> list[list[Requirement]]:
    """Split requirements into groups that share no teacher, class or candidate room.

    Groups keep the input order of their members and are ordered by the position
    of their first member, so the split is deterministic.
    """
    sets = _DisjointSet()
    for requirement in requirements:
        node = f"requirement:{requirement.id}"
        sets.union(node, f"teacher:{requirement.teacher_id}")
        sets.union(node, f"class:{requirement.class_id}")
        subject = master_data.subject_by_id.get(requirement.subject_id)
        school_class = master_data.class_by_id.get(requirement.class_id)
        for room in master_data.eligible_rooms(subject, school_class):
            sets.union(node, f"room:{room.id}")

    groups: dict[str, list[Requirement]] = {}
    for requirement in requirements:
        root = sets.find(f"requirement:{requirement.id}")
        groups.setdefault(root, []).append(requirement)
    return list(groups.values())
