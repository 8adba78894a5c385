"""
Access to the ownership relation.

The traversal only needs four lookups, described by OwnershipRelation.
InMemoryOwnershipRelation serves tests and small batch jobs; the Neo4j
backend lives in gem_ownership.db.queries.ownership_queries.
"""

import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from gem_ownership.models import Direction, OwnershipRecord


class OwnershipRelation(Protocol):
    def records_for_subject(self, subject_id: str) -> List[OwnershipRecord]:
        """Rows where subject_id is owned (its owners)."""
        ...

    def records_for_owner(self, owner_id: str) -> List[OwnershipRecord]:
        """Rows where owner_id is the owner (its holdings)."""
        ...

    def records_for_subjects(self, subject_ids: Sequence[str]) -> List[OwnershipRecord]: ...

    def records_for_owners(self, owner_ids: Sequence[str]) -> List[OwnershipRecord]: ...


class InMemoryOwnershipRelation:
    """Ownership rows indexed by subject and by owner."""

    def __init__(self, records: Iterable[OwnershipRecord] = ()):
        self._by_subject: Dict[str, List[OwnershipRecord]] = defaultdict(list)
        self._by_owner: Dict[str, List[OwnershipRecord]] = defaultdict(list)
        for record in records:
            self.add(record)

    def add(self, record: OwnershipRecord) -> None:
        self._by_subject[record.subject_id].append(record)
        if record.owner_id:
            self._by_owner[record.owner_id].append(record)

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._by_subject.values())

    def records_for_subject(self, subject_id: str) -> List[OwnershipRecord]:
        return list(self._by_subject.get(subject_id, []))

    def records_for_owner(self, owner_id: str) -> List[OwnershipRecord]:
        return list(self._by_owner.get(owner_id, []))

    def records_for_subjects(self, subject_ids: Sequence[str]) -> List[OwnershipRecord]:
        rows: List[OwnershipRecord] = []
        for subject_id in dict.fromkeys(subject_ids):
            rows.extend(self._by_subject.get(subject_id, []))
        return rows

    def records_for_owners(self, owner_ids: Sequence[str]) -> List[OwnershipRecord]:
        rows: List[OwnershipRecord] = []
        for owner_id in dict.fromkeys(owner_ids):
            rows.extend(self._by_owner.get(owner_id, []))
        return rows


class RelationCache:
    """
    Memo of relation rows keyed by (direction, id).

    Meant to live for one request or one batch job. Safe to share between
    traversals running on different threads.
    """

    def __init__(self):
        self._rows: Dict[Tuple[Direction, str], List[OwnershipRecord]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def split(self, direction: Direction, ids: Sequence[str]) -> Tuple[Dict[str, List[OwnershipRecord]], List[str]]:
        """Return (cached rows by id, ids still to fetch)."""
        found: Dict[str, List[OwnershipRecord]] = {}
        missing: List[str] = []
        with self._lock:
            for node_id in ids:
                rows = self._rows.get((direction, node_id))
                if rows is None:
                    missing.append(node_id)
                else:
                    found[node_id] = rows
            self.hits += len(found)
            self.misses += len(missing)
        return found, missing

    def store(self, direction: Direction, rows_by_id: Dict[str, List[OwnershipRecord]]) -> None:
        with self._lock:
            for node_id, rows in rows_by_id.items():
                self._rows[(direction, node_id)] = list(rows)

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)
