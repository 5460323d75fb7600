from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from schedule_hub.models.person import Person
from schedule_hub.schemas.schedule import InstructorAssignment, ScheduleRecord

logger = logging.getLogger(__name__)

STAFF_PLACEHOLDER = "Staff"
UNASSIGNED = "Unassigned"


@dataclass(frozen=True)
class PersonRef:
    id: str
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    merged_into: str | None = None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.name or "Unknown"


class PeopleIndex:
    """Read-only snapshot of the personnel directory."""

    def __init__(self, people: Iterable[PersonRef] = ()) -> None:
        self._by_id: dict[str, PersonRef] = {}
        for person in people:
            if person.id:
                self._by_id[person.id] = person

    @classmethod
    def from_session(cls, db: Session) -> "PeopleIndex":
        rows = db.execute(select(Person)).scalars()
        return cls(
            PersonRef(
                id=row.id,
                first_name=row.first_name,
                last_name=row.last_name,
                name=row.name,
                merged_into=row.merged_into,
            )
            for row in rows
        )

    def resolve_id(self, candidate: str | None) -> str | None:
        """Follow ``merged_into`` links to the surviving record; None when unknown."""
        if not candidate or candidate not in self._by_id:
            return None
        current = candidate
        visited: set[str] = set()
        while current not in visited:
            visited.add(current)
            next_id = self._by_id[current].merged_into
            if not next_id or next_id not in self._by_id:
                break
            current = next_id
        return current

    def get(self, person_id: str | None) -> PersonRef | None:
        resolved = self.resolve_id(person_id)
        return self._by_id.get(resolved) if resolved else None

    def lookup_by_exact_name(self, name: str) -> PersonRef | None:
        for person in self._by_id.values():
            if person.merged_into:
                continue
            if name in (person.name, person.display_name):
                return person
        return None


@dataclass
class AssignmentMergeResult:
    assignments: list[InstructorAssignment] = field(default_factory=list)
    primary_id: str | None = None
    instructor_ids: list[str] = field(default_factory=list)


def resolve_instructor_id(
    people: PeopleIndex,
    *,
    candidate_id: str | None,
    candidate_name: str | None,
) -> str | None:
    if candidate_id:
        person = people.get(candidate_id)
        if person is not None:
            return person.id
    name = (candidate_name or "").strip()
    if name and name != STAFF_PLACEHOLDER:
        person = people.lookup_by_exact_name(name)
        if person is not None:
            return person.id
        logger.warning("Instructor %r not found in people index; keeping assignment unresolved", name)
    return None


def base_instructor_ids(reference: ScheduleRecord | None) -> list[str]:
    if reference is None:
        return []
    if reference.instructor_ids:
        return list(reference.instructor_ids)
    return [reference.instructor_id] if reference.instructor_id else []


def is_team_taught(reference: ScheduleRecord | None) -> bool:
    if reference is None:
        return False
    return len(reference.instructor_assignments) > 1 or len(base_instructor_ids(reference)) > 1


def merge_instructor_assignments(
    instructor_id: str | None,
    reference: ScheduleRecord | None,
) -> AssignmentMergeResult:
    """Merge the edited primary instructor into the reference record's assignments.

    Team-taught sections keep their co-instructors; single-instructor sections
    are replaced outright. The result always has exactly one primary when
    non-empty.
    """
    base_ids = base_instructor_ids(reference)
    working: dict[str, InstructorAssignment] = {}

    if is_team_taught(reference):
        for assignment in reference.instructor_assignments:
            working[assignment.person_id] = assignment.model_copy()
        if not working:
            for index, person_id in enumerate(base_ids):
                working[person_id] = InstructorAssignment(person_id=person_id, is_primary=index == 0)

    if instructor_id:
        if not is_team_taught(reference):
            working.clear()
        existing = working.get(instructor_id)
        for assignment in working.values():
            assignment.is_primary = False
        working[instructor_id] = InstructorAssignment(
            person_id=instructor_id,
            is_primary=True,
            percentage=existing.percentage if existing is not None else 100,
        )

    assignments = list(working.values())
    primaries = [assignment for assignment in assignments if assignment.is_primary]
    if assignments and not primaries:
        assignments[0].is_primary = True
    for extra in primaries[1:]:
        extra.is_primary = False

    primary = next((assignment for assignment in assignments if assignment.is_primary), None)
    primary_id = primary.person_id if primary is not None else instructor_id
    participants = [*base_ids, *([primary_id] if primary_id else []), *(item.person_id for item in assignments)]
    return AssignmentMergeResult(
        assignments=assignments,
        primary_id=primary_id,
        instructor_ids=[item for item in dict.fromkeys(participants) if item],
    )
