"""Reconcile one edited schedule row back into per-weekday records.

A row is either new, a direct reference to one record, or a grouped row
standing for several records of the same section that differ only by
weekday. Grouped rows pair backing record ``i`` with edited weekday ``i``
by position: the first ``min(N, M)`` records are updated, extra weekdays
create records and surplus records are deleted.

Writes are issued one at a time and each commits on its own. A failure
part-way through leaves the earlier writes in place and is reported as a
partial write failure.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from schedule_hub.core.exceptions import (
    PartialWriteFailureError,
    PermissionDeniedError,
    ReferenceNotFoundError,
    ScheduleError,
    ValidationFailedError,
)
from schedule_hub.models.schedule import LocationType
from schedule_hub.schemas.schedule import MeetingPattern, ScheduleRecord, ScheduleViewRow
from schedule_hub.services.audit import AuditSink
from schedule_hub.services.courses import parse_course_code, standardize_course_code
from schedule_hub.services.grouping import ViewKind, ViewReference, decode_view_id, resolve_backing_records
from schedule_hub.services.identity import derive_schedule_identity
from schedule_hub.services.instructors import PeopleIndex, merge_instructor_assignments, resolve_instructor_id
from schedule_hub.services.locations import LocationResolver
from schedule_hub.services.meetings import extract_day_codes, normalize_time
from schedule_hub.services.notifications import NotificationSink
from schedule_hub.services.record_store import ScheduleStore
from schedule_hub.services.terms import DEFAULT_CALENDAR, TermCalendar, TermLockGuard

logger = logging.getLogger(__name__)

ENTITY_KIND = "schedules"


class TermLookup(Protocol):
    def normalize_term_label(self, term: str) -> str: ...

    def term_code_from_label(self, term: str) -> str: ...

    def is_term_locked(self, term: str) -> bool: ...


@dataclass(frozen=True)
class ActorCapabilities:
    actor_id: str | None = None
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    privileged: bool = False

    @classmethod
    def from_grants(
        cls,
        grants: Iterable[str],
        *,
        actor_id: str | None = None,
        entity_kind: str = ENTITY_KIND,
    ) -> "ActorCapabilities":
        """Build capabilities from grant strings such as ``schedules:edit`` or ``admin``."""
        normalized = {item.strip().lower() for item in grants if item and item.strip()}
        if "admin" in normalized:
            return cls(actor_id=actor_id, can_create=True, can_edit=True, can_delete=True, privileged=True)
        return cls(
            actor_id=actor_id,
            can_create=f"{entity_kind}:create" in normalized,
            can_edit=f"{entity_kind}:edit" in normalized,
            can_delete=f"{entity_kind}:delete" in normalized,
        )


@dataclass
class WritePlan:
    kind: ViewKind
    label: str
    updates: list[tuple[ScheduleRecord, dict[str, Any]]] = field(default_factory=list)
    creates: list[dict[str, Any]] = field(default_factory=list)
    deletes: list[ScheduleRecord] = field(default_factory=list)


@dataclass
class ReconcileOutcome:
    ok: bool
    kind: ViewKind
    level: str
    title: str
    message: str
    entity_kind: str = ENTITY_KIND
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    error: ScheduleError | None = None


def _plural(count: int) -> str:
    return "record" if count == 1 else "records"


def _snapshot(data: dict[str, Any]) -> dict[str, Any]:
    return _original(ScheduleRecord.model_validate(data))


def _original(record: ScheduleRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True, exclude={"created_at", "updated_at"})


class ScheduleReconciler:
    def __init__(
        self,
        store: ScheduleStore,
        *,
        people: PeopleIndex,
        terms: TermLookup,
        locations: LocationResolver,
        capabilities: ActorCapabilities,
        audit: AuditSink,
        notifier: NotificationSink,
        calendar: TermCalendar = DEFAULT_CALENDAR,
        default_term: str | None = None,
        default_schedule_type: str = "Class Instruction",
        default_status: str = "Active",
        source: str = "schedule_reconciler",
    ) -> None:
        self.store = store
        self.people = people
        self.terms = terms
        self.locations = locations
        self.capabilities = capabilities
        self.audit = audit
        self.notifier = notifier
        self.calendar = calendar
        self.default_term = default_term
        self.default_schedule_type = default_schedule_type
        self.default_status = default_status
        self.source = source

    def reconcile(self, row: ScheduleViewRow) -> ReconcileOutcome:
        reference = decode_view_id(row.id, row.original_id)
        created: list[str] = []
        updated: list[str] = []
        deleted: list[str] = []
        try:
            plan = self._plan(row, reference)
            self._apply(plan, created, updated, deleted)
        except ScheduleError as exc:
            return self._fail(reference.kind, exc, created, updated, deleted)
        except Exception as exc:
            logger.exception("Unexpected failure reconciling schedule row %s", row.id)
            error = ScheduleError(f"Failed to update schedule: {exc}")
            return self._fail(reference.kind, error, created, updated, deleted)

        if plan.kind == ViewKind.new:
            title = "Schedule Created"
            message = f"Created {len(created)} schedule {_plural(len(created))} for {plan.label}."
        elif plan.kind == ViewKind.grouped:
            title = "Grouped Schedule Updated"
            message = (
                f"{plan.label}: {len(updated)} updated, {len(created)} created, {len(deleted)} deleted."
            )
        else:
            title = "Schedule Updated"
            message = f"Updated {plan.label}."
        logger.info(
            "Reconciled %s row %s: %d updated, %d created, %d deleted",
            plan.kind.value,
            row.id,
            len(updated),
            len(created),
            len(deleted),
        )
        self.notifier.notify("success", title, message)
        return ReconcileOutcome(
            ok=True,
            kind=plan.kind,
            level="success",
            title=title,
            message=message,
            created=created,
            updated=updated,
            deleted=deleted,
        )

    def delete(self, view_id: str) -> ReconcileOutcome:
        reference = decode_view_id(view_id)
        deleted: list[str] = []
        try:
            if not self.capabilities.can_delete:
                raise PermissionDeniedError("delete")
            if reference.kind == ViewKind.new:
                raise ReferenceNotFoundError([], "Schedule has not been saved yet.")
            backing = resolve_backing_records(reference, self.store.get_many(reference.backing_ids))
            self._guard().check((record.term for record in backing), action="Deleting")
            self._apply(WritePlan(kind=reference.kind, label="", deletes=backing), [], [], deleted)
        except ScheduleError as exc:
            return self._fail(reference.kind, exc, [], [], deleted)
        except Exception as exc:
            logger.exception("Unexpected failure deleting schedule row %s", view_id)
            error = ScheduleError(f"Failed to delete schedule: {exc}")
            return self._fail(reference.kind, error, [], [], deleted)

        first = backing[0]
        message = f"Deleted {len(deleted)} schedule {_plural(len(deleted))} for {first.course_code} {first.section}."
        self.notifier.notify("success", "Schedule Deleted", message)
        return ReconcileOutcome(
            ok=True,
            kind=reference.kind,
            level="success",
            title="Schedule Deleted",
            message=message,
            deleted=deleted,
        )

    def _guard(self) -> TermLockGuard:
        return TermLockGuard(self.terms.is_term_locked, privileged=self.capabilities.privileged)

    def _fail(
        self,
        kind: ViewKind,
        error: ScheduleError,
        created: list[str],
        updated: list[str],
        deleted: list[str],
    ) -> ReconcileOutcome:
        if isinstance(error, PartialWriteFailureError):
            logger.error("Schedule write sequence stopped part-way: %s", error.message)
        else:
            logger.warning("Schedule reconciliation rejected: %s", error.message)
        self.notifier.notify(error.level, error.title, error.message)
        return ReconcileOutcome(
            ok=False,
            kind=kind,
            level=error.level,
            title=error.title,
            message=error.message,
            created=created,
            updated=updated,
            deleted=deleted,
            error=error,
        )

    def _plan(self, row: ScheduleViewRow, reference: ViewReference) -> WritePlan:
        if reference.kind == ViewKind.new:
            if not self.capabilities.can_create:
                raise PermissionDeniedError("create")
        elif not self.capabilities.can_edit:
            raise PermissionDeniedError("edit")

        backing = resolve_backing_records(reference, self.store.get_many(reference.backing_ids))
        previous = backing[0] if backing else None

        shared = self._shared_fields(row, previous)
        day_codes = extract_day_codes(row.day)
        start_time = normalize_time(row.start_time)
        end_time = normalize_time(row.end_time)
        day_patterns = [MeetingPattern(day=code, start_time=start_time, end_time=end_time) for code in day_codes]
        has_meeting = bool(day_codes) and bool(start_time) and bool(end_time)
        kept_patterns: list[MeetingPattern] = []
        if reference.kind == ViewKind.single and not day_codes:
            kept_patterns = list(previous.meeting_patterns)
            has_meeting = bool(kept_patterns)
        if shared["is_online"]:
            shared["online_mode"] = (
                row.online_mode
                or (previous.online_mode if previous else None)
                or ("synchronous" if has_meeting else "asynchronous")
            )

        errors: list[str] = []
        if not shared["course_code"]:
            errors.append("Course code is required")
        if not shared["term"]:
            errors.append("Term is required")
        if not shared["section"]:
            errors.append("Section is required")
        requires_meeting = not shared["is_online"] or shared["online_mode"] == "synchronous"
        if requires_meeting and not has_meeting:
            errors.append("Meeting days and times are required for in-person or synchronous courses")
        if reference.kind == ViewKind.grouped and not day_codes:
            errors.append("Meeting days are required for grouped schedules")
        if errors:
            raise ValidationFailedError(errors)

        action = "Creating" if reference.kind == ViewKind.new else "Editing"
        self._guard().check([shared["term"], *(record.term for record in backing)], action=action)

        plan = WritePlan(kind=reference.kind, label=f"{shared['course_code']} {shared['section']}")
        if reference.kind == ViewKind.new:
            for pattern in day_patterns or [None]:
                plan.creates.append(self._with_identity(shared, [pattern] if pattern else []))
        elif reference.kind == ViewKind.single:
            if len(day_patterns) > 1:
                logger.warning(
                    "Single schedule %s saved with %d weekdays; it stays one record",
                    previous.id,
                    len(day_patterns),
                )
            patterns = day_patterns or kept_patterns
            plan.updates.append((previous, {**shared, "meeting_patterns": self._dump(patterns)}))
        else:
            shared_count = min(len(backing), len(day_patterns))
            for index in range(shared_count):
                data = {**shared, "meeting_patterns": self._dump([day_patterns[index]])}
                plan.updates.append((backing[index], data))
            for pattern in day_patterns[shared_count:]:
                plan.creates.append(self._with_identity(shared, [pattern]))
            plan.deletes.extend(backing[shared_count:])

        if plan.creates and not self.capabilities.can_create:
            raise PermissionDeniedError("create")
        if plan.deletes and not self.capabilities.can_delete:
            raise PermissionDeniedError("delete")
        return plan

    def _shared_fields(self, row: ScheduleViewRow, previous: ScheduleRecord | None) -> dict[str, Any]:
        """Course-level fields written to every record the row maps to."""
        course_code = standardize_course_code(row.course or (previous.course_code if previous else ""))
        parsed = parse_course_code(course_code)
        term = self.terms.normalize_term_label(
            row.term or (previous.term if previous else "") or self.default_term or ""
        )
        term_code = (
            self.terms.term_code_from_label(term)
            or row.term_code
            or (previous.term_code if previous else "")
        )

        if parsed.error is None:
            program = parsed.program
            catalog_number = parsed.catalog_number
            course_level = parsed.level
            credits = parsed.credits
            if parsed.is_variable_credit and previous is not None:
                credits = previous.credits
        else:
            program = previous.program if previous else parsed.program
            catalog_number = previous.catalog_number if previous else ""
            course_level = previous.course_level if previous else 0
            credits = previous.credits if previous else None

        schedule_type = row.schedule_type or (previous.schedule_type if previous else "") or self.default_schedule_type

        instructor_id = resolve_instructor_id(
            self.people,
            candidate_id=row.instructor_id,
            candidate_name=row.instructor,
        )
        merged = merge_instructor_assignments(instructor_id, previous)

        if row.room is None and row.rooms is None and previous is not None and not row.is_online:
            location_type = previous.location_type
            location_label = previous.location_label
            space_ids = list(previous.space_ids)
            space_display_names = list(previous.space_display_names)
        else:
            resolved = self.locations.resolve(
                row.rooms if row.rooms is not None else row.room,
                is_online=row.is_online,
                schedule_type=schedule_type,
                previous=previous,
            )
            location_type = resolved.location_type
            location_label = resolved.location_label
            space_ids = resolved.space_ids
            space_display_names = resolved.space_display_names

        return {
            "course_code": course_code,
            "course_title": row.course_title or (previous.course_title if previous else ""),
            "program": program,
            "subject_code": program,
            "catalog_number": catalog_number,
            "course_level": course_level,
            "section": row.section or (previous.section if previous else ""),
            "crn": row.crn or (previous.crn if previous else ""),
            "term": term,
            "term_code": term_code,
            "credits": credits,
            "max_enrollment": row.max_enrollment if row.max_enrollment is not None else (
                previous.max_enrollment if previous else None
            ),
            "schedule_type": schedule_type,
            "instruction_method": row.instruction_method or (previous.instruction_method if previous else ""),
            "status": row.status or (previous.status if previous else "") or self.default_status,
            "instructor_id": merged.primary_id,
            "instructor_ids": merged.instructor_ids,
            "instructor_assignments": [item.model_dump(by_alias=True) for item in merged.assignments],
            "location_type": LocationType(location_type),
            "location_label": location_label,
            "space_ids": space_ids,
            "space_display_names": space_display_names,
            "is_online": row.is_online,
            "online_mode": None,
        }

    def _dump(self, patterns: list[MeetingPattern]) -> list[dict[str, str]]:
        return [pattern.model_dump(by_alias=True) for pattern in patterns]

    def _with_identity(self, shared: dict[str, Any], patterns: list[MeetingPattern]) -> dict[str, Any]:
        identity = derive_schedule_identity(
            course_code=shared["course_code"],
            section=shared["section"],
            term=shared["term"],
            term_code=shared["term_code"],
            crn=shared["crn"],
            meeting_patterns=patterns,
            space_ids=shared["space_ids"],
            room_names=shared["space_display_names"],
            calendar=self.calendar,
        )
        return {
            **shared,
            "meeting_patterns": self._dump(patterns),
            "identity_key": identity.primary_key,
            "identity_keys": identity.keys,
            "identity_source": identity.source,
        }

    def _apply(
        self,
        plan: WritePlan,
        created: list[str],
        updated: list[str],
        deleted: list[str],
    ) -> None:
        try:
            for record, data in plan.updates:
                self.store.update(record.id, data)
                updated.append(record.id)
                self.audit.record_update(
                    f"Updated schedule {plan.label}",
                    ENTITY_KIND,
                    [record.id],
                    _snapshot({**record.model_dump(), **data}),
                    _original(record),
                    self.source,
                )
            for data in plan.creates:
                record_id = self.store.create(data)
                created.append(record_id)
                self.audit.record_create(
                    f"Created schedule {plan.label}",
                    ENTITY_KIND,
                    [record_id],
                    _snapshot({"id": record_id, **data}),
                    None,
                    self.source,
                )
            for record in plan.deletes:
                self.store.delete(record.id)
                deleted.append(record.id)
                self.audit.record_delete(
                    f"Deleted schedule {record.course_code} {record.section}",
                    ENTITY_KIND,
                    [record.id],
                    None,
                    _original(record),
                    self.source,
                )
        except Exception as exc:
            logger.exception("Schedule write failed after %d writes", len(created) + len(updated) + len(deleted))
            raise PartialWriteFailureError(exc, created=created, updated=updated, deleted=deleted) from exc
