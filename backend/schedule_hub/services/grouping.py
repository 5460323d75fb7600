from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from schedule_hub.core.exceptions import ReferenceNotFoundError
from schedule_hub.schemas.schedule import ScheduleRecord, ScheduleViewRow
from schedule_hub.services.meetings import DAY_ORDER

NEW_PREFIX = "new_"
GROUPED_TAG = "grouped"
SEPARATOR = "::"


class ViewKind(str, Enum):
    new = "new"
    single = "single"
    grouped = "grouped"


@dataclass(frozen=True)
class ViewReference:
    kind: ViewKind
    backing_ids: tuple[str, ...] = ()


def new_view_id() -> str:
    return f"{NEW_PREFIX}{uuid.uuid4().hex}"


def encode_grouped_id(discriminant: str | int, backing_ids: Sequence[str]) -> str:
    return SEPARATOR.join([GROUPED_TAG, str(discriminant), *backing_ids])


def decode_view_id(view_id: str, original_id: str | None = None) -> ViewReference:
    if view_id.startswith(NEW_PREFIX):
        return ViewReference(ViewKind.new)
    if view_id.startswith(GROUPED_TAG + SEPARATOR):
        parts = view_id.split(SEPARATOR)
        return ViewReference(ViewKind.grouped, tuple(part for part in parts[2:] if part))
    return ViewReference(ViewKind.single, (original_id or view_id,))


def resolve_backing_records(
    reference: ViewReference,
    records: Mapping[str, ScheduleRecord],
) -> list[ScheduleRecord]:
    """Backing records in the order the view id lists them."""
    if reference.kind == ViewKind.new:
        return []
    if not reference.backing_ids:
        raise ReferenceNotFoundError([], "Original schedules not found for grouped course.")
    missing = [backing_id for backing_id in reference.backing_ids if backing_id not in records]
    if missing:
        message = (
            "Original schedules not found for grouped course."
            if reference.kind == ViewKind.grouped
            else "Original schedule not found."
        )
        raise ReferenceNotFoundError(missing, message)
    return [records[backing_id] for backing_id in reference.backing_ids]


def _primary_day(record: ScheduleRecord) -> str:
    return record.meeting_patterns[0].day if record.meeting_patterns else ""


def _group_key(record: ScheduleRecord) -> tuple:
    pattern = record.meeting_patterns[0] if record.meeting_patterns else None
    return (
        record.course_code,
        record.section,
        record.term,
        record.crn,
        record.instructor_id or "",
        pattern.start_time if pattern else "",
        pattern.end_time if pattern else "",
        "; ".join(record.space_display_names),
    )


def to_view_row(record: ScheduleRecord, *, view_id: str, day: str) -> ScheduleViewRow:
    pattern = record.meeting_patterns[0] if record.meeting_patterns else None
    return ScheduleViewRow(
        id=view_id,
        course=record.course_code,
        course_title=record.course_title,
        section=record.section,
        crn=record.crn,
        term=record.term,
        term_code=record.term_code,
        day=day,
        start_time=pattern.start_time if pattern else "",
        end_time=pattern.end_time if pattern else "",
        room="; ".join(record.space_display_names) or record.location_label,
        instructor_id=record.instructor_id,
        schedule_type=record.schedule_type,
        instruction_method=record.instruction_method,
        status=record.status,
        max_enrollment=record.max_enrollment,
        is_online=record.is_online,
        online_mode=record.online_mode,
    )


def group_view_rows(records: Iterable[ScheduleRecord]) -> list[ScheduleViewRow]:
    """Collapse per-weekday records of one section meeting into grouped rows.

    Backing ids inside a grouped id are ordered like the day string so that
    position ``i`` of the id pairs with weekday ``i`` on save.
    """
    groups: dict[tuple, list[ScheduleRecord]] = {}
    for record in records:
        groups.setdefault(_group_key(record), []).append(record)

    rows: list[ScheduleViewRow] = []
    for index, members in enumerate(groups.values()):
        dated = [member for member in members if _primary_day(member)]
        if len(members) == 1 or len(dated) != len(members):
            for member in members:
                days = "".join(pattern.day for pattern in member.meeting_patterns)
                rows.append(to_view_row(member, view_id=member.id, day=days))
            continue

        ordered = sorted(dated, key=lambda member: DAY_ORDER.get(_primary_day(member), len(DAY_ORDER) + 1))
        rows.append(
            to_view_row(
                ordered[0],
                view_id=encode_grouped_id(index, [member.id for member in ordered]),
                day="".join(_primary_day(member) for member in ordered),
            )
        )
    return rows
