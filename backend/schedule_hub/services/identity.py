"""Deterministic identity keys for schedule records.

Keys are tried strongest first when matching imports against stored records:
``clss:`` (scheduling system id), ``crn:`` (registrar reference number),
``section:`` (term + course + section) and ``composite:`` (course, term,
meeting signature and room).
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from schedule_hub.schemas.schedule import MeetingPattern
from schedule_hub.services.courses import generate_section_id, normalize_section_number, standardize_course_code
from schedule_hub.services.meetings import normalize_time
from schedule_hub.services.terms import DEFAULT_CALENDAR, TermCalendar, normalize_term_label, term_code_from_label


@dataclass(frozen=True)
class ScheduleIdentity:
    primary_key: str
    keys: list[str] = field(default_factory=list)
    source: str = ""
    components: dict[str, str] = field(default_factory=dict)


def normalize_key_part(value: object) -> str:
    cleaned = "" if value is None else str(value).strip()
    return re.sub(r"[^A-Za-z0-9]+", "_", cleaned).strip("_")


def normalize_crn(value: object) -> str:
    digits = re.sub(r"\D", "", "" if value is None else str(value))
    return digits if re.fullmatch(r"\d{5,6}", digits) else ""


def meeting_pattern_key(patterns: Sequence[MeetingPattern]) -> str:
    normalized = sorted(
        (
            (pattern.day or "").strip().upper(),
            normalize_time(pattern.start_time),
            normalize_time(pattern.end_time),
        )
        for pattern in patterns
    )
    return "~".join("|".join(part for part in entry if part) for entry in normalized)


def room_key(space_ids: Sequence[str], room_names: Sequence[str] = ()) -> str:
    normalized_ids = sorted(part for part in (normalize_key_part(item) for item in space_ids) if part)
    if normalized_ids:
        return "|".join(normalized_ids)
    names = sorted(name for name in (str(item or "").strip().lower() for item in room_names) if name)
    return "|".join(names)


def derive_schedule_identity(
    *,
    course_code: str,
    section: str,
    term: str,
    term_code: str = "",
    clss_id: str = "",
    crn: str = "",
    meeting_patterns: Sequence[MeetingPattern] = (),
    space_ids: Sequence[str] = (),
    room_names: Sequence[str] = (),
    calendar: TermCalendar = DEFAULT_CALENDAR,
) -> ScheduleIdentity:
    normalized_course = standardize_course_code(course_code)
    normalized_section = normalize_section_number(section)
    normalized_term = normalize_term_label(term, calendar)
    resolved_term_code = term_code_from_label(term_code or normalized_term or term, calendar)
    term_key = resolved_term_code or normalized_term or (term or "").strip()
    normalized_clss = (clss_id or "").strip()
    normalized_crn = normalize_crn(crn)
    term_part = normalize_key_part(term_key)

    keys: list[str] = []
    if normalized_clss:
        keys.append(f"clss:{term_part}:{normalize_key_part(normalized_clss)}")
    if normalized_crn:
        keys.append(f"crn:{term_part}:{normalized_crn}")

    section_id = generate_section_id(
        term_code=resolved_term_code or term_key,
        course_code=normalized_course,
        section_number=normalized_section,
    )
    if section_id:
        keys.append(f"section:{normalize_key_part(section_id)}")

    course_part = normalize_key_part(normalized_course).upper()
    meeting_part = normalize_key_part(meeting_pattern_key(meeting_patterns))
    room_part = normalize_key_part(room_key(space_ids, room_names))
    composite_key = ""
    if course_part and term_part and meeting_part and room_part:
        composite_key = f"composite:{course_part}:{term_part}:{meeting_part}:{room_part}"
        keys.append(composite_key)

    primary_key = keys[0] if keys else ""
    return ScheduleIdentity(
        primary_key=primary_key,
        keys=keys,
        source=primary_key.split(":", 1)[0] if primary_key else "",
        components={
            "term": normalized_term,
            "term_code": resolved_term_code,
            "term_key": term_key,
            "course_code": normalized_course,
            "section_number": normalized_section,
            "clss_id": normalized_clss,
            "crn": normalized_crn,
            "section_id": section_id,
            "composite_key": composite_key,
        },
    )
