from __future__ import annotations

import re

from schedule_hub.schemas.schedule import MeetingPattern

DAY_ORDER = {"M": 1, "T": 2, "W": 3, "R": 4, "F": 5, "S": 6, "U": 7}
DAY_CODE_PATTERN = re.compile(r"[MTWRF]")
TIME_TOKEN_PATTERN = re.compile(r"^(\d{1,2})(?::?(\d{2}))?(am|pm)?$")


def extract_day_codes(day: str | None) -> list[str]:
    """Weekday codes in the order they were typed; "MWF" -> ["M", "W", "F"]."""
    if not day or not isinstance(day, str):
        return []
    return DAY_CODE_PATTERN.findall(day)


def sort_day_codes(codes) -> list[str]:
    return sorted(codes, key=lambda code: DAY_ORDER.get(code, len(DAY_ORDER) + 1))


def normalize_time(value: str | None) -> str:
    """Canonical 12-hour form: "14:00" -> "2:00 PM", "9am" -> "9:00 AM"."""
    if not value:
        return ""
    cleaned = re.sub(r"[^0-9apm:]", "", str(value).lower())
    if not cleaned:
        return ""
    match = TIME_TOKEN_PATTERN.match(cleaned)
    if not match:
        return str(value).strip()

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    suffix = match.group(3)
    if suffix is None:
        if hour > 23:
            return str(value).strip()
        suffix = "pm" if hour >= 12 else "am"
    display_hour = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    return f"{display_hour}:{minute:02d} {suffix.upper()}"


def build_meeting_patterns(day_codes: list[str], start_time: str, end_time: str) -> list[MeetingPattern]:
    if not day_codes or not start_time or not end_time:
        return []
    return [MeetingPattern(day=code, start_time=start_time, end_time=end_time) for code in day_codes]
