from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from schedule_hub.core.config import Settings
from schedule_hub.core.exceptions import TermLockedError
from schedule_hub.models.term import Term, TermStatus

TERM_LABEL_PATTERN = re.compile(r"^([A-Za-z]+)[\s-]*(\d{2}|\d{4})$")
TERM_CODE_PATTERN = re.compile(r"^\d{6}$")


@dataclass(frozen=True)
class TermCalendar:
    code_to_season: dict[str, str] = field(
        default_factory=lambda: {"10": "Winter", "30": "Fall", "40": "Spring", "50": "Summer"}
    )
    season_order: tuple[str, ...] = ("Winter", "Spring", "Summer", "Fall")
    two_digit_year_base: int = 2000

    @classmethod
    def from_settings(cls, settings: Settings) -> "TermCalendar":
        return cls(
            code_to_season={str(key).strip(): value.strip() for key, value in settings.term_code_to_season.items()},
            season_order=tuple(settings.term_season_order),
            two_digit_year_base=settings.term_two_digit_year_base,
        )

    def season_names(self) -> list[str]:
        names = list(dict.fromkeys(item for item in self.season_order if item))
        for season in self.code_to_season.values():
            if season and season not in names:
                names.append(season)
        return names


DEFAULT_CALENDAR = TermCalendar()


def normalize_season_label(season: str, calendar: TermCalendar = DEFAULT_CALENDAR) -> str:
    cleaned = (season or "").strip()
    if not cleaned:
        return ""
    for name in calendar.season_names():
        if name.lower() == cleaned.lower():
            return name
    return cleaned[:1].upper() + cleaned[1:].lower()


def parse_term_label(term: str, calendar: TermCalendar = DEFAULT_CALENDAR) -> tuple[str, int] | None:
    match = TERM_LABEL_PATTERN.match((term or "").strip())
    if not match:
        return None
    year_token = match.group(2)
    year = int(year_token)
    if len(year_token) == 2:
        year += calendar.two_digit_year_base
    return normalize_season_label(match.group(1), calendar), year


def term_label_from_code(term_code: str, calendar: TermCalendar = DEFAULT_CALENDAR) -> str:
    cleaned = (term_code or "").strip()
    if not TERM_CODE_PATTERN.match(cleaned):
        return ""
    season = calendar.code_to_season.get(cleaned[4:])
    if not season:
        return ""
    return f"{normalize_season_label(season, calendar)} {int(cleaned[:4])}"


def normalize_term_label(term: str, calendar: TermCalendar = DEFAULT_CALENDAR) -> str:
    """Return the canonical "Season YYYY" label, accepting codes and short years."""
    cleaned = (term or "").strip()
    if not cleaned:
        return ""
    parsed = parse_term_label(cleaned, calendar)
    if parsed:
        season, year = parsed
        return f"{season} {year}"
    return term_label_from_code(cleaned, calendar) or cleaned


def term_code_from_label(value: str, calendar: TermCalendar = DEFAULT_CALENDAR) -> str:
    cleaned = str(value or "").strip()
    if not cleaned:
        return ""
    if TERM_CODE_PATTERN.match(cleaned):
        return cleaned
    parsed = parse_term_label(cleaned, calendar)
    if not parsed:
        return ""
    season, year = parsed
    for code, label in calendar.code_to_season.items():
        if label and label.lower() == season.lower():
            return f"{year}{code}"
    return ""


class TermDirectory:
    """Read-only snapshot of term lock state."""

    def __init__(self, locked_terms: Iterable[str] = (), calendar: TermCalendar = DEFAULT_CALENDAR) -> None:
        self.calendar = calendar
        self._locked = {normalize_term_label(term, calendar) for term in locked_terms if term}

    @classmethod
    def from_session(cls, db: Session, calendar: TermCalendar = DEFAULT_CALENDAR) -> "TermDirectory":
        rows = db.execute(select(Term)).scalars()
        locked = [row.term for row in rows if row.locked or row.status == TermStatus.archived]
        return cls(locked, calendar)

    def normalize_term_label(self, term: str) -> str:
        return normalize_term_label(term, self.calendar)

    def term_code_from_label(self, term: str) -> str:
        return term_code_from_label(term, self.calendar)

    def is_term_locked(self, term: str) -> bool:
        normalized = self.normalize_term_label(term)
        return bool(normalized) and normalized in self._locked


class TermLockGuard:
    def __init__(self, is_term_locked: Callable[[str], bool], *, privileged: bool = False) -> None:
        self._is_term_locked = is_term_locked
        self._privileged = privileged

    def allows(self, term: str) -> bool:
        if not term or self._privileged:
            return True
        return not self._is_term_locked(term)

    def check(self, terms: Iterable[str], *, action: str = "Editing") -> None:
        for term in dict.fromkeys(item for item in terms if item):
            if not self.allows(term):
                raise TermLockedError(term, action=action)
