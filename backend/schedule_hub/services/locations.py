"""Room text parsing and resolution into canonical space keys.

A space key is ``BUILDINGCODE:SPACENUMBER`` (``GOEBEL:101``). Online and
"no room needed" locations are location types, never spaces.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from schedule_hub.models.building import Building
from schedule_hub.models.schedule import LocationType
from schedule_hub.schemas.schedule import ScheduleRecord

logger = logging.getLogger(__name__)

NO_ROOM_LABEL = "No Room Needed"


class LabelKind(str, Enum):
    physical = "physical"
    virtual = "virtual"
    none = "none"
    unknown = "unknown"


VIRTUAL_PATTERNS = [
    re.compile(r"\bonline\b", re.IGNORECASE),
    re.compile(r"\bzoom\b", re.IGNORECASE),
    re.compile(r"\bvirtual\b", re.IGNORECASE),
    re.compile(r"^synchronous\s+online$", re.IGNORECASE),
    re.compile(r"^asynchronous$", re.IGNORECASE),
    re.compile(r"^remote$", re.IGNORECASE),
]

NO_ROOM_PATTERNS = [
    re.compile(r"^tba$", re.IGNORECASE),
    re.compile(r"^to\s+be\s+(announced|assigned)$", re.IGNORECASE),
    re.compile(r"^no\s+room(\s+needed)?$", re.IGNORECASE),
    re.compile(r"^\(?none\s+assigned\)?$", re.IGNORECASE),
    re.compile(r"^n/?a$", re.IGNORECASE),
    re.compile(r"^general\s+assignment", re.IGNORECASE),
    re.compile(r"^off\s+campus$", re.IGNORECASE),
    re.compile(r"^arranged$", re.IGNORECASE),
]

INDEPENDENT_STUDY_PATTERN = re.compile(r"independent", re.IGNORECASE)
MULTI_ROOM_SEPARATORS = re.compile(r"\s*[;,\n]\s*|\s*/\s*(?=\D)|\s+and\s+", re.IGNORECASE)


@dataclass(frozen=True)
class BuildingRef:
    code: str
    display_name: str
    aliases: tuple[str, ...] = ()
    recognized: bool = True


@dataclass(frozen=True)
class ParsedRoom:
    raw: str
    kind: LabelKind
    building: BuildingRef | None = None
    space_number: str = ""
    space_key: str = ""
    display_name: str = ""
    error: str | None = None


@dataclass
class ResolvedLocation:
    location_type: LocationType
    space_ids: list[str] = field(default_factory=list)
    space_display_names: list[str] = field(default_factory=list)

    @property
    def location_label(self) -> str:
        return NO_ROOM_LABEL if self.location_type == LocationType.no_room else ""


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", (value or "").lower()).strip("_")


def normalize_space_number(value: str) -> str:
    return re.sub(r"\s+", "", value or "").upper()


def build_space_key(building_code: str, space_number: str) -> str:
    code = (building_code or "").strip().upper()
    number = normalize_space_number(space_number)
    if not code or not number:
        return ""
    return f"{code}:{number}"


def classify_label(raw: str | None) -> LabelKind:
    trimmed = (raw or "").strip()
    if not trimmed:
        return LabelKind.none
    if any(pattern.search(trimmed) for pattern in VIRTUAL_PATTERNS):
        return LabelKind.virtual
    if any(pattern.search(trimmed) for pattern in NO_ROOM_PATTERNS):
        return LabelKind.none
    return LabelKind.physical


def is_roomless_label(raw: str | None) -> bool:
    return classify_label(raw) in (LabelKind.virtual, LabelKind.none)


def _expand_shared_room_numbers(label: str) -> list[str]:
    # "Goebel 101/109" -> ["Goebel 101", "Goebel 109"]
    if "/" not in label:
        return [label]
    digit = re.search(r"\d", label)
    if digit is None:
        return [label]
    prefix = label[: digit.start()].strip()
    tokens = [token.strip() for token in label[digit.start():].split("/") if token.strip()]
    if len(tokens) < 2 or not all(re.search(r"\d", token) for token in tokens):
        return [label]
    lead = f"{prefix} " if prefix else ""
    return [f"{lead}{token}" for token in tokens]


def split_multi_room(value: str | None) -> list[str]:
    if not value:
        return []
    parts = [part.strip() for part in MULTI_ROOM_SEPARATORS.split(value) if part and part.strip()]
    expanded: list[str] = []
    for part in parts:
        expanded.extend(_expand_shared_room_numbers(part))
    return list(dict.fromkeys(expanded))


def extract_space_number(label: str | None) -> str:
    cleaned = re.sub(r"\s+", " ", (label or "").strip())
    if not cleaned:
        return ""
    if re.fullmatch(r"\d+[A-Za-z]?", cleaned):
        return normalize_space_number(cleaned)
    for pattern in (
        r"(\d{2,4}\.\d{1,3}[A-Za-z]?)\s*$",
        r"(\d{2,4}[A-Za-z]?(?:-[A-Za-z])?)\s*$",
    ):
        match = re.search(pattern, cleaned)
        if match:
            return normalize_space_number(match.group(1))
    token = re.search(r"([\w./-]+)\s*$", cleaned)
    if token and re.search(r"\d", token.group(1)):
        return normalize_space_number(token.group(1))
    return ""


class BuildingDirectory:
    """Active buildings and their aliases, matched case-insensitively."""

    def __init__(self, buildings: Iterable[BuildingRef] = ()) -> None:
        self._buildings = list(buildings)

    @classmethod
    def from_session(cls, db: Session) -> "BuildingDirectory":
        rows = db.execute(select(Building).where(Building.is_active.is_(True))).scalars()
        return cls(
            BuildingRef(code=row.code.upper(), display_name=row.display_name, aliases=tuple(row.aliases or ()))
            for row in rows
        )

    def _names(self, building: BuildingRef) -> list[str]:
        return [*building.aliases, building.code, building.display_name]

    def match_prefix(self, label: str) -> BuildingRef | None:
        lowered = label.lower()
        for building in self._buildings:
            for name in self._names(building):
                if name and lowered.startswith(name.lower()):
                    return building
        return None

    def match_exact(self, name: str) -> BuildingRef | None:
        lowered = name.lower()
        for building in self._buildings:
            if any(item and item.lower() == lowered for item in self._names(building)):
                return building
        return None

    def extract_building(self, label: str) -> BuildingRef | None:
        trimmed = (label or "").strip()
        if not trimmed:
            return None
        matched = self.match_prefix(trimmed)
        if matched is not None:
            return matched

        without_parens = re.sub(r"\s+", " ", re.sub(r"\([^)]*\)", " ", trimmed)).strip()
        building_parts: list[str] = []
        for part in without_parens.split(" "):
            if re.match(r"^\d", part) or re.fullmatch(r"[A-Z]-?\d+", part, re.IGNORECASE):
                break
            building_parts.append(part)
        if not building_parts:
            return None

        extracted = " ".join(building_parts).strip()
        return self.match_exact(extracted) or BuildingRef(
            code=slugify(extracted).upper(),
            display_name=extracted,
            recognized=False,
        )

    def parse_room_label(self, label: str) -> ParsedRoom | None:
        raw = (label or "").strip()
        if not raw:
            return None
        kind = classify_label(raw)
        if kind != LabelKind.physical:
            return ParsedRoom(raw=raw, kind=kind, display_name=raw)

        building = self.extract_building(raw)
        space_number = extract_space_number(raw)
        if building is None or not space_number:
            return ParsedRoom(
                raw=raw,
                kind=LabelKind.unknown,
                building=building,
                space_number=space_number,
                display_name=raw,
                error="Could not identify building" if building is None else "Could not identify room number",
            )
        return ParsedRoom(
            raw=raw,
            kind=LabelKind.physical,
            building=building,
            space_number=space_number,
            space_key=build_space_key(building.code or slugify(building.display_name), space_number),
            display_name=f"{building.display_name} {space_number}",
        )

    def parse_multi_room(self, value: str) -> list[ParsedRoom]:
        rooms: list[ParsedRoom] = []
        for part in split_multi_room(value):
            parsed = self.parse_room_label(part)
            if parsed is None:
                continue
            if parsed.kind == LabelKind.physical and parsed.space_key:
                rooms.append(parsed)
            elif parsed.error:
                logger.warning("Skipping room token %r: %s", part, parsed.error)
        return rooms


def room_tokens(room_input: str | Sequence[str] | None) -> list[str]:
    if room_input is None:
        return []
    if isinstance(room_input, str):
        return [token.strip() for token in room_input.split(";") if token.strip()]
    return [str(token or "").strip() for token in room_input if str(token or "").strip()]


class LocationResolver:
    def __init__(self, buildings: BuildingDirectory | None = None) -> None:
        self.buildings = buildings or BuildingDirectory()

    def resolve(
        self,
        room_input: str | Sequence[str] | None,
        *,
        is_online: bool = False,
        schedule_type: str = "",
        previous: ScheduleRecord | None = None,
    ) -> ResolvedLocation:
        tokens = room_tokens(room_input)
        physical_tokens = [token for token in tokens if not is_roomless_label(token)]
        roomless_only = bool(tokens) and not physical_tokens

        if is_online or roomless_only or INDEPENDENT_STUDY_PATTERN.search(schedule_type or ""):
            return ResolvedLocation(location_type=LocationType.no_room)

        space_ids: list[str] = []
        display_names: list[str] = []
        if physical_tokens:
            for parsed in self.buildings.parse_multi_room("; ".join(physical_tokens)):
                space_ids.append(parsed.space_key)
                display_names.append(parsed.display_name)
        space_ids = list(dict.fromkeys(space_ids))
        display_names = list(dict.fromkeys(display_names))

        if not space_ids and previous is not None and _same_names(previous.space_display_names, physical_tokens):
            return ResolvedLocation(
                location_type=LocationType.room,
                space_ids=list(previous.space_ids),
                space_display_names=list(previous.space_display_names),
            )
        return ResolvedLocation(
            location_type=LocationType.room,
            space_ids=space_ids,
            space_display_names=display_names,
        )


def _same_names(existing: Sequence[str], incoming: Sequence[str]) -> bool:
    left = sorted(str(name or "").lower() for name in existing)
    right = sorted(str(name or "").lower() for name in incoming)
    return bool(left) and left == right
