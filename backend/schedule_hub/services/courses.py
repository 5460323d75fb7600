from __future__ import annotations

import re
from dataclasses import dataclass

COURSE_CODE_PATTERN = re.compile(r"^([A-Z]{2,4})\s?([0-9A-Z]{4})$")
PROGRAM_PREFIX_PATTERN = re.compile(r"^[A-Z]{2,4}")


@dataclass(frozen=True)
class ParsedCourseCode:
    program: str
    catalog_number: str
    level: int
    credits: int | None
    is_variable_credit: bool = False
    error: str | None = None


def standardize_course_code(course_code: str | None) -> str:
    if not course_code:
        return ""
    clean = str(course_code).strip().upper()
    return re.sub(r"([A-Z]+)(\d+)", r"\1 \2", clean, count=1)


def derive_credits_from_catalog_number(catalog_number: str | None, fallback: int | None = None) -> int:
    # Second catalog digit carries the credit hours ("1301" -> 3).
    raw = re.sub(r"\s+", "", str(catalog_number or "")).upper()
    if not raw:
        return fallback if fallback is not None else 0
    if raw.isdigit() and len(raw) >= 2:
        return int(raw[1])
    if fallback is not None:
        return fallback
    return 0


def parse_course_code(course_code: str | None) -> ParsedCourseCode:
    if not course_code or not isinstance(course_code, str):
        return ParsedCourseCode(program="", catalog_number="", level=0, credits=None, error="Invalid input")

    trimmed = course_code.strip()
    match = COURSE_CODE_PATTERN.match(trimmed)
    if not match:
        program_match = PROGRAM_PREFIX_PATTERN.match(trimmed)
        return ParsedCourseCode(
            program=program_match.group(0) if program_match else "",
            catalog_number="",
            level=0,
            credits=None,
            error="Invalid course code format",
        )

    program, catalog_number = match.groups()
    level = int(catalog_number[0]) if catalog_number[0].isdigit() else 0
    return ParsedCourseCode(
        program=program,
        catalog_number=catalog_number,
        level=level,
        credits=derive_credits_from_catalog_number(catalog_number),
        is_variable_credit=not catalog_number.isdigit(),
    )


def normalize_section_number(section: str | None) -> str:
    """Strip an embedded CRN: "01 (33070)" -> "01"."""
    if not section:
        return ""
    without_parens = re.sub(r"\s*\([^)]*\)\s*", "", str(section).strip()).strip()
    if not without_parens:
        return ""
    return without_parens.split()[0].upper()


def generate_section_id(*, term_code: str, course_code: str, section_number: str) -> str:
    normalized_term = (term_code or "").strip()
    normalized_course = re.sub(r"\s+", "_", (course_code or "").strip().upper())
    normalized_section = normalize_section_number(section_number)
    if not normalized_term or not normalized_course or not normalized_section:
        return ""
    return f"{normalized_term}_{normalized_course}_{normalized_section}"
