from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from schedule_hub.models.schedule import LocationType

RECORD_CONFIG = {"populate_by_name": True, "from_attributes": True}


class MeetingPattern(BaseModel):
    day: str
    start_time: str = Field(default="", alias="startTime")
    end_time: str = Field(default="", alias="endTime")

    model_config = RECORD_CONFIG


class InstructorAssignment(BaseModel):
    person_id: str = Field(alias="personId", min_length=1, max_length=36)
    is_primary: bool = Field(default=False, alias="isPrimary")
    percentage: int = Field(default=100, ge=0, le=100)

    model_config = RECORD_CONFIG


class ScheduleRecord(BaseModel):
    """Persisted snapshot of one weekday meeting, as returned by a schedule store."""

    id: str
    course_code: str = Field(default="", alias="courseCode")
    course_title: str = Field(default="", alias="courseTitle")
    program: str = ""
    subject_code: str = Field(default="", alias="subjectCode")
    catalog_number: str = Field(default="", alias="catalogNumber")
    course_level: int = Field(default=0, alias="courseLevel")
    section: str = ""
    crn: str = ""
    clss_id: str = Field(default="", alias="clssId")
    term: str = ""
    term_code: str = Field(default="", alias="termCode")
    credits: int | None = None
    max_enrollment: int | None = Field(default=None, alias="maxEnrollment")
    schedule_type: str = Field(default="Class Instruction", alias="scheduleType")
    instruction_method: str = Field(default="", alias="instructionMethod")
    status: str = "Active"
    meeting_patterns: list[MeetingPattern] = Field(default_factory=list, alias="meetingPatterns")
    instructor_id: str | None = Field(default=None, alias="instructorId")
    instructor_ids: list[str] = Field(default_factory=list, alias="instructorIds")
    instructor_assignments: list[InstructorAssignment] = Field(default_factory=list, alias="instructorAssignments")
    location_type: LocationType = Field(default=LocationType.room, alias="locationType")
    location_label: str = Field(default="", alias="locationLabel")
    space_ids: list[str] = Field(default_factory=list, alias="spaceIds")
    space_display_names: list[str] = Field(default_factory=list, alias="spaceDisplayNames")
    is_online: bool = Field(default=False, alias="isOnline")
    online_mode: str | None = Field(default=None, alias="onlineMode")
    identity_key: str = Field(default="", alias="identityKey")
    identity_keys: list[str] = Field(default_factory=list, alias="identityKeys")
    identity_source: str = Field(default="", alias="identitySource")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    model_config = RECORD_CONFIG


class ScheduleViewRow(BaseModel):
    """Editable row shown by the course grid; may stand for several backing records."""

    id: str = Field(min_length=1)
    original_id: str | None = Field(default=None, alias="originalId")
    course: str = Field(default="", alias="Course")
    course_title: str = Field(default="", alias="Course Title")
    section: str = Field(default="", alias="Section")
    crn: str = Field(default="", alias="CRN")
    term: str = Field(default="", alias="Term")
    term_code: str = Field(default="", alias="termCode")
    day: str = Field(default="", alias="Day")
    start_time: str = Field(default="", alias="Start Time")
    end_time: str = Field(default="", alias="End Time")
    room: str | None = Field(default=None, alias="Room")
    rooms: list[str] | None = Field(default=None, alias="Rooms")
    instructor: str = Field(default="", alias="Instructor")
    instructor_id: str | None = Field(default=None, alias="instructorId")
    schedule_type: str = Field(default="", alias="Schedule Type")
    instruction_method: str = Field(default="", alias="Instruction Method")
    status: str = Field(default="", alias="Status")
    max_enrollment: int | None = Field(default=None, alias="Max Enrollment", ge=0)
    is_online: bool = Field(default=False, alias="isOnline")
    online_mode: str | None = Field(default=None, alias="onlineMode")

    model_config = {"populate_by_name": True}

    @field_validator(
        "course",
        "course_title",
        "section",
        "crn",
        "term",
        "term_code",
        "day",
        "start_time",
        "end_time",
        "instructor",
        "schedule_type",
        "instruction_method",
        "status",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()


class ReconcileOutcomeOut(BaseModel):
    ok: bool
    kind: str
    entity_kind: str
    created: list[str]
    updated: list[str]
    deleted: list[str]
    level: str
    title: str
    message: str
