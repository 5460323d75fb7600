import logging

import pytest

from schedule_hub.core.exceptions import (
    PartialWriteFailureError,
    PermissionDeniedError,
    ReferenceNotFoundError,
    TermLockedError,
    ValidationFailedError,
)
from schedule_hub.models.schedule import LocationType
from schedule_hub.schemas.schedule import ScheduleViewRow
from schedule_hub.services.grouping import ViewKind, encode_grouped_id, new_view_id
from schedule_hub.services.reconciler import ActorCapabilities

WEEKDAYS = "MTWRF"


def edit_row(view_id, day, **overrides):
    data = {
        "id": view_id,
        "course": "CSI 1301",
        "course_title": "Intro to Programming",
        "section": "01",
        "term": "Fall 2025",
        "day": day,
        "start_time": "10:00 AM",
        "end_time": "10:50 AM",
        "room": "GOEBEL 101",
        "instructor_id": "p-1",
    }
    data.update(overrides)
    return ScheduleViewRow(**data)


def days_of(record):
    return [pattern.day for pattern in record.meeting_patterns]


@pytest.mark.parametrize(
    ("existing", "edited"),
    [(3, 5), (3, 1), (2, 2), (1, 3), (4, 2), (5, 3)],
)
def test_grouped_edit_write_counts(make_reconciler, make_record, audit, existing, edited):
    records = [make_record(f"r{index}", WEEKDAYS[index]) for index in range(existing)]
    ids = [record.id for record in records]
    reconciler, store = make_reconciler(records)

    outcome = reconciler.reconcile(edit_row(encode_grouped_id(0, ids), WEEKDAYS[:edited]))

    shared = min(existing, edited)
    assert outcome.ok
    assert outcome.kind == ViewKind.grouped
    assert outcome.updated == ids[:shared]
    assert len(outcome.created) == max(0, edited - existing)
    assert outcome.deleted == ids[shared:]
    assert len(store.records) == edited
    assert len(audit.entries) == shared + abs(edited - existing)
    for index, record_id in enumerate(ids[:shared]):
        assert days_of(store.records[record_id]) == [WEEKDAYS[index]]


def test_grouped_two_day_edit_to_mwf_adds_friday(make_reconciler, make_record, notifier):
    reconciler, store = make_reconciler([make_record("A", "M"), make_record("B", "W")])

    outcome = reconciler.reconcile(
        edit_row(encode_grouped_id(0, ["A", "B"]), "MWF", instructor_id="p-2", room="GOEBEL 205")
    )

    assert outcome.updated == ["A", "B"]
    assert len(outcome.created) == 1
    assert outcome.deleted == []
    created = store.records[outcome.created[0]]
    assert days_of(store.records["A"]) == ["M"]
    assert days_of(store.records["B"]) == ["W"]
    assert days_of(created) == ["F"]
    for record in (store.records["A"], store.records["B"], created):
        assert record.course_code == "CSI 1301"
        assert record.section == "01"
        assert record.term == "Fall 2025"
        assert record.instructor_id == "p-2"
        assert record.space_ids == ["GOEBEL:205"]
        assert record.space_display_names == ["GOEBEL 205"]
    assert created.identity_key
    assert store.records["A"].identity_key == "section:202530_CSI_1301_01_A"
    assert notifier.messages == [("success", "Grouped Schedule Updated", outcome.message)]
    assert "2 updated, 1 created, 0 deleted" in outcome.message


def test_reordered_day_string_reassigns_weekdays_by_position(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M"), make_record("B", "W")])

    outcome = reconciler.reconcile(edit_row(encode_grouped_id(0, ["A", "B"]), "WM"))

    assert outcome.ok
    assert days_of(store.records["A"]) == ["W"]
    assert days_of(store.records["B"]) == ["M"]


def test_new_row_creates_one_record_per_weekday(make_reconciler, notifier):
    reconciler, store = make_reconciler()

    outcome = reconciler.reconcile(edit_row(new_view_id(), "TR"))

    assert outcome.ok
    assert outcome.kind == ViewKind.new
    assert len(outcome.created) == 2
    first, second = (store.records[record_id] for record_id in outcome.created)
    assert days_of(first) == ["T"]
    assert days_of(second) == ["R"]
    assert first.identity_source == second.identity_source == "section"
    assert first.identity_keys != second.identity_keys
    assert first.term_code == "202530"
    assert first.credits == 3
    assert first.location_type == LocationType.room
    assert notifier.messages[-1][1] == "Schedule Created"


def test_new_asynchronous_online_row_creates_single_record(make_reconciler):
    reconciler, store = make_reconciler()

    outcome = reconciler.reconcile(
        edit_row(new_view_id(), "", start_time="", end_time="", room="", is_online=True)
    )

    assert outcome.ok
    assert len(outcome.created) == 1
    record = store.records[outcome.created[0]]
    assert record.meeting_patterns == []
    assert record.online_mode == "asynchronous"
    assert record.location_type == LocationType.no_room
    assert record.location_label == "No Room Needed"
    assert record.space_ids == []


def test_single_record_keeps_all_weekdays_in_place(make_reconciler, make_record, caplog):
    reconciler, store = make_reconciler([make_record("A", "M")])

    with caplog.at_level(logging.WARNING):
        outcome = reconciler.reconcile(edit_row("A", "MW"))

    assert outcome.ok
    assert outcome.kind == ViewKind.single
    assert outcome.updated == ["A"]
    assert outcome.created == []
    assert days_of(store.records["A"]) == ["M", "W"]
    assert "stays one record" in caplog.text


def test_single_row_uses_original_id(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M")])

    outcome = reconciler.reconcile(edit_row("row-7", "T", original_id="A"))

    assert outcome.updated == ["A"]
    assert days_of(store.records["A"]) == ["T"]


def test_permission_denied_without_edit_capability(make_reconciler, make_record, notifier):
    reconciler, store = make_reconciler(
        [make_record("A", "M")],
        capabilities=ActorCapabilities(actor_id="u-1", can_create=True),
    )

    outcome = reconciler.reconcile(edit_row("A", "W"))

    assert not outcome.ok
    assert isinstance(outcome.error, PermissionDeniedError)
    assert store.writes == []
    assert notifier.messages == [("warning", "Permission Denied", "You don't have permission to edit schedules.")]


def test_grouped_shrink_requires_delete_capability(make_reconciler, make_record):
    reconciler, store = make_reconciler(
        [make_record("A", "M"), make_record("B", "W")],
        capabilities=ActorCapabilities(can_create=True, can_edit=True),
    )

    outcome = reconciler.reconcile(edit_row(encode_grouped_id(0, ["A", "B"]), "M"))

    assert isinstance(outcome.error, PermissionDeniedError)
    assert outcome.error.action == "delete"
    assert store.writes == []


def test_validation_collects_every_missing_requirement(make_reconciler):
    reconciler, store = make_reconciler()

    outcome = reconciler.reconcile(
        edit_row(new_view_id(), "", course="", section="", term="", start_time="", end_time="")
    )

    assert isinstance(outcome.error, ValidationFailedError)
    assert outcome.error.errors == [
        "Course code is required",
        "Term is required",
        "Section is required",
        "Meeting days and times are required for in-person or synchronous courses",
    ]
    assert outcome.title == "Validation Failed"
    assert store.writes == []


def test_default_term_fills_missing_term(make_reconciler):
    reconciler, store = make_reconciler(default_term="fall 25")

    outcome = reconciler.reconcile(edit_row(new_view_id(), "M", term=""))

    assert outcome.ok
    assert store.records[outcome.created[0]].term == "Fall 2025"


def test_edit_without_term_keeps_stored_term(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M")], default_term="Spring 2026")

    outcome = reconciler.reconcile(edit_row("A", "M", term=""))

    assert outcome.ok
    assert store.records["A"].term == "Fall 2025"
    assert store.records["A"].term_code == "202530"


def test_edit_without_course_or_section_keeps_stored_values(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M")])

    outcome = reconciler.reconcile(edit_row("A", "W", course="", section=""))

    assert outcome.ok
    assert outcome.message == "Updated CSI 1301 01."
    assert store.records["A"].course_code == "CSI 1301"
    assert store.records["A"].section == "01"
    assert days_of(store.records["A"]) == ["W"]


def test_single_edit_without_weekdays_keeps_meeting_patterns(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "W")])

    outcome = reconciler.reconcile(edit_row("A", "", start_time="", end_time="", course_title="Programming I"))

    assert outcome.ok
    record = store.records["A"]
    assert record.course_title == "Programming I"
    assert days_of(record) == ["W"]
    assert record.meeting_patterns[0].start_time == "10:00 AM"


def test_online_edit_keeps_stored_online_mode(make_reconciler, make_record):
    stored = make_record("A", "M", is_online=True, online_mode="synchronous")
    reconciler, store = make_reconciler([stored])

    outcome = reconciler.reconcile(
        edit_row("A", "", start_time="", end_time="", room="", is_online=True)
    )

    assert outcome.ok
    record = store.records["A"]
    assert record.online_mode == "synchronous"
    assert days_of(record) == ["M"]


def test_grouped_edit_without_weekdays_is_rejected(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M"), make_record("B", "W")])

    outcome = reconciler.reconcile(
        edit_row(encode_grouped_id(0, ["A", "B"]), "", start_time="", end_time="", is_online=True)
    )

    assert isinstance(outcome.error, ValidationFailedError)
    assert outcome.error.errors == ["Meeting days are required for grouped schedules"]
    assert len(store.records) == 2


def test_missing_backing_record_aborts_before_writes(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M")])

    outcome = reconciler.reconcile(edit_row(encode_grouped_id(0, ["A", "gone"]), "MW"))

    assert isinstance(outcome.error, ReferenceNotFoundError)
    assert outcome.error.missing_ids == ["gone"]
    assert outcome.title == "Update Failed"
    assert store.writes == []


def test_locked_term_blocks_unprivileged_caller(make_reconciler, make_record, notifier):
    reconciler, store = make_reconciler([make_record("A", "M")], locked_terms=["Fall 2025"])

    outcome = reconciler.reconcile(edit_row("A", "W"))

    assert isinstance(outcome.error, TermLockedError)
    assert outcome.title == "Semester Locked"
    assert store.writes == []
    assert notifier.messages[-1][0] == "warning"


def test_locked_term_of_backing_record_blocks_moving_it(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M")], locked_terms=["Fall 2025"])

    outcome = reconciler.reconcile(edit_row("A", "M", term="Winter 2026"))

    assert isinstance(outcome.error, TermLockedError)
    assert outcome.error.term == "Fall 2025"
    assert store.writes == []


def test_locked_term_allows_privileged_caller(make_reconciler, make_record):
    reconciler, store = make_reconciler(
        [make_record("A", "M")],
        capabilities=ActorCapabilities.from_grants(["admin"], actor_id="u-9"),
        locked_terms=["Fall 2025"],
    )

    outcome = reconciler.reconcile(edit_row("A", "W"))

    assert outcome.ok
    assert days_of(store.records["A"]) == ["W"]


def test_failed_write_keeps_earlier_writes(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M"), make_record("B", "T")])
    store.fail_on_write = 3

    outcome = reconciler.reconcile(edit_row(encode_grouped_id(0, ["A", "B"]), "WRF"))

    assert isinstance(outcome.error, PartialWriteFailureError)
    assert outcome.updated == ["A", "B"]
    assert outcome.created == []
    assert days_of(store.records["A"]) == ["W"]
    assert days_of(store.records["B"]) == ["R"]
    assert outcome.message == "Failed to update schedule: record store unavailable"
    assert outcome.error.details["updated"] == ["A", "B"]


def test_instructor_resolved_by_exact_name(make_reconciler, make_record):
    reconciler, store = make_reconciler([make_record("A", "M")])

    outcome = reconciler.reconcile(edit_row("A", "M", instructor_id=None, instructor="Grace Hopper"))

    assert outcome.ok
    record = store.records["A"]
    assert record.instructor_id == "p-2"
    assert [item.person_id for item in record.instructor_assignments] == ["p-2"]
    assert record.instructor_ids == ["p-1", "p-2"]


def test_unknown_instructor_name_degrades_with_warning(make_reconciler, caplog):
    reconciler, store = make_reconciler()

    with caplog.at_level(logging.WARNING):
        outcome = reconciler.reconcile(
            edit_row(new_view_id(), "M", instructor_id=None, instructor="Nobody Known")
        )

    assert outcome.ok
    assert store.records[outcome.created[0]].instructor_id is None
    assert "Nobody Known" in caplog.text


def test_team_taught_section_keeps_co_instructor(make_reconciler, make_record):
    team = make_record(
        "A",
        "M",
        instructor_ids=["p-1", "p-3"],
        instructor_assignments=[
            {"personId": "p-1", "isPrimary": True, "percentage": 60},
            {"personId": "p-3", "isPrimary": False, "percentage": 40},
        ],
    )
    reconciler, store = make_reconciler([team])

    reconciler.reconcile(edit_row("A", "M", instructor_id="p-3"))

    assignments = {item.person_id: item for item in store.records["A"].instructor_assignments}
    assert set(assignments) == {"p-1", "p-3"}
    assert assignments["p-3"].is_primary
    assert assignments["p-3"].percentage == 40
    assert not assignments["p-1"].is_primary


def test_unchanged_unparsable_room_keeps_previous_spaces(make_reconciler, make_record):
    record = make_record("A", "M", space_ids=["HALL:ATRIUM"], space_display_names=["Great Hall Atrium"])
    reconciler, store = make_reconciler([record])

    reconciler.reconcile(edit_row("A", "M", room="great hall atrium"))

    assert store.records["A"].space_ids == ["HALL:ATRIUM"]


def test_update_audit_entry_carries_before_and_after(make_reconciler, make_record, audit):
    reconciler, _ = make_reconciler([make_record("A", "M")])

    reconciler.reconcile(edit_row("A", "W"))

    entry = audit.entries[0]
    assert entry["action"] == "UPDATE"
    assert entry["entity_kind"] == "schedules"
    assert entry["ids"] == ["A"]
    assert entry["source"] == "schedule_reconciler"
    assert entry["old_data"]["meetingPatterns"][0]["day"] == "M"
    assert entry["new_data"]["meetingPatterns"][0]["day"] == "W"


def test_delete_grouped_row_removes_every_backing_record(make_reconciler, make_record, audit, notifier):
    reconciler, store = make_reconciler([make_record("A", "M"), make_record("B", "W")])

    outcome = reconciler.delete(encode_grouped_id(0, ["A", "B"]))

    assert outcome.ok
    assert outcome.deleted == ["A", "B"]
    assert store.records == {}
    assert [entry["action"] for entry in audit.entries] == ["DELETE", "DELETE"]
    assert notifier.messages[-1][1] == "Schedule Deleted"


def test_delete_requires_capability_and_unlocked_term(make_reconciler, make_record):
    reconciler, store = make_reconciler(
        [make_record("A", "M")],
        capabilities=ActorCapabilities(can_edit=True),
    )
    assert isinstance(reconciler.delete("A").error, PermissionDeniedError)

    reconciler, store = make_reconciler([make_record("A", "M")], locked_terms=["Fall 2025"])
    outcome = reconciler.delete("A")
    assert isinstance(outcome.error, TermLockedError)
    assert "Deleting is disabled" in outcome.message
    assert "A" in store.records
