import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import schedule_hub.models  # noqa: F401
from schedule_hub.api.deps import get_db
from schedule_hub.db.base import Base
from schedule_hub.main import app
from schedule_hub.schemas.schedule import ScheduleRecord
from schedule_hub.services.instructors import PeopleIndex, PersonRef
from schedule_hub.services.locations import LocationResolver
from schedule_hub.services.reconciler import ActorCapabilities, ScheduleReconciler
from schedule_hub.services.terms import TermDirectory

FULL_GRANTS = "schedules:create,schedules:edit,schedules:delete"


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def actor_headers():
    return {"X-Actor-Id": "u-1", "X-Actor-Grants": FULL_GRANTS}


class InMemoryScheduleStore:
    """Dict-backed store; ``fail_on_write`` makes the n-th write (1-based) raise."""

    def __init__(self, records=()):
        self.records = {record.id: record for record in records}
        self.writes = []
        self.fail_on_write = None
        self._sequence = 0

    def _count_write(self, operation, record_id):
        if self.fail_on_write is not None and len(self.writes) + 1 == self.fail_on_write:
            raise RuntimeError("record store unavailable")
        self.writes.append((operation, record_id))

    def get(self, record_id):
        return self.records.get(record_id)

    def get_many(self, record_ids):
        return {record_id: self.records[record_id] for record_id in record_ids if record_id in self.records}

    def query(self, **filters):
        return [
            record
            for record in self.records.values()
            if all(value is None or getattr(record, name) == value for name, value in filters.items())
        ]

    def create(self, data):
        self._sequence += 1
        record_id = f"created-{self._sequence}"
        self._count_write("create", record_id)
        self.records[record_id] = ScheduleRecord.model_validate({"id": record_id, **data})
        return record_id

    def update(self, record_id, data):
        self._count_write("update", record_id)
        merged = {**self.records[record_id].model_dump(), **data}
        self.records[record_id] = ScheduleRecord.model_validate(merged)

    def delete(self, record_id):
        self._count_write("delete", record_id)
        self.records.pop(record_id, None)


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def _add(self, action, summary, entity_kind, entity_ids, new_data, old_data, source):
        self.entries.append(
            {
                "action": action,
                "summary": summary,
                "entity_kind": entity_kind,
                "ids": list(entity_ids),
                "new_data": new_data,
                "old_data": old_data,
                "source": source,
            }
        )

    def record_create(self, summary, entity_kind, entity_ids, new_data=None, old_data=None, source=None):
        self._add("CREATE", summary, entity_kind, entity_ids, new_data, old_data, source)

    def record_update(self, summary, entity_kind, entity_ids, new_data=None, old_data=None, source=None):
        self._add("UPDATE", summary, entity_kind, entity_ids, new_data, old_data, source)

    def record_delete(self, summary, entity_kind, entity_ids, new_data=None, old_data=None, source=None):
        self._add("DELETE", summary, entity_kind, entity_ids, new_data, old_data, source)


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, level, title, message):
        self.messages.append((level, title, message))


def build_record(record_id, day, **overrides):
    data = {
        "id": record_id,
        "course_code": "CSI 1301",
        "course_title": "Intro to Programming",
        "program": "CSI",
        "subject_code": "CSI",
        "catalog_number": "1301",
        "course_level": 1,
        "section": "01",
        "term": "Fall 2025",
        "term_code": "202530",
        "credits": 3,
        "meeting_patterns": [{"day": day, "startTime": "10:00 AM", "endTime": "10:50 AM"}] if day else [],
        "instructor_id": "p-1",
        "instructor_ids": ["p-1"],
        "instructor_assignments": [{"personId": "p-1", "isPrimary": True, "percentage": 100}],
        "space_ids": ["GOEBEL:101"],
        "space_display_names": ["GOEBEL 101"],
        "identity_key": f"section:202530_CSI_1301_01_{record_id}",
        "identity_source": "section",
    }
    data.update(overrides)
    return ScheduleRecord.model_validate(data)


@pytest.fixture()
def make_record():
    return build_record


@pytest.fixture()
def people():
    return PeopleIndex(
        [
            PersonRef(id="p-1", first_name="Ada", last_name="Lovelace"),
            PersonRef(id="p-2", first_name="Grace", last_name="Hopper"),
            PersonRef(id="p-3", first_name="Alan", last_name="Turing"),
            PersonRef(id="p-old", first_name="G.", last_name="Hopper", merged_into="p-2"),
        ]
    )


@pytest.fixture()
def audit():
    return RecordingAudit()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def make_reconciler(people, audit, notifier):
    def factory(
        records=(),
        *,
        capabilities=None,
        locked_terms=(),
        default_term=None,
    ):
        store = InMemoryScheduleStore(records)
        reconciler = ScheduleReconciler(
            store,
            people=people,
            terms=TermDirectory(locked_terms),
            locations=LocationResolver(),
            capabilities=capabilities
            or ActorCapabilities(actor_id="u-1", can_create=True, can_edit=True, can_delete=True),
            audit=audit,
            notifier=notifier,
            default_term=default_term,
        )
        return reconciler, store

    return factory
