from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from schedule_hub.core.config import Settings, get_settings
from schedule_hub.db.session import SessionLocal
from schedule_hub.services.audit import ActivityAuditLog
from schedule_hub.services.instructors import PeopleIndex
from schedule_hub.services.locations import BuildingDirectory, LocationResolver
from schedule_hub.services.notifications import ActivityNotifier
from schedule_hub.services.reconciler import ActorCapabilities, ScheduleReconciler
from schedule_hub.services.record_store import SqlScheduleStore
from schedule_hub.services.terms import TermCalendar, TermDirectory


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_grants: str = Header(default=""),
) -> ActorCapabilities:
    return ActorCapabilities.from_grants(x_actor_grants.split(","), actor_id=x_actor_id)


def get_reconciler(
    db: Session = Depends(get_db),
    actor: ActorCapabilities = Depends(get_actor),
    settings: Settings = Depends(get_settings),
) -> ScheduleReconciler:
    calendar = TermCalendar.from_settings(settings)
    return ScheduleReconciler(
        SqlScheduleStore(db),
        people=PeopleIndex.from_session(db),
        terms=TermDirectory.from_session(db, calendar),
        locations=LocationResolver(BuildingDirectory.from_session(db)),
        capabilities=actor,
        audit=ActivityAuditLog(db, actor_id=actor.actor_id, source=settings.audit_source),
        notifier=ActivityNotifier(db, user_id=actor.actor_id),
        calendar=calendar,
        default_term=settings.default_term,
        default_schedule_type=settings.default_schedule_type,
        default_status=settings.default_status,
        source=settings.audit_source,
    )
