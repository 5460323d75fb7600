from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from schedule_hub.api.deps import get_db, get_reconciler
from schedule_hub.core.config import Settings, get_settings
from schedule_hub.schemas.schedule import ReconcileOutcomeOut, ScheduleRecord, ScheduleViewRow
from schedule_hub.services.grouping import group_view_rows
from schedule_hub.services.reconciler import ReconcileOutcome, ScheduleReconciler
from schedule_hub.services.record_store import SqlScheduleStore
from schedule_hub.services.terms import TermCalendar, normalize_term_label

router = APIRouter()


def _term_filter(term: str | None, settings: Settings) -> str | None:
    if not term:
        return None
    return normalize_term_label(term, TermCalendar.from_settings(settings))


def _outcome_out(outcome: ReconcileOutcome) -> ReconcileOutcomeOut:
    if outcome.error is not None:
        raise outcome.error
    return ReconcileOutcomeOut(
        ok=outcome.ok,
        kind=outcome.kind.value,
        entity_kind=outcome.entity_kind,
        created=outcome.created,
        updated=outcome.updated,
        deleted=outcome.deleted,
        level=outcome.level,
        title=outcome.title,
        message=outcome.message,
    )


@router.get("/schedules", response_model=list[ScheduleRecord], response_model_by_alias=True)
def list_schedules(
    term: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[ScheduleRecord]:
    return SqlScheduleStore(db).query(term=_term_filter(term, settings))


@router.get("/schedules/rows", response_model=list[ScheduleViewRow], response_model_by_alias=True)
def list_schedule_rows(
    term: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[ScheduleViewRow]:
    return group_view_rows(SqlScheduleStore(db).query(term=_term_filter(term, settings)))


@router.put("/schedules/rows", response_model=ReconcileOutcomeOut)
def save_schedule_row(
    payload: ScheduleViewRow,
    reconciler: ScheduleReconciler = Depends(get_reconciler),
) -> ReconcileOutcomeOut:
    return _outcome_out(reconciler.reconcile(payload))


@router.delete("/schedules/rows/{view_id}", response_model=ReconcileOutcomeOut)
def delete_schedule_row(
    view_id: str,
    reconciler: ScheduleReconciler = Depends(get_reconciler),
) -> ReconcileOutcomeOut:
    return _outcome_out(reconciler.delete(view_id))
