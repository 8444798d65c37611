from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dailyload.db_models import Holiday, LogLoad, PipelineRun, StageRun, utc_now
from dailyload.schemas import RunOutcome


HOLIDAY_LOADNAME = "HOLIDAY"


def latest_extract_date(db: Session, loadname: str) -> date | None:
    stmt = select(func.max(LogLoad.extrdt)).where(LogLoad.loadname == loadname)
    return db.execute(stmt).scalar_one_or_none()


def append_ledger_row(
    db: Session,
    *,
    loadname: str,
    extract_date: date,
    row_count: int,
    host: str,
) -> LogLoad:
    row = LogLoad(loadname=loadname, extrdt=extract_date, loaddt=utc_now(), host=host, numrec=row_count)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def ledger_rows_loaded_since(db: Session, since: datetime) -> list[LogLoad]:
    stmt = select(LogLoad).where(LogLoad.loaddt >= since).order_by(LogLoad.id)
    return list(db.execute(stmt).scalars().all())


def is_holiday_date(db: Session, day: date) -> bool:
    return db.get(Holiday, day) is not None


def record_holiday(db: Session, *, holiday: date, host: str) -> LogLoad:
    return append_ledger_row(db, loadname=HOLIDAY_LOADNAME, extract_date=holiday, row_count=0, host=host)


def create_run(db: Session, *, run_date: date, trigger_source: str) -> PipelineRun:
    run = PipelineRun(run_date=run_date, trigger_source=trigger_source, status="RUNNING", started_at=utc_now())
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def finish_run(db: Session, run_id: int, outcome: RunOutcome) -> None:
    run = db.get(PipelineRun, run_id)
    if run is None:
        raise LookupError(f"pipeline run {run_id} not found")
    run.status = outcome.status
    run.failed_stage = outcome.stage
    run.failed_entity = outcome.entity
    run.error = outcome.reason
    run.entities_loaded = len(outcome.entities_loaded)
    run.completed_at = utc_now()
    db.commit()


def create_stage(db: Session, *, run_id: int, stage_name: str) -> StageRun:
    stage = StageRun(run_id=run_id, stage_name=stage_name, status="started", started_at=utc_now())
    db.add(stage)
    db.commit()
    db.refresh(stage)
    return stage


def _close_stage(db: Session, stage: StageRun, status: str, error: str | None) -> None:
    stage.status = status
    stage.completed_at = utc_now()
    stage.duration_ms = (stage.completed_at - stage.started_at).total_seconds() * 1000
    stage.error = error
    db.commit()


def finish_stage_success(db: Session, stage: StageRun) -> None:
    _close_stage(db, stage, "succeeded", None)


def finish_stage_failure(db: Session, stage: StageRun, error: str) -> None:
    _close_stage(db, stage, "failed", error)
