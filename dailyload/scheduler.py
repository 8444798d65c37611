from datetime import datetime
import logging
from zoneinfo import ZoneInfo

from apscheduler.schedulers.blocking import BlockingScheduler
from sqlalchemy.orm import Session, sessionmaker

from dailyload.config import Settings
from dailyload.notify import build_notifier
from dailyload.pipeline import PipelineRunner
from dailyload.schemas import FAILED


logger = logging.getLogger(__name__)


def _run_daily_pipeline(settings: Settings, session_factory: sessionmaker[Session]) -> None:
    run_date = datetime.now(ZoneInfo(settings.schedule_timezone)).date()

    runner = PipelineRunner(settings, session_factory, notifier=build_notifier(settings))
    outcome = runner.run(run_date, trigger_source="scheduled")
    if outcome.status == FAILED:
        logger.error(
            "scheduled daily load failed",
            extra={"run_date": run_date.isoformat(), "stage": outcome.stage, "entity": outcome.entity},
        )
        return
    logger.info(
        "scheduled daily load completed",
        extra={"run_date": run_date.isoformat(), "status": outcome.status},
    )


def start_scheduler(settings: Settings, session_factory: sessionmaker[Session], *, run_now: bool = False) -> None:
    scheduler = BlockingScheduler(timezone=settings.schedule_timezone)
    scheduler.add_job(
        _run_daily_pipeline,
        "cron",
        args=[settings, session_factory],
        hour=settings.schedule_hour,
        minute=settings.schedule_minute,
        id="daily_load",
        replace_existing=True,
        max_instances=1,
    )

    logger.info(
        "scheduler started",
        extra={
            "schedule_hour": settings.schedule_hour,
            "schedule_minute": settings.schedule_minute,
            "schedule_timezone": settings.schedule_timezone,
        },
    )

    if run_now:
        _run_daily_pipeline(settings, session_factory)

    scheduler.start()
