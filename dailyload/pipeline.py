from collections.abc import Callable
from datetime import date, datetime
import logging
from pathlib import Path
import socket
import threading
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker

from dailyload import run_store
from dailyload.config import Settings, server_type
from dailyload.dates import (
    expected_extract_date,
    format_extract_date,
    format_run_date,
    parse_extract_date,
    reconcile,
    to_ordinal,
)
from dailyload.db_models import utc_now
from dailyload.entities import EntityDescriptor, descriptors_for, get_descriptor
from dailyload.errors import (
    DateFormatError,
    DateMismatch,
    ErrorKeywordDetected,
    PipelineError,
    ProcessorNotImplemented,
)
from dailyload.fixed_width import slice_columns
from dailyload.notify import LogNotifier, Notifier
from dailyload.processor import create_processor
from dailyload.rotation import REPORT_SPOOL, rotate_artifacts
from dailyload.scanner import scan
from dailyload.schedule import HolidayCalendar, LedgerHolidayCalendar, SchedulePolicy, is_holiday, weekday_abbrev
from dailyload.schemas import FAILED, SKIPPED_HOLIDAY, SKIPPED_NO_RUN_DAY, SUCCESS, RunContext, RunOutcome
from dailyload.watcher import FileArrivalWatcher, copy_extracts


logger = logging.getLogger(__name__)
T = TypeVar("T")


def _clock() -> str:
    return datetime.now().strftime("%H:%M:%S")


class PipelineRunner:
    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        *,
        holiday_calendar: HolidayCalendar | None = None,
        notifier: Notifier | None = None,
        stop_event: threading.Event | None = None,
        hostname: str | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.hostname = hostname or socket.gethostname()
        self.holiday_calendar = holiday_calendar or LedgerHolidayCalendar(session_factory, host=self.hostname)
        self.notifier = notifier or LogNotifier()
        self.policy = SchedulePolicy.from_strings(
            settings.day_offsets,
            settings.no_run_days,
            settings.weekly_check_days,
        )
        self.watcher = FileArrivalWatcher(
            poll_interval_seconds=settings.poll_interval_seconds,
            max_wait_seconds=settings.max_wait_seconds,
            stop_event=stop_event,
        )
        self.server_type = server_type(settings, self.hostname)

    def run(self, run_date: date, *, trigger_source: str = "manual") -> RunOutcome:
        logger.info(
            "Begin loading daily extracts on %s.......... %s",
            self.server_type,
            datetime.now().strftime("%m/%d/%Y %H:%M:%S"),
            extra={"run_date": run_date.isoformat()},
        )
        with self.session_factory() as db:
            run_id = run_store.create_run(db, run_date=run_date, trigger_source=trigger_source).id

        try:
            context = self._run_stage(run_id, "gate", lambda: self._gate(run_date))
            if context.is_holiday:
                logger.info("EXITING ... due to holiday")
                outcome = RunOutcome(status=SKIPPED_HOLIDAY, run_date=run_date, run_id=run_id)
            elif not self.policy.is_run_day(context.weekday):
                logger.info("No loads on %s", context.weekday)
                outcome = RunOutcome(status=SKIPPED_NO_RUN_DAY, run_date=run_date, run_id=run_id)
            else:
                loaded = self._execute(run_id, context)
                outcome = RunOutcome(
                    status=SUCCESS,
                    run_date=run_date,
                    run_id=run_id,
                    entities_loaded=tuple(loaded),
                )
                logger.info(
                    "Daily extract loading process completed successfully at %s",
                    datetime.now().strftime("%m/%d/%Y %H:%M:%S"),
                )
        except PipelineError as exc:
            logger.error(
                "ERROR: %s ...EXITING - %s",
                exc,
                _clock(),
                extra={"stage": exc.stage, "entity": exc.entity, "run_id": run_id},
            )
            outcome = RunOutcome(
                status=FAILED,
                run_date=run_date,
                run_id=run_id,
                stage=exc.stage,
                reason=str(exc),
                entity=exc.entity,
            )

        with self.session_factory() as db:
            run_store.finish_run(db, run_id, outcome)
        return outcome

    def _run_stage(self, run_id: int, stage_name: str, fn: Callable[[], T]) -> T:
        logger.info("Begin %s........... %s", stage_name, _clock())
        with self.session_factory() as db:
            stage = run_store.create_stage(db, run_id=run_id, stage_name=stage_name)
            try:
                result = fn()
            except PipelineError as exc:
                run_store.finish_stage_failure(db, stage, str(exc))
                if exc.stage == PipelineError.stage:
                    exc.stage = stage_name
                raise
            except Exception as exc:
                run_store.finish_stage_failure(db, stage, str(exc))
                raise PipelineError(f"{stage_name} failed: {exc}", stage=stage_name) from exc
            run_store.finish_stage_success(db, stage)
        logger.info("End %s........... %s", stage_name, _clock())
        return result

    def _gate(self, run_date: date) -> RunContext:
        weekday = weekday_abbrev(run_date)
        descriptors_for(self.settings.daily_entities)
        get_descriptor(self.settings.weekly_entity)
        holiday = is_holiday(run_date, self.holiday_calendar)
        if holiday is not None:
            logger.info("Yesterday %s was a holiday, inserting logload record", format_run_date(holiday))
            self.holiday_calendar.record_holiday(holiday)
        else:
            logger.info("Yesterday was not a holiday, continue process")

        return RunContext(
            run_date=run_date,
            weekday=weekday,
            days_to_add=self.policy.compute_offset(weekday),
            is_holiday=holiday is not None,
            entity_codes=tuple(self.settings.daily_entities),
            drop_dir=Path(self.settings.drop_dir),
            work_dir=Path(self.settings.work_dir),
            backup_dir=Path(self.settings.backup_dir),
        )

    def _execute(self, run_id: int, context: RunContext) -> list[str]:
        started_at = utc_now()
        descriptors = descriptors_for(context.entity_codes)

        self._run_stage(
            run_id,
            "rotate_artifacts",
            lambda: rotate_artifacts(context.work_dir, context.backup_dir, descriptors, context.weekday),
        )
        self._run_stage(
            run_id,
            "await_files",
            lambda: self.watcher.await_all(context.entity_codes, context.drop_dir),
        )
        self._run_stage(
            run_id,
            "copy_extracts",
            lambda: copy_extracts(descriptors, context.drop_dir, context.work_dir),
        )
        if self.policy.requires_weekly_check(context.weekday):
            self._run_stage(run_id, "weekly_check", lambda: self._check_weekly(context))
        self._run_stage(run_id, "validate_dates", lambda: self._validate_dates(context))
        loaded = self._run_stage(run_id, "load_entities", lambda: self._load_entities(context))
        self._run_stage(run_id, "final_report", lambda: self._final_report(context, started_at))
        return loaded

    def _extract_date_from_file(self, descriptor: EntityDescriptor, context: RunContext) -> str:
        path = context.work_dir / descriptor.data_filename
        with path.open("rb") as infile:
            first_line = infile.readline().decode(self.settings.extract_encoding, errors="replace").rstrip("\r\n")

        start, end = descriptor.extract_date_range
        if len(first_line) < end:
            raise DateMismatch(
                f"invalid {descriptor.code} file format, first line is {len(first_line)} characters",
                entity=descriptor.code,
            )
        return slice_columns(first_line, start, end)

    def _check_weekly(self, context: RunContext) -> None:
        primary = self.settings.primary_entity
        weekly = self.settings.weekly_entity
        current = self._extract_date_from_file(get_descriptor(primary), context)

        with self.session_factory() as db:
            previous = run_store.latest_extract_date(db, weekly)
        if previous is None:
            raise DateMismatch(
                f"no {weekly} extract date recorded, weekly loads did not run",
                stage="weekly_check",
                entity=weekly,
            )

        try:
            result = reconcile(current, previous)
            current_julian = to_ordinal(current)
        except DateFormatError as exc:
            raise DateMismatch(
                f"{primary} extract date '{current}' is not a date",
                stage="weekly_check",
                entity=primary,
            ) from exc

        logger.info("Current %s      -> %s", primary, current)
        logger.info("Previous %s     -> %s", weekly, format_extract_date(previous))
        logger.info("Current %s      -> %s julian", primary, current_julian)
        logger.info("Previous %s     -> %s julian", weekly, to_ordinal(previous))
        logger.info("Difference      -> %s Days", result.diff_days)

        if not result.matches:
            raise DateMismatch(
                f"weekly {weekly} extract date {format_extract_date(previous)} is not current, "
                f"weekly loads did not run ({result.diff_days} days before {primary} {current})",
                entity=weekly,
                stage="weekly_check",
            )
        logger.info("Weekly extract date is current........... %s", format_extract_date(previous))

    def _validate_dates(self, context: RunContext) -> date:
        primary = self.settings.primary_entity
        with self.session_factory() as db:
            for code in context.entity_codes:
                last_loaded = run_store.latest_extract_date(db, code)
                logger.info(
                    "Last %s extract date loaded: %s",
                    code,
                    format_run_date(last_loaded) if last_loaded else "none",
                )
            previous = run_store.latest_extract_date(db, primary)

        if previous is None:
            raise DateMismatch(f"no previous {primary} extract date recorded", entity=primary)

        expected = format_extract_date(expected_extract_date(previous, context.days_to_add))
        logger.info("Current extract date should be... %s", expected)

        for descriptor in descriptors_for(context.entity_codes):
            observed = self._extract_date_from_file(descriptor, context)
            if observed != expected:
                raise DateMismatch(
                    f"{descriptor.code} extract date {observed} is incorrect, expected {expected}",
                    entity=descriptor.code,
                )
            logger.info("%s extract date is correct....... %s", descriptor.code, observed)
        return parse_extract_date(expected)

    def _load_entities(self, context: RunContext) -> list[str]:
        loaded: list[str] = []
        sql_dir = Path(self.settings.sql_dir) if self.settings.sql_dir else None

        for code in context.entity_codes:
            logger.info("%s extract loading............... %s", code, _clock())
            try:
                processor = create_processor(
                    code,
                    work_dir=context.work_dir,
                    session_factory=self.session_factory,
                    host=self.hostname,
                    sql_dir=sql_dir,
                    batch_size=self.settings.batch_size,
                    encoding=self.settings.extract_encoding,
                )
            except ProcessorNotImplemented:
                logger.warning("WARNING: %s processor not yet implemented. Skipping.", code, extra={"entity": code})
                continue

            result = processor.process()
            offending = scan(result.output_path)
            for line in offending:
                logger.error(line, extra={"entity": code})

            if not result.success:
                if isinstance(result.error, PipelineError):
                    if result.error.entity is None:
                        result.error.entity = code
                    raise result.error
                raise PipelineError(
                    f"{code} processing failed at {result.stage}: {result.reason}",
                    stage=result.stage.lower(),
                    entity=code,
                ) from result.error
            if offending:
                raise ErrorKeywordDetected(f"Errors found in {processor.output_path.name}", entity=code)

            logger.info("%s extract loaded successfully..... %s", code, _clock())
            loaded.append(code)

        return loaded

    def _final_report(self, context: RunContext, started_at: datetime) -> str:
        with self.session_factory() as db:
            rows = run_store.ledger_rows_loaded_since(db, started_at)

        lines = [f"{'LOADNAME':<10}{'EXTRDT':<12}{'LOADDT':<21}{'NUMREC':>8}"]
        for row in rows:
            lines.append(
                f"{row.loadname:<10}{format_run_date(row.extrdt):<12}"
                f"{row.loaddt.strftime('%m/%d/%Y %H:%M:%S'):<21}{row.numrec:>8}"
            )
        body = "\n".join(lines) + "\n"
        (context.work_dir / REPORT_SPOOL).write_text(body, encoding="utf-8")

        subject = f"DAILY ENTITY LOADED ON {self.server_type}"
        try:
            self.notifier.notify(subject, body)
        except Exception:
            logger.warning("notification failed, continuing", exc_info=True)
        return body
