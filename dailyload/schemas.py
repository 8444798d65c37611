from dataclasses import dataclass
from datetime import date
from pathlib import Path


SUCCESS = "SUCCESS"
SKIPPED_HOLIDAY = "SKIPPED_HOLIDAY"
SKIPPED_NO_RUN_DAY = "SKIPPED_NO_RUN_DAY"
FAILED = "FAILED"

STAGE_LOAD = "STAGE_LOAD"
VALIDATE_BAD_RECORDS = "VALIDATE_BAD_RECORDS"
RUN_TRANSFORM_SQL = "RUN_TRANSFORM_SQL"
RECORD_AUDIT = "RECORD_AUDIT"
DONE = "DONE"


@dataclass(frozen=True)
class RunContext:
    run_date: date
    weekday: str
    days_to_add: int
    is_holiday: bool
    entity_codes: tuple[str, ...]
    drop_dir: Path
    work_dir: Path
    backup_dir: Path


@dataclass(frozen=True)
class ProcessResult:
    entity_code: str
    success: bool
    output_path: Path
    stage: str
    row_count: int = 0
    extract_date: date | None = None
    reason: str | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class RunOutcome:
    status: str
    run_date: date
    run_id: int | None = None
    stage: str | None = None
    reason: str | None = None
    entity: str | None = None
    entities_loaded: tuple[str, ...] = ()

    @property
    def exit_code(self) -> int:
        return 1 if self.status == FAILED else 0
