"""Per-entity load: stage, reject check, transform SQL, ledger row.

Every step writes a narrative line to ``<code>.out``. The orchestrator scans
that file for failure keywords after the processor returns, so nothing
written on the success path may contain ``err`` in any case.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
import logging
from pathlib import Path

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session, sessionmaker

from dailyload import run_store
from dailyload.dates import format_extract_date
from dailyload.db_models import staging_table
from dailyload.entities import EntityDescriptor, get_descriptor
from dailyload.errors import BadRecordThreshold, PipelineError, ProcessorNotImplemented, RecordDecodeError
from dailyload.fixed_width import DEFAULT_ENCODING, ColumnSpec, DecodedRecord, DecodeWarning, decode
from dailyload.schemas import (
    DONE,
    RECORD_AUDIT,
    RUN_TRANSFORM_SQL,
    STAGE_LOAD,
    VALIDATE_BAD_RECORDS,
    ProcessResult,
)
from dailyload.sql_operations import SqlOperationExecutor


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


def _timestamp() -> str:
    return datetime.now().strftime("%m/%d/%Y %H:%M:%S")


class OutputLog:
    def __init__(self, path: Path) -> None:
        self.path = path

    def start(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{text}\n\n", encoding="utf-8")

    def write(self, text: str) -> None:
        with self.path.open("a", encoding="utf-8") as outfile:
            outfile.write(f"{text}\n")


class EntityProcessor(ABC):
    def __init__(self, descriptor: EntityDescriptor, *, work_dir: Path) -> None:
        self.descriptor = descriptor
        self.work_dir = work_dir

    @property
    def entity_code(self) -> str:
        return self.descriptor.code

    @property
    def output_path(self) -> Path:
        return self.work_dir / self.descriptor.out_filename

    @abstractmethod
    def process(self) -> ProcessResult:
        raise NotImplementedError


class ConfiguredEntityProcessor(EntityProcessor):
    def __init__(
        self,
        descriptor: EntityDescriptor,
        *,
        work_dir: Path,
        session_factory: sessionmaker[Session],
        host: str,
        sql_dir: Path | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        super().__init__(descriptor, work_dir=work_dir)
        self.session_factory = session_factory
        self.host = host
        self.sql_dir = sql_dir
        self.batch_size = batch_size
        self.encoding = encoding
        self.table = staging_table(descriptor)
        self.out = OutputLog(self.output_path)

    @property
    def data_path(self) -> Path:
        return self.work_dir / self.descriptor.data_filename

    @property
    def bad_path(self) -> Path:
        return self.work_dir / self.descriptor.bad_filename

    def process(self) -> ProcessResult:
        code = self.entity_code
        self.out.start(f"Begin process {code}........... {_timestamp()}")

        stage = STAGE_LOAD
        try:
            bad_records = self._stage_load()
            stage = VALIDATE_BAD_RECORDS
            self._validate_bad_records(bad_records)
            stage = RUN_TRANSFORM_SQL
            self._run_transforms()
            stage = RECORD_AUDIT
            extract_date, row_count = self._record_audit()
        except Exception as exc:
            self.out.write(f"ERROR: {code} {stage} failed: {exc} ...EXITING")
            logger.exception("entity processing failed", extra={"entity": code, "stage": stage})
            return ProcessResult(
                entity_code=code,
                success=False,
                output_path=self.output_path,
                stage=stage,
                reason=str(exc),
                error=exc,
            )

        self.out.write(f"End process {code}........... {_timestamp()}")
        self.out.write("PROCESS COMPLETE")
        return ProcessResult(
            entity_code=code,
            success=True,
            output_path=self.output_path,
            stage=DONE,
            row_count=row_count,
            extract_date=extract_date,
        )

    def _stage_load(self) -> int:
        loaded = 0
        bad_records = 0
        batch: list[DecodedRecord] = []
        columns = list(self.descriptor.columns)

        with self.session_factory() as db:
            self.out.write(f"Truncate {self.table.name} table........... {_timestamp()}")
            db.execute(delete(self.table))
            db.commit()

            with self.data_path.open("rb") as infile, self.bad_path.open("wb") as badfile:
                for line_number, line in enumerate(infile, start=1):

                    def on_default(column: ColumnSpec, raw: str, default: date, line_number: int = line_number) -> None:
                        self._warn(
                            f"WARNING: column {column.name} date '{raw}' unparseable, "
                            f"using {format_extract_date(default)} (line {line_number})"
                        )

                    try:
                        decoded = decode(line, columns, encoding=self.encoding, on_default=on_default)
                    except RecordDecodeError as exc:
                        badfile.write(line if line.endswith(b"\n") else line + b"\n")
                        bad_records += 1
                        self.out.write(f"Rejected line {line_number}: {exc}")
                        continue

                    if isinstance(decoded, DecodeWarning):
                        self._warn(f"{decoded.message} (line {line_number})")
                        continue

                    batch.append(decoded)
                    if len(batch) >= self.batch_size:
                        loaded += self._insert_batch(db, batch)
                        batch = []

            if batch:
                loaded += self._insert_batch(db, batch)

        self.out.write(f"Loaded {loaded} records into {self.table.name} table")
        return bad_records

    def _warn(self, message: str) -> None:
        self.out.write(message)
        logger.warning("%s", message, extra={"entity": self.entity_code})

    def _insert_batch(self, db: Session, batch: list[DecodedRecord]) -> int:
        db.execute(insert(self.table), batch)
        db.commit()
        return len(batch)

    def _validate_bad_records(self, bad_records: int) -> None:
        if bad_records > 0:
            raise BadRecordThreshold(
                f"{self.entity_code} load - {bad_records} records in {self.descriptor.bad_filename}",
                entity=self.entity_code,
            )
        self.out.write(f"No rejected records in {self.descriptor.bad_filename}")

    def _staged_count(self, db: Session) -> int:
        return db.execute(select(func.count()).select_from(self.table)).scalar_one()

    def _run_transforms(self) -> None:
        with self.session_factory() as db:
            executor = SqlOperationExecutor(db, sql_dir=self.sql_dir)
            self.out.write(f"Staged rows before cleanup: {self._staged_count(db)}")
            for name in self.descriptor.transform_operations:
                self.out.write(f"Running {name}........... {_timestamp()}")
                rows = executor.run(name, {"entity_code": self.entity_code})
                self.out.write(f"{name} affected {rows} rows")
            self.out.write(f"Staged rows after cleanup: {self._staged_count(db)}")

    def _record_audit(self) -> tuple[date, int]:
        date_column = self.table.c[self.descriptor.extract_date_field]
        with self.session_factory() as db:
            extract_date = db.execute(select(date_column).limit(1)).scalar_one_or_none()
            if extract_date is None:
                raise PipelineError(
                    f"could not determine extract date from {self.table.name}",
                    stage="record_audit",
                    entity=self.entity_code,
                )
            row_count = self._staged_count(db)
            run_store.append_ledger_row(
                db,
                loadname=self.entity_code,
                extract_date=extract_date,
                row_count=row_count,
                host=self.host,
            )

        self.out.write(f"Inserted 1 logload record for {format_extract_date(extract_date)} ({row_count} rows)")
        return extract_date, row_count


PROCESSOR_TYPES: dict[str, type[ConfiguredEntityProcessor]] = {}


def register_processor(code: str, processor_type: type[ConfiguredEntityProcessor]) -> None:
    PROCESSOR_TYPES[code] = processor_type


def create_processor(
    code: str,
    *,
    work_dir: Path,
    session_factory: sessionmaker[Session],
    host: str,
    sql_dir: Path | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    encoding: str = DEFAULT_ENCODING,
) -> EntityProcessor:
    descriptor = get_descriptor(code)
    if not descriptor.has_processor:
        raise ProcessorNotImplemented(f"{code} processor not yet implemented", entity=code)

    processor_type = PROCESSOR_TYPES.get(code, ConfiguredEntityProcessor)
    return processor_type(
        descriptor,
        work_dir=work_dir,
        session_factory=session_factory,
        host=host,
        sql_dir=sql_dir,
        batch_size=batch_size,
        encoding=encoding,
    )
