from datetime import UTC, date, datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from dailyload.entities import ENTITY_DESCRIPTORS, EntityDescriptor


class Base(DeclarativeBase):
    pass


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class LogLoad(Base):
    """Append-only extract-date ledger; the latest date per entity is always the max."""

    __tablename__ = "logload"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    loadname: Mapped[str] = mapped_column(String(16), index=True)
    extrdt: Mapped[date] = mapped_column(Date)
    loaddt: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    host: Mapped[str] = mapped_column(String(128))
    numrec: Mapped[int] = mapped_column(Integer, default=0)


class Holiday(Base):
    __tablename__ = "holidays"

    holiday_date: Mapped[date] = mapped_column(Date, primary_key=True)
    description: Mapped[str | None] = mapped_column(String(64), nullable=True)


class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_date: Mapped[date] = mapped_column(Date, index=True)
    trigger_source: Mapped[str] = mapped_column(String(32), default="manual")
    status: Mapped[str] = mapped_column(String(32), default="RUNNING")
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    failed_stage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    failed_entity: Mapped[str | None] = mapped_column(String(16), nullable=True)
    entities_loaded: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    stages: Mapped[list["StageRun"]] = relationship(back_populates="run", cascade="all, delete-orphan")


class StageRun(Base):
    __tablename__ = "stage_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[int] = mapped_column(ForeignKey("pipeline_runs.id", ondelete="CASCADE"), index=True)
    stage_name: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(32), default="started")
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    duration_ms: Mapped[float | None] = mapped_column(Float, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    run: Mapped[PipelineRun] = relationship(back_populates="stages")


class EmployeeColumns:
    """Column set shared by ``entemp`` and its ``entemp2`` snapshot."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    roid: Mapped[str] = mapped_column(String(8), index=True)
    seid: Mapped[str] = mapped_column(String(5), default="00000")
    name: Mapped[str | None] = mapped_column(String(35), nullable=True)
    grade: Mapped[str | None] = mapped_column(String(2), nullable=True)
    type: Mapped[str | None] = mapped_column(String(1), nullable=True)
    badge: Mapped[str | None] = mapped_column(String(10), nullable=True)
    title: Mapped[str | None] = mapped_column(String(25), nullable=True)
    areacd: Mapped[int | None] = mapped_column(Integer, nullable=True)
    phone: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ext: Mapped[int | None] = mapped_column(Integer, nullable=True)
    email: Mapped[str | None] = mapped_column(String(45), nullable=True)
    postype: Mapped[str | None] = mapped_column(String(1), nullable=True)
    area: Mapped[str | None] = mapped_column(String(1), nullable=True)
    tour: Mapped[str | None] = mapped_column(String(1), nullable=True)
    podind: Mapped[str | None] = mapped_column(String(1), nullable=True)
    tpsind: Mapped[str | None] = mapped_column(String(1), nullable=True)
    csuind: Mapped[str | None] = mapped_column(String(1), nullable=True)
    aideind: Mapped[str | None] = mapped_column(String(1), nullable=True)
    flexind: Mapped[str | None] = mapped_column(String(1), nullable=True)
    empdt: Mapped[date | None] = mapped_column(Date, nullable=True)
    previd: Mapped[int | None] = mapped_column(Integer, nullable=True)
    icsacc: Mapped[str | None] = mapped_column(String(1), nullable=True)
    eactive: Mapped[str | None] = mapped_column(String(1), nullable=True)
    extrdt: Mapped[date | None] = mapped_column(Date, nullable=True)
    podcd: Mapped[str | None] = mapped_column(String(3), nullable=True)
    gs9cnt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gs11cnt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gs12cnt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gs13cnt: Mapped[int | None] = mapped_column(Integer, nullable=True)
    unix: Mapped[str | None] = mapped_column(String(8), nullable=True)
    elevel: Mapped[int | None] = mapped_column(Integer, nullable=True)
    primary_roid: Mapped[str | None] = mapped_column(String(1), nullable=True)


class EntityEmployee(EmployeeColumns, Base):
    __tablename__ = "entemp"
    __table_args__ = (UniqueConstraint("roid", "seid", name="uq_entemp_roid_seid"),)


class EntityEmployeeSnapshot(EmployeeColumns, Base):
    __tablename__ = "entemp2"


_COLUMN_TYPES = {
    "int": lambda width: Integer(),
    "date": lambda width: Date(),
    "str": lambda width: String(width),
}


def staging_table(descriptor: EntityDescriptor) -> Table:
    if not descriptor.staging_table:
        raise ValueError(f"entity {descriptor.code} has no staging table")

    existing = Base.metadata.tables.get(descriptor.staging_table)
    if existing is not None:
        return existing

    columns = [
        Column(column.name, _COLUMN_TYPES[column.kind](column.width), nullable=True)
        for column in descriptor.columns
    ]
    return Table(descriptor.staging_table, Base.metadata, *columns)


for _descriptor in ENTITY_DESCRIPTORS.values():
    if _descriptor.has_processor:
        staging_table(_descriptor)
