from collections.abc import Callable
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from dailyload import run_store
from dailyload.config import Settings
from dailyload.database import build_session_factory
from dailyload.entities import E5_COLUMNS
from dailyload.fixed_width import encode
from dailyload.pipeline import PipelineRunner


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, subject: str, body: str) -> None:
        self.messages.append((subject, body))


def e5_record(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "outputcd": "E5",
        "empasgmtnum": 21011234,
        "empname": "DOE JANE",
        "empgradecd": "12",
        "emptypecd": "R",
        "tourofduty": "1",
        "empworkarea": "3",
        "tpspodind": "N",
        "csupodind": "N",
        "parapodind": "N",
        "mngrpodind": "Y",
        "empposittypecd": "G",
        "flexplaceind": "N",
        "empupdatedt": date(2026, 10, 1),
        "entextractdt": date(2026, 10, 21),
        "empidnum": "12-345678",
        "emptitle": "REVENUE OFFICER",
        "areacd": 202,
        "phone": 5551234,
        "ext": 12,
        "previd": 0,
        "seid": "AB123",
        "email": "jane.doe@example.gov",
        "icsacc": "Y",
        "emppodcd": "NYC",
        "gs9cnt": 0,
        "gs11cnt": 1,
        "gs12cnt": 2,
        "gs13cnt": 0,
    }
    record.update(overrides)
    return record


@pytest.fixture()
def e5_values() -> Callable[..., dict[str, object]]:
    return e5_record


@pytest.fixture()
def make_e5_line() -> Callable[..., str]:
    def build(**overrides: object) -> str:
        return encode(e5_record(**overrides), list(E5_COLUMNS))

    return build


@pytest.fixture()
def temp_workspace(tmp_path: Path) -> Path:
    for name in ("ftp", "loads", "backup", "logs"):
        (tmp_path / name).mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def test_settings(temp_workspace: Path) -> Settings:
    return Settings(
        app_name="dailyload",
        database_url=f"sqlite:///{temp_workspace / 'test.db'}",
        log_level="INFO",
        run_log_path=str(temp_workspace / "logs" / "dailyload.log"),
        drop_dir=str(temp_workspace / "ftp"),
        work_dir=str(temp_workspace / "loads"),
        backup_dir=str(temp_workspace / "backup"),
        sql_dir=None,
        daily_entities=("E5",),
        primary_entity="E5",
        weekly_entity="E9",
        day_offsets="Sun=2,Mon=1,Tue=3,Wed=1,Thu=1,Fri=1,Sat=1",
        no_run_days="Mon",
        weekly_check_days="Tue",
        poll_interval_seconds=0,
        max_wait_seconds=0,
        batch_size=2,
        extract_encoding="latin-1",
        schedule_hour=5,
        schedule_minute=0,
        schedule_timezone="UTC",
        dev_host=None,
        test_host=None,
        prod_host=None,
        smtp_host=None,
        smtp_port=25,
        notify_sender="dailyload@localhost",
        notify_recipients=(),
    )


@pytest.fixture()
def session_factory(test_settings: Settings) -> sessionmaker[Session]:
    return build_session_factory(test_settings.database_url)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def runner(test_settings: Settings, session_factory: sessionmaker[Session], notifier: RecordingNotifier) -> PipelineRunner:
    return PipelineRunner(test_settings, session_factory, notifier=notifier, hostname="loadhost")


@pytest.fixture()
def seed_ledger(session_factory: sessionmaker[Session]) -> Callable[[str, date], None]:
    def seed(code: str, extract_date: date) -> None:
        with session_factory() as db:
            run_store.append_ledger_row(db, loadname=code, extract_date=extract_date, row_count=10, host="seed")

    return seed
