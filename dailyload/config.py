from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    database_url: str
    log_level: str
    run_log_path: str
    drop_dir: str
    work_dir: str
    backup_dir: str
    sql_dir: str | None
    daily_entities: tuple[str, ...]
    primary_entity: str
    weekly_entity: str
    day_offsets: str
    no_run_days: str
    weekly_check_days: str
    poll_interval_seconds: float
    max_wait_seconds: float | None
    batch_size: int
    extract_encoding: str
    schedule_hour: int
    schedule_minute: int
    schedule_timezone: str
    dev_host: str | None
    test_host: str | None
    prod_host: str | None
    smtp_host: str | None
    smtp_port: int
    notify_sender: str
    notify_recipients: tuple[str, ...]


def _split(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "dailyload"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./dailyload.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        run_log_path=os.getenv("RUN_LOG_PATH", "./logs/dailyload.log"),
        drop_dir=os.getenv("DROP_DIR", "./data/ftp"),
        work_dir=os.getenv("WORK_DIR", "./data/loads"),
        backup_dir=os.getenv("BACKUP_DIR", "./data/backup"),
        sql_dir=os.getenv("SQL_DIR") or None,
        daily_entities=_split(os.getenv("DAILY_ENTITIES", "E5,E3,E8,E7,EB")),
        primary_entity=os.getenv("PRIMARY_ENTITY", "E5"),
        weekly_entity=os.getenv("WEEKLY_ENTITY", "E9"),
        day_offsets=os.getenv("DAY_OFFSETS", "Sun=2,Mon=1,Tue=3,Wed=1,Thu=1,Fri=1,Sat=1"),
        no_run_days=os.getenv("NO_RUN_DAYS", "Mon"),
        weekly_check_days=os.getenv("WEEKLY_CHECK_DAYS", "Tue"),
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "300")),
        max_wait_seconds=_optional_float(os.getenv("MAX_WAIT_SECONDS")),
        batch_size=int(os.getenv("BATCH_SIZE", "1000")),
        extract_encoding=os.getenv("EXTRACT_ENCODING", "latin-1"),
        schedule_hour=int(os.getenv("SCHEDULE_HOUR", "5")),
        schedule_minute=int(os.getenv("SCHEDULE_MINUTE", "0")),
        schedule_timezone=os.getenv("SCHEDULE_TIMEZONE", "UTC"),
        dev_host=os.getenv("DEV_HOST") or None,
        test_host=os.getenv("TEST_HOST") or None,
        prod_host=os.getenv("PROD_HOST") or None,
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=int(os.getenv("SMTP_PORT", "25")),
        notify_sender=os.getenv("NOTIFY_SENDER", "dailyload@localhost"),
        notify_recipients=_split(os.getenv("NOTIFY_RECIPIENTS", "")),
    )


def server_type(settings: Settings, hostname: str) -> str:
    if hostname == settings.dev_host:
        return "DEVELOPMENT"
    if hostname == settings.test_host:
        return "TEST"
    if hostname == settings.prod_host:
        return "PRODUCTION"
    return "UNKNOWN"
