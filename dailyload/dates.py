from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dailyload.errors import DateFormatError


WEEKLY_DAILY_GAP_DAYS = 2


@dataclass(frozen=True)
class Reconciliation:
    diff_days: int
    matches: bool


def parse_extract_date(value: str | date) -> date:
    if isinstance(value, date):
        return value

    text = value.strip()
    # Shape is decided by length: file content carries YYYYMMDD, the ledger and CLI use MM/DD/YYYY.
    if len(text) == 8 and text.isdigit():
        fmt = "%Y%m%d"
    elif len(text) == 10 and text[2] == "/" and text[5] == "/":
        fmt = "%m/%d/%Y"
    else:
        raise DateFormatError(f"unrecognised extract date '{value}'")

    try:
        return datetime.strptime(text, fmt).date()
    except ValueError as exc:
        raise DateFormatError(f"invalid extract date '{value}'") from exc


def format_extract_date(value: date) -> str:
    return value.strftime("%Y%m%d")


def format_run_date(value: date) -> str:
    return value.strftime("%m/%d/%Y")


def to_ordinal(value: str | date) -> int:
    return parse_extract_date(value).timetuple().tm_yday


def reconcile(
    current: str | date,
    previous: str | date,
    *,
    expected_gap: int = WEEKLY_DAILY_GAP_DAYS,
) -> Reconciliation:
    diff_days = (parse_extract_date(current) - parse_extract_date(previous)).days
    return Reconciliation(diff_days=diff_days, matches=diff_days == expected_gap)


def expected_extract_date(previous: str | date, offset_days: int) -> date:
    return parse_extract_date(previous) + timedelta(days=offset_days)
