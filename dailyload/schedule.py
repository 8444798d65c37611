"""Run-day policy and holiday gate.

The gap between two consecutive extract dates depends on the weekday of the
run: the feed does not produce on weekends and the Monday slot is skipped, so
Sunday picks up two days and Tuesday picks up three. The mapping is parsed
from configuration so a deployment can change it without code changes.
"""

from dataclasses import dataclass
from datetime import date, timedelta
import logging
from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from dailyload import run_store


logger = logging.getLogger(__name__)

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def weekday_abbrev(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def _parse_days(value: str) -> frozenset[str]:
    days = frozenset(item.strip().title() for item in value.split(",") if item.strip())
    unknown = days - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"unknown weekday(s): {', '.join(sorted(unknown))}")
    return days


def _parse_offsets(value: str) -> dict[str, int]:
    offsets: dict[str, int] = {}
    for item in value.split(","):
        if not item.strip():
            continue
        day, _, days_to_add = item.partition("=")
        day = day.strip().title()
        if day not in WEEKDAYS or not days_to_add.strip():
            raise ValueError(f"invalid day offset entry '{item.strip()}'")
        offsets[day] = int(days_to_add)
    missing = set(WEEKDAYS) - set(offsets)
    if missing:
        raise ValueError(f"day offsets missing for: {', '.join(sorted(missing))}")
    return offsets


@dataclass(frozen=True)
class SchedulePolicy:
    offsets: dict[str, int]
    no_run_days: frozenset[str]
    weekly_check_days: frozenset[str]

    @classmethod
    def from_strings(cls, offsets: str, no_run_days: str, weekly_check_days: str) -> "SchedulePolicy":
        return cls(
            offsets=_parse_offsets(offsets),
            no_run_days=_parse_days(no_run_days),
            weekly_check_days=_parse_days(weekly_check_days),
        )

    def compute_offset(self, day_of_week: str) -> int:
        return self.offsets[day_of_week.title()]

    def is_run_day(self, day_of_week: str) -> bool:
        return day_of_week.title() not in self.no_run_days

    def requires_weekly_check(self, day_of_week: str) -> bool:
        return day_of_week.title() in self.weekly_check_days


class HolidayCalendar(Protocol):
    def holiday_for(self, run_date: date) -> date | None: ...

    def record_holiday(self, holiday: date) -> None: ...


class LedgerHolidayCalendar:
    """Holiday lookups against the ``holidays`` table; skips are audited in the ledger."""

    def __init__(self, session_factory: sessionmaker[Session], *, host: str) -> None:
        self.session_factory = session_factory
        self.host = host

    def holiday_for(self, run_date: date) -> date | None:
        yesterday = run_date - timedelta(days=1)
        with self.session_factory() as db:
            if run_store.is_holiday_date(db, yesterday):
                return yesterday
        return None

    def record_holiday(self, holiday: date) -> None:
        with self.session_factory() as db:
            run_store.record_holiday(db, holiday=holiday, host=self.host)
        logger.info("holiday ledger record inserted", extra={"holiday": holiday.isoformat()})


def is_holiday(run_date: date, calendar: HolidayCalendar) -> date | None:
    holiday = calendar.holiday_for(run_date)
    if holiday is not None and holiday == run_date - timedelta(days=1):
        return holiday
    return None
