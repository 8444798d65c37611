from datetime import date

import pytest
from sqlalchemy import select

from dailyload.db_models import Holiday, LogLoad
from dailyload.run_store import HOLIDAY_LOADNAME
from dailyload.schedule import LedgerHolidayCalendar, SchedulePolicy, is_holiday, weekday_abbrev


DEFAULT_POLICY = SchedulePolicy.from_strings("Sun=2,Mon=1,Tue=3,Wed=1,Thu=1,Fri=1,Sat=1", "Mon", "Tue")


@pytest.mark.parametrize("day", ["Wed", "Thu", "Fri", "Sat"])
def test_single_day_gap_midweek(day: str) -> None:
    assert DEFAULT_POLICY.compute_offset(day) == 1


def test_weekend_and_skipped_monday_gaps() -> None:
    assert DEFAULT_POLICY.compute_offset("Sun") == 2
    assert DEFAULT_POLICY.compute_offset("Tue") == 3
    assert DEFAULT_POLICY.is_run_day("Mon") is False
    assert DEFAULT_POLICY.is_run_day("Tue") is True
    assert DEFAULT_POLICY.requires_weekly_check("Tue") is True


def test_policy_is_overridable() -> None:
    policy = SchedulePolicy.from_strings("Sun=1,Mon=1,Tue=1,Wed=1,Thu=1,Fri=1,Sat=1", "", "")

    assert policy.compute_offset("Tue") == 1
    assert policy.is_run_day("Mon") is True
    assert policy.requires_weekly_check("Tue") is False


@pytest.mark.parametrize(
    "offsets",
    ["Sun=2,Mon=1", "Sun=2,Mon=1,Tue=3,Wed=1,Thu=1,Fri=1,Sat=", "Funday=1,Mon=1,Tue=3,Wed=1,Thu=1,Fri=1,Sat=1"],
)
def test_invalid_offsets_are_rejected(offsets: str) -> None:
    with pytest.raises(ValueError):
        SchedulePolicy.from_strings(offsets, "Mon", "Tue")


def test_weekday_abbrev() -> None:
    assert weekday_abbrev(date(2026, 10, 19)) == "Mon"
    assert weekday_abbrev(date(2026, 10, 22)) == "Thu"


def test_ledger_calendar_reports_yesterday_holiday(session_factory) -> None:
    with session_factory() as db:
        db.add(Holiday(holiday_date=date(2026, 10, 21), description="test holiday"))
        db.commit()

    calendar = LedgerHolidayCalendar(session_factory, host="loadhost")

    assert calendar.holiday_for(date(2026, 10, 22)) == date(2026, 10, 21)
    assert calendar.holiday_for(date(2026, 10, 23)) is None
    assert is_holiday(date(2026, 10, 22), calendar) == date(2026, 10, 21)


def test_record_holiday_appends_ledger_row(session_factory) -> None:
    LedgerHolidayCalendar(session_factory, host="loadhost").record_holiday(date(2026, 10, 21))

    with session_factory() as db:
        rows = db.execute(select(LogLoad)).scalars().all()
        assert [(row.loadname, row.extrdt, row.numrec) for row in rows] == [
            (HOLIDAY_LOADNAME, date(2026, 10, 21), 0)
        ]


class FixedCalendar:
    def __init__(self, holiday: date | None) -> None:
        self.holiday = holiday

    def holiday_for(self, run_date: date) -> date | None:
        return self.holiday

    def record_holiday(self, holiday: date) -> None:
        pass


def test_is_holiday_only_counts_the_day_before() -> None:
    assert is_holiday(date(2026, 10, 22), FixedCalendar(date(2026, 10, 21))) == date(2026, 10, 21)
    assert is_holiday(date(2026, 10, 22), FixedCalendar(date(2026, 10, 1))) is None
    assert is_holiday(date(2026, 10, 22), FixedCalendar(None)) is None
