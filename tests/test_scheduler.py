from apscheduler.schedulers.blocking import BlockingScheduler
import pytest

from dailyload.scheduler import start_scheduler


def test_start_scheduler_registers_daily_job(test_settings, session_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    registered: list = []

    def fake_start(self: BlockingScheduler, *args, **kwargs) -> None:
        registered.extend(self.get_jobs())

    monkeypatch.setattr(BlockingScheduler, "start", fake_start)

    start_scheduler(test_settings, session_factory)

    assert [job.id for job in registered] == ["daily_load"]
    assert registered[0].max_instances == 1
    assert "hour='5'" in str(registered[0].trigger)
