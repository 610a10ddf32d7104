"""
Tests for the job executor and the in-app daily scheduler.
"""
import asyncio
from datetime import datetime, time
import pytest
from cardledger.services import scheduler


class FakeSession:
    def __init__(self):
        self.rolled_back = False
        self.closed = False

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


def test_next_run_at_same_day_or_tomorrow():
    now = datetime(2025, 3, 10, 10, 0)

    assert scheduler.next_run_at(now, time(14, 0)) == datetime(2025, 3, 10, 14, 0)
    assert scheduler.next_run_at(now, time(10, 0)) == datetime(2025, 3, 11, 10, 0)
    assert scheduler.next_run_at(now, time(1, 30)) == datetime(2025, 3, 11, 1, 30)


def test_every_scheduled_job_is_registered():
    assert {name for name, _ in scheduler.DAILY_SCHEDULE} == set(scheduler.JOBS)


def test_run_job_uses_fresh_session(monkeypatch):
    session = FakeSession()
    seen = []

    async def job(db):
        seen.append(db)
        return 3

    monkeypatch.setitem(scheduler.JOBS, scheduler.RENEWAL_REMINDERS, job)

    assert asyncio.run(scheduler.run_job(scheduler.RENEWAL_REMINDERS, lambda: session)) == 3
    assert seen == [session]
    assert session.closed is True
    assert session.rolled_back is False


def test_run_job_rolls_back_and_reraises(monkeypatch):
    session = FakeSession()

    async def job(db):
        raise RuntimeError("smtp down")

    monkeypatch.setitem(scheduler.JOBS, scheduler.AUTO_CANCEL, job)

    with pytest.raises(RuntimeError):
        asyncio.run(scheduler.run_job(scheduler.AUTO_CANCEL, lambda: session))
    assert session.rolled_back is True
    assert session.closed is True


def test_unknown_job():
    with pytest.raises(KeyError):
        asyncio.run(scheduler.run_job("does-not-exist", FakeSession))


def test_scheduler_start_and_stop():
    async def scenario():
        job_scheduler = scheduler.JobScheduler(
            schedule=[(scheduler.EXCHANGE_REFRESH, time(3, 0))],
            timezone="UTC",
            session_factory=FakeSession
        )
        job_scheduler.start()
        running = job_scheduler.is_running
        await job_scheduler.stop()
        return running, job_scheduler.is_running

    assert asyncio.run(scenario()) == (True, False)
