"""
API tests for the scheduled-job triggers.
"""
import pytest
from cardledger.core.config import settings
from cardledger.services import scheduler


class FakeSession:
    def rollback(self):
        pass

    def close(self):
        pass


@pytest.fixture
def job_calls(monkeypatch):
    calls = []

    def register(name, result=0, error=None):
        async def job(db):
            calls.append(name)
            if error:
                raise error
            return result
        monkeypatch.setitem(scheduler.JOBS, name, job)

    for name in list(scheduler.JOBS):
        register(name)
    monkeypatch.setattr(scheduler, "SessionLocal", FakeSession)
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    return calls, register


@pytest.mark.parametrize("name", [
    "renewal-reminders", "auto-cancel", "renewal-flag-reset", "exchange-refresh", "rejected-cleanup"
])
def test_trigger_runs_the_named_job(client, job_calls, name):
    calls, _ = job_calls

    response = client.post(f"/_cron/{name}", headers={"x-cron-token": "s3cret"})

    assert response.status_code == 204
    assert response.content == b""
    assert calls == [name]


def test_wrong_token_is_rejected(client, job_calls):
    calls, _ = job_calls

    response = client.post("/_cron/renewal-reminders", headers={"x-cron-token": "guess"})
    missing = client.post("/_cron/renewal-reminders")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Unauthorized cron caller"}
    assert missing.status_code == 401
    assert calls == []


def test_no_secret_configured_accepts_any_caller(client, job_calls, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "")

    assert client.post("/_cron/exchange-refresh").status_code == 204


def test_failing_job_answers_500(client, job_calls):
    _, register = job_calls
    register("auto-cancel", error=RuntimeError("mail provider down"))

    response = client.post("/_cron/auto-cancel", headers={"x-cron-token": "s3cret"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Cron handler failed"}
