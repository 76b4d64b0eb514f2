import asyncio
import json

import pytest

import worker as worker_module
from core.redis import EMAIL_QUEUE, email_job_key
from utils.email_client import EmailServiceError
from conftest import make_registration


@pytest.fixture
def seeded(fake_db, fake_redis):
    fake_db.registrations.docs.append(make_registration())
    return fake_db, fake_redis


def test_enqueue_marks_job_queued(seeded):
    _, fake = seeded

    async def run_test():
        job_id = await worker_module.enqueue_confirmation("TF2025-AAAA0001", "admin@fest.org", manual=False)
        return job_id, await fake.hgetall(email_job_key(job_id))

    job_id, data = asyncio.run(run_test())
    assert data["status"] == "queued"
    assert data["registrationId"] == "TF2025-AAAA0001"
    queued = json.loads(fake.lists[EMAIL_QUEUE][0])
    assert queued == {
        "jobId": job_id,
        "registrationId": "TF2025-AAAA0001",
        "adminEmail": "admin@fest.org",
        "manual": False,
    }


def test_successful_send_sets_sent_status(seeded, monkeypatch):
    _, fake = seeded
    calls = []

    def fake_send(registration, admin_email, manual):
        calls.append((registration["registrationId"], admin_email, manual))
        return {"success": True, "usedEmail": "noreply1@fest.org"}

    monkeypatch.setattr(worker_module, "send_registration_confirmation", fake_send)
    worker = worker_module.EmailWorker(send_delay=0)

    async def run_test():
        job_id = await worker_module.enqueue_confirmation("TF2025-AAAA0001", "admin@fest.org")
        handled = await worker.process_jobs()
        return job_id, handled, await fake.hgetall(email_job_key(job_id))

    job_id, handled, data = asyncio.run(run_test())
    assert handled is True
    assert data["status"] == "sent"
    assert data["usedEmail"] == "noreply1@fest.org"
    assert "sentAt" in data
    assert calls == [("TF2025-AAAA0001", "admin@fest.org", True)]


def test_backend_error_sets_failed_status(seeded, monkeypatch):
    _, fake = seeded

    def fake_send(registration, admin_email, manual):
        raise EmailServiceError("HTTP error! status: 500")

    monkeypatch.setattr(worker_module, "send_registration_confirmation", fake_send)
    worker = worker_module.EmailWorker(send_delay=0)

    async def run_test():
        job_id = await worker_module.enqueue_confirmation("TF2025-AAAA0001", "admin@fest.org")
        await worker.process_jobs()
        return await fake.hgetall(email_job_key(job_id))

    data = asyncio.run(run_test())
    assert data["status"] == "failed"
    assert data["error"] == "HTTP error! status: 500"


def test_unsuccessful_response_sets_failed_status(seeded, monkeypatch):
    _, fake = seeded
    monkeypatch.setattr(
        worker_module,
        "send_registration_confirmation",
        lambda *args: {"success": False, "error": "quota exceeded"},
    )
    worker = worker_module.EmailWorker(send_delay=0)

    async def run_test():
        job_id = await worker_module.enqueue_confirmation("TF2025-AAAA0001", "admin@fest.org")
        await worker.process_jobs()
        return await fake.hgetall(email_job_key(job_id))

    data = asyncio.run(run_test())
    assert data["status"] == "failed"
    assert data["error"] == "quota exceeded"


def test_missing_registration_fails_job(fake_db, fake_redis):
    worker = worker_module.EmailWorker(send_delay=0)

    async def run_test():
        job_id = await worker_module.enqueue_confirmation("TF2025-MISSING0", "admin@fest.org")
        await worker.process_jobs()
        return await fake_redis.hgetall(email_job_key(job_id))

    data = asyncio.run(run_test())
    assert data["status"] == "failed"
    assert data["error"] == "Registration not found"


def test_empty_queue_returns_false(fake_db, fake_redis):
    worker = worker_module.EmailWorker(send_delay=0)
    assert asyncio.run(worker.process_jobs()) is False
