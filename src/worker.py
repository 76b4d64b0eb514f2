import asyncio
import json
import uuid
import structlog
from datetime import datetime, timezone

from core.config import settings
from core.db import db
from core.redis import redis, EMAIL_QUEUE, email_job_key
from utils.email_client import send_registration_confirmation, EmailServiceError


log = structlog.get_logger()


async def enqueue_confirmation(registration_id: str, admin_email: str, manual: bool = True) -> str:
    job_id = str(uuid.uuid4())
    await redis.hset(email_job_key(job_id), mapping={
        "status": "queued",
        "registrationId": registration_id,
        "requestedBy": admin_email,
        "queuedAt": datetime.now(timezone.utc).isoformat(),
    })
    await redis.rpush(EMAIL_QUEUE, json.dumps({
        "jobId": job_id,
        "registrationId": registration_id,
        "adminEmail": admin_email,
        "manual": manual,
    }))
    log.info("email.job_queued", job_id=job_id, registration_id=registration_id)
    return job_id


class EmailWorker:
    """
    Drains the confirmation queue one job at a time, pausing between sends so
    the email backend's per-account quotas are not burst.
    """

    def __init__(self, send_delay: float = None, idle_delay: float = 1.0):
        self.send_delay = settings.EMAIL_SEND_DELAY if send_delay is None else send_delay
        self.idle_delay = idle_delay

    async def process_one_job(self, job: dict):
        job_id = job["jobId"]
        key = email_job_key(job_id)
        await redis.hset(key, mapping={"status": "processing"})

        registration = await db.registrations.find_one({"registrationId": job["registrationId"]})
        if not registration:
            log.warning("email.job_missing_registration", job_id=job_id,
                        registration_id=job["registrationId"])
            await redis.hset(key, mapping={"status": "failed", "error": "Registration not found"})
            return

        try:
            result = await asyncio.to_thread(
                send_registration_confirmation, registration, job["adminEmail"], job.get("manual", True)
            )
        except EmailServiceError as e:
            await redis.hset(key, mapping={"status": "failed", "error": str(e)})
            return

        if result.get("success"):
            await redis.hset(key, mapping={
                "status": "sent",
                "usedEmail": result.get("usedEmail") or "",
                "sentAt": datetime.now(timezone.utc).isoformat(),
            })
        else:
            error = result.get("error") or result.get("message") or "Unknown error"
            await redis.hset(key, mapping={"status": "failed", "error": error})
        log.info("email.job_done", job_id=job_id, success=bool(result.get("success")))

    async def process_jobs(self) -> bool:
        """Handle at most one queued job; returns False when the queue was empty."""
        raw = await redis.lpop(EMAIL_QUEUE)
        if not raw:
            return False
        try:
            job = json.loads(raw)
        except json.JSONDecodeError:
            log.error("email.job_malformed", raw=raw)
            return True
        await self.process_one_job(job)
        return True

    async def worker_loop(self):
        log.info("email_worker.started")
        while True:
            try:
                handled = await self.process_jobs()
            except Exception as e:
                log.error("email_worker.error", error=str(e))
                handled = False
            await asyncio.sleep(self.send_delay if handled else self.idle_delay)
