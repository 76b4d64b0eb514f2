from .config import settings
from redis.asyncio import Redis


# shared by the login/registration rate limiters and the email queue
redis = Redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True
)

EMAIL_QUEUE = "email_queue"


def email_job_key(job_id: str) -> str:
    return f"email_job:{job_id}"
