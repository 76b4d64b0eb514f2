from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import structlog
import logging
import asyncio

from core.config import settings
from worker import EmailWorker

from routes.routes import router as rest_router


logging.basicConfig(level=logging.INFO, format="%(message)s")

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)
log = structlog.get_logger(__name__)

app = FastAPI(title="Tech Fest Registration Admin")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # the admin front end is served from another origin
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rest_router)

email_worker = EmailWorker(send_delay=settings.EMAIL_SEND_DELAY)

@app.on_event("startup")
async def start_email_worker():
    """
    Runs the confirmation-email queue alongside the API.
    """
    log.info("email_worker.startup")
    app.state.email_worker_task = asyncio.create_task(email_worker.worker_loop())
