import asyncio
import structlog
from fastapi import APIRouter, Depends, HTTPException, Path

from core.auth import admin_required, current_admin
from core.redis import redis, email_job_key
from schemas.email import (
    ConfirmationBatchRequest,
    ConfirmationBatchResponse,
    TestEmailRequest,
    CustomEmailRequest,
    EmailJobStatus,
)
from services import registrations as service
from utils import email_client
from utils.email_client import EmailServiceError
from worker import enqueue_confirmation


log = structlog.get_logger()
router = APIRouter(prefix="/api/admin/emails", dependencies=[Depends(admin_required)])


async def _call(func, *args, **kwargs):
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except EmailServiceError as e:
        raise HTTPException(502, str(e))


@router.get("/status")
async def email_status(editor: str = Depends(current_admin)):
    return await _call(email_client.get_email_service_status, editor)


@router.post("/confirmation", response_model=ConfirmationBatchResponse, status_code=202)
async def queue_confirmations(data: ConfirmationBatchRequest, editor: str = Depends(current_admin)):
    queued = []
    for registration_id in data.registrationIds:
        # every id must exist before anything is queued
        await service.require_registration(registration_id)
    for registration_id in data.registrationIds:
        job_id = await enqueue_confirmation(registration_id, editor, data.manual)
        queued.append({"jobId": job_id, "registrationId": registration_id})
    return {"queued": queued}


@router.post("/confirmation/{registration_id}")
async def send_confirmation(
    registration_id: str = Path(...),
    manual: bool = True,
    editor: str = Depends(current_admin),
):
    registration = await service.require_registration(registration_id)
    return await _call(email_client.send_registration_confirmation, registration, editor, manual)


@router.post("/od-letter/{registration_id}")
async def send_od_letter(registration_id: str = Path(...), editor: str = Depends(current_admin)):
    registration = await service.require_registration(registration_id)
    return await _call(email_client.send_od_letter, registration, editor)


@router.post("/test")
async def send_test(data: TestEmailRequest, editor: str = Depends(current_admin)):
    return await _call(email_client.send_test_email, editor, data.type, data.recipientEmail)


@router.post("/custom")
async def send_custom(data: CustomEmailRequest, editor: str = Depends(current_admin)):
    return await _call(
        email_client.send_notification_email,
        editor,
        data.to,
        data.subject,
        email_client.text_to_html(data.content),
        data.content,
    )


@router.get("/jobs/{job_id}", response_model=EmailJobStatus)
async def job_status(job_id: str = Path(...)):
    data = await redis.hgetall(email_job_key(job_id))
    if not data:
        raise HTTPException(404, "Email job not found")
    return EmailJobStatus(
        jobId=job_id,
        registrationId=data.get("registrationId"),
        status=data.get("status", "queued"),
        error=data.get("error"),
        usedEmail=data.get("usedEmail") or None,
    )
