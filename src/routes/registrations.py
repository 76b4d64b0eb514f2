import structlog
from fastapi import APIRouter, HTTPException, Depends, Path

from schemas.registration import RegistrationSubmitRequest, RegistrationSubmitResponse
from core.auth import registration_rate_limiter
from services import registrations as service

log = structlog.get_logger()
router = APIRouter(prefix="/api/registrations")


@router.post("", response_model=RegistrationSubmitResponse, status_code=201)
async def submit_registration(
    data: RegistrationSubmitRequest,
    _: None = Depends(registration_rate_limiter)
):
    return await service.submit_registration(data.model_dump())


@router.get("/{registration_id}")
async def registration_summary(registration_id: str = Path(..., min_length=1)):
    """Public status lookup; only exposes what the participant already knows."""
    doc = await service.get_registration(registration_id)
    if not doc:
        raise HTTPException(404, "Registration not found")
    return {
        "registrationId": doc["registrationId"],
        "name": doc.get("name"),
        "status": doc.get("status"),
        "paymentStatus": doc.get("paymentStatus"),
    }
