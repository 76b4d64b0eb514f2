import structlog
from datetime import datetime, timezone
from typing import Optional, Any, Literal

from fastapi import APIRouter, Depends, Query, Path, Response
from fastapi.responses import StreamingResponse

from core.auth import admin_required, current_admin
from models.catalog import TECH_EVENTS, WORKSHOPS, NON_TECH_EVENTS, PASS_PRICE, TECH_EVENT_PRICE, WORKSHOP_PRICE
from schemas.registration import (
    ManualRegistrationRequest,
    RegistrationSubmitResponse,
    DuplicateCheckResponse,
    StatusUpdate,
    PaymentStatusUpdate,
    ArrivalUpdate,
    AdminNotesUpdate,
    PersonalInfoUpdate,
    ContactDetailsUpdate,
    SelectionUpdate,
    TeamInfoUpdate,
    PassInfoUpdate,
    WorkshopDetailsUpdate,
    AttendanceUpdate,
    UpdateResponse,
    MigrationResponse,
)
from services import registrations as service
from services.reports import build_filters, compute_stats, compute_analytics, csv_lines
from utils.pdf import build_registration_pdf, certificate_filename


log = structlog.get_logger()
router = APIRouter(prefix="/api/admin", dependencies=[Depends(admin_required)])

StatusFilter = Literal["all", "pending", "confirmed", "cancelled"]
PaymentFilter = Literal["all", "pending", "verified", "failed", "not-required"]
ArrivalFilter = Literal["all", "arrived", "not-arrived"]


def serialize(doc: dict) -> dict:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id", doc.get("registrationId")))
    return doc


async def _filtered(search, status, payment_status, arrival):
    filters = build_filters(search, status, payment_status, arrival)
    return filters, await service.list_registrations(filters)


@router.get("/catalog")
async def catalog():
    return {
        "techEvents": TECH_EVENTS,
        "workshops": WORKSHOPS,
        "nonTechEvents": NON_TECH_EVENTS,
        "prices": {"pass": PASS_PRICE, "techEvent": TECH_EVENT_PRICE, "workshop": WORKSHOP_PRICE},
    }


@router.get("/registrations", response_model=Any)
async def list_registrations(
    search: Optional[str] = Query(None),
    status: StatusFilter = Query("all"),
    payment_status: PaymentFilter = Query("all"),
    arrival: ArrivalFilter = Query("all"),
) -> Any:
    _, docs = await _filtered(search, status, payment_status, arrival)
    return {"data": [serialize(d) for d in docs], "total": len(docs)}


@router.get("/registrations/export", response_class=StreamingResponse)
async def export_registrations(
    search: Optional[str] = Query(None),
    status: StatusFilter = Query("all"),
    payment_status: PaymentFilter = Query("all"),
    arrival: ArrivalFilter = Query("all"),
):
    filters, docs = await _filtered(search, status, payment_status, arrival)
    filename = f"registrations-{datetime.now(timezone.utc).date().isoformat()}.csv"
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Content-Type": "text/csv; charset=utf-8"
    }
    log.info("registrations.exported", filters=filters, rows=len(docs))
    return StreamingResponse(csv_lines(docs), headers=headers, media_type="text/csv")


@router.get("/registrations/stats")
async def registration_stats():
    return compute_stats(await service.list_registrations())


@router.get("/analytics")
async def analytics():
    docs = await service.list_registrations()
    return {"stats": compute_stats(docs), **compute_analytics(docs)}


@router.get("/registrations/duplicates", response_model=DuplicateCheckResponse)
async def check_duplicate(
    email: str = Query(..., min_length=1),
    whatsapp: str = Query(..., min_length=1),
):
    result = await service.check_duplicate(email, whatsapp)
    if result["existingRegistration"]:
        result["existingRegistration"] = serialize(result["existingRegistration"])
    return result


@router.post("/registrations", response_model=RegistrationSubmitResponse, status_code=201)
async def create_manual_registration(
    data: ManualRegistrationRequest,
    editor: str = Depends(current_admin),
):
    return await service.create_manual_registration(data.model_dump(), editor)


@router.post("/registrations/migrate", response_model=MigrationResponse)
async def migrate_all():
    return await service.migrate_all_registrations()


@router.get("/registrations/{registration_id}")
async def get_registration(registration_id: str = Path(..., title="Registration ID")):
    return serialize(await service.require_registration(registration_id))


@router.get("/registrations/{registration_id}/pdf")
async def registration_pdf(registration_id: str = Path(...)):
    doc = await service.require_registration(registration_id)
    pdf = build_registration_pdf(doc)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{certificate_filename(registration_id)}"'},
    )


@router.post("/registrations/{registration_id}/migrate")
async def migrate_one(registration_id: str = Path(...)):
    migrated = await service.migrate_registration_structure(registration_id)
    return {"registrationId": registration_id, "migrated": migrated}


@router.patch("/registrations/{registration_id}/status", response_model=UpdateResponse)
async def update_status(data: StatusUpdate, registration_id: str = Path(...),
                        editor: str = Depends(current_admin)):
    return await service.update_registration_status(registration_id, data.status, editor)


@router.patch("/registrations/{registration_id}/payment", response_model=UpdateResponse)
async def update_payment(data: PaymentStatusUpdate, registration_id: str = Path(...),
                         editor: str = Depends(current_admin)):
    return await service.update_payment_status(registration_id, data.paymentStatus, editor)


@router.patch("/registrations/{registration_id}/arrival", response_model=UpdateResponse)
async def update_arrival(data: ArrivalUpdate, registration_id: str = Path(...),
                         editor: str = Depends(current_admin)):
    return await service.update_arrival_status(registration_id, data.hasArrived, data.notes, editor)


@router.patch("/registrations/{registration_id}/notes", response_model=UpdateResponse)
async def update_notes(data: AdminNotesUpdate, registration_id: str = Path(...),
                       editor: str = Depends(current_admin)):
    return await service.update_admin_notes(
        registration_id, data.generalNotes, data.specialRequirements,
        data.flagged, data.flagReason, editor,
    )


@router.patch("/registrations/{registration_id}/personal", response_model=UpdateResponse)
async def update_personal(data: PersonalInfoUpdate, registration_id: str = Path(...),
                          editor: str = Depends(current_admin)):
    return await service.update_personal_info(
        registration_id, data.name, data.email, data.whatsapp,
        data.college, data.department, data.year, editor,
    )


@router.patch("/registrations/{registration_id}/contact", response_model=UpdateResponse)
async def update_contact(data: ContactDetailsUpdate, registration_id: str = Path(...),
                         editor: str = Depends(current_admin)):
    return await service.update_contact_details(
        registration_id, data.emergencyContact, data.emergencyPhone,
        data.dietaryRestrictions, data.accessibility, editor,
    )


@router.put("/registrations/{registration_id}/events", response_model=UpdateResponse)
async def update_events(data: SelectionUpdate, registration_id: str = Path(...),
                        editor: str = Depends(current_admin)):
    return await service.update_selected_events(registration_id, data.items, editor)


@router.put("/registrations/{registration_id}/workshops", response_model=UpdateResponse)
async def update_workshops(data: SelectionUpdate, registration_id: str = Path(...),
                           editor: str = Depends(current_admin)):
    return await service.update_selected_workshops(registration_id, data.items, editor)


@router.put("/registrations/{registration_id}/non-tech-events", response_model=UpdateResponse)
async def update_non_tech_events(data: SelectionUpdate, registration_id: str = Path(...),
                                 editor: str = Depends(current_admin)):
    return await service.update_selected_non_tech_events(registration_id, data.items, editor)


@router.patch("/registrations/{registration_id}/team", response_model=UpdateResponse)
async def update_team(data: TeamInfoUpdate, registration_id: str = Path(...),
                      editor: str = Depends(current_admin)):
    return await service.update_team_info(
        registration_id, data.isTeamEvent, data.teamSize, data.teamMembers, editor,
    )


@router.patch("/registrations/{registration_id}/pass", response_model=UpdateResponse)
async def update_pass(data: PassInfoUpdate, registration_id: str = Path(...),
                      editor: str = Depends(current_admin)):
    return await service.update_pass_info(registration_id, data.ispass, data.selectedPassId, editor)


@router.patch("/registrations/{registration_id}/workshop-details", response_model=UpdateResponse)
async def update_workshop_details(data: WorkshopDetailsUpdate, registration_id: str = Path(...),
                                  editor: str = Depends(current_admin)):
    return await service.update_workshop_details(
        registration_id, data.workshopId, data.workshopTitle, data.attended, editor,
    )


@router.patch("/registrations/{registration_id}/attendance", response_model=UpdateResponse)
async def update_attendance(data: AttendanceUpdate, registration_id: str = Path(...),
                            editor: str = Depends(current_admin)):
    return await service.update_event_attendance(
        registration_id, data.category, data.eventId, data.attended, editor,
    )
