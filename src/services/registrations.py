"""
Document-level operations on the ``registrations`` collection.

Every admin edit goes through :func:`apply_update`, which reads the current
document, diffs the tracked fields and appends one ``editHistory`` entry when
something actually changed. Writes touch a single document so a failed update
leaves the stored state as it was.
"""
import uuid
import structlog
from typing import Optional, List, Dict, Any

from fastapi import HTTPException

from core.config import settings
from core.db import db
from models.catalog import SELECTION_FIELDS, lookup_title
from models.registration import (
    Registration,
    ArrivalStatus,
    WorkshopDetails,
    EventAttendance,
    ContactDetails,
    AdminNotes,
    EditHistoryEntry,
    utcnow,
)
from utils.phone import format_to_e164


log = structlog.get_logger()

ATTENDANCE_CATEGORIES = ("techEvents", "workshops", "nonTechEvents")


def get_path(doc: dict, path: str):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _normalize_whatsapp(whatsapp: str) -> str:
    try:
        return format_to_e164(whatsapp)
    except ValueError:
        return whatsapp.strip()


# Lookups

async def find_by_email(email: str) -> Optional[dict]:
    return await db.registrations.find_one({"email": email.strip().lower()})


async def find_by_whatsapp(whatsapp: str) -> Optional[dict]:
    return await db.registrations.find_one({"whatsapp": _normalize_whatsapp(whatsapp)})


async def get_registration(registration_id: str) -> Optional[dict]:
    return await db.registrations.find_one({"registrationId": registration_id})


async def require_registration(registration_id: str) -> dict:
    doc = await get_registration(registration_id)
    if not doc:
        raise HTTPException(404, "Registration not found")
    return doc


async def list_registrations(filters: Optional[dict] = None) -> List[dict]:
    cursor = db.registrations.find(filters or {}).sort("createdAt", -1)
    return [doc async for doc in cursor]


async def check_duplicate(email: str, whatsapp: str) -> Dict[str, Any]:
    by_email = await find_by_email(email)
    by_whatsapp = await find_by_whatsapp(whatsapp)

    duplicate_fields = []
    existing = None
    if by_email:
        duplicate_fields.append("email")
        existing = by_email
    if by_whatsapp:
        duplicate_fields.append("whatsapp")
        if existing is None:
            existing = by_whatsapp

    return {
        "exists": bool(duplicate_fields),
        "duplicateFields": duplicate_fields,
        "existingRegistration": existing,
    }


async def generate_registration_id() -> str:
    while True:
        candidate = f"{settings.REGISTRATION_ID_PREFIX}-{uuid.uuid4().hex[:8].upper()}"
        if not await get_registration(candidate):
            return candidate


# Creation

def _duplicate_error(fields: List[str], existing: dict) -> HTTPException:
    log.info("registration.duplicate", fields=fields, existing=existing.get("registrationId"))
    joined = ", ".join(fields)
    return HTTPException(
        409,
        f"Registration already exists with the same {joined}. "
        "Please use different details or contact support if this is an error.",
    )


async def _insert(data: dict, **extra) -> str:
    duplicate = await check_duplicate(data["email"], data["whatsapp"])
    if duplicate["exists"]:
        raise _duplicate_error(duplicate["duplicateFields"], duplicate["existingRegistration"])

    registration_id = await generate_registration_id()
    reg = Registration(**{
        **data,
        **extra,
        "registrationId": registration_id,
        "email": data["email"].strip().lower(),
    })
    await db.registrations.insert_one(reg.to_document())
    return registration_id


async def submit_registration(data: dict) -> Dict[str, Any]:
    registration_id = await _insert(data, status="pending", paymentStatus="pending")
    log.info("registration.submitted", registration_id=registration_id)
    return {
        "success": True,
        "registrationId": registration_id,
        "message": (
            f"Registration submitted successfully! Your registration ID is "
            f"{registration_id}. Please save this for future reference."
        ),
    }


async def create_manual_registration(data: dict, editor: str) -> Dict[str, Any]:
    data = dict(data)
    notes = data.pop("adminNotes", None) or {}
    admin_notes = AdminNotes(**notes, lastModifiedAt=utcnow(), lastModifiedBy=editor)
    if not admin_notes.flagged:
        admin_notes.flagReason = ""
    registration_id = await _insert(
        data,
        adminNotes=admin_notes,
        isManualEntry=True,
        createdBy=editor,
    )
    log.info("registration.manual_created", registration_id=registration_id, editor=editor)
    return {
        "success": True,
        "registrationId": registration_id,
        "message": f"Manual registration created successfully! Registration ID: {registration_id}",
    }


# Updates

async def _write(doc: dict, updates: Dict[str, Any], editor: str, changed: List[str], previous: Dict[str, Any]):
    now = utcnow()
    operation: Dict[str, Any] = {"$set": {**updates, "updatedAt": now}}
    if changed:
        entry = EditHistoryEntry(
            editedAt=now,
            editedBy=editor,
            changedFields=changed,
            previousValues=[{"field": f, "value": v} for f, v in previous.items()],
        )
        operation["$push"] = {"editHistory": entry.model_dump()}

    result = await db.registrations.update_one({"_id": doc["_id"]}, operation)
    if result.matched_count == 0:
        raise HTTPException(404, "Registration not found")

    log.info("registration.updated", registration_id=doc.get("registrationId"),
             editor=editor, changed=changed)
    return {"registrationId": doc.get("registrationId"), "changedFields": changed, "updatedAt": now}


def _new_value(updates: Dict[str, Any], path: str):
    if path in updates:
        return updates[path]
    for key, value in updates.items():
        if path.startswith(key + "."):
            return get_path(value, path[len(key) + 1:])
    return None


async def apply_update(
    registration_id: str,
    updates: Dict[str, Any],
    editor: str,
    tracked: Optional[List[str]] = None,
    doc: Optional[dict] = None,
) -> Dict[str, Any]:
    """
    Write ``updates`` (dotted paths allowed) and record an edit-history entry
    for the ``tracked`` paths whose value differs from the stored one.
    ``tracked`` defaults to every key of ``updates``.
    """
    if doc is None:
        doc = await require_registration(registration_id)
    tracked = list(updates) if tracked is None else tracked

    changed = [f for f in tracked if get_path(doc, f) != _new_value(updates, f)]
    previous = {f: get_path(doc, f) for f in changed}
    return await _write(doc, updates, editor, changed, previous)


async def update_registration_status(registration_id: str, status: str, editor: str):
    return await apply_update(registration_id, {"status": status}, editor)


async def update_payment_status(registration_id: str, payment_status: str, editor: str):
    return await apply_update(registration_id, {"paymentStatus": payment_status}, editor)


async def update_arrival_status(registration_id: str, has_arrived: bool, notes: str, editor: str):
    doc = await require_registration(registration_id)
    current = get_path(doc, "arrivalStatus") or {}
    arrival_time = None
    checked_in_by = None
    if has_arrived:
        # keep the first check-in time when re-saving an arrived participant
        arrival_time = current.get("arrivalTime") if current.get("hasArrived") else utcnow()
        checked_in_by = current.get("checkedInBy") if current.get("hasArrived") else editor
    arrival = ArrivalStatus(
        hasArrived=has_arrived,
        arrivalTime=arrival_time,
        checkedInBy=checked_in_by,
        notes=notes or "",
    )
    return await apply_update(
        registration_id,
        {"arrivalStatus": arrival.model_dump()},
        editor,
        tracked=["arrivalStatus.hasArrived", "arrivalStatus.notes"],
        doc=doc,
    )


async def update_admin_notes(
    registration_id: str,
    general_notes: str,
    special_requirements: str,
    flagged: bool,
    flag_reason: str,
    editor: str,
):
    notes = AdminNotes(
        generalNotes=general_notes,
        specialRequirements=special_requirements,
        flagged=flagged,
        flagReason=flag_reason if flagged else "",
        lastModifiedAt=utcnow(),
        lastModifiedBy=editor,
    ).model_dump()
    fields = ["generalNotes", "specialRequirements", "flagged", "flagReason"]
    updates = {f"adminNotes.{k}": v for k, v in notes.items()}
    return await apply_update(
        registration_id, updates, editor,
        tracked=[f"adminNotes.{f}" for f in fields],
    )


async def update_personal_info(
    registration_id: str,
    name: str,
    email: str,
    whatsapp: str,
    college: str,
    department: str,
    year: str,
    editor: str,
):
    updates = {
        "name": name.strip(),
        "email": email.strip().lower(),
        "whatsapp": whatsapp.strip(),
        "college": college.strip(),
        "department": department.strip(),
        "year": year.strip(),
    }
    doc = await require_registration(registration_id)

    # email and whatsapp stay unique across registrations
    clashes = []
    existing = None
    if updates["email"] != doc.get("email"):
        match = await find_by_email(updates["email"])
        if match and match["_id"] != doc["_id"]:
            clashes.append("email")
            existing = match
    if updates["whatsapp"] != doc.get("whatsapp"):
        match = await find_by_whatsapp(updates["whatsapp"])
        if match and match["_id"] != doc["_id"]:
            clashes.append("whatsapp")
            existing = existing or match
    if clashes:
        raise _duplicate_error(clashes, existing)

    return await apply_update(registration_id, updates, editor, doc=doc)


async def update_contact_details(
    registration_id: str,
    emergency_contact: str,
    emergency_phone: str,
    dietary_restrictions: str,
    accessibility: str,
    editor: str,
):
    details = ContactDetails(
        emergencyContact=emergency_contact,
        emergencyPhone=emergency_phone,
        dietaryRestrictions=dietary_restrictions,
        accessibility=accessibility,
    ).model_dump()
    updates = {f"contactDetails.{k}": v for k, v in details.items()}
    return await apply_update(registration_id, updates, editor)


def _as_dicts(items: list) -> list:
    return [i.model_dump() if hasattr(i, "model_dump") else dict(i) for i in items]


async def update_selected_events(registration_id: str, items: list, editor: str):
    return await apply_update(registration_id, {"selectedEvents": _as_dicts(items)}, editor)


async def update_selected_workshops(registration_id: str, items: list, editor: str):
    return await apply_update(registration_id, {"selectedWorkshops": _as_dicts(items)}, editor)


async def update_selected_non_tech_events(registration_id: str, items: list, editor: str):
    return await apply_update(registration_id, {"selectedNonTechEvents": _as_dicts(items)}, editor)


async def update_team_info(
    registration_id: str,
    is_team_event: bool,
    team_size: int,
    team_members: list,
    editor: str,
):
    updates = {
        "isTeamEvent": is_team_event,
        "teamSize": team_size,
        "teamMembers": _as_dicts(team_members) if is_team_event else [],
    }
    return await apply_update(registration_id, updates, editor)


async def update_pass_info(registration_id: str, ispass: bool, selected_pass_id: Optional[str], editor: str):
    updates = {"ispass": ispass, "selectedPassId": selected_pass_id if ispass else None}
    return await apply_update(registration_id, updates, editor)


async def update_workshop_details(
    registration_id: str,
    workshop_id,
    workshop_title: str,
    attended: bool,
    editor: str,
):
    doc = await require_registration(registration_id)
    current = get_path(doc, "workshopDetails") or {}
    attended_at = None
    if attended:
        attended_at = current.get("workshopAttendanceTime") if current.get("workshopAttended") else utcnow()
    details = WorkshopDetails(
        workshopId=workshop_id,
        workshopTitle=workshop_title,
        workshopAttended=attended,
        workshopAttendanceTime=attended_at,
    )
    return await apply_update(
        registration_id,
        {"workshopDetails": details.model_dump()},
        editor,
        tracked=[
            "workshopDetails.workshopId",
            "workshopDetails.workshopTitle",
            "workshopDetails.workshopAttended",
        ],
        doc=doc,
    )


async def update_event_attendance(
    registration_id: str,
    category: str,
    event_id,
    attended: bool,
    editor: str,
):
    if category not in ATTENDANCE_CATEGORIES:
        raise HTTPException(400, f"Unknown attendance category '{category}'")

    doc = await require_registration(registration_id)
    path = f"eventAttendance.{category}"
    entries = list(get_path(doc, path) or [])
    entry = {"eventId": event_id, "attended": attended, "timestamp": utcnow(), "markedBy": editor}

    previous = None
    for i, existing in enumerate(entries):
        if str(existing.get("eventId")) == str(event_id):
            previous = existing.get("attended")
            entries[i] = entry
            break
    else:
        entries.append(entry)

    # entry timestamps always move, so the change is judged on the attended flag
    changed, prev = [], {}
    if previous != attended:
        changed = [f"{path}.{event_id}"]
        prev = {changed[0]: previous}
    return await _write(doc, {path: entries}, editor, changed, prev)


# Migration of legacy documents

def migrate_document(doc: dict) -> Dict[str, Any]:
    """Return the ``$set`` needed to bring ``doc`` to the current shape (empty when none)."""
    updates: Dict[str, Any] = {}

    for field, (catalog, prefix) in SELECTION_FIELDS.items():
        items = doc.get(field)
        if items is None:
            updates[field] = []
        elif any(not isinstance(i, dict) for i in items):
            updates[field] = [
                i if isinstance(i, dict) else {"id": i, "title": lookup_title(catalog, i, prefix)}
                for i in items
            ]

    defaults = {
        "arrivalStatus": ArrivalStatus().model_dump(),
        "workshopDetails": WorkshopDetails().model_dump(),
        "eventAttendance": EventAttendance().model_dump(),
        "contactDetails": ContactDetails().model_dump(),
        "adminNotes": AdminNotes().model_dump(),
        "editHistory": [],
        "teamMembers": [],
        "teamSize": 1,
        "isTeamEvent": False,
        "ispass": False,
    }
    for field, value in defaults.items():
        if doc.get(field) is None:
            updates[field] = value

    if "registrationId" not in doc and isinstance(doc.get("_id"), str):
        updates["registrationId"] = doc["_id"]
    return updates


async def migrate_registration_structure(registration_id: str) -> bool:
    # legacy documents may only carry the id as _id
    doc = await db.registrations.find_one(
        {"$or": [{"registrationId": registration_id}, {"_id": registration_id}]}
    )
    if not doc:
        raise HTTPException(404, "Registration not found")
    updates = migrate_document(doc)
    if not updates:
        return False
    await db.registrations.update_one({"_id": doc["_id"]}, {"$set": updates})
    log.info("registration.migrated", registration_id=registration_id, fields=list(updates))
    return True


async def migrate_all_registrations() -> Dict[str, int]:
    total = migrated = 0
    async for doc in db.registrations.find({}):
        total += 1
        updates = migrate_document(doc)
        if updates:
            await db.registrations.update_one({"_id": doc["_id"]}, {"$set": updates})
            migrated += 1
    log.info("registration.migrated_all", total=total, migrated=migrated)
    return {"total": total, "migrated": migrated}
