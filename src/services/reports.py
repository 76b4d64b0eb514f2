import re
import csv
import io
from datetime import datetime
from typing import Optional, Iterable, List, Dict, Any

CSV_HEADERS = [
    "Registration ID",
    "Name",
    "Email",
    "WhatsApp",
    "College",
    "Department",
    "Year",
    "Team Event",
    "Team Size",
    "Team Members",
    "Event Count",
    "Has Pass",
    "Pass ID",
    "Selected Events",
    "Selected Workshops",
    "Non-Tech Events",
    "Status",
    "Payment Status",
    "Has Arrived",
    "Arrival Time",
    "Checked In By",
    "Selected Workshop",
    "Workshop Attended",
    "Emergency Contact",
    "Emergency Phone",
    "Dietary Restrictions",
    "Accessibility Needs",
    "Admin Notes",
    "Special Requirements",
    "Flagged",
    "Flag Reason",
    "Created At",
]


def build_filters(
    search: Optional[str] = None,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    arrival: Optional[str] = None,
) -> dict:
    filters: dict = {}

    if search and search.strip():
        pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
        filters["$or"] = [
            {"name": pattern},
            {"email": pattern},
            {"registrationId": pattern},
            {"college": pattern},
        ]
    if status and status != "all":
        filters["status"] = status
    if payment_status and payment_status != "all":
        filters["paymentStatus"] = payment_status
    if arrival == "arrived":
        filters["arrivalStatus.hasArrived"] = True
    elif arrival == "not-arrived":
        filters["arrivalStatus.hasArrived"] = {"$ne": True}

    return filters


def _members(reg: dict) -> int:
    return reg.get("teamSize") or 1


def _sub(reg: dict, record: str) -> dict:
    return reg.get(record) or {}


def compute_stats(registrations: Iterable[dict]) -> Dict[str, int]:
    stats = {
        "totalRegistrations": 0,
        "totalMembers": 0,
        "arrived": 0,
        "flagged": 0,
        "passHolders": 0,
        "confirmed": 0,
        "pending": 0,
        "cancelled": 0,
        "paymentVerified": 0,
    }
    for reg in registrations:
        stats["totalRegistrations"] += 1
        stats["totalMembers"] += _members(reg)
        if _sub(reg, "arrivalStatus").get("hasArrived"):
            stats["arrived"] += 1
        if _sub(reg, "adminNotes").get("flagged"):
            stats["flagged"] += 1
        if reg.get("ispass"):
            stats["passHolders"] += 1
        if reg.get("status") in ("confirmed", "pending", "cancelled"):
            stats[reg["status"]] += 1
        if reg.get("paymentStatus") == "verified":
            stats["paymentVerified"] += 1
    return stats


def _item_key_title(item, prefix: str):
    if isinstance(item, dict):
        return str(item.get("id")), item.get("title") or f"{prefix} {item.get('id')}"
    return str(item), f"{prefix} {item}"


def compute_analytics(registrations: Iterable[dict]) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "events": {},
        "workshops": {},
        "nonTech": {},
        "colleges": {},
        "departments": {},
        "years": {},
        "team": {
            "team": {"registrations": 0, "members": 0},
            "individual": {"registrations": 0, "members": 0},
        },
    }
    selections = (
        ("events", "selectedEvents", "Event"),
        ("workshops", "selectedWorkshops", "Workshop"),
        ("nonTech", "selectedNonTechEvents", "Non-Tech Event"),
    )

    for reg in registrations:
        members = _members(reg)
        for bucket, field, prefix in selections:
            for item in reg.get(field) or []:
                key, title = _item_key_title(item, prefix)
                entry = result[bucket].setdefault(key, {"title": title, "count": 0, "members": 0})
                entry["count"] += 1
                entry["members"] += members

        for bucket, field in (("colleges", "college"), ("departments", "department"), ("years", "year")):
            entry = result[bucket].setdefault(reg.get(field) or "", {"registrations": 0, "members": 0})
            entry["registrations"] += 1
            entry["members"] += members

        if reg.get("isTeamEvent") and (reg.get("teamSize") or 0) > 1:
            result["team"]["team"]["registrations"] += 1
            result["team"]["team"]["members"] += members
        else:
            result["team"]["individual"]["registrations"] += 1
            result["team"]["individual"]["members"] += 1

    return result


def _titles(items) -> str:
    return "; ".join(
        str(i.get("title")) if isinstance(i, dict) and i.get("title") else str(i)
        for i in items or []
    )


def _yes_no(value) -> str:
    return "Yes" if value else "No"


def _fmt_time(value) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return ""


def csv_row(reg: dict) -> List[Any]:
    arrival = _sub(reg, "arrivalStatus")
    workshop = _sub(reg, "workshopDetails")
    contact = _sub(reg, "contactDetails")
    notes = _sub(reg, "adminNotes")
    members = reg.get("teamMembers") or []
    created = reg.get("createdAt")

    return [
        reg.get("registrationId", ""),
        reg.get("name", ""),
        reg.get("email", ""),
        reg.get("whatsapp", ""),
        reg.get("college", ""),
        reg.get("department", ""),
        reg.get("year", ""),
        _yes_no(reg.get("isTeamEvent")),
        reg.get("teamSize", 1),
        "; ".join(
            f"Member {i + 2}: {m.get('name') or 'N/A'} ({m.get('email') or 'N/A'})"
            for i, m in enumerate(members)
        ) if members else "No team members",
        len(reg.get("selectedEvents") or []) + len(reg.get("selectedWorkshops") or [])
        + len(reg.get("selectedNonTechEvents") or []),
        _yes_no(reg.get("ispass")),
        reg.get("selectedPassId") or "",
        _titles(reg.get("selectedEvents")),
        _titles(reg.get("selectedWorkshops")),
        _titles(reg.get("selectedNonTechEvents")),
        reg.get("status", ""),
        reg.get("paymentStatus", ""),
        _yes_no(arrival.get("hasArrived")),
        _fmt_time(arrival.get("arrivalTime")),
        arrival.get("checkedInBy") or "",
        workshop.get("workshopTitle") or "",
        _yes_no(workshop.get("workshopAttended")),
        contact.get("emergencyContact") or "",
        contact.get("emergencyPhone") or "",
        contact.get("dietaryRestrictions") or "",
        contact.get("accessibility") or "",
        notes.get("generalNotes") or "",
        notes.get("specialRequirements") or "",
        _yes_no(notes.get("flagged")),
        notes.get("flagReason") or "",
        created.strftime("%Y-%m-%d") if isinstance(created, datetime) else "",
    ]


def csv_lines(registrations: Iterable[dict]):
    """Yield the export one line at a time: header first, then one row per registration."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow(CSV_HEADERS)
    yield buf.getvalue()
    buf.seek(0); buf.truncate(0)

    for reg in registrations:
        writer.writerow(csv_row(reg))
        yield buf.getvalue()
        buf.seek(0); buf.truncate(0)
