"""
Static event catalog for the fest.

Titles are used to render legacy documents that stored bare event ids and to
populate the admin forms. Prices only feed the amount reported in confirmation
emails; non-technical events are paid at the venue.
"""

TECH_EVENTS = [
    {"id": 1, "title": "Try, If you can..?"},
    {"id": 2, "title": "Reverse Code"},
    {"id": 3, "title": "Escape Room"},
    {"id": 4, "title": "Memory Forensics"},
    {"id": 5, "title": "Bug Bounty"},
    {"id": 6, "title": "Code Breaking"},
    {"id": 7, "title": "Crack the Code"},
    {"id": 8, "title": "Trace the Flag"},
    {"id": 9, "title": "AI Prompt Challenge"},
]

WORKSHOPS = [
    {"id": 1, "title": "Blend with Blender"},
    {"id": 2, "title": "Product Cyber Security"},
    {"id": 3, "title": "Web Application Security"},
    {"id": 4, "title": "Android Security"},
    {"id": 5, "title": "Networking with IT Corporates"},
    {"id": 6, "title": "Introduction to OSINT"},
]

NON_TECH_EVENTS = [
    {"id": 1, "title": "Photo Contest"},
    {"id": 2, "title": "Meme Contest"},
    {"id": 3, "title": "Reel Contest"},
]

PASS_PRICE = 299
TECH_EVENT_PRICE = 50
WORKSHOP_PRICE = 100

# selection field -> (catalog, fallback title prefix)
SELECTION_FIELDS = {
    "selectedEvents": (TECH_EVENTS, "Event"),
    "selectedWorkshops": (WORKSHOPS, "Workshop"),
    "selectedNonTechEvents": (NON_TECH_EVENTS, "Non-Tech Event"),
}


def lookup_title(catalog, event_id, prefix):
    for item in catalog:
        if str(item["id"]) == str(event_id):
            return item["title"]
    return f"{prefix} {event_id}"


def calculate_total_amount(registration: dict) -> int:
    if registration.get("ispass"):
        return PASS_PRICE
    tech = len(registration.get("selectedEvents") or []) * TECH_EVENT_PRICE
    workshops = len(registration.get("selectedWorkshops") or []) * WORKSHOP_PRICE
    return tech + workshops
