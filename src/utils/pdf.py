"""
Two-page A4 registration certificate.

Page one is the on-duty (OD) letter a participant hands to their college; page
two carries the registration ID with a scannable QR code and the full list of
what the registration gives access to.
"""
import io
from datetime import date
from typing import Optional

import structlog
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas as pdf_canvas

from core.config import settings
from utils.qrcode import generate_qr_code


log = structlog.get_logger()

MARGIN = 15 * mm
LINE = 8 * mm
OD_STATEMENT = (
    "This document serves as official proof of registration for {fest}. It may be "
    "presented to college authorities for the purpose of obtaining On-Duty (OD) permission."
)
EVENT_DESCRIPTION = (
    "{fest} is a national-level tech extravaganza packed into one high-energy day of "
    "learning, innovation, and competition. Open to students from all colleges across "
    "India, the event features technical challenges, expert-led workshops, and creative "
    "non-tech events."
)


def _title(item) -> str:
    if isinstance(item, dict):
        return str(item.get("title") or item.get("id"))
    return str(item)


class CertificateWriter:
    """Small cursor over a reportlab canvas, top-down like a printed form."""

    def __init__(self, buf):
        self.c = pdf_canvas.Canvas(buf, pagesize=A4)
        self.width, self.height = A4
        self.y = self.height - MARGIN

    def move(self, delta):
        self.y -= delta

    def heading(self, text, size=16, centered=False):
        self.c.setFont("Helvetica-Bold", size)
        self.c.setFillColorRGB(0, 0, 0)
        if centered:
            self.c.drawCentredString(self.width / 2, self.y, text)
        else:
            self.c.drawString(MARGIN, self.y, text)
        self.move(10 * mm)

    def row(self, label, value):
        self.c.setFont("Helvetica-Bold", 11)
        self.c.drawString(MARGIN, self.y, label)
        self.c.setFont("Helvetica", 11)
        self.c.drawString(MARGIN + 60 * mm, self.y, str(value) if value else "Not Provided")
        self.move(LINE)

    def bullet(self, text):
        self.c.setFont("Helvetica", 11)
        self.c.drawString(MARGIN + 5 * mm, self.y, f"• {text}")
        self.move(7 * mm)

    def paragraph(self, text, font="Helvetica", size=13):
        lines = simpleSplit(text, font, size, self.width - 2 * MARGIN)
        self.c.setFont(font, size)
        for line in lines:
            self.c.drawString(MARGIN, self.y, line)
            self.move(size * 0.45 * mm)

    def ensure_space(self, needed=55 * mm):
        if self.y < needed:
            self.c.showPage()
            self.y = self.height - MARGIN

    def footer(self, issued_on: str):
        c = self.c
        y = 40 * mm
        c.setStrokeGray(0.8)
        c.line(MARGIN, y, self.width - MARGIN, y)
        c.setFont("Helvetica-Oblique", 9)
        c.setFillGray(0.47)
        text_y = y - 8 * mm
        for line in simpleSplit(OD_STATEMENT.format(fest=settings.FEST_NAME),
                                "Helvetica-Oblique", 9, self.width - 2 * MARGIN):
            c.drawString(MARGIN, text_y, line)
            text_y -= 4 * mm
        c.setFont("Helvetica", 9)
        c.setFillGray(0.6)
        c.drawString(MARGIN, 20 * mm, f"Date Issued: {issued_on}")
        c.drawRightString(self.width - MARGIN, 20 * mm,
                          f"For verification, contact: {settings.CONTACT_EMAIL}")
        c.setFillGray(0)

    def new_page(self):
        self.c.showPage()
        self.y = self.height - MARGIN - 10 * mm

    def save(self):
        self.c.save()


def build_registration_pdf(registration: dict, issued_on: Optional[str] = None) -> bytes:
    issued_on = issued_on or date.today().strftime("%d/%m/%Y")
    buf = io.BytesIO()
    w = CertificateWriter(buf)
    c = w.c

    # page 1: OD letter
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(w.width / 2, w.y - 12 * mm, settings.INSTITUTION_NAME)
    w.move(35 * mm)
    c.setStrokeGray(0.8)
    c.line(MARGIN, w.y, w.width - MARGIN, w.y)
    w.move(12 * mm)

    w.heading(f"{settings.FEST_NAME} - {settings.FEST_TAGLINE}", size=18, centered=True)
    c.setFont("Helvetica", 14)
    c.drawCentredString(w.width / 2, w.y + 2 * mm, settings.FEST_HIGHLIGHT)
    w.move(10 * mm)

    w.heading("Registration Confirmation")
    w.row("Participant Name:", registration.get("name"))
    w.row("College:", registration.get("college"))
    w.row("Department:", registration.get("department"))
    w.move(10 * mm)

    w.heading("Event Information")
    w.row("Date:", settings.FEST_DATE)
    w.row("Time:", settings.FEST_TIME)
    w.row("Venue:", settings.FEST_VENUE)
    w.move(5 * mm)
    w.paragraph(EVENT_DESCRIPTION.format(fest=settings.FEST_NAME))
    w.footer(issued_on)

    # page 2: registration ID and access
    w.new_page()
    registration_id = registration.get("registrationId", "")
    w.heading("Registration ID", centered=True)
    c.setFillGray(0.94)
    c.rect(MARGIN, w.y - 4 * mm, w.width - 2 * MARGIN, 14 * mm, stroke=0, fill=1)
    c.setFillGray(0)
    c.setFont("Courier-Bold", 20)
    c.drawCentredString(w.width / 2, w.y, registration_id)
    w.move(12 * mm)
    qr = ImageReader(generate_qr_code(registration_id))
    c.drawImage(qr, w.width / 2 - 15 * mm, w.y - 30 * mm, 30 * mm, 30 * mm)
    w.move(40 * mm)

    w.heading("Participant Details")
    w.row("Name:", registration.get("name"))
    w.row("College:", registration.get("college"))
    w.row("Department:", registration.get("department"))
    w.row("Year of Study:", registration.get("year"))
    w.row("Email:", registration.get("email"))
    w.row("WhatsApp:", registration.get("whatsapp"))
    w.move(10 * mm)

    members = registration.get("teamMembers") or []
    if registration.get("isTeamEvent") and members:
        w.ensure_space()
        w.heading("Team Details")
        w.heading("Team Leader (Participant 1)", size=12)
        w.row("Name:", registration.get("name"))
        w.row("Email:", registration.get("email"))
        w.move(5 * mm)
        for index, member in enumerate(members):
            w.ensure_space(60 * mm)
            w.heading(f"Participant {index + 2}", size=12)
            w.row("Name:", member.get("name"))
            w.row("Email:", member.get("email"))
            w.row("Dept:", member.get("department"))
            if member.get("year"):
                w.row("Year:", member.get("year"))
            w.move(5 * mm)

    events = registration.get("selectedEvents") or []
    workshops = registration.get("selectedWorkshops") or []
    non_tech = registration.get("selectedNonTechEvents") or []
    has_pass = registration.get("ispass") or registration.get("selectedPassId")

    w.ensure_space()
    w.heading("Access & Registered Events")
    if has_pass:
        w.heading("Pass Holder: General Pass", size=12)
        c.setFillColorRGB(0, 0.4, 0)
        w.paragraph("Unlimited access to all technical and non-technical events, "
                    "limited to one workshop.", size=11)
        c.setFillColorRGB(0, 0, 0)
        w.move(3 * mm)

    if not events and not workshops and not non_tech:
        w.bullet("General Entry")
    sections = (
        ("Registered Workshops:", workshops),
        ("Registered Technical Events:", [] if has_pass else events),
        ("Registered Non-Technical Events:", non_tech),
    )
    for title, items in sections:
        if not items:
            continue
        w.ensure_space(60 * mm)
        w.heading(title, size=12)
        for item in items:
            w.ensure_space(50 * mm)
            w.bullet(_title(item))
        w.move(5 * mm)
    w.footer(issued_on)

    w.save()
    log.info("certificate.generated", registration_id=registration_id)
    return buf.getvalue()


def certificate_filename(registration_id: str) -> str:
    return f"{settings.FEST_SLUG}-Registration-{registration_id}.pdf"
