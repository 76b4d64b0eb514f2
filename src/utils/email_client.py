import base64
import requests
import structlog

from core.auth import create_access_token
from core.config import settings
from models.catalog import calculate_total_amount
from utils.pdf import build_registration_pdf, certificate_filename


log = structlog.get_logger()


class EmailServiceError(Exception):
    pass


def _request(method: str, path: str, admin_email: str, payload: dict = None) -> dict:
    """
    Call the email backend with a bearer token minted for the acting admin.
    Blocking; async callers go through ``asyncio.to_thread``.
    """
    url = f"{settings.EMAIL_API_URL.rstrip('/')}{path}"
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {create_access_token(admin_email)}",
    }
    try:
        resp = requests.request(method, url, json=payload, headers=headers,
                                timeout=settings.EMAIL_API_TIMEOUT)
    except requests.RequestException as e:
        log.error("email.transport_error", url=url, error=str(e))
        raise EmailServiceError(f"Email service unreachable: {e}") from e

    if resp.status_code == 401:
        log.error("email.auth_failed", url=url)
        raise EmailServiceError("Authentication failed")
    if not resp.ok:
        log.error("email.http_error", url=url, status_code=resp.status_code)
        raise EmailServiceError(f"HTTP error! status: {resp.status_code}")
    return resp.json()


def registration_payload(registration: dict) -> dict:
    verified = registration.get("paymentStatus") == "verified"
    return {
        "registrationId": registration.get("registrationId"),
        "userEmail": registration.get("email"),
        "userDetails": {
            "name": registration.get("name"),
            "email": registration.get("email"),
            "college": registration.get("college"),
            "department": registration.get("department"),
            "year": registration.get("year"),
            "whatsapp": registration.get("whatsapp"),
        },
        "selectedEvents": registration.get("selectedEvents") or [],
        "selectedWorkshops": registration.get("selectedWorkshops") or [],
        "selectedNonTechEvents": registration.get("selectedNonTechEvents") or [],
        "selectedPass": registration.get("selectedPassId"),
        "ispass": registration.get("ispass", False),
        "paymentDetails": {
            "paymentId": "manual_entry",
            "amount": calculate_total_amount(registration),
            "orderId": f"manual_{registration.get('registrationId')}",
        } if verified else None,
        "isTeamEvent": registration.get("isTeamEvent", False),
        "teamSize": registration.get("teamSize", 1),
        "teamMembers": registration.get("teamMembers") or [],
        "status": registration.get("status"),
        "paymentStatus": registration.get("paymentStatus"),
    }


def get_email_service_status(admin_email: str) -> dict:
    return _request("GET", "/payment/email-status", admin_email)


def send_registration_confirmation(registration: dict, admin_email: str, manual: bool = True) -> dict:
    path = "/payment/send-manual-email" if manual else "/payment/send-confirmation-email"
    result = _request("POST", path, admin_email,
                      {"registrationData": registration_payload(registration)})
    log.info("email.confirmation_sent", registration_id=registration.get("registrationId"),
             success=result.get("success"), used_email=result.get("usedEmail"))
    return result


def send_test_email(admin_email: str, type: str = "test", recipient_email: str = None) -> dict:
    payload = {"type": type}
    if recipient_email:
        payload["recipientEmail"] = recipient_email
    return _request("POST", "/payment/test-email", admin_email, payload)


def send_notification_email(admin_email: str, to: str, subject: str,
                            html_content: str, text_content: str = None) -> dict:
    payload = {
        "to": to,
        "subject": subject,
        "htmlContent": html_content,
        "textContent": text_content,
    }
    return _request("POST", "/payment/send-notification", admin_email, payload)


def send_od_letter(registration: dict, admin_email: str) -> dict:
    pdf = build_registration_pdf(registration)
    payload = {
        "registrationData": registration_payload(registration),
        "attachment": {
            "filename": certificate_filename(registration.get("registrationId", "")),
            "contentType": "application/pdf",
            "content": base64.b64encode(pdf).decode(),
        },
    }
    result = _request("POST", "/payment/send-od-letter", admin_email, payload)
    log.info("email.od_letter_sent", registration_id=registration.get("registrationId"),
             success=result.get("success"))
    return result


def text_to_html(content: str) -> str:
    return content.replace("\n", "<br>")
