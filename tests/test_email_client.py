import base64

import jwt
import pytest
import requests

from core.config import settings
from utils import email_client
from utils.email_client import EmailServiceError
from conftest import make_registration


class FakeResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        self._data = data or {}

    def json(self):
        return self._data


@pytest.fixture
def sent(monkeypatch):
    calls = []
    responses = []

    def fake_request(method, url, json=None, headers=None, timeout=None):
        calls.append({"method": method, "url": url, "json": json, "headers": headers})
        return responses.pop(0) if responses else FakeResponse(200, {"success": True, "usedEmail": "a@mail"})

    monkeypatch.setattr(email_client.requests, "request", fake_request)
    return calls, responses


def test_confirmation_targets_manual_endpoint_with_admin_token(sent):
    calls, _ = sent
    reg = make_registration(status="confirmed", paymentStatus="verified", selectedEvents=[
        {"id": 1, "title": "Try, If you can..?"}, {"id": 2, "title": "Reverse Code"},
    ], selectedWorkshops=[{"id": 6, "title": "Introduction to OSINT"}])

    result = email_client.send_registration_confirmation(reg, "admin@fest.org")

    assert result["success"] is True
    call = calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://email.test/api/payment/send-manual-email"
    token = call["headers"]["Authorization"].split()[1]
    assert jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])["sub"] == "admin@fest.org"
    payload = call["json"]["registrationData"]
    assert payload["registrationId"] == "TF2025-AAAA0001"
    assert payload["userEmail"] == "asha@college.edu"
    assert payload["paymentDetails"]["amount"] == 200


def test_pass_holder_amount_and_unverified_payment(sent):
    calls, _ = sent
    email_client.send_registration_confirmation(make_registration(ispass=True), "admin@fest.org", manual=False)

    assert calls[0]["url"].endswith("/payment/send-confirmation-email")
    assert calls[0]["json"]["registrationData"]["paymentDetails"] is None
    assert email_client.calculate_total_amount({"ispass": True, "selectedEvents": [1, 2]}) == 299


def test_http_errors_are_reported(sent):
    _, responses = sent
    responses.extend([FakeResponse(401), FakeResponse(500)])

    with pytest.raises(EmailServiceError, match="Authentication failed"):
        email_client.get_email_service_status("admin@fest.org")
    with pytest.raises(EmailServiceError, match="HTTP error! status: 500"):
        email_client.get_email_service_status("admin@fest.org")


def test_transport_errors_are_wrapped(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(email_client.requests, "request", boom)
    with pytest.raises(EmailServiceError, match="unreachable"):
        email_client.send_test_email("admin@fest.org")


def test_test_and_notification_payloads(sent):
    calls, _ = sent
    email_client.send_test_email("admin@fest.org", "registration", "someone@x.edu")
    email_client.send_notification_email(
        "admin@fest.org", "p@x.edu", "Venue change", email_client.text_to_html("Hall B\nat 9"), "Hall B\nat 9",
    )

    assert calls[0]["json"] == {"type": "registration", "recipientEmail": "someone@x.edu"}
    assert calls[1]["url"].endswith("/payment/send-notification")
    assert calls[1]["json"]["htmlContent"] == "Hall B<br>at 9"


def test_od_letter_attaches_pdf(sent):
    calls, _ = sent
    email_client.send_od_letter(make_registration(), "admin@fest.org")

    attachment = calls[0]["json"]["attachment"]
    assert calls[0]["url"].endswith("/payment/send-od-letter")
    assert attachment["contentType"] == "application/pdf"
    assert base64.b64decode(attachment["content"]).startswith(b"%PDF")
