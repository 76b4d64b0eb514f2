import phonenumbers
import structlog
from phonenumbers import NumberParseException

from core.config import settings


log = structlog.get_logger()


def format_to_e164(phone_number: str, country_code: str = None) -> str:
    """
    Normalize a WhatsApp/phone number to E.164 so duplicate checks compare like
    with like. Numbers without a country prefix are read in PHONE_REGION.
    """
    region = country_code or settings.PHONE_REGION
    try:
        parsed = phonenumbers.parse(phone_number.strip(), region)
    except NumberParseException as e:
        log.warning("phone.parse_error", number=phone_number, error=str(e))
        raise ValueError("Invalid phone number.") from e
    if not phonenumbers.is_valid_number(parsed):
        log.warning("phone.invalid", number=phone_number)
        raise ValueError("Invalid phone number.")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
