import pytest
from pydantic import ValidationError

from schemas.registration import RegistrationSubmitRequest, TeamInfoUpdate, PersonalInfoUpdate
from schemas.sync import SyncRequest
from utils.phone import format_to_e164


BASE = {
    "name": "  Asha Raman ",
    "email": "asha@college.edu",
    "whatsapp": "98765 43210",
    "college": "Anna University",
}


def test_submit_normalizes_whatsapp_and_text():
    data = RegistrationSubmitRequest(**BASE)
    assert data.whatsapp == "+919876543210"
    assert data.name == "Asha Raman"


def test_invalid_whatsapp_rejected():
    with pytest.raises(ValidationError):
        RegistrationSubmitRequest(**{**BASE, "whatsapp": "12"})


def test_team_needs_enough_members():
    with pytest.raises(ValidationError, match="Please add 2 team member"):
        RegistrationSubmitRequest(**BASE, isTeamEvent=True, teamSize=3, teamMembers=[{"name": "Ravi"}])

    ok = TeamInfoUpdate(isTeamEvent=True, teamSize=2, teamMembers=[{"name": "Ravi"}])
    assert ok.teamMembers[0].name == "Ravi"


def test_individual_ignores_team_size_check():
    assert TeamInfoUpdate(isTeamEvent=False, teamSize=1).teamMembers == []


def test_personal_info_normalizes_whatsapp():
    data = PersonalInfoUpdate(**{**BASE, "whatsapp": "+91 98765-43210"})
    assert data.whatsapp == "+919876543210"


def test_sync_rejects_unknown_collections():
    with pytest.raises(ValidationError):
        SyncRequest(
            source={"uri": "mongodb://a", "database": "x"},
            destination={"uri": "mongodb://b", "database": "y"},
            collections=["admins"],
        )


def test_format_to_e164_with_region():
    assert format_to_e164("(650) 253-0000", "US") == "+16502530000"
    with pytest.raises(ValueError):
        format_to_e164("not a number")
