from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional, List, Union, Any, Dict

from models.registration import (
    EventRef,
    TeamMember,
    ContactDetails,
    RegistrationStatus,
    PaymentStatus,
    AttendanceCategory,
)
from utils.phone import format_to_e164


def _check_team(is_team_event: bool, team_size: int, members: list):
    if is_team_event and team_size > 1 and len(members) < team_size - 1:
        raise ValueError(
            f"Please add {team_size - 1} team member(s) for team registration."
        )


class RegistrationSubmitRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    whatsapp: str = Field(..., min_length=1)
    college: str = Field(..., min_length=1)
    department: str = ""
    year: str = ""
    isTeamEvent: bool = False
    teamSize: int = Field(1, ge=1)
    teamMembers: List[TeamMember] = []
    selectedEvents: List[EventRef] = []
    selectedWorkshops: List[EventRef] = []
    selectedNonTechEvents: List[EventRef] = []
    ispass: bool = False
    selectedPassId: Optional[str] = None
    transactionIds: List[str] = []

    @field_validator("whatsapp")
    @classmethod
    def normalize_whatsapp(cls, v: str) -> str:
        return format_to_e164(v)

    @field_validator("name", "college", "department", "year")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def team_members_complete(self):
        _check_team(self.isTeamEvent, self.teamSize, self.teamMembers)
        return self


class AdminNotesInput(BaseModel):
    generalNotes: str = ""
    specialRequirements: str = ""
    flagged: bool = False
    flagReason: str = ""


class ManualRegistrationRequest(RegistrationSubmitRequest):
    status: RegistrationStatus = "confirmed"
    paymentStatus: PaymentStatus = "verified"
    contactDetails: ContactDetails = Field(default_factory=ContactDetails)
    adminNotes: AdminNotesInput = Field(default_factory=AdminNotesInput)


class RegistrationSubmitResponse(BaseModel):
    success: bool
    registrationId: str
    message: str


class DuplicateCheckResponse(BaseModel):
    exists: bool
    duplicateFields: List[str]
    existingRegistration: Optional[Dict[str, Any]] = None


class StatusUpdate(BaseModel):
    status: RegistrationStatus


class PaymentStatusUpdate(BaseModel):
    paymentStatus: PaymentStatus


class ArrivalUpdate(BaseModel):
    hasArrived: bool
    notes: str = ""


class AdminNotesUpdate(AdminNotesInput):
    pass


class PersonalInfoUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    whatsapp: str = Field(..., min_length=1)
    college: str = Field(..., min_length=1)
    department: str = ""
    year: str = ""

    @field_validator("whatsapp")
    @classmethod
    def normalize_whatsapp(cls, v: str) -> str:
        return format_to_e164(v)


class ContactDetailsUpdate(ContactDetails):
    pass


class SelectionUpdate(BaseModel):
    items: List[EventRef]


class TeamInfoUpdate(BaseModel):
    isTeamEvent: bool
    teamSize: int = Field(..., ge=1)
    teamMembers: List[TeamMember] = []

    @model_validator(mode="after")
    def team_members_complete(self):
        _check_team(self.isTeamEvent, self.teamSize, self.teamMembers)
        return self


class PassInfoUpdate(BaseModel):
    ispass: bool
    selectedPassId: Optional[str] = None


class WorkshopDetailsUpdate(BaseModel):
    workshopId: Optional[Union[int, str]] = None
    workshopTitle: str = ""
    attended: bool = False


class AttendanceUpdate(BaseModel):
    category: AttendanceCategory
    eventId: Union[int, str]
    attended: bool


class UpdateResponse(BaseModel):
    registrationId: str
    changedFields: List[str]
    updatedAt: datetime


class MigrationResponse(BaseModel):
    total: int
    migrated: int
