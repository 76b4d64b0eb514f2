from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Any, Union
from datetime import datetime, timezone

RegistrationStatus = Literal["pending", "confirmed", "cancelled"]
PaymentStatus = Literal["pending", "verified", "failed", "not-required"]
AttendanceCategory = Literal["techEvents", "workshops", "nonTechEvents"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventRef(BaseModel):
    id: Union[int, str]
    title: str


class TeamMember(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = ""
    department: str = ""
    year: Optional[str] = None


class ArrivalStatus(BaseModel):
    hasArrived: bool = False
    arrivalTime: Optional[datetime] = None
    checkedInBy: Optional[str] = None
    notes: str = ""


class WorkshopDetails(BaseModel):
    workshopId: Optional[Union[int, str]] = None
    workshopTitle: str = ""
    workshopAttended: bool = False
    workshopAttendanceTime: Optional[datetime] = None


class AttendanceEntry(BaseModel):
    eventId: Union[int, str]
    attended: bool
    timestamp: datetime
    markedBy: Optional[str] = None


class EventAttendance(BaseModel):
    techEvents: List[AttendanceEntry] = []
    workshops: List[AttendanceEntry] = []
    nonTechEvents: List[AttendanceEntry] = []


class ContactDetails(BaseModel):
    emergencyContact: str = ""
    emergencyPhone: str = ""
    dietaryRestrictions: str = ""
    accessibility: str = ""


class AdminNotes(BaseModel):
    generalNotes: str = ""
    specialRequirements: str = ""
    flagged: bool = False
    flagReason: str = ""
    lastModifiedAt: Optional[datetime] = None
    lastModifiedBy: Optional[str] = None


class PreviousValue(BaseModel):
    field: str
    value: Any = None


class EditHistoryEntry(BaseModel):
    editedAt: datetime = Field(default_factory=utcnow)
    editedBy: str
    changedFields: List[str]
    # stored as a list: dotted field paths are not valid Mongo keys
    previousValues: List[PreviousValue] = []


class Registration(BaseModel):
    id: Optional[str] = Field(None, alias="_id")
    registrationId: str
    name: str
    email: str
    whatsapp: str
    college: str
    department: str = ""
    year: str = ""
    isTeamEvent: bool = False
    teamSize: int = 1
    teamMembers: List[TeamMember] = []
    selectedEvents: List[EventRef] = []
    selectedWorkshops: List[EventRef] = []
    selectedNonTechEvents: List[EventRef] = []
    ispass: bool = False
    selectedPassId: Optional[str] = None
    transactionIds: List[str] = []
    status: RegistrationStatus = "pending"
    paymentStatus: PaymentStatus = "pending"
    arrivalStatus: ArrivalStatus = Field(default_factory=ArrivalStatus)
    workshopDetails: WorkshopDetails = Field(default_factory=WorkshopDetails)
    eventAttendance: EventAttendance = Field(default_factory=EventAttendance)
    contactDetails: ContactDetails = Field(default_factory=ContactDetails)
    adminNotes: AdminNotes = Field(default_factory=AdminNotes)
    editHistory: List[EditHistoryEntry] = []
    isManualEntry: bool = False
    createdBy: Optional[str] = None
    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict:
        doc = self.model_dump(exclude={"id"})
        doc["_id"] = self.registrationId
        return doc
