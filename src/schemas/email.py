from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal


class ConfirmationBatchRequest(BaseModel):
    registrationIds: List[str] = Field(..., min_length=1)
    manual: bool = True


class QueuedJob(BaseModel):
    jobId: str
    registrationId: str


class ConfirmationBatchResponse(BaseModel):
    queued: List[QueuedJob]


class TestEmailRequest(BaseModel):
    type: Literal["test", "registration"] = "test"
    recipientEmail: Optional[EmailStr] = None


class CustomEmailRequest(BaseModel):
    to: EmailStr
    subject: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class EmailJobStatus(BaseModel):
    jobId: str
    registrationId: Optional[str] = None
    status: str
    error: Optional[str] = None
    usedEmail: Optional[str] = None
