from pydantic import BaseModel, Field
from typing import List, Literal

SyncableCollection = Literal["registrations", "payment_orders"]


class DatabaseTarget(BaseModel):
    uri: str = Field(..., min_length=1)
    database: str = Field(..., min_length=1)


class SyncRequest(BaseModel):
    source: DatabaseTarget
    destination: DatabaseTarget
    collections: List[SyncableCollection] = ["registrations"]


class SyncResponse(BaseModel):
    success: bool
    message: str
    details: List[str] = []
