"""Trusted contact models."""

from datetime import datetime

from pydantic import BaseModel, Field

from walletguard.models.blocklist import utcnow


class TrustedContact(BaseModel):
    """Address a user sends to regularly, saved under a name."""

    address: str
    name: str
    notes: str = ""
    added_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None


class ContactAddRequest(BaseModel):
    """Request model for saving a trusted contact."""

    address: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    notes: str = Field(default="", max_length=500)
    chain: str = "solana"


class ContactUpdateRequest(BaseModel):
    """Request model for renaming a contact or editing its notes."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    notes: str | None = Field(default=None, max_length=500)


class ContactListResponse(BaseModel):
    """Response model listing a user's trusted contacts."""

    user_id: str
    contacts: list[TrustedContact]
    count: int
