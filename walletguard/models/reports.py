"""Community fraud report models."""

from datetime import datetime

from pydantic import BaseModel, Field

from walletguard.constants import ReportCategory
from walletguard.models.blocklist import utcnow


class ReportNote(BaseModel):
    """Free-text explanation attached to one report."""

    reporter: str
    note: str
    created_at: datetime = Field(default_factory=utcnow)


class CommunityReport(BaseModel):
    """
    Aggregate of every user report filed against one address.

    ``frequency`` counts distinct reporters; categories are the union of
    the categories they chose, in first-reported order.
    """

    address: str
    categories: list[ReportCategory] = Field(default_factory=list)
    reporters: list[str] = Field(default_factory=list)
    frequency: int = 0
    notes: list[ReportNote] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class FraudReportRequest(BaseModel):
    """Request model for reporting a wallet."""

    address: str = Field(..., min_length=1)
    reporter_id: str = Field(..., min_length=1)
    category: ReportCategory
    note: str = Field(default="", max_length=1000)
    chain: str = "solana"


class ReportSubmission(BaseModel):
    """Outcome of a successful report."""

    report: CommunityReport
    message: str
