"""Blocklist domain models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from walletguard.constants import BlocklistSource


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class BlocklistEntry(BaseModel):
    """A single blocked address owned by a user."""

    address: str
    reason: str = ""
    blocked_at: datetime = Field(default_factory=utcnow)
    added_by: BlocklistSource = BlocklistSource.MANUAL


class UserRecord(BaseModel):
    """User document holding the blocklist."""

    user_id: str
    blocklist: list[BlocklistEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    def find(self, address: str) -> BlocklistEntry | None:
        """Return the entry for an address, if any."""
        for entry in self.blocklist:
            if entry.address == address:
                return entry
        return None


class BlocklistLookup(BaseModel):
    """Outcome of checking an address against a user's blocklist."""

    blocked: bool = False
    entry: BlocklistEntry | None = None
    error: str | None = None

    @property
    def degraded(self) -> bool:
        """True when the store could not be read."""
        return self.error is not None


class BlocklistAddRequest(BaseModel):
    """Request model for adding a blocklist entry."""

    address: str = Field(..., min_length=1)
    reason: str = Field(default="", max_length=500)
    chain: str = "solana"


class BlocklistResponse(BaseModel):
    """Response model listing a user's blocklist."""

    user_id: str
    entries: list[BlocklistEntry]
    count: int
    last_updated: datetime | None = None
