"""Risk assessment domain models."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from walletguard.constants import RiskLevel, Severity
from walletguard.models.blocklist import BlocklistEntry, utcnow


class AbuseReport(BaseModel):
    """Fraud report as published by the abuse registry."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category: str | None = Field(
        default=None,
        validation_alias=AliasChoices("category", "scamCategory"),
    )
    subcategory: str | None = None
    description: str | None = None
    reporter: str | None = None
    reported_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reported_at", "createdAt", "created_at"),
    )

    @field_validator(
        "category", "subcategory", "description", "reporter", "reported_at", mode="before"
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str | None:
        """Registry fields vary in type; keep them as display text."""
        if v is None or isinstance(v, str):
            return v
        return str(v)


class AbuseQueryResult(BaseModel):
    """Normalized abuse registry answer for one address."""

    model_config = ConfigDict(frozen=True)

    checked: bool
    safe: bool
    reports: list[AbuseReport] = Field(default_factory=list)
    total_reports: int = 0
    degraded: bool = False
    warning: str | None = None
    message: str = ""

    @classmethod
    def unavailable(cls, warning: str) -> "AbuseQueryResult":
        """Result used when the registry could not be consulted."""
        return cls(
            checked=False,
            safe=True,
            degraded=True,
            warning=warning,
            message="Address verification unavailable",
        )


class ChainActivitySnapshot(BaseModel):
    """Raw on-chain activity for an address."""

    balance: Decimal = Decimal("0")
    transaction_count: int = 0
    recent_transaction_refs: list[str] = Field(default_factory=list)
    endpoint: str | None = None


class ChainActivityResult(BaseModel):
    """On-chain activity plus derived heuristics."""

    model_config = ConfigDict(frozen=True)

    balance: Decimal = Decimal("0")
    transaction_count: int = 0
    is_new_wallet: bool = False
    has_balance: bool = False
    suspicious_pattern: bool = False
    analyzed: bool = False
    recent_transactions: list[str] = Field(default_factory=list)
    endpoint: str | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "ChainActivityResult":
        """Zeroed result with no heuristic flags raised."""
        return cls(analyzed=False, error=error)


class RiskFactor(BaseModel):
    """One signal contributing to a verdict."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    reason: str
    details: dict[str, Any] = Field(default_factory=dict)


class RiskVerdict(BaseModel):
    """Immutable outcome of a recipient risk assessment."""

    model_config = ConfigDict(frozen=True)

    address: str
    chain: str
    safe: bool
    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    risk_factors: tuple[RiskFactor, ...] = ()
    is_blocked: bool = False
    blocklist_entry: BlocklistEntry | None = None
    abuse_registry_result: AbuseQueryResult | None = None
    chain_activity_result: ChainActivityResult | None = None
    recommendation: str = ""
    timestamp: datetime = Field(default_factory=utcnow)

    def has_unverified_factor(self) -> bool:
        """Check whether any check could not be completed."""
        return any(
            factor.details.get("unverified") for factor in self.risk_factors
        )


class AssessRequest(BaseModel):
    """Request model for a risk assessment."""

    user_id: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, description="Raw address, payment URI or URL")
    chain: str = Field(default="solana", description="Blockchain network")


class NormalizeRequest(BaseModel):
    """Request model for address normalization."""

    address: str
    chain: str = "solana"


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    blocklist_status: Literal["connected", "disconnected"]
    timestamp: datetime = Field(default_factory=utcnow)
