"""Send workflow models."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from walletguard.models.risk import RiskVerdict


class WorkflowState(str, Enum):
    """Steps of the send workflow."""

    ADDRESS_ENTRY = "address_entry"
    RISK_REVIEW = "risk_review"
    AMOUNT_ENTRY = "amount_entry"
    SUBMITTING = "submitting"
    RESULT = "result"


class TransferOutcome(str, Enum):
    """Final outcome carried by the RESULT state."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SourceWallet(BaseModel):
    """Connected wallet funds are sent from."""

    address: str
    chain: str = "solana"
    name: str = ""
    balance: Decimal = Field(default=Decimal("0"), ge=0)


class TransferRequest(BaseModel):
    """Everything a broadcaster needs to send a transfer."""

    model_config = ConfigDict(frozen=True)

    source: SourceWallet
    recipient: str
    amount: Decimal
    token: str
    chain: str


class DecodedTransfer(BaseModel):
    """Native transfer read back out of a signed transaction payload."""

    sender: str
    recipient: str
    amount: Decimal


class WorkflowSnapshot(BaseModel):
    """Read-only view of a workflow for the UI."""

    workflow_id: str | None = None
    user_id: str
    chain: str
    state: WorkflowState
    outcome: TransferOutcome | None = None
    address: str | None = None
    verdict: RiskVerdict | None = None
    amount: Decimal | None = None
    wallet: SourceWallet | None = None
    error: str | None = None
    transaction_ref: str | None = None
    checking: bool = False


class WorkflowCreateRequest(BaseModel):
    """Request model for starting a send workflow."""

    user_id: str = Field(..., min_length=1)
    chain: str = "solana"


class RecipientRequest(BaseModel):
    """Request model for entering a recipient."""

    address: str


class SubmitRequest(BaseModel):
    """Request model for submitting a signed transfer."""

    amount: Decimal = Field(..., gt=0)
    wallet: SourceWallet
    signed_transaction: str = Field(..., min_length=1)
    token: str | None = None
