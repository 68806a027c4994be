"""Domain models package."""

from walletguard.models.blocklist import (
    BlocklistEntry,
    BlocklistLookup,
    UserRecord,
)
from walletguard.models.contacts import TrustedContact
from walletguard.models.reports import CommunityReport, ReportNote, ReportSubmission
from walletguard.models.risk import (
    AbuseQueryResult,
    AbuseReport,
    ChainActivityResult,
    ChainActivitySnapshot,
    RiskFactor,
    RiskVerdict,
)
from walletguard.models.workflow import (
    DecodedTransfer,
    SourceWallet,
    TransferOutcome,
    TransferRequest,
    WorkflowSnapshot,
    WorkflowState,
)

__all__ = [
    "AbuseQueryResult",
    "AbuseReport",
    "BlocklistEntry",
    "BlocklistLookup",
    "ChainActivityResult",
    "ChainActivitySnapshot",
    "CommunityReport",
    "DecodedTransfer",
    "ReportNote",
    "ReportSubmission",
    "RiskFactor",
    "RiskVerdict",
    "SourceWallet",
    "TransferOutcome",
    "TransferRequest",
    "TrustedContact",
    "UserRecord",
    "WorkflowSnapshot",
    "WorkflowState",
]
