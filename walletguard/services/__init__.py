"""Services package."""

from walletguard.services.address import normalize_address
from walletguard.services.chain_activity import ChainActivityAnalyzer
from walletguard.services.risk_aggregator import RiskAggregatorService
from walletguard.services.send_workflow import SendWorkflow, WorkflowRegistry

__all__ = [
    "ChainActivityAnalyzer",
    "RiskAggregatorService",
    "SendWorkflow",
    "WorkflowRegistry",
    "normalize_address",
]
