"""Recipient risk aggregation combining blocklist, registry and chain activity."""

import asyncio
import logging

from walletguard.constants import (
    BLOCKED_SCORE,
    INTERNAL_ERROR_SCORE,
    NEW_EMPTY_WALLET_WEIGHT,
    REPORTED_ADDRESS_WEIGHT,
    RISK_THRESHOLDS,
    SAFE_SCORE_LIMIT,
    SUSPICIOUS_PATTERN_WEIGHT,
    UNVERIFIED_REGISTRY_WEIGHT,
    RiskLevel,
    Severity,
)
from walletguard.core.blocklist import BlocklistStore
from walletguard.core.exceptions import InternalAssessmentError
from walletguard.models.blocklist import BlocklistLookup
from walletguard.models.risk import (
    AbuseQueryResult,
    ChainActivityResult,
    RiskFactor,
    RiskVerdict,
)
from walletguard.providers.chainabuse import AbuseRegistryClient
from walletguard.services.chain_activity import ChainActivityAnalyzer

logger = logging.getLogger(__name__)

MAX_SCORE = 100


def get_risk_level(score: int) -> RiskLevel:
    """Determine risk level from numeric score."""
    if score >= RISK_THRESHOLDS[RiskLevel.CRITICAL]:
        return RiskLevel.CRITICAL
    if score >= RISK_THRESHOLDS[RiskLevel.HIGH]:
        return RiskLevel.HIGH
    if score >= RISK_THRESHOLDS[RiskLevel.MEDIUM]:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def is_safe_score(score: int) -> bool:
    """Scores below the limit allow the transfer."""
    return score < SAFE_SCORE_LIMIT


def score_signals(
    registry: AbuseQueryResult,
    activity: ChainActivityResult,
    blocklist: BlocklistLookup | None = None,
) -> tuple[int, list[RiskFactor]]:
    """
    Accumulate the risk score from independent signals.

    Each signal adds a fixed non-negative weight at most once, so adding a
    signal never lowers the score. Unverifiable checks add a factor but no
    score. Factors keep discovery order.

    Returns:
        Tuple of (score capped at 100, factors).
    """
    score = 0
    factors: list[RiskFactor] = []

    if blocklist is not None and blocklist.degraded:
        factors.append(
            RiskFactor(
                severity=Severity.MEDIUM,
                reason="Unable to check your blocklist",
                details={"unverified": True, "error": blocklist.error},
            )
        )

    if not registry.safe and registry.reports:
        score += REPORTED_ADDRESS_WEIGHT
        first = registry.reports[0]
        factors.append(
            RiskFactor(
                severity=Severity.CRITICAL,
                reason=f"Reported for fraud/scam: {first.category or 'Unknown category'}",
                details={
                    "category": first.category or "Unknown",
                    "subcategory": first.subcategory or "N/A",
                    "description": first.description or "No description",
                    "reporter": first.reporter or "Anonymous",
                    "reported_at": first.reported_at or "Unknown date",
                    "total_reports": registry.total_reports,
                },
            )
        )
    elif not registry.checked:
        score += UNVERIFIED_REGISTRY_WEIGHT
        factors.append(
            RiskFactor(
                severity=Severity.MEDIUM,
                reason="Unable to verify address against fraud database",
                details={
                    "unverified": True,
                    "warning": registry.warning or "Abuse registry check failed",
                },
            )
        )

    if activity.suspicious_pattern:
        score += SUSPICIOUS_PATTERN_WEIGHT
        factors.append(
            RiskFactor(
                severity=Severity.MEDIUM,
                reason="Suspicious transaction pattern detected",
                details={
                    "pattern": "High activity with zero balance",
                    "transaction_count": activity.transaction_count,
                },
            )
        )

    if activity.is_new_wallet and not activity.has_balance:
        score += NEW_EMPTY_WALLET_WEIGHT
        factors.append(
            RiskFactor(
                severity=Severity.LOW,
                reason="New wallet with no activity",
                details={"note": "Exercise caution with new wallets"},
            )
        )

    return min(score, MAX_SCORE), factors


class RiskAggregatorService:
    """
    Produces the verdict that gates a transfer.

    Precedence:
    1. The user's blocklist is a hard veto and short-circuits everything.
    2. Abuse registry and chain activity are queried concurrently, each
       bounded by its own timeout.
    3. Signals are scored by ``score_signals``; the level and the safe flag
       are pure functions of the score.

    Expected upstream unavailability fails open (with an explicit factor);
    unexpected internal errors fail closed with an ``unknown`` level.
    """

    def __init__(
        self,
        blocklist: BlocklistStore,
        registry: AbuseRegistryClient,
        analyzers: dict[str, ChainActivityAnalyzer],
        registry_timeout: float = 10.0,
        analyzer_timeout: float = 10.0,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            blocklist: Per-user blocklist store.
            registry: Abuse registry client.
            analyzers: Chain activity analyzers keyed by chain slug.
            registry_timeout: Upper bound for the registry check.
            analyzer_timeout: Upper bound for the chain activity check.
        """
        self._blocklist = blocklist
        self._registry = registry
        self._analyzers = analyzers
        self._registry_timeout = registry_timeout
        self._analyzer_timeout = analyzer_timeout

    async def assess(
        self, user_id: str, address: str, chain: str = "solana"
    ) -> RiskVerdict:
        """
        Assess a validated recipient address for a user.

        Never raises; internal faults produce a conservative unsafe verdict.
        """
        logger.info(f"[RiskAggregator] Assessing {address[:8]}... on {chain} for user {user_id}")
        try:
            verdict = await self._assess(user_id, address, chain)
        except Exception as e:
            error = InternalAssessmentError(f"{type(e).__name__}: {e}")
            logger.exception(f"[RiskAggregator] Assessment failed: {error.message}")
            return self._failed_verdict(address, chain, error)

        logger.info(
            f"[RiskAggregator] Verdict for {address[:8]}...: score={verdict.risk_score} "
            f"level={verdict.risk_level.value} safe={verdict.safe}"
        )
        return verdict

    async def _assess(self, user_id: str, address: str, chain: str) -> RiskVerdict:
        lookup = await self._blocklist.lookup(user_id, address)
        if lookup.blocked:
            return self._blocked_verdict(address, chain, lookup)

        results = await asyncio.gather(
            self._check_registry(address, chain),
            self._check_activity(address, chain),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        registry_result, activity_result = results

        score, factors = score_signals(registry_result, activity_result, lookup)
        safe = is_safe_score(score)
        return RiskVerdict(
            address=address,
            chain=chain,
            safe=safe,
            risk_score=score,
            risk_level=get_risk_level(score),
            risk_factors=tuple(factors),
            is_blocked=False,
            abuse_registry_result=registry_result,
            chain_activity_result=activity_result,
            recommendation=(
                "Transaction can proceed" if safe else "Transaction should be blocked"
            ),
        )

    async def _check_registry(self, address: str, chain: str) -> AbuseQueryResult:
        try:
            return await asyncio.wait_for(
                self._registry.query(address, chain), self._registry_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[RiskAggregator] Registry check timed out after {self._registry_timeout}s")
            return AbuseQueryResult.unavailable(
                "Address verification timed out. Please verify the recipient manually."
            )

    async def _check_activity(self, address: str, chain: str) -> ChainActivityResult:
        analyzer = self._analyzers.get(chain)
        if analyzer is None:
            logger.warning(f"[RiskAggregator] No ledger configured for {chain}")
            return ChainActivityResult.failed(f"No ledger configured for {chain}")
        try:
            return await asyncio.wait_for(
                analyzer.analyze(address), self._analyzer_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[RiskAggregator] Activity check timed out after {self._analyzer_timeout}s")
            return ChainActivityResult.failed("Chain activity check timed out")

    @staticmethod
    def _blocked_verdict(
        address: str, chain: str, lookup: BlocklistLookup
    ) -> RiskVerdict:
        logger.warning(f"[RiskAggregator] {address[:8]}... is in the user's blocklist")
        details = {}
        if lookup.entry is not None:
            details = {
                "reason": lookup.entry.reason,
                "blocked_at": lookup.entry.blocked_at.isoformat(),
                "added_by": lookup.entry.added_by.value,
            }
        return RiskVerdict(
            address=address,
            chain=chain,
            safe=False,
            risk_score=BLOCKED_SCORE,
            risk_level=RiskLevel.BLOCKED,
            risk_factors=(
                RiskFactor(
                    severity=Severity.CRITICAL,
                    reason="Address is in your blocklist",
                    details=details,
                ),
            ),
            is_blocked=True,
            blocklist_entry=lookup.entry,
            recommendation="Transaction blocked: recipient is in your blocklist",
        )

    @staticmethod
    def _failed_verdict(
        address: str, chain: str, error: InternalAssessmentError
    ) -> RiskVerdict:
        return RiskVerdict(
            address=address,
            chain=chain,
            safe=False,
            risk_score=INTERNAL_ERROR_SCORE,
            risk_level=RiskLevel.UNKNOWN,
            risk_factors=(
                RiskFactor(
                    severity=Severity.MEDIUM,
                    reason="Unable to complete risk assessment",
                    details={"unverified": True, "error": error.message},
                ),
            ),
            recommendation="Transaction should be blocked",
        )
