"""On-chain activity analysis for recipient addresses."""

import asyncio
import logging

from walletguard.constants import (
    RECENT_SIGNATURE_LIMIT,
    RECENT_TRANSACTIONS_KEPT,
    SUSPICIOUS_TX_COUNT,
)
from walletguard.core.exceptions import RPCUnavailable
from walletguard.core.ledger import LedgerClient
from walletguard.models.risk import ChainActivityResult, ChainActivitySnapshot

logger = logging.getLogger(__name__)


class ChainActivityAnalyzer:
    """
    Derives behavioral heuristics from a fresh on-chain snapshot.

    Heuristics:
    - New wallet: no transactions seen.
    - Has balance: balance above zero.
    - Suspicious pattern: more than ``suspicious_tx_count`` transactions
      while holding nothing (funds pass straight through).

    Ledger failures yield an unanalyzed, zeroed result with no flags raised;
    missing data is not evidence against the address.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        signature_limit: int = RECENT_SIGNATURE_LIMIT,
        suspicious_tx_count: int = SUSPICIOUS_TX_COUNT,
        recent_kept: int = RECENT_TRANSACTIONS_KEPT,
    ) -> None:
        """
        Initialize the analyzer.

        Args:
            ledger: Ledger client for the analyzed chain.
            signature_limit: How many recent transactions to request.
            suspicious_tx_count: Count above which an empty wallet is suspicious.
            recent_kept: How many transaction references to keep in the result.
        """
        self._ledger = ledger
        self._signature_limit = signature_limit
        self._suspicious_tx_count = suspicious_tx_count
        self._recent_kept = recent_kept

    @property
    def chain(self) -> str:
        """Chain analyzed by this instance."""
        return self._ledger.chain

    async def fetch_snapshot(self, address: str) -> ChainActivitySnapshot:
        """
        Query balance and recent activity concurrently.

        Raises:
            RPCUnavailable: If the ledger could not be queried.
        """
        balance, (refs, count) = await asyncio.gather(
            self._ledger.get_balance(address),
            self._ledger.get_activity(address, self._signature_limit),
        )
        return ChainActivitySnapshot(
            balance=balance,
            transaction_count=count,
            recent_transaction_refs=refs[: self._recent_kept],
            endpoint=self._ledger.last_endpoint,
        )

    def evaluate(self, snapshot: ChainActivitySnapshot) -> ChainActivityResult:
        """Apply the heuristics to a snapshot."""
        count = snapshot.transaction_count
        has_balance = snapshot.balance > 0
        return ChainActivityResult(
            balance=snapshot.balance,
            transaction_count=count,
            is_new_wallet=count == 0,
            has_balance=has_balance,
            suspicious_pattern=count > self._suspicious_tx_count and not has_balance,
            analyzed=True,
            recent_transactions=snapshot.recent_transaction_refs,
            endpoint=snapshot.endpoint,
        )

    async def analyze(self, address: str) -> ChainActivityResult:
        """
        Analyze on-chain activity of an address.

        Args:
            address: Validated address.

        Returns:
            ChainActivityResult; ``analyzed`` is False if the ledger failed.
        """
        logger.info(f"[ChainActivity] Analyzing {address[:8]}... on {self.chain}")
        try:
            snapshot = await self.fetch_snapshot(address)
        except RPCUnavailable as e:
            logger.warning(f"[ChainActivity] Ledger unavailable: {e.message}")
            return ChainActivityResult.failed(e.message)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"[ChainActivity] Malformed ledger response: {e}")
            return ChainActivityResult.failed(f"Malformed ledger response: {e}")

        result = self.evaluate(snapshot)
        logger.debug(
            f"[ChainActivity] balance={result.balance} txs={result.transaction_count} "
            f"new={result.is_new_wallet} suspicious={result.suspicious_pattern}"
        )
        return result
