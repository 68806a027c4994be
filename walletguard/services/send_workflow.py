"""Send workflow state machine gating transfers on risk verdicts."""

import logging
import re
from collections import OrderedDict
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from walletguard.core.exceptions import (
    InsufficientBalance,
    InvalidAddressFormat,
    RPCUnavailable,
    TransferFailed,
    TransitionNotAllowed,
)
from walletguard.constants import ChainFamily
from walletguard.core.ledger import LedgerClient, TransferBroadcaster
from walletguard.models.risk import RiskVerdict
from walletguard.models.workflow import (
    SourceWallet,
    TransferOutcome,
    TransferRequest,
    WorkflowSnapshot,
    WorkflowState,
)
from walletguard.services.address import get_chain_config, normalize_address
from walletguard.services.risk_aggregator import RiskAggregatorService

logger = logging.getLogger(__name__)

_URL_IN_TEXT_RE = re.compile(r"https?://\S+")
MAX_ERROR_LENGTH = 300


def sanitize_error(message: str) -> str:
    """Make an upstream error safe to show: no endpoints, bounded length."""
    text = _URL_IN_TEXT_RE.sub("[endpoint]", " ".join(str(message).split()))
    if len(text) > MAX_ERROR_LENGTH:
        text = text[: MAX_ERROR_LENGTH - 3] + "..."
    return text or "Transfer failed"


class SignedTransactionBroadcaster(TransferBroadcaster):
    """
    Broadcasts a payload already signed by the user's wallet extension.

    The payload is decoded first and must send exactly the reviewed amount
    from the selected wallet to the assessed recipient.
    """

    def __init__(self, ledger: LedgerClient, signed_transaction: str) -> None:
        self._ledger = ledger
        self._signed_transaction = signed_transaction

    async def broadcast(self, request: TransferRequest) -> str:
        if request.chain != self._ledger.chain:
            raise TransferFailed(
                f"Ledger client for {self._ledger.chain} cannot send on {request.chain}"
            )
        self._verify_payload(request)
        return await self._ledger.send_raw_transaction(self._signed_transaction)

    def _verify_payload(self, request: TransferRequest) -> None:
        """Refuse payloads that do not perform exactly the reviewed transfer."""
        decoded = self._ledger.decode_transfer(self._signed_transaction)
        fold = get_chain_config(request.chain).family == ChainFamily.EVM

        def same(left: str, right: str) -> bool:
            return left.lower() == right.lower() if fold else left == right

        mismatched = [
            field
            for field, matches in (
                ("recipient", same(decoded.recipient, request.recipient)),
                ("sender", same(decoded.sender, request.source.address)),
                ("amount", decoded.amount == request.amount),
            )
            if not matches
        ]
        if mismatched:
            logger.warning(
                f"[SendWorkflow] Signed payload does not match reviewed transfer: {mismatched}"
            )
            raise TransferFailed(
                "Signed transaction does not match the reviewed transfer "
                f"({', '.join(mismatched)} differ)"
            )


class SendWorkflow:
    """
    Five-step send process for one user session.

    ADDRESS_ENTRY -> RISK_REVIEW -> AMOUNT_ENTRY -> SUBMITTING -> RESULT

    Every risk check is tagged with the address and a generation counter.
    Resets and address changes bump the generation, so a verdict that
    arrives for an abandoned request is dropped, and a verdict can only
    authorize a transfer to the address it was computed for.
    """

    def __init__(
        self,
        user_id: str,
        aggregator: RiskAggregatorService,
        chain: str = "solana",
        workflow_id: str | None = None,
    ) -> None:
        self._config = get_chain_config(chain)
        self.user_id = user_id
        self.chain = self._config.slug
        self.workflow_id = workflow_id
        self._aggregator = aggregator
        self._generation = 0
        self._clear()

    def _clear(self) -> None:
        self._state = WorkflowState.ADDRESS_ENTRY
        self._outcome: TransferOutcome | None = None
        self._address: str | None = None
        self._verdict: RiskVerdict | None = None
        self._amount: Decimal | None = None
        self._wallet: SourceWallet | None = None
        self._error: str | None = None
        self._transaction_ref: str | None = None
        self._checking = False

    @property
    def state(self) -> WorkflowState:
        """Current step."""
        return self._state

    @property
    def outcome(self) -> TransferOutcome | None:
        """Transfer outcome once in RESULT."""
        return self._outcome

    @property
    def address(self) -> str | None:
        """Recipient currently entered."""
        return self._address

    @property
    def verdict(self) -> RiskVerdict | None:
        """Live verdict for the current address, if any."""
        return self._verdict

    @property
    def error(self) -> str | None:
        """Last user-facing error."""
        return self._error

    def _reject(self, action: str, reason: str | None = None) -> TransitionNotAllowed:
        error = TransitionNotAllowed(action, self._state.value, reason)
        self._error = error.message
        logger.warning(f"[SendWorkflow] {error.message}")
        return error

    def _verdict_authorizes_transfer(self) -> bool:
        verdict = self._verdict
        return (
            verdict is not None
            and verdict.safe
            and not verdict.is_blocked
            and verdict.address == self._address
            and verdict.chain == self.chain
        )

    async def check_recipient(self, raw_address: str) -> RiskVerdict | None:
        """
        Enter a recipient and run the risk check.

        The previous verdict is discarded as soon as a new address is entered.

        Returns:
            The verdict, or None if the workflow moved on while the check
            was in flight and the result was discarded.

        Raises:
            InvalidAddressFormat: If the input is not a valid address.
            TransitionNotAllowed: While a transfer is submitting or finished.
        """
        if self._state in (WorkflowState.SUBMITTING, WorkflowState.RESULT):
            raise self._reject("check recipient", "reset the workflow first")

        try:
            address = normalize_address(raw_address, self.chain)
        except InvalidAddressFormat as e:
            self._error = e.message
            raise

        self._generation += 1
        generation = self._generation
        self._state = WorkflowState.ADDRESS_ENTRY
        self._address = address
        self._verdict = None
        self._amount = None
        self._error = None
        self._checking = True

        try:
            verdict = await self._aggregator.assess(self.user_id, address, self.chain)
        finally:
            if generation == self._generation:
                self._checking = False

        if generation != self._generation or address != self._address:
            logger.info(f"[SendWorkflow] Discarding stale verdict for {address[:8]}...")
            return None

        self._verdict = verdict
        self._state = WorkflowState.RISK_REVIEW
        return verdict

    def proceed(self) -> None:
        """
        Move from risk review to amount entry.

        Raises:
            TransitionNotAllowed: Unless the current verdict is safe.
        """
        if self._state != WorkflowState.RISK_REVIEW:
            raise self._reject("proceed")
        if self._verdict is not None and self._verdict.is_blocked:
            raise self._reject("proceed", "recipient is in your blocklist")
        if not self._verdict_authorizes_transfer():
            raise self._reject("proceed", "recipient did not pass the risk check")
        self._error = None
        self._state = WorkflowState.AMOUNT_ENTRY

    def back_to_address(self) -> None:
        """Return from risk review to address entry, dropping the verdict."""
        if self._state != WorkflowState.RISK_REVIEW:
            raise self._reject("go back")
        self._generation += 1
        self._verdict = None
        self._error = None
        self._state = WorkflowState.ADDRESS_ENTRY

    def begin_submission(
        self,
        amount: Decimal | str | int | float,
        wallet: SourceWallet | None,
        token: str | None = None,
    ) -> TransferRequest:
        """
        Validate the transfer and enter SUBMITTING.

        Raises:
            TransitionNotAllowed: Wrong step, stale or unsafe verdict, missing
                wallet, bad amount or unsupported token.
            InsufficientBalance: If the wallet cannot cover the amount.
        """
        if self._state != WorkflowState.AMOUNT_ENTRY:
            raise self._reject("submit")
        if not self._verdict_authorizes_transfer():
            raise self._reject("submit", "recipient must be re-assessed")
        if wallet is None:
            raise self._reject("submit", "no source wallet selected")
        if wallet.chain != self.chain:
            raise self._reject("submit", f"wallet is on {wallet.chain}, not {self.chain}")
        if token is not None and token.upper() != self._config.symbol:
            raise self._reject("submit", f"only {self._config.symbol} transfers are supported")

        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise self._reject("submit", "amount is not a number") from None
        if not value.is_finite() or value <= 0:
            raise self._reject("submit", "amount must be greater than zero")
        if value > wallet.balance:
            error = InsufficientBalance(value, wallet.balance, self._config.symbol)
            self._error = error.message
            raise error

        self._amount = value
        self._wallet = wallet
        self._error = None
        self._state = WorkflowState.SUBMITTING
        logger.info(
            f"[SendWorkflow] Submitting {value} {self._config.symbol} to {self._address[:8]}..."
        )
        return TransferRequest(
            source=wallet,
            recipient=self._address,
            amount=value,
            token=self._config.symbol,
            chain=self.chain,
        )

    def record_success(self, transaction_ref: str) -> None:
        """Finish with a successful transfer."""
        if self._state != WorkflowState.SUBMITTING:
            raise self._reject("record result")
        self._transaction_ref = transaction_ref
        self._outcome = TransferOutcome.SUCCEEDED
        self._state = WorkflowState.RESULT
        logger.info(f"[SendWorkflow] Transfer succeeded: {transaction_ref[:16]}...")

    def record_failure(self, message: str) -> None:
        """Finish with a failed transfer. There is no automatic retry."""
        if self._state != WorkflowState.SUBMITTING:
            raise self._reject("record result")
        self._error = sanitize_error(message)
        self._outcome = TransferOutcome.FAILED
        self._state = WorkflowState.RESULT
        logger.warning(f"[SendWorkflow] Transfer failed: {self._error}")

    async def submit(
        self,
        amount: Decimal | str | int | float,
        wallet: SourceWallet | None,
        broadcaster: TransferBroadcaster,
        token: str | None = None,
    ) -> WorkflowSnapshot:
        """Validate, broadcast and record the result of a transfer."""
        request = self.begin_submission(amount, wallet, token)
        generation = self._generation

        try:
            transaction_ref = await broadcaster.broadcast(request)
        except (TransferFailed, RPCUnavailable) as e:
            if generation == self._generation:
                self.record_failure(e.message)
            return self.snapshot()
        except Exception as e:
            if generation == self._generation:
                self.record_failure(f"Unexpected error: {type(e).__name__}")
            raise

        if generation == self._generation:
            self.record_success(transaction_ref)
        else:
            logger.warning(
                f"[SendWorkflow] Workflow reset while broadcasting; transfer {transaction_ref[:16]}... not recorded"
            )
        return self.snapshot()

    def reset(self) -> None:
        """Return to address entry, clearing everything."""
        self._generation += 1
        self._clear()

    def snapshot(self) -> WorkflowSnapshot:
        """Current state for display."""
        return WorkflowSnapshot(
            workflow_id=self.workflow_id,
            user_id=self.user_id,
            chain=self.chain,
            state=self._state,
            outcome=self._outcome,
            address=self._address,
            verdict=self._verdict,
            amount=self._amount,
            wallet=self._wallet,
            error=self._error,
            transaction_ref=self._transaction_ref,
            checking=self._checking,
        )


class WorkflowRegistry:
    """In-process registry of live workflows, one per session."""

    def __init__(self, aggregator: RiskAggregatorService, max_workflows: int = 1000) -> None:
        self._aggregator = aggregator
        self._max_workflows = max_workflows
        self._workflows: OrderedDict[str, SendWorkflow] = OrderedDict()

    def create(self, user_id: str, chain: str = "solana") -> SendWorkflow:
        """Start a new workflow, evicting the oldest when full."""
        workflow_id = uuid4().hex
        workflow = SendWorkflow(user_id, self._aggregator, chain, workflow_id)
        self._workflows[workflow_id] = workflow
        while len(self._workflows) > self._max_workflows:
            evicted, _ = self._workflows.popitem(last=False)
            logger.info(f"[SendWorkflow] Evicted workflow {evicted}")
        return workflow

    def get(self, workflow_id: str) -> SendWorkflow | None:
        """Look up a live workflow."""
        return self._workflows.get(workflow_id)

    def discard(self, workflow_id: str) -> None:
        """Forget a workflow."""
        self._workflows.pop(workflow_id, None)

    def __len__(self) -> int:
        return len(self._workflows)
