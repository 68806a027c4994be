"""Solana ledger client."""

import base64
import logging
from decimal import Decimal
from typing import Any

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import VersionedTransaction

from walletguard.constants import to_native_units
from walletguard.core.exceptions import TransferFailed
from walletguard.core.ledger import LedgerClient
from walletguard.models.workflow import DecodedTransfer
from walletguard.providers.jsonrpc import JSONRPCClient, JSONRPCError, redact_endpoint

logger = logging.getLogger(__name__)

COMPUTE_BUDGET_PROGRAM_ID = Pubkey.from_string("ComputeBudget111111111111111111111111111111")
SYSTEM_TRANSFER_INSTRUCTION = 2


def decode_system_transfer(signed_transaction: str) -> tuple[str, str, int]:
    """
    Extract (sender, recipient, lamports) from a base64 transaction.

    Only system program transfers between one pair of accounts are
    accepted, optionally alongside compute budget instructions.
    """
    try:
        tx = VersionedTransaction.from_bytes(base64.b64decode(signed_transaction, validate=True))
    except Exception as e:
        raise TransferFailed(f"Malformed Solana transaction: {e}") from e

    message = tx.message
    keys = list(message.account_keys)
    pair: tuple[str, str] | None = None
    lamports = 0

    for ix in message.instructions:
        indexes = [ix.program_id_index, *ix.accounts]
        if any(index >= len(keys) for index in indexes):
            raise TransferFailed("Transaction references accounts outside its message")
        program = keys[ix.program_id_index]
        if program == COMPUTE_BUDGET_PROGRAM_ID:
            continue
        data = bytes(ix.data)
        if (
            program != SYSTEM_PROGRAM_ID
            or len(data) != 12
            or int.from_bytes(data[:4], "little") != SYSTEM_TRANSFER_INSTRUCTION
            or len(ix.accounts) < 2
        ):
            raise TransferFailed("Transaction is not a plain SOL transfer")
        accounts = list(ix.accounts)
        current = (str(keys[accounts[0]]), str(keys[accounts[1]]))
        if pair is not None and current != pair:
            raise TransferFailed("Transaction moves funds between more than one pair of accounts")
        pair = current
        lamports += int.from_bytes(data[4:], "little")

    if pair is None:
        raise TransferFailed("Transaction contains no SOL transfer")
    return pair[0], pair[1], lamports


class SolanaLedgerClient(LedgerClient):
    """Solana JSON-RPC client with endpoint fallback."""

    def __init__(self, rpc: JSONRPCClient, commitment: str = "confirmed") -> None:
        """
        Initialize the Solana client.

        Args:
            rpc: Transport over the configured endpoints.
            commitment: Commitment level used for reads.
        """
        self._rpc = rpc
        self._commitment = commitment

    @property
    def name(self) -> str:
        """Client name identifier."""
        return "solana_rpc"

    @property
    def chain(self) -> str:
        """Chain slug this client talks to."""
        return "solana"

    @property
    def last_endpoint(self) -> str | None:
        """Endpoint that served the latest call, without credentials."""
        if self._rpc.last_endpoint is None:
            return None
        return redact_endpoint(self._rpc.last_endpoint)

    async def get_balance(self, address: str) -> Decimal:
        """Fetch balance in SOL."""
        result = await self._rpc.call(
            "getBalance", [address, {"commitment": self._commitment}]
        )
        lamports = result.get("value", 0) if isinstance(result, dict) else result
        return to_native_units(int(lamports or 0), self.chain)

    async def get_recent_signatures(self, address: str, limit: int) -> list[str]:
        """Fetch the newest transaction signatures of an address."""
        result = await self._rpc.call(
            "getSignaturesForAddress", [address, {"limit": limit}]
        )
        return [
            item["signature"]
            for item in result or []
            if isinstance(item, dict) and item.get("signature")
        ]

    async def send_raw_transaction(self, signed_transaction: str) -> str:
        """Broadcast a base64 encoded, wallet-signed transaction."""
        try:
            signature = await self._rpc.call(
                "sendTransaction",
                [signed_transaction, {"encoding": "base64"}],
                fallback_on_rpc_error=False,
            )
        except JSONRPCError as e:
            logger.error(f"[SolanaRPC] Transaction rejected: {e.message}")
            raise TransferFailed(f"Transaction rejected: {e.message}") from e
        logger.info(f"[SolanaRPC] Transaction sent: {str(signature)[:16]}...")
        return str(signature)

    def decode_transfer(self, signed_transaction: str) -> DecodedTransfer:
        """Decode the SOL transfer inside a base64 transaction."""
        sender, recipient, lamports = decode_system_transfer(signed_transaction)
        return DecodedTransfer(
            sender=sender,
            recipient=recipient,
            amount=to_native_units(lamports, self.chain),
        )

    async def health_check(self) -> dict[str, Any]:
        """Check that at least one endpoint answers getHealth."""
        try:
            result = await self._rpc.call("getHealth", [])
            return {
                "status": "healthy" if result == "ok" else "degraded",
                "provider": self.name,
                "endpoint": self.last_endpoint,
                "request_count": self._rpc.get_request_count(),
            }
        except Exception as e:
            logger.error(f"[SolanaRPC] Health check failed: {e}")
            return {
                "status": "unhealthy",
                "provider": self.name,
                "request_count": self._rpc.get_request_count(),
                "error": str(e),
            }

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._rpc.close()
