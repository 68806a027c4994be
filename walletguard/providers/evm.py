"""EVM (Ethereum-compatible) ledger client."""

import logging
from decimal import Decimal
from typing import Any

import rlp
from eth_account import Account
from eth_account.typed_transactions import TypedTransaction
from hexbytes import HexBytes

from walletguard.constants import to_native_units
from walletguard.core.exceptions import TransferFailed
from walletguard.core.ledger import LedgerClient
from walletguard.models.workflow import DecodedTransfer
from walletguard.providers.jsonrpc import JSONRPCClient, JSONRPCError, redact_endpoint

logger = logging.getLogger(__name__)


def _hex_address(value: Any) -> str:
    raw = bytes(HexBytes(value or b""))
    if len(raw) != 20:
        raise TransferFailed("Transaction has no recipient (contract creation)")
    return "0x" + raw.hex()


def decode_native_transfer(signed_transaction: str) -> tuple[str, str, int]:
    """
    Extract (sender, recipient, wei) from a raw signed transaction.

    Handles legacy and typed (EIP-2718) envelopes. Transactions carrying
    call data are rejected; only plain value transfers pass.
    """
    try:
        raw = HexBytes(signed_transaction)
        if raw and raw[0] <= 0x7F:
            fields = TypedTransaction.from_bytes(raw).as_dict()
            to, value, data = fields["to"], int(fields["value"]), bytes(fields.get("data") or b"")
        else:
            _, _, _, to, value, data, *_ = rlp.decode(bytes(raw))
            value = int.from_bytes(value, "big")
        sender = Account.recover_transaction(raw)
    except TransferFailed:
        raise
    except Exception as e:
        raise TransferFailed(f"Malformed EVM transaction: {e}") from e

    if data:
        raise TransferFailed("Transaction carries call data; only plain transfers are supported")
    return sender.lower(), _hex_address(to), value


class EVMLedgerClient(LedgerClient):
    """
    Ethereum JSON-RPC client.

    Standard EVM nodes expose no per-address history, so the activity count
    is the account nonce and no transaction references are returned.
    """

    def __init__(self, rpc: JSONRPCClient, chain: str = "ethereum") -> None:
        self._rpc = rpc
        self._chain = chain

    @property
    def name(self) -> str:
        """Client name identifier."""
        return "evm_rpc"

    @property
    def chain(self) -> str:
        """Chain slug this client talks to."""
        return self._chain

    @property
    def last_endpoint(self) -> str | None:
        if self._rpc.last_endpoint is None:
            return None
        return redact_endpoint(self._rpc.last_endpoint)

    async def get_balance(self, address: str) -> Decimal:
        """Fetch balance in ether."""
        result = await self._rpc.call("eth_getBalance", [address, "latest"])
        return to_native_units(int(result, 16), self._chain)

    async def get_recent_signatures(self, address: str, limit: int) -> list[str]:
        return []

    async def get_activity(self, address: str, limit: int) -> tuple[list[str], int]:
        """No refs; the count is the number of transactions sent (nonce)."""
        result = await self._rpc.call("eth_getTransactionCount", [address, "latest"])
        return [], int(result, 16)

    async def send_raw_transaction(self, signed_transaction: str) -> str:
        """Broadcast a hex encoded, wallet-signed transaction."""
        try:
            tx_hash = await self._rpc.call(
                "eth_sendRawTransaction",
                [signed_transaction],
                fallback_on_rpc_error=False,
            )
        except JSONRPCError as e:
            logger.error(f"[EVMRPC] Transaction rejected: {e.message}")
            raise TransferFailed(f"Transaction rejected: {e.message}") from e
        return str(tx_hash)

    def decode_transfer(self, signed_transaction: str) -> DecodedTransfer:
        """Decode the value transfer inside a raw signed transaction."""
        sender, recipient, wei = decode_native_transfer(signed_transaction)
        return DecodedTransfer(
            sender=sender,
            recipient=recipient,
            amount=to_native_units(wei, self._chain),
        )

    async def health_check(self) -> dict[str, Any]:
        """Check that at least one endpoint returns a block number."""
        try:
            block = await self._rpc.call("eth_blockNumber", [])
            return {
                "status": "healthy",
                "provider": self.name,
                "endpoint": self.last_endpoint,
                "block": int(block, 16),
            }
        except Exception as e:
            logger.error(f"[EVMRPC] Health check failed: {e}")
            return {"status": "unhealthy", "provider": self.name, "error": str(e)}

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._rpc.close()
