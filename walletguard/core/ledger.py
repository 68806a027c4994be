"""Abstract ledger client and transfer broadcaster interfaces."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

from walletguard.models.workflow import DecodedTransfer, TransferRequest


class LedgerClient(ABC):
    """Abstract base class for ledger RPC access."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Client name identifier."""
        ...

    @property
    @abstractmethod
    def chain(self) -> str:
        """Chain slug this client talks to."""
        ...

    @property
    def last_endpoint(self) -> str | None:
        """Endpoint that answered the most recent call, if tracked."""
        return None

    @abstractmethod
    async def get_balance(self, address: str) -> Decimal:
        """
        Fetch the current balance of an address.

        Args:
            address: Validated address.

        Returns:
            Balance in native units (SOL, ETH).

        Raises:
            RPCUnavailable: If no endpoint answered.
        """
        ...

    @abstractmethod
    async def get_recent_signatures(self, address: str, limit: int) -> list[str]:
        """
        Fetch references to the most recent transactions of an address.

        Args:
            address: Validated address.
            limit: Maximum number of references to return.

        Raises:
            RPCUnavailable: If no endpoint answered.
        """
        ...

    async def get_activity(self, address: str, limit: int) -> tuple[list[str], int]:
        """Recent transaction refs and the activity count used by heuristics."""
        refs = await self.get_recent_signatures(address, limit)
        return refs, len(refs)

    @abstractmethod
    async def send_raw_transaction(self, signed_transaction: str) -> str:
        """
        Broadcast an already signed transaction.

        Returns:
            Transaction reference (signature or hash).

        Raises:
            TransferFailed: If the ledger rejected the transaction.
            RPCUnavailable: If no endpoint answered.
        """
        ...

    @abstractmethod
    def decode_transfer(self, signed_transaction: str) -> DecodedTransfer:
        """
        Read the native transfer a signed payload would perform.

        Args:
            signed_transaction: Payload as accepted by send_raw_transaction.

        Raises:
            TransferFailed: If the payload is malformed or is not a plain
                native transfer between two accounts.
        """
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Report endpoint reachability."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the client and release resources."""
        ...


class TransferBroadcaster(ABC):
    """Sends a transfer the workflow has authorized."""

    @abstractmethod
    async def broadcast(self, request: TransferRequest) -> str:
        """
        Send the transfer.

        Returns:
            Transaction reference.

        Raises:
            TransferFailed: If the transfer could not be sent.
        """
        ...
