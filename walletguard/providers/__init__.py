"""External data providers package."""

from walletguard.providers.chainabuse import AbuseRegistryClient
from walletguard.providers.evm import EVMLedgerClient
from walletguard.providers.jsonrpc import JSONRPCClient
from walletguard.providers.solana import SolanaLedgerClient

__all__ = [
    "AbuseRegistryClient",
    "EVMLedgerClient",
    "JSONRPCClient",
    "SolanaLedgerClient",
]
