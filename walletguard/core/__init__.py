"""Core module for base interfaces and abstractions."""

from walletguard.core.blocklist import BlocklistStore
from walletguard.core.contacts import TrustedContactStore
from walletguard.core.exceptions import (
    AddressAlreadyBlocked,
    AlreadyReported,
    BlocklistStorageError,
    ContactAlreadyExists,
    ContactNotFound,
    DuplicateEntry,
    InsufficientBalance,
    InternalAssessmentError,
    InvalidAddressFormat,
    RegistryUnavailable,
    RPCUnavailable,
    StorageError,
    TransferFailed,
    TransitionNotAllowed,
    UnsupportedChainError,
    WalletGuardError,
)
from walletguard.core.ledger import LedgerClient, TransferBroadcaster
from walletguard.core.reports import FraudReportStore

__all__ = [
    "AddressAlreadyBlocked",
    "AlreadyReported",
    "BlocklistStorageError",
    "BlocklistStore",
    "ContactAlreadyExists",
    "ContactNotFound",
    "DuplicateEntry",
    "FraudReportStore",
    "InsufficientBalance",
    "InternalAssessmentError",
    "InvalidAddressFormat",
    "LedgerClient",
    "RPCUnavailable",
    "RegistryUnavailable",
    "StorageError",
    "TransferBroadcaster",
    "TransferFailed",
    "TransitionNotAllowed",
    "TrustedContactStore",
    "UnsupportedChainError",
    "WalletGuardError",
]
