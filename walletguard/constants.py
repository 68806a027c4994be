"""Application constants and chain configurations."""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple


class ChainFamily(str, Enum):
    """Address/RPC family a chain belongs to."""

    SOLANA = "solana"
    EVM = "evm"


class ChainConfig(NamedTuple):
    """Configuration for a blockchain network."""

    slug: str
    name: str
    family: ChainFamily
    symbol: str
    decimals: int
    registry_code: str


# Supported blockchains with their configurations
SUPPORTED_CHAINS: dict[str, ChainConfig] = {
    "solana": ChainConfig("solana", "Solana", ChainFamily.SOLANA, "SOL", 9, "SOL"),
    "ethereum": ChainConfig("ethereum", "Ethereum", ChainFamily.EVM, "ETH", 18, "ETH"),
}

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

# Solana public keys are 32 bytes, which is 32-44 base58 characters
SOLANA_ADDRESS_BYTES = 32
SOLANA_ADDRESS_MIN_LENGTH = 32
SOLANA_ADDRESS_MAX_LENGTH = 44


def to_native_units(raw_amount: int, chain: str) -> Decimal:
    """Convert base units (lamports, wei) into the chain's native unit."""
    config = SUPPORTED_CHAINS[chain]
    return Decimal(raw_amount) / (Decimal(10) ** config.decimals)


class Severity(str, Enum):
    """Severity of a single risk factor."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Risk level classification of a verdict."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    BLOCKED = "BLOCKED"
    UNKNOWN = "unknown"


class BlocklistSource(str, Enum):
    """Who created a blocklist entry."""

    MANUAL = "manual"
    AUTO = "auto"


class ReportCategory(str, Enum):
    """Categories offered when reporting a wallet."""

    PHISHING = "Phishing"
    SCAM = "Scam"
    FRAUD = "Fraud"
    OTHERS = "Others"


COMMUNITY_REPORT_LIST_LIMIT = 100


# Score weights, each added at most once per assessment
REPORTED_ADDRESS_WEIGHT = 80
SUSPICIOUS_PATTERN_WEIGHT = 30
NEW_EMPTY_WALLET_WEIGHT = 10
UNVERIFIED_REGISTRY_WEIGHT = 0
BLOCKED_SCORE = 100
INTERNAL_ERROR_SCORE = 50

# Lower bound of each level; scores below MEDIUM are LOW
RISK_THRESHOLDS: dict[RiskLevel, int] = {
    RiskLevel.MEDIUM: 20,
    RiskLevel.HIGH: 50,
    RiskLevel.CRITICAL: 80,
}

# Verdicts at or above this score are unsafe
SAFE_SCORE_LIMIT = 50

# On-chain heuristics
SUSPICIOUS_TX_COUNT = 50
RECENT_SIGNATURE_LIMIT = 10
RECENT_TRANSACTIONS_KEPT = 5
