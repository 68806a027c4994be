"""Recipient address normalization and validation."""

import re
from urllib.parse import urlsplit

import base58

from walletguard.constants import (
    BASE58_ALPHABET,
    SOLANA_ADDRESS_BYTES,
    SOLANA_ADDRESS_MAX_LENGTH,
    SOLANA_ADDRESS_MIN_LENGTH,
    SUPPORTED_CHAINS,
    ChainConfig,
    ChainFamily,
)
from walletguard.core.exceptions import InvalidAddressFormat, UnsupportedChainError

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):(.*)$", re.DOTALL)
_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_EVM_ALPHABET = set("0123456789abcdefABCDEFxX")


def get_chain_config(chain: str) -> ChainConfig:
    """Get chain configuration or raise error."""
    config = SUPPORTED_CHAINS.get(chain.lower())
    if config is None:
        raise UnsupportedChainError(chain)
    return config


def _from_payment_uri(body: str) -> str:
    """Address part of ``scheme:address[@chain][/fn][?query][#frag]``."""
    body = body.lstrip("/")
    for separator in ("?", "#", "/", "@"):
        body = body.split(separator, 1)[0]
    return body.strip()


def _from_url(raw: str) -> str | None:
    """Last non-empty path segment of a URL, if any."""
    segments = [segment for segment in urlsplit(raw).path.split("/") if segment]
    return segments[-1] if segments else None


def _strip_to_alphabet(raw: str, family: ChainFamily) -> str:
    allowed = set(BASE58_ALPHABET) if family == ChainFamily.SOLANA else _EVM_ALPHABET
    return "".join(ch for ch in raw if ch in allowed)


def extract_address_candidate(raw: str, chain: str = "solana") -> str:
    """
    Pull the address candidate out of user input without validating it.

    Handles three shapes: a payment URI (``solana:<address>?amount=...``),
    an http(s) URL whose last path segment is the address, and a literal
    address, which is stripped to the chain's alphabet.

    Raises:
        InvalidAddressFormat: If the input is empty.
        UnsupportedChainError: If the chain is unknown.
    """
    config = get_chain_config(chain)
    text = str(raw or "").strip()
    if not text:
        raise InvalidAddressFormat(text, config.slug, "address is empty")

    if _URL_RE.match(text):
        segment = _from_url(text)
        if segment:
            return segment
    else:
        match = _SCHEME_RE.match(text)
        if match:
            return _from_payment_uri(match.group(2))

    return _strip_to_alphabet(text, config.family)


def validate_address(candidate: str, chain: str = "solana") -> str:
    """
    Check a candidate against the chain's address rules.

    Returns:
        The canonical address (EVM addresses are lower-cased).

    Raises:
        InvalidAddressFormat: If the candidate does not decode.
    """
    config = get_chain_config(chain)

    if config.family == ChainFamily.EVM:
        if not _EVM_ADDRESS_RE.match(candidate):
            raise InvalidAddressFormat(candidate, config.slug, "expected 0x and 40 hex characters")
        return candidate.lower()

    if not SOLANA_ADDRESS_MIN_LENGTH <= len(candidate) <= SOLANA_ADDRESS_MAX_LENGTH:
        raise InvalidAddressFormat(
            candidate, config.slug, f"expected {SOLANA_ADDRESS_MIN_LENGTH}-{SOLANA_ADDRESS_MAX_LENGTH} characters"
        )
    try:
        decoded = base58.b58decode(candidate)
    except ValueError as e:
        raise InvalidAddressFormat(candidate, config.slug, "not valid base58") from e
    if len(decoded) != SOLANA_ADDRESS_BYTES:
        raise InvalidAddressFormat(
            candidate, config.slug, f"decodes to {len(decoded)} bytes, expected {SOLANA_ADDRESS_BYTES}"
        )
    return candidate


def normalize_address(raw: str, chain: str = "solana") -> str:
    """
    Turn raw user input into a validated address.

    Args:
        raw: Address, payment URI or URL as typed or scanned by the user.
        chain: Target chain.

    Returns:
        The validated address.

    Raises:
        InvalidAddressFormat: If no valid address can be derived.
        UnsupportedChainError: If the chain is unknown.
    """
    return validate_address(extract_address_candidate(raw, chain), chain)


def is_valid_address(address: str, chain: str = "solana") -> bool:
    """Check whether a string already is a valid address."""
    try:
        return validate_address(address, chain) == address
    except InvalidAddressFormat:
        return False
