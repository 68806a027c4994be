"""Tests for address normalization."""

import pytest

from fakes import EVM_ADDRESS, SOL_ADDRESS, SOL_ADDRESS_2
from walletguard.core.exceptions import InvalidAddressFormat, UnsupportedChainError
from walletguard.services.address import (
    extract_address_candidate,
    get_chain_config,
    is_valid_address,
    normalize_address,
    validate_address,
)


class TestExtractAddressCandidate:
    """Tests for pulling an address out of raw input."""

    def test_payment_uri_drops_query(self) -> None:
        """Test that a payment URI yields the part before the query."""
        assert extract_address_candidate("solana:ABC123?amount=1.5&label=x") == "ABC123"

    def test_payment_uri_with_slashes(self) -> None:
        """Test scheme followed by slashes."""
        assert extract_address_candidate(f"solana://{SOL_ADDRESS}?amount=2") == SOL_ADDRESS

    def test_evm_payment_uri_with_chain_id(self) -> None:
        """Test EIP-681 style URI with chain id and function."""
        raw = f"ethereum:{EVM_ADDRESS}@1/transfer?value=1"
        assert extract_address_candidate(raw, "ethereum") == EVM_ADDRESS

    def test_explorer_url(self) -> None:
        """Test that the last path segment of a URL is used."""
        raw = f"https://solscan.io/account/{SOL_ADDRESS}/"
        assert extract_address_candidate(raw) == SOL_ADDRESS

    def test_literal_stripped_to_alphabet(self) -> None:
        """Test that whitespace and foreign characters are removed."""
        assert extract_address_candidate(f"  {SOL_ADDRESS}\n") == SOL_ADDRESS
        assert extract_address_candidate(f"'{SOL_ADDRESS}'") == SOL_ADDRESS

    def test_empty_input(self) -> None:
        """Test that empty input is rejected."""
        with pytest.raises(InvalidAddressFormat):
            extract_address_candidate("   ")

    def test_unsupported_chain(self) -> None:
        """Test unknown chain names."""
        with pytest.raises(UnsupportedChainError):
            extract_address_candidate(SOL_ADDRESS, "dogecoin")


class TestNormalizeAddress:
    """Tests for full normalization."""

    def test_plain_address(self) -> None:
        """Test that a valid address is returned unchanged."""
        assert normalize_address(SOL_ADDRESS) == SOL_ADDRESS

    def test_idempotent(self) -> None:
        """Test that normalizing twice changes nothing."""
        once = normalize_address(f"solana:{SOL_ADDRESS_2}?amount=1")
        assert normalize_address(once) == once

    def test_short_candidate_rejected(self) -> None:
        """Test that a too short candidate from a URI is invalid."""
        with pytest.raises(InvalidAddressFormat):
            normalize_address("solana:ABC123?amount=1")

    def test_non_base58_rejected(self) -> None:
        """Test characters outside base58 in a URI body."""
        with pytest.raises(InvalidAddressFormat):
            normalize_address("solana:0OIl" + "1" * 36)

    def test_wrong_byte_length_rejected(self) -> None:
        """Test a base58 string that does not decode to 32 bytes."""
        with pytest.raises(InvalidAddressFormat):
            validate_address("z" * 44)

    def test_evm_lowercased(self) -> None:
        """Test that EVM addresses are canonicalized to lower case."""
        assert normalize_address(EVM_ADDRESS, "ethereum") == EVM_ADDRESS.lower()

    def test_evm_invalid(self) -> None:
        """Test malformed EVM addresses."""
        with pytest.raises(InvalidAddressFormat):
            normalize_address("0x1234", "ethereum")

    def test_is_valid_address(self) -> None:
        """Test the boolean helper."""
        assert is_valid_address(SOL_ADDRESS)
        assert not is_valid_address("not-an-address")
        assert not is_valid_address(EVM_ADDRESS, "ethereum")
        assert is_valid_address(EVM_ADDRESS.lower(), "ethereum")

    def test_chain_config_case_insensitive(self) -> None:
        """Test chain lookup ignores case."""
        assert get_chain_config("Solana").symbol == "SOL"
