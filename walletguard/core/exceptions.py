"""Custom exceptions for WalletGuard."""


class WalletGuardError(Exception):
    """Base exception for all WalletGuard errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or "WALLETGUARD_ERROR"
        super().__init__(self.message)


class InvalidAddressFormat(WalletGuardError):
    """Raised when an input cannot be turned into a valid address."""

    def __init__(self, raw: str, chain: str, reason: str | None = None) -> None:
        self.raw = raw
        self.chain = chain
        message = f"Invalid {chain} address format"
        if reason:
            message += f": {reason}"
        super().__init__(message, "INVALID_ADDRESS_FORMAT")


class UnsupportedChainError(WalletGuardError):
    """Raised when an unsupported blockchain is requested."""

    def __init__(self, chain: str) -> None:
        self.chain = chain
        super().__init__(f"Unsupported blockchain: {chain}", "UNSUPPORTED_CHAIN")


class RegistryUnavailable(WalletGuardError):
    """Raised inside the registry client when the registry cannot be used."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message, "REGISTRY_UNAVAILABLE")


class RPCUnavailable(WalletGuardError):
    """Raised when no ledger RPC endpoint answered a call."""

    def __init__(self, method: str, errors: list[str] | None = None) -> None:
        self.method = method
        self.errors = errors or []
        message = f"All RPC endpoints failed for {method}"
        if self.errors:
            message += f" ({'; '.join(self.errors)})"
        super().__init__(message, "RPC_UNAVAILABLE")


class StorageError(WalletGuardError):
    """Raised when user data persistence fails."""

    def __init__(
        self, message: str, operation: str | None = None, code: str = "STORAGE_ERROR"
    ) -> None:
        self.operation = operation
        super().__init__(message, code)


class BlocklistStorageError(StorageError):
    """Raised when blocklist persistence fails."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message, operation, "BLOCKLIST_STORAGE_ERROR")


class DuplicateEntry(WalletGuardError):
    """Raised when a unique entry already exists."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "DUPLICATE_ENTRY")


class AddressAlreadyBlocked(DuplicateEntry):
    """Raised when an address is already in the user's blocklist."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Address {address} is already in blocklist")
        self.code = "ADDRESS_ALREADY_BLOCKED"


class ContactAlreadyExists(DuplicateEntry):
    """Raised when an address is already a trusted contact."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Address {address} already exists in trusted contacts")
        self.code = "CONTACT_ALREADY_EXISTS"


class ContactNotFound(WalletGuardError):
    """Raised when updating a contact that does not exist."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Address {address} is not a trusted contact", "CONTACT_NOT_FOUND")


class AlreadyReported(DuplicateEntry):
    """Raised when a reporter files a second report for the same address."""

    def __init__(self, address: str, reporter: str) -> None:
        self.address = address
        self.reporter = reporter
        super().__init__("You have already reported this wallet address.")
        self.code = "ALREADY_REPORTED"


class InsufficientBalance(WalletGuardError):
    """Raised when the source wallet cannot cover the amount."""

    def __init__(self, requested: object, available: object, symbol: str) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient balance. Available: {available} {symbol}",
            "INSUFFICIENT_BALANCE",
        )


class TransferFailed(WalletGuardError):
    """Raised when broadcasting a transfer fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "TRANSFER_FAILED")


class InternalAssessmentError(WalletGuardError):
    """Unexpected fault inside the risk aggregator."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "INTERNAL_ASSESSMENT_ERROR")


class TransitionNotAllowed(WalletGuardError):
    """Raised when a send workflow step is attempted out of order."""

    def __init__(self, action: str, state: str, reason: str | None = None) -> None:
        self.action = action
        self.state = state
        message = f"Cannot {action} while in state {state}"
        if reason:
            message += f": {reason}"
        super().__init__(message, "TRANSITION_NOT_ALLOWED")
