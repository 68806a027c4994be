"""In-memory trusted contact store implementation."""

import asyncio

from walletguard.core.contacts import TrustedContactStore
from walletguard.core.exceptions import ContactAlreadyExists
from walletguard.models.contacts import TrustedContact


class MemoryContactStore(TrustedContactStore):
    """In-memory contact store. For development/testing only."""

    def __init__(self) -> None:
        self._contacts: dict[str, dict[str, TrustedContact]] = {}
        self._lock = asyncio.Lock()

    async def list_contacts(self, user_id: str) -> list[TrustedContact]:
        async with self._lock:
            return [c.model_copy(deep=True) for c in self._contacts.get(user_id, {}).values()]

    async def insert_contact(self, user_id: str, contact: TrustedContact) -> None:
        async with self._lock:
            contacts = self._contacts.setdefault(user_id, {})
            if contact.address in contacts:
                raise ContactAlreadyExists(contact.address)
            contacts[contact.address] = contact.model_copy(deep=True)

    async def replace_contact(self, user_id: str, contact: TrustedContact) -> bool:
        async with self._lock:
            contacts = self._contacts.get(user_id, {})
            if contact.address not in contacts:
                return False
            contacts[contact.address] = contact.model_copy(deep=True)
            return True

    async def delete_contact(self, user_id: str, address: str) -> bool:
        async with self._lock:
            return self._contacts.get(user_id, {}).pop(address, None) is not None

    async def close(self) -> None:
        """Clear the in-memory store."""
        async with self._lock:
            self._contacts.clear()

    async def ping(self) -> bool:
        """Memory store is always available."""
        return True
