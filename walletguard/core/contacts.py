"""Abstract trusted contact store interface."""

import logging
from abc import ABC, abstractmethod

from walletguard.core.exceptions import ContactNotFound, StorageError
from walletguard.models.blocklist import utcnow
from walletguard.models.contacts import TrustedContact

logger = logging.getLogger(__name__)


class TrustedContactStore(ABC):
    """
    Abstract base class for per-user trusted contact persistence.

    An address appears at most once per user. Primitives raise StorageError
    when the backend fails.
    """

    @abstractmethod
    async def list_contacts(self, user_id: str) -> list[TrustedContact]:
        """
        Load every contact of a user, oldest first.

        Args:
            user_id: Owner of the contact list.
        """
        ...

    @abstractmethod
    async def insert_contact(self, user_id: str, contact: TrustedContact) -> None:
        """
        Insert a contact.

        Raises:
            ContactAlreadyExists: If the address is already saved.
        """
        ...

    @abstractmethod
    async def replace_contact(self, user_id: str, contact: TrustedContact) -> bool:
        """
        Overwrite an existing contact.

        Returns:
            False if no contact with that address exists.
        """
        ...

    @abstractmethod
    async def delete_contact(self, user_id: str, address: str) -> bool:
        """
        Delete a contact.

        Returns:
            True if a contact was removed.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the storage connection."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check if the backend is reachable."""
        ...

    async def get_contact(self, user_id: str, address: str) -> TrustedContact | None:
        """Get the contact saved for an address."""
        for contact in await self.list_contacts(user_id):
            if contact.address == address:
                return contact
        return None

    async def is_trusted(self, user_id: str, address: str) -> bool:
        """Check if an address is a trusted contact. Storage errors count as not trusted."""
        try:
            return await self.get_contact(user_id, address) is not None
        except StorageError as e:
            logger.warning(f"[Contacts] Lookup failed for user {user_id}: {e.message}")
            return False

    async def add_contact(
        self, user_id: str, address: str, name: str, notes: str = ""
    ) -> TrustedContact:
        """
        Save an address under a name.

        Raises:
            ContactAlreadyExists: If the address is already saved.
        """
        contact = TrustedContact(address=address, name=name.strip(), notes=notes.strip())
        await self.insert_contact(user_id, contact)
        logger.info(f"[Contacts] {address[:8]}... saved as '{contact.name}' by user {user_id}")
        return contact

    async def update_contact(
        self,
        user_id: str,
        address: str,
        name: str | None = None,
        notes: str | None = None,
    ) -> TrustedContact:
        """
        Rename a contact or edit its notes.

        Raises:
            ContactNotFound: If the address is not saved.
        """
        current = await self.get_contact(user_id, address)
        if current is None:
            raise ContactNotFound(address)

        changes: dict[str, object] = {"updated_at": utcnow()}
        if name is not None:
            changes["name"] = name.strip()
        if notes is not None:
            changes["notes"] = notes.strip()
        updated = current.model_copy(update=changes)

        if not await self.replace_contact(user_id, updated):
            raise ContactNotFound(address)
        return updated

    async def remove_contact(self, user_id: str, address: str) -> None:
        """Remove a contact. Absent contacts are ignored."""
        if await self.delete_contact(user_id, address):
            logger.info(f"[Contacts] {address[:8]}... removed by user {user_id}")
