"""
Persistence interfaces.

The relational store behind these protocols is an external collaborator; the
services depend only on the shapes below. Any object with matching async
methods satisfies them (tests use in-memory fakes).

Pattern: Repository + Unit of Work (Percival & Gregory p. 157)
"""

from typing import Optional, Protocol
from uuid import UUID

from src.models.domain import Contact, Group, Tag


class ContactRepository(Protocol):
    async def get_by_id(self, contact_id: UUID) -> Optional[Contact]: ...

    async def get_with_details(self, contact_id: UUID) -> Optional[Contact]: ...

    async def list_page(self, page_number: int, page_size: int) -> list[Contact]:
        """Contacts ordered by last then first name; ``page_number`` is 1-based."""
        ...

    async def count(self) -> int: ...

    async def search(self, term: str) -> list[Contact]: ...

    async def list_by_group(self, group_id: UUID) -> list[Contact]: ...

    async def list_by_tag(self, tag_id: UUID) -> list[Contact]: ...

    async def add(self, contact: Contact) -> None: ...

    async def update(self, contact: Contact) -> None: ...

    async def delete(self, contact: Contact) -> None: ...


class GroupRepository(Protocol):
    async def get_by_id(self, group_id: UUID) -> Optional[Group]: ...

    async def get_with_contacts(self, group_id: UUID) -> Optional[Group]: ...

    async def list_all(self) -> list[Group]: ...

    async def add(self, group: Group) -> None: ...

    async def update(self, group: Group) -> None: ...

    async def delete(self, group: Group) -> None: ...


class TagRepository(Protocol):
    async def get_by_id(self, tag_id: UUID) -> Optional[Tag]: ...

    async def get_by_name(self, name: str) -> Optional[Tag]: ...

    async def list_all(self) -> list[Tag]: ...

    async def add(self, tag: Tag) -> None: ...

    async def update(self, tag: Tag) -> None: ...

    async def delete(self, tag: Tag) -> None: ...


class UnitOfWork(Protocol):
    """Groups repository changes into one commit."""

    contacts: ContactRepository
    groups: GroupRepository
    tags: TagRepository

    async def save_changes(self) -> int: ...
