"""
Domain Models - contacts, groups and tags.

Persistence of these entities is provided by an external collaborator (see
src/repositories/base.py); the services only read the fields that feed span
attributes and metrics.

Pattern: Pydantic for validation at API boundaries (Sinha pp. 193-195)
"""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailAddress(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    type: str = "Personal"
    is_primary: bool = False


class PhoneNumber(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    number: str
    type: str = "Mobile"
    is_primary: bool = False


class Address(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    street_line1: str
    street_line2: Optional[str] = None
    city: str
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country: str
    type: str = "Home"
    is_primary: bool = False


class Contact(BaseModel):
    """
    A person in the address book.

    Attributes:
        group_ids: Groups the contact belongs to.
        tag_ids: Tags attached to the contact.
    """

    id: UUID = Field(default_factory=uuid4)
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    nickname: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    notes: Optional[str] = None
    email_addresses: list[EmailAddress] = Field(default_factory=list)
    phone_numbers: list[PhoneNumber] = Field(default_factory=list)
    addresses: list[Address] = Field(default_factory=list)
    group_ids: list[UUID] = Field(default_factory=list)
    tag_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ContactSummary(BaseModel):
    """List view of a contact."""

    id: UUID
    first_name: str
    last_name: str
    company: Optional[str] = None
    primary_email: Optional[str] = None
    primary_phone: Optional[str] = None

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactSummary":
        email = next(
            (e.email for e in contact.email_addresses if e.is_primary),
            contact.email_addresses[0].email if contact.email_addresses else None,
        )
        phone = next(
            (p.number for p in contact.phone_numbers if p.is_primary),
            contact.phone_numbers[0].number if contact.phone_numbers else None,
        )
        return cls(
            id=contact.id,
            first_name=contact.first_name,
            last_name=contact.last_name,
            company=contact.company,
            primary_email=email,
            primary_phone=phone,
        )


class Group(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    description: Optional[str] = None
    contact_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class Tag(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    color_hex: Optional[str] = None


class Page(BaseModel, Generic[T]):
    """One page of a paginated listing."""

    items: list[T]
    total_count: int
    page_number: int
    page_size: int
