"""Models Package - domain entities and request payloads."""

from src.models.domain import (
    Address,
    Contact,
    ContactSummary,
    EmailAddress,
    Group,
    Page,
    PhoneNumber,
    Tag,
)
from src.models.requests import (
    CreateContact,
    CreateGroup,
    CreateTag,
    UpdateContact,
    UpdateGroup,
)

__all__ = [
    # Domain
    "Address",
    "Contact",
    "ContactSummary",
    "EmailAddress",
    "Group",
    "Page",
    "PhoneNumber",
    "Tag",
    # Requests
    "CreateContact",
    "CreateGroup",
    "CreateTag",
    "UpdateContact",
    "UpdateGroup",
]
