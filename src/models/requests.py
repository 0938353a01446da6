"""
Request Models - create/update payloads for contacts, groups and tags.

Pattern: Pydantic for validation at API boundaries (Sinha pp. 193-195)
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.domain import Address, EmailAddress, PhoneNumber


class CreateContact(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
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


class UpdateContact(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    nickname: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    notes: Optional[str] = None


class CreateGroup(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class UpdateGroup(CreateGroup):
    pass


class CreateTag(BaseModel):
    name: str = Field(..., min_length=1)
    color_hex: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
