"""
Contact Service

Application service for contacts. Every public operation runs inside a span
named after the operation; searches, creations and deletions also feed the
service's counters and the search duration histogram.

Lookups that miss return None and flag the span as errored; exceptions from
the persistence layer are recorded on the span and propagated unchanged.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from src.models.domain import Contact, ContactSummary, Page
from src.models.requests import CreateContact, UpdateContact
from src.observability import conventions as tc
from src.observability.instrumentation import (
    InstrumentationRegistry,
    ServiceInstrumentation,
    mark_not_found,
)
from src.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


class ContactService:
    """
    Contact operations with span and metric instrumentation.

    Metric instruments are created once here and shared by all calls.
    """

    def __init__(self, unit_of_work: UnitOfWork, registry: InstrumentationRegistry) -> None:
        self._uow = unit_of_work
        self._telemetry = ServiceInstrumentation(registry, tc.CONTACT_SERVICE)

        self._created = self._telemetry.counter(
            tc.CONTACTS_CREATED, "Number of contacts created"
        )
        self._deleted = self._telemetry.counter(
            tc.CONTACTS_DELETED, "Number of contacts deleted"
        )
        self._searches = self._telemetry.counter(
            tc.CONTACT_SEARCHES, "Number of contact searches performed"
        )
        self._search_duration = self._telemetry.histogram(
            tc.CONTACT_SEARCH_DURATION, "Duration of contact searches", unit="ms"
        )

    async def get_by_id(self, contact_id: UUID) -> Optional[Contact]:
        with self._telemetry.operation(
            "GetContactById", **{tc.CONTACT_ID: contact_id}
        ) as span:
            logger.info("Getting contact by ID: %s", contact_id)
            contact = await self._uow.contacts.get_by_id(contact_id)
            if contact is None:
                logger.warning("Contact not found: %s", contact_id)
                mark_not_found(span, "Contact not found")
            return contact

    async def get_with_details(self, contact_id: UUID) -> Optional[Contact]:
        with self._telemetry.operation(
            "GetContactWithDetails", **{tc.CONTACT_ID: contact_id}
        ) as span:
            logger.info("Getting contact with details: %s", contact_id)
            contact = await self._uow.contacts.get_with_details(contact_id)
            if contact is None:
                logger.warning("Contact not found: %s", contact_id)
                mark_not_found(span, "Contact not found")
                return None

            span.set_attribute(tc.EMAIL_COUNT, len(contact.email_addresses))
            span.set_attribute(tc.PHONE_COUNT, len(contact.phone_numbers))
            span.set_attribute(tc.ADDRESS_COUNT, len(contact.addresses))
            return contact

    async def get_paginated(self, page_number: int, page_size: int) -> Page[ContactSummary]:
        with self._telemetry.operation(
            "GetContactsPaginated",
            **{tc.PAGE_NUMBER: page_number, tc.PAGE_SIZE: page_size},
        ) as span:
            logger.info(
                "Getting paginated contacts: Page %d, Size %d", page_number, page_size
            )
            total_count = await self._uow.contacts.count()
            span.set_attribute(tc.TOTAL_COUNT, total_count)

            contacts = await self._uow.contacts.list_page(page_number, page_size)
            items = [ContactSummary.from_contact(c) for c in contacts]
            span.set_attribute(tc.RESULT_COUNT, len(items))
            return Page[ContactSummary](
                items=items,
                total_count=total_count,
                page_number=page_number,
                page_size=page_size,
            )

    async def search(self, term: str) -> list[ContactSummary]:
        with self._telemetry.operation(
            "SearchContacts", **{tc.SEARCH_TERM: term}
        ) as span:
            started = time.perf_counter()
            logger.info("Searching contacts with term: %s", term)

            contacts = await self._uow.contacts.search(term)
            results = [ContactSummary.from_contact(c) for c in contacts]

            duration_ms = (time.perf_counter() - started) * 1000
            span.set_attribute(tc.RESULT_COUNT, len(results))
            self._searches.add(1, {tc.RESULT_COUNT: len(results)})
            self._search_duration.record(duration_ms)

            logger.info(
                "Search completed: Found %d contacts in %.2fms", len(results), duration_ms
            )
            return results

    async def create(self, payload: CreateContact) -> Contact:
        with self._telemetry.operation("CreateContact") as span:
            logger.info(
                "Creating new contact: %s %s", payload.first_name, payload.last_name
            )
            try:
                contact = Contact(id=uuid4(), **payload.model_dump())
                span.set_attribute(tc.CONTACT_ID, str(contact.id))
                if contact.company:
                    span.set_attribute(tc.CONTACT_COMPANY, contact.company)

                await self._uow.contacts.add(contact)
                await self._uow.save_changes()
            except Exception:
                logger.exception("Error creating contact")
                raise

            self._created.add(1, {tc.HAS_COMPANY: bool(contact.company)})
            logger.info("Contact created successfully: %s", contact.id)
            return contact

    async def update(self, contact_id: UUID, payload: UpdateContact) -> Optional[Contact]:
        with self._telemetry.operation(
            "UpdateContact", **{tc.CONTACT_ID: contact_id}
        ) as span:
            logger.info("Updating contact: %s", contact_id)
            contact = await self._uow.contacts.get_by_id(contact_id)
            if contact is None:
                logger.warning("Contact not found for update: %s", contact_id)
                mark_not_found(span, "Contact not found")
                return None

            updated = contact.model_copy(
                update={**payload.model_dump(), "updated_at": datetime.now(timezone.utc)}
            )
            await self._uow.contacts.update(updated)
            await self._uow.save_changes()

            logger.info("Contact updated successfully: %s", contact_id)
            return updated

    async def delete(self, contact_id: UUID) -> bool:
        with self._telemetry.operation(
            "DeleteContact", **{tc.CONTACT_ID: contact_id}
        ) as span:
            logger.info("Deleting contact: %s", contact_id)
            contact = await self._uow.contacts.get_by_id(contact_id)
            if contact is None:
                logger.warning("Contact not found for deletion: %s", contact_id)
                mark_not_found(span, "Contact not found")
                return False

            await self._uow.contacts.delete(contact)
            await self._uow.save_changes()

            self._deleted.add(1)
            logger.info("Contact deleted successfully: %s", contact_id)
            return True

    async def list_by_group(self, group_id: UUID) -> list[ContactSummary]:
        with self._telemetry.operation(
            "GetContactsByGroup", **{tc.GROUP_ID: group_id}
        ) as span:
            logger.info("Getting contacts by group: %s", group_id)
            contacts = await self._uow.contacts.list_by_group(group_id)
            results = [ContactSummary.from_contact(c) for c in contacts]

            span.set_attribute(tc.RESULT_COUNT, len(results))
            logger.info("Found %d contacts in group %s", len(results), group_id)
            return results

    async def list_by_tag(self, tag_id: UUID) -> list[ContactSummary]:
        with self._telemetry.operation(
            "GetContactsByTag", **{tc.TAG_ID: tag_id}
        ) as span:
            logger.info("Getting contacts by tag: %s", tag_id)
            contacts = await self._uow.contacts.list_by_tag(tag_id)
            results = [ContactSummary.from_contact(c) for c in contacts]

            span.set_attribute(tc.RESULT_COUNT, len(results))
            logger.info("Found %d contacts with tag %s", len(results), tag_id)
            return results
