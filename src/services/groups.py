"""Group Service - group CRUD with span and counter instrumentation."""

import logging
from typing import Optional
from uuid import UUID, uuid4

from src.models.domain import Group
from src.models.requests import CreateGroup, UpdateGroup
from src.observability import conventions as tc
from src.observability.instrumentation import (
    InstrumentationRegistry,
    ServiceInstrumentation,
    mark_not_found,
)
from src.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, unit_of_work: UnitOfWork, registry: InstrumentationRegistry) -> None:
        self._uow = unit_of_work
        self._telemetry = ServiceInstrumentation(registry, tc.GROUP_SERVICE)

        self._created = self._telemetry.counter(
            tc.GROUPS_CREATED, "Number of groups created"
        )
        self._deleted = self._telemetry.counter(
            tc.GROUPS_DELETED, "Number of groups deleted"
        )

    async def get_by_id(self, group_id: UUID) -> Optional[Group]:
        with self._telemetry.operation("GetGroupById", **{tc.GROUP_ID: group_id}) as span:
            group = await self._uow.groups.get_with_contacts(group_id)
            if group is None:
                logger.warning("Group not found: %s", group_id)
                mark_not_found(span, "Group not found")
                return None

            span.set_attribute(tc.CONTACT_COUNT, group.contact_count)
            return group

    async def list_all(self) -> list[Group]:
        with self._telemetry.operation("GetAllGroups") as span:
            groups = await self._uow.groups.list_all()
            results = []
            for group in groups:
                detailed = await self._uow.groups.get_with_contacts(group.id)
                results.append(detailed or group)

            span.set_attribute(tc.RESULT_COUNT, len(results))
            return results

    async def create(self, payload: CreateGroup) -> Group:
        with self._telemetry.operation("CreateGroup") as span:
            group = Group(id=uuid4(), name=payload.name, description=payload.description)
            span.set_attribute(tc.GROUP_ID, str(group.id))

            await self._uow.groups.add(group)
            await self._uow.save_changes()

            self._created.add(1)
            logger.info("Group created: %s (%s)", group.name, group.id)
            return group

    async def update(self, group_id: UUID, payload: UpdateGroup) -> Optional[Group]:
        with self._telemetry.operation("UpdateGroup", **{tc.GROUP_ID: group_id}) as span:
            group = await self._uow.groups.get_by_id(group_id)
            if group is None:
                mark_not_found(span, "Group not found")
                return None

            updated = group.model_copy(
                update={"name": payload.name, "description": payload.description}
            )
            await self._uow.groups.update(updated)
            await self._uow.save_changes()
            return updated

    async def delete(self, group_id: UUID) -> bool:
        with self._telemetry.operation("DeleteGroup", **{tc.GROUP_ID: group_id}) as span:
            group = await self._uow.groups.get_by_id(group_id)
            if group is None:
                mark_not_found(span, "Group not found")
                return False

            await self._uow.groups.delete(group)
            await self._uow.save_changes()

            self._deleted.add(1)
            logger.info("Group deleted: %s", group_id)
            return True
