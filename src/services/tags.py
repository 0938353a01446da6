"""
Tag Service

Tag names are unique. Creating or renaming a tag onto an existing name raises
ConflictError; the span is marked as errored and the error propagates to the
caller unchanged.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

from src.core.exceptions import ConflictError
from src.models.domain import Tag
from src.models.requests import CreateTag
from src.observability import conventions as tc
from src.observability.instrumentation import (
    InstrumentationRegistry,
    ServiceInstrumentation,
    mark_not_found,
)
from src.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


class TagService:
    def __init__(self, unit_of_work: UnitOfWork, registry: InstrumentationRegistry) -> None:
        self._uow = unit_of_work
        self._telemetry = ServiceInstrumentation(registry, tc.TAG_SERVICE)

        self._created = self._telemetry.counter(tc.TAGS_CREATED, "Number of tags created")
        self._deleted = self._telemetry.counter(tc.TAGS_DELETED, "Number of tags deleted")

    async def get_by_id(self, tag_id: UUID) -> Optional[Tag]:
        with self._telemetry.operation("GetTagById", **{tc.TAG_ID: tag_id}) as span:
            tag = await self._uow.tags.get_by_id(tag_id)
            if tag is None:
                mark_not_found(span, "Tag not found")
            return tag

    async def list_all(self) -> list[Tag]:
        with self._telemetry.operation("GetAllTags") as span:
            tags = await self._uow.tags.list_all()
            span.set_attribute(tc.RESULT_COUNT, len(tags))
            return tags

    async def create(self, payload: CreateTag) -> Tag:
        with self._telemetry.operation(
            "CreateTag", **{tc.TAG_NAME: payload.name}
        ) as span:
            if await self._uow.tags.get_by_name(payload.name) is not None:
                logger.warning("Duplicate tag name: %s", payload.name)
                raise ConflictError(
                    f"Tag with name '{payload.name}' already exists.", entity="tag"
                )

            tag = Tag(id=uuid4(), name=payload.name, color_hex=payload.color_hex)
            span.set_attribute(tc.TAG_ID, str(tag.id))

            await self._uow.tags.add(tag)
            await self._uow.save_changes()

            self._created.add(1)
            return tag

    async def update(self, tag_id: UUID, payload: CreateTag) -> Optional[Tag]:
        with self._telemetry.operation("UpdateTag", **{tc.TAG_ID: tag_id}) as span:
            tag = await self._uow.tags.get_by_id(tag_id)
            if tag is None:
                mark_not_found(span, "Tag not found")
                return None

            existing = await self._uow.tags.get_by_name(payload.name)
            if existing is not None and existing.id != tag_id:
                raise ConflictError(
                    f"Tag with name '{payload.name}' already exists.", entity="tag"
                )

            updated = tag.model_copy(
                update={"name": payload.name, "color_hex": payload.color_hex}
            )
            await self._uow.tags.update(updated)
            await self._uow.save_changes()
            return updated

    async def delete(self, tag_id: UUID) -> bool:
        with self._telemetry.operation("DeleteTag", **{tc.TAG_ID: tag_id}) as span:
            tag = await self._uow.tags.get_by_id(tag_id)
            if tag is None:
                mark_not_found(span, "Tag not found")
                return False

            await self._uow.tags.delete(tag)
            await self._uow.save_changes()

            self._deleted.add(1)
            return True
