"""
Pytest configuration for the test suite.

Reference Documents:
- GUIDELINES pp. 155-157: "high and low gear" testing philosophy
- GUIDELINES pp. 157: FakeRepository pattern using duck typing

This configuration sets up:
- Test discovery paths
- In-memory OpenTelemetry providers (spans, metrics) and an
  InstrumentationRegistry built from them
- Fake persistence collaborators (FakeRepository pattern)
"""

import sys
from pathlib import Path
from typing import Any, Callable, Optional
from uuid import UUID

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.config import Settings  # noqa: E402
from src.models.domain import Contact, Group, Tag  # noqa: E402
from src.observability.instrumentation import InstrumentationRegistry  # noqa: E402


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for service interactions")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every telemetry sink disabled."""
    return Settings(
        environment="development",
        log_level="INFO",
        telemetry={
            "service_name": "contacts-test",
            "service_version": "9.9.9",
            "sampling": {"always_on": True, "ratio": 1.0},
        },
    )


# =============================================================================
# In-memory OpenTelemetry providers
# =============================================================================


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    return InMemoryMetricReader()


@pytest.fixture
def meter_provider(metric_reader: InMemoryMetricReader):
    provider = MeterProvider(metric_readers=[metric_reader])
    yield provider
    provider.shutdown()


@pytest.fixture
def registry(tracer_provider, meter_provider) -> InstrumentationRegistry:
    return InstrumentationRegistry(tracer_provider, meter_provider, version="test")


@pytest.fixture
def read_metric(metric_reader: InMemoryMetricReader) -> Callable[[str], list[Any]]:
    """
    Return the data points recorded for a metric name.

    Counters expose ``.value``; histograms expose ``.count`` and ``.sum``.
    """

    def _read(name: str) -> list[Any]:
        data = metric_reader.get_metrics_data()
        points: list[Any] = []
        if data is None:
            return points
        for resource_metrics in data.resource_metrics:
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    if metric.name == name:
                        points.extend(metric.data.data_points)
        return points

    return _read


@pytest.fixture
def finished_span(span_exporter: InMemorySpanExporter):
    """Look up a finished span by name."""

    def _find(name: str):
        matches = [s for s in span_exporter.get_finished_spans() if s.name == name]
        assert matches, f"no finished span named {name!r}"
        return matches[-1]

    return _find


# =============================================================================
# Fake persistence (FakeRepository pattern)
# =============================================================================


class FakeContactRepository:
    def __init__(self) -> None:
        self.items: dict[UUID, Contact] = {}
        self.fail_with: Optional[Exception] = None
        self.page_requests: list[tuple[int, int]] = []

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def get_by_id(self, contact_id: UUID) -> Optional[Contact]:
        self._check()
        return self.items.get(contact_id)

    async def get_with_details(self, contact_id: UUID) -> Optional[Contact]:
        return await self.get_by_id(contact_id)

    async def list_page(self, page_number: int, page_size: int) -> list[Contact]:
        self._check()
        self.page_requests.append((page_number, page_size))
        ordered = sorted(self.items.values(), key=lambda c: (c.last_name, c.first_name))
        start = (page_number - 1) * page_size
        return ordered[start : start + page_size]

    async def count(self) -> int:
        self._check()
        return len(self.items)

    async def search(self, term: str) -> list[Contact]:
        self._check()
        needle = term.lower()
        return [
            c
            for c in self.items.values()
            if needle in c.first_name.lower()
            or needle in c.last_name.lower()
            or needle in (c.company or "").lower()
            or any(needle in e.email.lower() for e in c.email_addresses)
        ]

    async def list_by_group(self, group_id: UUID) -> list[Contact]:
        self._check()
        return [c for c in self.items.values() if group_id in c.group_ids]

    async def list_by_tag(self, tag_id: UUID) -> list[Contact]:
        self._check()
        return [c for c in self.items.values() if tag_id in c.tag_ids]

    async def add(self, contact: Contact) -> None:
        self._check()
        self.items[contact.id] = contact

    async def update(self, contact: Contact) -> None:
        self._check()
        self.items[contact.id] = contact

    async def delete(self, contact: Contact) -> None:
        self._check()
        self.items.pop(contact.id, None)


class FakeGroupRepository:
    def __init__(self, contacts: FakeContactRepository) -> None:
        self.items: dict[UUID, Group] = {}
        self._contacts = contacts

    async def get_by_id(self, group_id: UUID) -> Optional[Group]:
        return self.items.get(group_id)

    async def get_with_contacts(self, group_id: UUID) -> Optional[Group]:
        group = self.items.get(group_id)
        if group is None:
            return None
        members = await self._contacts.list_by_group(group_id)
        return group.model_copy(update={"contact_count": len(members)})

    async def list_all(self) -> list[Group]:
        return list(self.items.values())

    async def add(self, group: Group) -> None:
        self.items[group.id] = group

    async def update(self, group: Group) -> None:
        self.items[group.id] = group

    async def delete(self, group: Group) -> None:
        self.items.pop(group.id, None)


class FakeTagRepository:
    def __init__(self) -> None:
        self.items: dict[UUID, Tag] = {}

    async def get_by_id(self, tag_id: UUID) -> Optional[Tag]:
        return self.items.get(tag_id)

    async def get_by_name(self, name: str) -> Optional[Tag]:
        return next((t for t in self.items.values() if t.name == name), None)

    async def list_all(self) -> list[Tag]:
        return list(self.items.values())

    async def add(self, tag: Tag) -> None:
        self.items[tag.id] = tag

    async def update(self, tag: Tag) -> None:
        self.items[tag.id] = tag

    async def delete(self, tag: Tag) -> None:
        self.items.pop(tag.id, None)


class FakeUnitOfWork:
    """In-memory unit of work; set ``fail_on_save`` to simulate a commit failure."""

    def __init__(self) -> None:
        self.contacts = FakeContactRepository()
        self.groups = FakeGroupRepository(self.contacts)
        self.tags = FakeTagRepository()
        self.commits = 0
        self.fail_on_save: Optional[Exception] = None

    async def save_changes(self) -> int:
        if self.fail_on_save is not None:
            raise self.fail_on_save
        self.commits += 1
        return 1


@pytest.fixture
def unit_of_work() -> FakeUnitOfWork:
    return FakeUnitOfWork()
