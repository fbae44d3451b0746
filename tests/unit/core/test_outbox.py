"""Unit tests for the transactional outbox and the in-process event bus."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.events import DomainEvent, DomainEventMixin
from shared.infrastructure.bus import InMemoryEventBus, event_bus
from shared.infrastructure.outbox import record_domain_events

pytestmark = pytest.mark.unit


@dataclass(frozen=True)
class StockCounted(DomainEvent):
    pieces: Decimal = Decimal("0")


class _Aggregate(DomainEventMixin):
    def __init__(self, *events):
        for event in events:
            self.add_domain_event(event)


class TestRecordDomainEvents:
    def test_writes_pending_rows_and_clears_events(self):
        aggregate_id = uuid4()
        entity = _Aggregate(StockCounted(aggregate_id=aggregate_id, pieces=Decimal("4.50")))

        count = record_domain_events(entity, topic="products")

        assert count == 1
        assert entity.domain_events == []
        row = OutboxEvent.objects.get()
        assert row.event_type == "StockCounted"
        assert row.aggregate_id == str(aggregate_id)
        assert row.topic == "products"
        assert row.status == EventStatus.PENDING
        assert row.payload["pieces"] == "4.50"
        assert row.payload["aggregate_id"] == str(aggregate_id)

    def test_entity_without_events(self):
        assert record_domain_events(object(), topic="orders") == 0
        assert OutboxEvent.objects.count() == 0

    def test_publishes_after_commit(self, django_capture_on_commit_callbacks):
        handler = MagicMock()
        event_bus.subscribe(StockCounted, handler)
        event = StockCounted(aggregate_id=uuid4())

        try:
            with django_capture_on_commit_callbacks(execute=True):
                record_domain_events(_Aggregate(event), topic="products")
        finally:
            event_bus.unsubscribe(StockCounted, handler)

        handler.handle.assert_called_once_with(event)
        row = OutboxEvent.objects.get()
        assert row.status == EventStatus.PUBLISHED
        assert row.processed_at is not None

    def test_failing_handler_marks_row_failed(self, django_capture_on_commit_callbacks):
        handler = MagicMock()
        handler.handle.side_effect = RuntimeError("handler crashed")
        event_bus.subscribe(StockCounted, handler)

        try:
            with django_capture_on_commit_callbacks(execute=True):
                record_domain_events(
                    _Aggregate(StockCounted(aggregate_id=uuid4())), topic="products"
                )
        finally:
            event_bus.unsubscribe(StockCounted, handler)

        row = OutboxEvent.objects.get()
        assert row.status == EventStatus.FAILED
        assert row.retry_count == 1
        assert row.error_message == "handler crashed"


class TestOutboxEventModel:
    def test_mark_as_published(self):
        row = OutboxEvent.objects.create(
            event_type="OrderCreated", payload={}, aggregate_id="x", topic="orders"
        )
        row.mark_as_published()
        row.refresh_from_db()
        assert row.status == EventStatus.PUBLISHED
        assert row.processed_at is not None

    def test_mark_as_failed_counts_retries(self):
        row = OutboxEvent.objects.create(
            event_type="OrderCreated", payload={}, aggregate_id="x", topic="orders"
        )
        row.mark_as_failed("broker down")
        row.mark_as_failed("broker down")
        row.refresh_from_db()
        assert row.status == EventStatus.FAILED
        assert row.retry_count == 2
        assert row.error_message == "broker down"


class TestInMemoryEventBus:
    def test_subscribe_is_idempotent(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(StockCounted, handler)
        bus.subscribe(StockCounted, handler)
        bus.publish(StockCounted(aggregate_id=uuid4()))
        assert handler.handle.call_count == 1

    def test_only_matching_handlers_run(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(StockCounted, handler)
        bus.publish(DomainEvent(aggregate_id=uuid4()))
        handler.handle.assert_not_called()

    def test_unsubscribe(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(StockCounted, handler)
        bus.unsubscribe(StockCounted, handler)
        bus.publish(StockCounted(aggregate_id=uuid4()))
        handler.handle.assert_not_called()


class TestDomainEventPayload:
    def test_payload_is_json_safe(self):
        aggregate_id = uuid4()
        payload = StockCounted(aggregate_id=aggregate_id, pieces=Decimal("2")).to_payload()
        assert payload["aggregate_id"] == str(aggregate_id)
        assert payload["event_name"] == "StockCounted"
        assert isinstance(payload["occurred_on"], str)
        assert payload["pieces"] == "2"

    def test_pull_clears_pending_events(self):
        aggregate = _Aggregate(StockCounted(aggregate_id=uuid4()))
        assert len(aggregate.pull_domain_events()) == 1
        assert aggregate.pull_domain_events() == []
