"""Transactional outbox writer shared by the Django repositories.

Domain events collected on an aggregate are persisted as ``OutboxEvent``
rows inside the caller's transaction, then handed to the in-process
event bus once that transaction commits.  A rolled-back transaction
drops both the rows and the publication.
"""

from __future__ import annotations

from typing import Any

import structlog
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


def dispatch_outbox_event(row: OutboxEvent, event: DomainEvent) -> None:
    """Publish *event* and record the outcome on its outbox row.

    A failing handler leaves the row ``FAILED`` with the error message;
    the business transaction has already committed at this point.
    """
    try:
        event_bus.publish(event)
    except Exception as exc:
        logger.exception(
            "outbox.dispatch_failed",
            event_name=event.event_name,
            outbox_id=str(row.id),
        )
        row.mark_as_failed(str(exc))
        return
    row.mark_as_published()


def record_domain_events(entity: Any, topic: str) -> int:
    """Flush *entity*'s pending domain events to the outbox.

    Returns the number of events recorded.
    """
    pull = getattr(entity, "pull_domain_events", None)
    events = pull() if pull is not None else []
    for event in events:
        row = OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=event.to_payload(),
            topic=topic,
        )
        transaction.on_commit(
            lambda row=row, event=event: dispatch_outbox_event(row, event)
        )
    return len(events)
