"""Async tasks of the core module."""

from __future__ import annotations

import structlog
from celery import shared_task
from django.conf import settings

from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)

OUTBOX_MAX_RETRIES = 5


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int | None = None) -> dict:
    """Relay pending outbox events to the in-process event bus.

    Each event is rebuilt from its payload and handed to the handlers
    subscribed for its type.  Handler errors mark the event as failed so
    the next run retries it, up to ``OUTBOX_MAX_RETRIES`` attempts.
    """
    from shared.infrastructure.bus import event_bus

    limit = batch_size or settings.OUTBOX_BATCH_SIZE
    events = list(OutboxEvent.objects.publishable(OUTBOX_MAX_RETRIES)[:limit])
    published = failed = 0

    for outbox_event in events:
        log = logger.bind(
            outbox_event_id=str(outbox_event.id),
            event_type=outbox_event.event_type,
            aggregate_id=outbox_event.aggregate_id,
        )
        event_class = event_bus.event_class_for(outbox_event.event_type)
        if event_class is None:
            log.warning("outbox.unknown_event_type")
            outbox_event.mark_as_failed(
                f"No handler registered for {outbox_event.event_type}."
            )
            failed += 1
            continue
        try:
            event_bus.publish(event_class.from_payload(outbox_event.payload))
        except Exception as exc:
            log.exception("outbox.publish_failed")
            outbox_event.mark_as_failed(str(exc))
            failed += 1
            continue
        outbox_event.mark_as_published()
        published += 1

    logger.info("outbox.batch_processed", published=published, failed=failed)
    return {"published": published, "failed": failed}
