"""
Celery tasks for the draft pipeline.
"""

import logging

from celery import shared_task
from django.conf import settings

from apps.core.metrics import increment_draft_production, observe_draft_duration
from apps.drafts.producer import IntakeData, get_draft_producer
from .models import WorkItem

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=2)
def produce_draft(self, item_id: int):
    """
    Run the Draft Producer for one intake and apply its result.

    The result is applied at most once; the state machine drops it when the
    item is gone or is no longer an unproduced draft. When the last retry
    fails the item is marked in ``metadata['draft_failure']`` and can be
    sent back with ``WorkItemStateMachine.redraft``.
    """
    from .state_machine import WorkItemStateMachine

    try:
        item = WorkItem.objects.get(pk=item_id)
    except WorkItem.DoesNotExist:
        logger.error("Work item %s not found for draft production", item_id)
        return {"error": "not_found", "item_id": item_id}

    if item.article_status != 'draft' or item.draft_produced_at is not None:
        logger.info("Work item %s needs no draft (article_status=%s)", item_id, item.article_status)
        return {"item_id": item_id, "status": "skipped"}

    backend = settings.DRAFT_PRODUCER_BACKEND
    try:
        producer = get_draft_producer(backend)
        intake = IntakeData.from_article_data(item.article_data or {})
        with observe_draft_duration(producer.name):
            result = producer.summarize(intake)
    except Exception as exc:
        increment_draft_production(backend, 'failed')
        logger.error("Draft production failed for work item %s: %s", item_id, exc)
        if self.request.retries >= settings.DRAFT_PRODUCER_MAX_RETRIES:
            # Out of retries: mark the draft for redraft.
            WorkItemStateMachine().record_draft_failure(item_id, exc)
            raise
        raise self.retry(
            exc=exc,
            countdown=30 * (self.request.retries + 1),
            max_retries=settings.DRAFT_PRODUCER_MAX_RETRIES,
        )

    updated = WorkItemStateMachine().apply_draft_result(item_id, result)
    if updated is None:
        increment_draft_production(producer.name, 'discarded')
        return {"item_id": item_id, "status": "discarded"}

    increment_draft_production(producer.name, 'applied')
    return {
        "item_id": item_id,
        "status": "applied",
        "article_title": result.article_title,
    }
