"""
WorkItem store: read, list and atomic partial update of work items.

All writes to a work item go through ``WorkItemStore.apply_patch`` so the
merge rules and the article invariant are enforced in one place.
"""

import logging
from typing import Any, Dict, List

from django.db import transaction

from apps.core.exceptions import NotFoundError, PreconditionFailedError, ValidationError
from .models import WorkItem

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = (
    'name',
    'location',
    'execution_status',
    'article_status',
    'article_data',
    'draft_produced_at',
    'metadata',
)

_CHOICE_FIELDS = {
    'execution_status': {value for value, _ in WorkItem.EXECUTION_STATUS_CHOICES},
    'article_status': {value for value, _ in WorkItem.ARTICLE_STATUS_CHOICES},
}


def merge_article_data(existing, overlay):
    """
    Shallow overlay of ``overlay`` onto ``existing``.

    ``overlay=None`` clears the article data; keys absent from ``overlay``
    keep their current values.
    """
    if overlay is None:
        return None
    if not isinstance(overlay, dict):
        raise ValidationError("article_data must be an object", field='article_data')
    return {**(existing or {}), **overlay}


def check_article_invariant(item: WorkItem):
    """article_data is absent exactly when article_status is 'none'."""
    if (item.article_status == 'none') != (item.article_data is None):
        raise PreconditionFailedError(
            f"Work item {item.pk}: article_data must be present exactly when an article exists "
            f"(article_status={item.article_status})",
            field='article_data',
        )


class WorkItemStore:
    """
    Mapping from work item id to its current record.

    Single writer per item: every patch runs in its own transaction with the
    row locked, so readers never see a half-applied patch.
    """

    def get(self, item_id) -> WorkItem:
        try:
            return WorkItem.objects.get(pk=item_id)
        except (WorkItem.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Work item {item_id} not found")

    def exists(self, item_id) -> bool:
        return WorkItem.objects.filter(pk=item_id).exists()

    def list(self) -> List[WorkItem]:
        """All work items in insertion order."""
        return list(WorkItem.objects.order_by('id'))

    def create(self, **fields) -> WorkItem:
        item = WorkItem(**fields)
        check_article_invariant(item)
        item.save()
        logger.info("Work item %s created: %s", item.pk, item.name)
        return item

    def apply_patch(self, item_id, partial: Dict[str, Any]) -> WorkItem:
        """
        Merge ``partial`` into the stored record and return the updated item.

        Top-level keys replace the stored values; ``article_data`` is merged
        as a shallow overlay onto the existing article data. The patch is
        all-or-nothing: a validation or invariant failure leaves the row as
        it was.
        """
        unknown = set(partial) - set(PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown work item fields: {', '.join(sorted(unknown))}",
                details={'fields': sorted(unknown)},
            )

        for name, allowed in _CHOICE_FIELDS.items():
            if name in partial and partial[name] not in allowed:
                raise ValidationError(
                    f"Invalid {name}: {partial[name]!r}",
                    field=name,
                )

        with transaction.atomic():
            try:
                item = WorkItem.objects.select_for_update().get(pk=item_id)
            except (WorkItem.DoesNotExist, ValueError, TypeError):
                raise NotFoundError(f"Work item {item_id} not found")

            for name, value in partial.items():
                if name == 'article_data':
                    value = merge_article_data(item.article_data, value)
                setattr(item, name, value)

            check_article_invariant(item)
            item.save(update_fields=list(partial) + ['updated_at'])

        logger.debug("Work item %s patched: %s", item.pk, sorted(partial))
        return item
