"""
Work Item Lifecycle State Machine.

Governs the article status of a work item and the data merges each
transition performs:

    none ──submit_intake──▶ draft ──submit_for_approval──▶ pending_approval ──approve──▶ approved
                              ▲                                   │
                              └────────────── reject ─────────────┘

While in ``draft`` the item is first *awaiting the producer* (intake data
only) and then *draft ready* once ``apply_draft_result`` has overlaid the
generated fields. ``execution_status`` is independent and only moves forward.

Every operation either succeeds completely or raises before touching the
store:
    InvalidTransitionError   the requested status edge does not exist
    PreconditionFailedError  the edge exists but a gate does not hold
    NotFoundError            unknown work item

Usage:
    machine = WorkItemStateMachine()
    machine.submit_intake(item.id, description="Patch repair", images=[...])
    ...
    machine.submit_for_approval(item.id)
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.exceptions import (
    InvalidTransitionError,
    PreconditionFailedError,
    ValidationError,
)
from apps.core.metrics import increment_transition
from apps.core.middleware import celery_request_id_headers
from .models import WorkItem
from .store import WorkItemStore

logger = logging.getLogger(__name__)


class ArticleStatus(Enum):
    """Article lifecycle states."""
    NONE = 'none'
    DRAFT = 'draft'
    PENDING_APPROVAL = 'pending_approval'
    APPROVED = 'approved'

    @classmethod
    def from_string(cls, value: str) -> 'ArticleStatus':
        for state in cls:
            if state.value == value:
                return state
        raise ValueError(f"Unknown article status: {value}")

    @property
    def is_terminal(self) -> bool:
        return self is ArticleStatus.APPROVED


class ExecutionStatus(Enum):
    """Progress of the works; ordered, never reverts."""
    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'

    @classmethod
    def from_string(cls, value: str) -> 'ExecutionStatus':
        for state in cls:
            if state.value == value:
                return state
        raise ValueError(f"Unknown execution status: {value}")

    @property
    def rank(self) -> int:
        return list(ExecutionStatus).index(self)


VALID_TRANSITIONS: Dict[ArticleStatus, Set[ArticleStatus]] = {
    ArticleStatus.NONE: {ArticleStatus.DRAFT},
    ArticleStatus.DRAFT: {ArticleStatus.PENDING_APPROVAL},
    ArticleStatus.PENDING_APPROVAL: {ArticleStatus.APPROVED, ArticleStatus.DRAFT},
    ArticleStatus.APPROVED: set(),  # Terminal state
}

# Set by produce_draft once its retries are used up; cleared by redraft.
DRAFT_FAILURE_KEY = 'draft_failure'


# Called with the item id once an intake has been committed.
DraftDispatcher = Callable[[int], None]


def dispatch_produce_draft(item_id: int):
    """Queue the Draft Producer for an item (fire-and-forget)."""
    from .tasks import produce_draft

    produce_draft.apply_async(
        args=[item_id],
        headers=celery_request_id_headers(),
        time_limit=settings.DRAFT_PRODUCER_TIME_LIMIT,
    )


# =============================================================================
# Intake helpers
# =============================================================================

def normalize_images(images) -> List[Dict[str, Any]]:
    """
    Accept image references as URLs or ``{url, id?, caption?}`` objects and
    return ``[{id, url, caption?}, ...]`` in submission order.
    """
    if not isinstance(images, (list, tuple)):
        raise ValidationError("images must be a list", field='images')

    normalized = []
    for position, image in enumerate(images, start=1):
        if isinstance(image, str):
            image = {'url': image}
        if not isinstance(image, dict) or not image.get('url'):
            raise ValidationError(
                f"Image #{position} must be a URL or an object with a 'url'",
                field='images',
            )
        entry = {'id': image.get('id') or position, 'url': image['url']}
        if image.get('caption'):
            entry['caption'] = image['caption']
        normalized.append(entry)
    return normalized


def build_image_pairs(images: List[Dict[str, Any]], captions=None) -> List[Dict[str, Any]]:
    """
    Pair consecutive images: positions (0, 1), (2, 3), ... become
    before/after pairs. An odd count is refused, never truncated.
    """
    if len(images) % 2:
        raise PreconditionFailedError(
            f"Images must be submitted in before/after pairs; got {len(images)}",
            field='images',
        )

    before_caption, after_caption = captions or settings.IMAGE_PAIR_CAPTIONS
    pairs = []
    for index in range(0, len(images), 2):
        before, after = images[index], images[index + 1]
        pairs.append({
            'before': {
                'id': before['id'],
                'url': before['url'],
                'caption': before.get('caption') or before_caption,
            },
            'after': {
                'id': after['id'],
                'url': after['url'],
                'caption': after.get('caption') or after_caption,
            },
        })
    return pairs


def resolve_location(item: WorkItem, location: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    The intake location, or the item's own location with the default
    coordinates when none was given.
    """
    if location is None:
        if not item.location.strip():
            raise PreconditionFailedError(
                f"Work item {item.pk} has no location to report from",
                field='location',
            )
        lat, lng = settings.DEFAULT_COORDINATES
        return {'name': item.location, 'coordinates': {'lat': lat, 'lng': lng}}

    name = (location.get('name') or '').strip()
    if not name:
        raise PreconditionFailedError("Location could not be resolved", field='location')

    coordinates = location.get('coordinates')
    if not coordinates:
        lat, lng = settings.DEFAULT_COORDINATES
        coordinates = {'lat': lat, 'lng': lng}
    return {'name': name, 'coordinates': coordinates}


# =============================================================================
# State machine
# =============================================================================

class WorkItemStateMachine:
    """
    Applies lifecycle transitions to work items through the store.

    Features:
    - Validates status edges before any precondition
    - Locks the row for the whole check-then-write sequence
    - Records ``metadata.last_transition``
    - Dispatches the Draft Producer after a committed intake or redraft
    """

    def __init__(
        self,
        store: Optional[WorkItemStore] = None,
        dispatch_draft: Optional[DraftDispatcher] = None,
    ):
        self.store = store or WorkItemStore()
        self.dispatch_draft = dispatch_draft or dispatch_produce_draft

    @staticmethod
    def can_transition(current: ArticleStatus, target: ArticleStatus) -> bool:
        return target in VALID_TRANSITIONS.get(current, set())

    @staticmethod
    def get_valid_transitions(current: ArticleStatus) -> Set[ArticleStatus]:
        return VALID_TRANSITIONS.get(current, set()).copy()

    def ensure_transition(self, item: WorkItem, target: ArticleStatus) -> ArticleStatus:
        """Raise InvalidTransitionError unless ``item`` may move to ``target``."""
        current = ArticleStatus.from_string(item.article_status)
        if not self.can_transition(current, target):
            raise InvalidTransitionError(
                f"Invalid transition from {current.value} to {target.value} for work item {item.pk}. "
                f"Valid targets: {sorted(s.value for s in self.get_valid_transitions(current))}",
                details={'from': current.value, 'to': target.value},
            )
        return current

    @staticmethod
    def ensure_draft(item: WorkItem, action: str):
        """Raise InvalidTransitionError unless ``item`` is a draft."""
        if item.article_status != ArticleStatus.DRAFT.value:
            raise InvalidTransitionError(
                f"Work item {item.pk} is {item.article_status}; only drafts can be {action}",
                details={'from': item.article_status},
            )

    def _locked(self, item_id) -> WorkItem:
        item = self.store.get(item_id)
        return WorkItem.objects.select_for_update().get(pk=item.pk)

    def _transition(
        self,
        item: WorkItem,
        target: ArticleStatus,
        patch: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> WorkItem:
        current = item.article_status
        now = timezone.now()
        last_transition = {
            'from': current,
            'to': target.value,
            'at': now.isoformat(),
            **(metadata or {}),
        }

        updated = self.store.apply_patch(item.pk, {
            **(patch or {}),
            'article_status': target.value,
            'metadata': {**(item.metadata or {}), 'last_transition': last_transition},
        })

        increment_transition('article', current, target.value)
        logger.info("Work item %s transitioned: %s → %s", item.pk, current, target.value)
        return updated

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def submit_intake(
        self,
        item_id,
        description: str,
        images,
        location: Optional[Dict[str, Any]] = None,
    ) -> WorkItem:
        """
        Start the article: record the report, pair the images, move to
        ``draft`` and queue the Draft Producer.
        """
        with transaction.atomic():
            item = self._locked(item_id)
            self.ensure_transition(item, ArticleStatus.DRAFT)

            if item.execution_status != ExecutionStatus.COMPLETED.value:
                raise PreconditionFailedError(
                    f"Work item {item.pk} is {item.execution_status}; only completed works can be reported",
                    field='execution_status',
                )

            if not (description or '').strip():
                raise PreconditionFailedError("Description must not be empty", field='description')

            normalized = normalize_images(images)
            if len(normalized) % 2:
                raise PreconditionFailedError(
                    f"Images must be submitted in before/after pairs; got {len(normalized)}",
                    field='images',
                )
            if len(normalized) < settings.MIN_INTAKE_IMAGES:
                raise PreconditionFailedError(
                    f"At least {settings.MIN_INTAKE_IMAGES} images are required",
                    field='images',
                )
            if len(normalized) > settings.MAX_INTAKE_IMAGES:
                raise PreconditionFailedError(
                    f"At most {settings.MAX_INTAKE_IMAGES} images are allowed",
                    field='images',
                )

            resolved_location = resolve_location(item, location)
            intake = {
                'description': description.strip(),
                'location': resolved_location,
                'images': [{'id': image['id'], 'url': image['url']} for image in normalized],
                'image_pairs': build_image_pairs(normalized),
            }

            updated = self._transition(
                item,
                ArticleStatus.DRAFT,
                patch={'article_data': intake, 'draft_produced_at': None},
                metadata={'trigger': 'submit_intake'},
            )

        # Outside the transaction so the worker sees the committed intake.
        self.dispatch_draft(updated.pk)
        logger.info("Draft production queued for work item %s", updated.pk)
        return updated

    def apply_draft_result(self, item_id, result) -> Optional[WorkItem]:
        """
        Overlay the producer's fields onto the article.

        Applied only while the item is still an unproduced draft; a result for
        a missing item, or one arriving after the draft moved on, is logged
        and dropped. Returns the updated item, or None when dropped.
        """
        with transaction.atomic():
            try:
                item = WorkItem.objects.select_for_update().get(pk=item_id)
            except WorkItem.DoesNotExist:
                logger.warning("Draft result for unknown work item %s discarded", item_id)
                return None

            if item.article_status != ArticleStatus.DRAFT.value or item.draft_produced_at is not None:
                logger.warning(
                    "Draft result for work item %s discarded (article_status=%s, produced=%s)",
                    item.pk,
                    item.article_status,
                    item.draft_produced_at is not None,
                )
                return None

            metadata = dict(item.metadata or {})
            metadata.pop(DRAFT_FAILURE_KEY, None)
            updated = self.store.apply_patch(item.pk, {
                'article_data': result.as_patch(),
                'draft_produced_at': timezone.now(),
                'metadata': metadata,
            })

        logger.info("Draft result applied to work item %s", updated.pk)
        return updated

    def record_draft_failure(self, item_id, error) -> Optional[WorkItem]:
        """
        Mark an unproduced draft as given up on by the producer so that it can
        be redrafted. Returns None when the item no longer waits for a draft.
        """
        with transaction.atomic():
            try:
                item = WorkItem.objects.select_for_update().get(pk=item_id)
            except WorkItem.DoesNotExist:
                return None
            if item.article_status != ArticleStatus.DRAFT.value or item.draft_produced_at is not None:
                return None

            failure = {'at': timezone.now().isoformat(), 'error': str(error)[:500]}
            updated = self.store.apply_patch(item.pk, {
                'metadata': {**(item.metadata or {}), DRAFT_FAILURE_KEY: failure},
            })

        logger.warning("Draft production for work item %s gave up: %s", item_id, error)
        return updated

    def redraft(self, item_id) -> WorkItem:
        """Send a draft whose production failed back to the Draft Producer."""
        with transaction.atomic():
            item = self._locked(item_id)
            self.ensure_draft(item, 'redrafted')
            if item.draft_produced_at is not None:
                raise PreconditionFailedError(f"Draft for work item {item.pk} is already produced")
            if DRAFT_FAILURE_KEY not in (item.metadata or {}):
                raise PreconditionFailedError(f"Draft for work item {item.pk} is still being produced")

            metadata = dict(item.metadata)
            metadata.pop(DRAFT_FAILURE_KEY)
            updated = self.store.apply_patch(item.pk, {'metadata': metadata})

        self.dispatch_draft(updated.pk)
        logger.info("Draft production queued again for work item %s", updated.pk)
        return updated

    def submit_for_approval(self, item_id, in_edit_session: bool = False) -> WorkItem:
        with transaction.atomic():
            item = self._locked(item_id)
            self.ensure_transition(item, ArticleStatus.PENDING_APPROVAL)

            if item.draft_produced_at is None:
                raise PreconditionFailedError(
                    f"Draft for work item {item.pk} is still being produced"
                )
            if in_edit_session:
                raise PreconditionFailedError("Finish or cancel the edit before submitting")

            return self._transition(item, ArticleStatus.PENDING_APPROVAL)

    def approve(self, item_id, approval_confirmed: bool = False) -> WorkItem:
        with transaction.atomic():
            item = self._locked(item_id)
            self.ensure_transition(item, ArticleStatus.APPROVED)

            if not approval_confirmed:
                raise PreconditionFailedError("Approval must be confirmed before approving")

            return self._transition(item, ArticleStatus.APPROVED)

    def reject(self, item_id) -> WorkItem:
        """Send the article back to draft; its data stays as it is."""
        with transaction.atomic():
            item = self._locked(item_id)
            self.ensure_transition(item, ArticleStatus.DRAFT)
            return self._transition(item, ArticleStatus.DRAFT, metadata={'trigger': 'reject'})

    def edit_body(self, item_id, text: str) -> WorkItem:
        """Replace ``article_body`` only; the status does not change."""
        if not isinstance(text, str):
            raise ValidationError("article_body must be text", field='article_body')

        with transaction.atomic():
            item = self._locked(item_id)
            self.ensure_draft(item, 'edited')
            if item.draft_produced_at is None:
                raise PreconditionFailedError(
                    f"Draft for work item {item.pk} is still being produced"
                )
            return self.store.apply_patch(item.pk, {'article_data': {'article_body': text}})

    def advance_execution(self, item_id, target) -> WorkItem:
        """Move ``execution_status`` forward; it never reverts."""
        if isinstance(target, str):
            try:
                target = ExecutionStatus.from_string(target)
            except ValueError as exc:
                raise ValidationError(str(exc), field='execution_status')

        with transaction.atomic():
            item = self._locked(item_id)
            current = ExecutionStatus.from_string(item.execution_status)
            if target.rank <= current.rank:
                raise InvalidTransitionError(
                    f"Execution status of work item {item.pk} cannot go from "
                    f"{current.value} to {target.value}",
                    details={'from': current.value, 'to': target.value},
                )
            updated = self.store.apply_patch(item.pk, {'execution_status': target.value})

        increment_transition('execution', current.value, target.value)
        logger.info("Work item %s execution: %s → %s", item.pk, current.value, target.value)
        return updated
