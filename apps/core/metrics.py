"""
Prometheus metrics for the workflow service.

Metrics included:
- workitem_transitions_total: article/execution status changes
- workflow_commands_rejected_total: failed commands by error code
- draft_production_total: Draft Producer runs by outcome
- draft_production_duration_seconds: time spent in the Draft Producer
- workitems_by_article_status: gauge refreshed on scrape

Cardinality guidelines:
- Labels MUST be low-cardinality: status enums, error codes, backend names.
- FORBIDDEN label values: item ids, names, locations, user-entered text.
  Per-item detail belongs in the logs.

Usage:
    from apps.core.metrics import increment_transition, observe_draft_duration

    increment_transition('article', 'draft', 'pending_approval')

    with observe_draft_duration(backend='template'):
        result = producer.summarize(intake)
"""

import time
from contextlib import contextmanager
import logging

from django.http import HttpResponse
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

workitem_transitions_total = Counter(
    'workflow_workitem_transitions_total',
    'Work item status transitions',
    ['kind', 'from_status', 'to_status']  # kind: article/execution
)

commands_rejected_total = Counter(
    'workflow_commands_rejected_total',
    'Commands rejected by the workflow API',
    ['code']  # ErrorCode value
)

draft_production_total = Counter(
    'workflow_draft_production_total',
    'Draft Producer invocations',
    ['backend', 'status']  # status: applied/discarded/failed
)

draft_production_duration_seconds = Histogram(
    'workflow_draft_production_duration_seconds',
    'Time spent producing a draft',
    ['backend'],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

workitems_by_article_status = Gauge(
    'workflow_workitems_by_article_status',
    'Work items per article status',
    ['article_status']
)


# ============================================================================
# Helper Functions
# ============================================================================

def increment_transition(kind, from_status, to_status):
    """Count one status transition."""
    workitem_transitions_total.labels(
        kind=kind, from_status=from_status, to_status=to_status
    ).inc()


def increment_command_rejected(code):
    commands_rejected_total.labels(code=code).inc()


def increment_draft_production(backend='template', status='applied'):
    draft_production_total.labels(backend=backend, status=status).inc()


@contextmanager
def observe_draft_duration(backend='template'):
    """Context manager to time one Draft Producer call."""
    start = time.time()
    try:
        yield
    finally:
        draft_production_duration_seconds.labels(backend=backend).observe(time.time() - start)


def refresh_article_status_gauge():
    """Recount work items per article status (called on scrape)."""
    from django.db.models import Count
    from apps.workitems.models import WorkItem

    counts = dict(
        WorkItem.objects.values_list('article_status').annotate(total=Count('id'))
    )
    for value, _label in WorkItem.ARTICLE_STATUS_CHOICES:
        workitems_by_article_status.labels(article_status=value).set(counts.get(value, 0))


# ============================================================================
# Metrics View
# ============================================================================

def metrics_view(request):
    """Expose metrics in Prometheus text format."""
    try:
        refresh_article_status_gauge()
    except Exception as exc:
        logger.warning("Could not refresh work item gauge: %s", exc)

    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
