"""
Tests for Prometheus Metrics - Smoke Tests.

Tests cover:
- Metric registration
- Label cardinality limits
- Counter increments
- Histogram observations
- The /metrics/ endpoint
"""

import pytest
from prometheus_client import REGISTRY


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


# ============================================================================
# Label Cardinality Tests
# ============================================================================

class TestLabelCardinality:
    """Labels are enums and codes, never item data."""

    FORBIDDEN = {'item_id', 'id', 'name', 'location', 'description'}

    def test_no_item_labels(self):
        from apps.core import metrics

        for metric in (
            metrics.workitem_transitions_total,
            metrics.commands_rejected_total,
            metrics.draft_production_total,
            metrics.draft_production_duration_seconds,
            metrics.workitems_by_article_status,
        ):
            assert not self.FORBIDDEN & set(metric._labelnames)


# ============================================================================
# Counter Increment Tests
# ============================================================================

class TestCounterIncrements:

    def test_increment_transition(self):
        from apps.core.metrics import increment_transition

        labels = {'kind': 'article', 'from_status': 'draft', 'to_status': 'pending_approval'}
        before = sample('workflow_workitem_transitions_total', **labels)
        increment_transition('article', 'draft', 'pending_approval')

        assert sample('workflow_workitem_transitions_total', **labels) == before + 1

    def test_increment_command_rejected(self):
        from apps.core.metrics import increment_command_rejected

        before = sample('workflow_commands_rejected_total', code='INVALID_TRANSITION')
        increment_command_rejected('INVALID_TRANSITION')

        assert sample('workflow_commands_rejected_total', code='INVALID_TRANSITION') == before + 1

    def test_increment_draft_production(self):
        from apps.core.metrics import increment_draft_production

        before = sample('workflow_draft_production_total', backend='template', status='discarded')
        increment_draft_production('template', 'discarded')

        assert sample('workflow_draft_production_total', backend='template', status='discarded') == before + 1


# ============================================================================
# Histogram Observation Tests
# ============================================================================

class TestHistogramObservations:

    def test_observe_draft_duration(self):
        from apps.core.metrics import observe_draft_duration

        before = sample('workflow_draft_production_duration_seconds_count', backend='claude')
        with observe_draft_duration('claude'):
            pass

        assert sample('workflow_draft_production_duration_seconds_count', backend='claude') == before + 1

    def test_observed_even_when_producer_fails(self):
        from apps.core.metrics import observe_draft_duration

        before = sample('workflow_draft_production_duration_seconds_count', backend='template')
        with pytest.raises(RuntimeError):
            with observe_draft_duration('template'):
                raise RuntimeError('producer down')

        assert sample('workflow_draft_production_duration_seconds_count', backend='template') == before + 1


# ============================================================================
# Endpoint
# ============================================================================

@pytest.mark.django_db
class TestMetricsEndpoint:

    def test_exposes_prometheus_text(self, client, completed_item):
        response = client.get('/metrics/')

        assert response.status_code == 200
        body = response.content.decode()
        assert 'workflow_workitems_by_article_status{article_status="none"} 1.0' in body
