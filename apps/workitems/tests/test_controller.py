"""
Tests for the NavigationController command surface.

Celery runs eagerly in test settings, so a submitted intake comes back
with its draft already produced by the template producer.
"""

import pytest
from unittest.mock import patch

from apps.core.exceptions import (
    DraftProducerError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
)
from apps.workitems.controller import NavigationController
from apps.workitems.models import WorkItem
from apps.workitems.navigation import Role, Screen
from apps.workitems.state_machine import WorkItemStateMachine


@pytest.fixture
def inspector():
    controller = NavigationController()
    controller.select_role('inspector')
    return controller


@pytest.fixture
def supervisor():
    controller = NavigationController()
    controller.select_role('supervisor')
    return controller


@pytest.fixture
def submitted_item(inspector, completed_item, intake_images):
    """Inspector has written, produced and submitted an article."""
    inspector.create_article(completed_item.pk)
    inspector.submit_intake(completed_item.pk, 'Patch repair on Street A', intake_images)
    inspector.sync()
    inspector.submit_for_approval(completed_item.pk)
    completed_item.refresh_from_db()
    return completed_item


@pytest.mark.django_db
class TestInspectorFlow:

    def test_full_inspector_flow(self, inspector, completed_item, intake_images):
        inspector.create_article(completed_item.pk)
        assert inspector.state.screen is Screen.UPLOAD

        inspector.submit_intake(completed_item.pk, 'Patch repair', intake_images)
        assert inspector.state.screen is Screen.PROCESSING

        inspector.sync()
        assert inspector.state.screen is Screen.DRAFT

        inspector.begin_edit(completed_item.pk)
        item = inspector.edit_body(completed_item.pk, 'Edited body')
        assert item.article_data['article_body'] == 'Edited body'
        assert not inspector.state.editing

        item = inspector.submit_for_approval(completed_item.pk)
        assert item.article_status == 'pending_approval'
        assert inspector.state.screen is Screen.DASHBOARD

    def test_failed_intake_keeps_upload_screen(self, inspector, completed_item):
        inspector.create_article(completed_item.pk)

        with pytest.raises(PreconditionFailedError):
            inspector.submit_intake(completed_item.pk, 'Patch repair', [{'url': 'only-one.jpg'}])

        assert inspector.state.screen is Screen.UPLOAD
        completed_item.refresh_from_db()
        assert completed_item.article_status == 'none'

    def test_submit_refused_while_editing(self, inspector, completed_item, intake_images):
        inspector.create_article(completed_item.pk)
        inspector.submit_intake(completed_item.pk, 'Patch repair', intake_images)
        inspector.sync()
        inspector.begin_edit(completed_item.pk)

        with pytest.raises(PreconditionFailedError):
            inspector.submit_for_approval(completed_item.pk)
        assert inspector.state.screen is Screen.DRAFT

    def test_supervisor_cannot_create_article(self, supervisor, completed_item):
        with pytest.raises(PreconditionFailedError):
            supervisor.create_article(completed_item.pk)
        assert supervisor.state.screen is Screen.DASHBOARD

    def test_unknown_item(self, inspector, db):
        with pytest.raises(NotFoundError):
            inspector.create_article(404)

    def test_create_article_for_unfinished_works(self, inspector, in_progress_item):
        with pytest.raises(PreconditionFailedError):
            inspector.create_article(in_progress_item.pk)


@pytest.mark.django_db
class TestFailedDraftRecovery:

    def submit_failing(self, inspector, item, images):
        inspector.create_article(item.pk)
        with patch(
            'apps.drafts.producer.TemplateDraftProducer.summarize',
            side_effect=DraftProducerError("Summarizer unavailable"),
        ):
            inspector.submit_intake(item.pk, 'Patch repair', images)

    def test_redraft_from_processing(self, inspector, completed_item, intake_images):
        self.submit_failing(inspector, completed_item, intake_images)

        assert inspector.sync().screen is Screen.PROCESSING
        assert WorkItem.objects.get(pk=completed_item.pk).draft_failed

        inspector.redraft(completed_item.pk)
        assert inspector.sync().screen is Screen.DRAFT

        item = WorkItem.objects.get(pk=completed_item.pk)
        assert item.draft_ready
        assert not item.draft_failed
        assert item.article_data['description'] == 'Patch repair'

    def test_redraft_after_logout(self, inspector, completed_item, intake_images):
        self.submit_failing(inspector, completed_item, intake_images)
        inspector.logout()
        inspector.select_role('inspector')

        inspector.redraft(completed_item.pk)

        assert inspector.state.selected_item_id == completed_item.pk
        assert inspector.sync().screen is Screen.DRAFT

    def test_redraft_refused_while_producer_pending(self, completed_item, intake_images):
        inspector = NavigationController(machine=WorkItemStateMachine(dispatch_draft=lambda item_id: None))
        inspector.select_role('inspector')
        inspector.create_article(completed_item.pk)
        inspector.submit_intake(completed_item.pk, 'Patch repair', intake_images)

        with pytest.raises(PreconditionFailedError):
            inspector.redraft(completed_item.pk)
        assert inspector.state.screen is Screen.PROCESSING

    def test_redraft_of_submitted_article(self, inspector, submitted_item):
        with pytest.raises(InvalidTransitionError):
            inspector.redraft(submitted_item.pk)


@pytest.mark.django_db
class TestSupervisorFlow:

    def test_approve_with_preview(self, supervisor, submitted_item):
        supervisor.review_article(submitted_item.pk)
        assert supervisor.state.screen is Screen.APPROVAL

        supervisor.toggle_approval(submitted_item.pk)
        item = supervisor.approve(submitted_item.pk)
        assert item.article_status == 'approved'
        assert supervisor.state.screen is Screen.CONFIRMATION

        supervisor.preview()
        assert supervisor.state.screen is Screen.PREVIEW
        supervisor.close_preview()
        assert supervisor.state.screen is Screen.CONFIRMATION

        supervisor.back_to_dashboard()
        assert supervisor.state.screen is Screen.DASHBOARD

    def test_approve_needs_confirmation(self, supervisor, submitted_item):
        supervisor.review_article(submitted_item.pk)

        with pytest.raises(PreconditionFailedError):
            supervisor.approve(submitted_item.pk)
        assert supervisor.state.screen is Screen.APPROVAL

    def test_second_approve_is_invalid_transition(self, supervisor, submitted_item):
        supervisor.review_article(submitted_item.pk)
        supervisor.toggle_approval(submitted_item.pk)
        supervisor.approve(submitted_item.pk)

        with pytest.raises(InvalidTransitionError):
            supervisor.approve(submitted_item.pk)

    def test_reject_returns_to_inspector(self, supervisor, inspector, submitted_item):
        supervisor.review_article(submitted_item.pk)
        item = supervisor.reject(submitted_item.pk)

        assert item.article_status == 'draft'
        assert item.article_data == submitted_item.article_data
        assert supervisor.state.screen is Screen.DASHBOARD

        inspector.open_draft(submitted_item.pk)
        assert inspector.state.screen is Screen.DRAFT

    def test_inspector_cannot_review(self, inspector, submitted_item):
        with pytest.raises(PreconditionFailedError):
            inspector.review_article(submitted_item.pk)

    def test_toggle_targets_selected_item_only(self, supervisor, submitted_item):
        other = WorkItem.objects.create(
            name='Tree pruning - Park B',
            location='Park B',
            execution_status='completed',
            article_status='pending_approval',
            article_data=submitted_item.article_data,
            draft_produced_at=submitted_item.draft_produced_at,
        )
        supervisor.review_article(submitted_item.pk)

        with pytest.raises(PreconditionFailedError):
            supervisor.toggle_approval(other.pk)
        assert supervisor.state.approval_confirmed is False

        with pytest.raises(PreconditionFailedError):
            supervisor.approve(submitted_item.pk)


@pytest.mark.django_db
class TestSessionCommands:

    def test_logout(self, supervisor):
        supervisor.logout()
        assert supervisor.state.screen is Screen.ROLE_SELECT
        assert supervisor.state.role is None
        assert supervisor.menu == ()

    def test_menu_follows_role(self, inspector):
        assert inspector.state.role is Role.INSPECTOR
        assert 'my_articles' in inspector.menu

    def test_dashboard_items_use_current_view(self, inspector, completed_item, in_progress_item):
        assert len(inspector.dashboard_items()) == 2

        inspector.navigate('my_articles')
        assert inspector.dashboard_items() == []

    def test_sync_without_processing_is_noop(self, inspector):
        state = inspector.state
        assert inspector.sync() is state

    def test_sync_when_item_vanished(self, inspector, completed_item, intake_images):
        inspector.create_article(completed_item.pk)
        inspector.submit_intake(completed_item.pk, 'Patch repair', intake_images)
        WorkItem.objects.filter(pk=completed_item.pk).delete()

        assert inspector.sync().screen is Screen.PROCESSING
