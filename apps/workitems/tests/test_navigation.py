"""
Tests for the navigation reducer.

Pure functions over NavigationState and item snapshots; no database.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from apps.core.exceptions import PreconditionFailedError, ValidationError
from apps.workitems import navigation
from apps.workitems.navigation import NavigationState, Role, Screen


def item(pk=1, execution_status='completed', article_status='none', produced=False, failed=False):
    return SimpleNamespace(
        pk=pk,
        execution_status=execution_status,
        article_status=article_status,
        draft_produced_at=datetime(2024, 6, 1, tzinfo=timezone.utc) if produced else None,
        metadata={'draft_failure': {'error': 'boom'}} if failed else {},
    )


def on(screen, role=Role.INSPECTOR, **fields):
    return NavigationState(screen=screen, role=role, **fields)


# ============================================================================
# Menu and Gates
# ============================================================================

class TestMenus:

    def test_inspector_menu(self):
        assert navigation.menu_for(Role.INSPECTOR) == ('all', 'my_articles', 'approved')

    def test_supervisor_menu(self):
        assert navigation.menu_for(Role.SUPERVISOR) == ('all', 'pending_approval', 'approved')

    def test_no_role_no_menu(self):
        assert navigation.menu_for(None) == ()

    def test_every_menu_entry_has_a_label(self):
        for role in Role:
            for view in navigation.menu_for(role):
                assert view in navigation.MENU_LABELS


class TestGates:

    def test_create_article_gate(self):
        assert navigation.can_create_article(Role.INSPECTOR, item())
        assert not navigation.can_create_article(Role.SUPERVISOR, item())
        assert not navigation.can_create_article(Role.INSPECTOR, item(execution_status='in_progress'))
        assert not navigation.can_create_article(Role.INSPECTOR, item(article_status='draft'))

    def test_review_article_gate(self):
        assert navigation.can_review_article(Role.SUPERVISOR, item(article_status='pending_approval'))
        assert not navigation.can_review_article(Role.INSPECTOR, item(article_status='pending_approval'))
        assert not navigation.can_review_article(Role.SUPERVISOR, item(article_status='draft'))

    def test_open_draft_gate(self):
        assert navigation.can_open_draft(Role.INSPECTOR, item(article_status='draft', produced=True))
        assert not navigation.can_open_draft(Role.INSPECTOR, item(article_status='draft'))

    def test_redraft_gate(self):
        assert navigation.can_redraft(Role.INSPECTOR, item(article_status='draft', failed=True))
        assert not navigation.can_redraft(Role.INSPECTOR, item(article_status='draft'))
        assert not navigation.can_redraft(Role.SUPERVISOR, item(article_status='draft', failed=True))
        assert not navigation.can_redraft(
            Role.INSPECTOR, item(article_status='draft', produced=True, failed=True)
        )


class TestFilterItems:

    ITEMS = [
        item(1, article_status='none'),
        item(2, article_status='draft'),
        item(3, article_status='pending_approval'),
        item(4, article_status='approved'),
    ]

    @pytest.mark.parametrize('view, expected', [
        ('all', [1, 2, 3, 4]),
        ('my_articles', [2, 3, 4]),
        ('pending_approval', [3]),
        ('approved', [4]),
    ])
    def test_views(self, view, expected):
        assert [i.pk for i in navigation.filter_items(self.ITEMS, view)] == expected

    def test_unknown_view(self):
        with pytest.raises(ValidationError):
            navigation.filter_items(self.ITEMS, 'archived')


# ============================================================================
# Session Commands
# ============================================================================

class TestRoleAndLogout:

    def test_initial_state(self):
        state = navigation.initial_state()
        assert state.screen is Screen.ROLE_SELECT
        assert state.role is None

    def test_select_role(self):
        state = navigation.select_role(NavigationState(), 'supervisor')
        assert state.screen is Screen.DASHBOARD
        assert state.role is Role.SUPERVISOR
        assert state.dashboard_view == 'all'

    def test_select_unknown_role(self):
        with pytest.raises(ValidationError):
            navigation.select_role(NavigationState(), 'mayor')

    def test_select_role_only_once(self):
        with pytest.raises(PreconditionFailedError):
            navigation.select_role(on(Screen.DASHBOARD), 'supervisor')

    def test_logout_clears_role_and_selection(self):
        state = navigation.logout(on(Screen.DRAFT, selected_item_id=5, editing=True))
        assert state == NavigationState()


class TestNavigate:

    def test_menu_view(self):
        state = navigation.navigate(on(Screen.DASHBOARD), 'my_articles')
        assert state.dashboard_view == 'my_articles'

    def test_view_outside_role_menu(self):
        with pytest.raises(PreconditionFailedError):
            navigation.navigate(on(Screen.DASHBOARD), 'pending_approval')

    def test_navigate_clears_selection(self):
        state = navigation.navigate(on(Screen.UPLOAD, selected_item_id=3), 'all')
        assert state.screen is Screen.DASHBOARD
        assert state.selected_item_id is None

    @pytest.mark.parametrize('screen', [Screen.ROLE_SELECT, Screen.PROCESSING])
    def test_not_navigable(self, screen):
        with pytest.raises(PreconditionFailedError):
            navigation.navigate(on(screen), 'all')


# ============================================================================
# Item Screens
# ============================================================================

class TestItemScreens:

    def test_create_article_opens_upload(self):
        state = navigation.create_article(on(Screen.DASHBOARD), item(7))
        assert state.screen is Screen.UPLOAD
        assert state.selected_item_id == 7

    def test_supervisor_cannot_create_article(self):
        with pytest.raises(PreconditionFailedError):
            navigation.create_article(on(Screen.DASHBOARD, role=Role.SUPERVISOR), item())

    def test_create_article_only_from_dashboard(self):
        with pytest.raises(PreconditionFailedError):
            navigation.create_article(on(Screen.DRAFT), item())

    def test_review_article_opens_approval(self):
        state = navigation.review_article(
            on(Screen.DASHBOARD, role=Role.SUPERVISOR, approval_confirmed=True),
            item(4, article_status='pending_approval'),
        )
        assert state.screen is Screen.APPROVAL
        assert state.selected_item_id == 4
        assert state.approval_confirmed is False

    def test_open_draft(self):
        state = navigation.open_draft(on(Screen.DASHBOARD), item(2, article_status='draft', produced=True))
        assert state.screen is Screen.DRAFT


# ============================================================================
# Processing and Draft
# ============================================================================

class TestProcessing:

    def test_submit_intake_enters_processing(self):
        state = navigation.submit_intake(on(Screen.UPLOAD, selected_item_id=1), item(1))
        assert state.screen is Screen.PROCESSING

    def test_submit_intake_for_other_item(self):
        with pytest.raises(PreconditionFailedError):
            navigation.submit_intake(on(Screen.UPLOAD, selected_item_id=1), item(2))

    def test_sync_waits_for_producer(self):
        state = on(Screen.PROCESSING, selected_item_id=1)
        assert navigation.sync(state, item(1, article_status='draft')) is state

    def test_sync_exits_once(self):
        state = on(Screen.PROCESSING, selected_item_id=1)
        ready = item(1, article_status='draft', produced=True)

        state = navigation.sync(state, ready)
        assert state.screen is Screen.DRAFT
        assert navigation.sync(state, ready) is state

    def test_sync_ignores_other_screens(self):
        state = on(Screen.DASHBOARD)
        assert navigation.sync(state, item(1, article_status='draft', produced=True)) is state

    def test_redraft_from_processing(self):
        state = navigation.redraft(
            on(Screen.PROCESSING, selected_item_id=1), item(1, article_status='draft', failed=True)
        )
        assert state.screen is Screen.PROCESSING
        assert state.selected_item_id == 1

    def test_redraft_from_dashboard_selects_item(self):
        state = navigation.redraft(on(Screen.DASHBOARD), item(3, article_status='draft', failed=True))
        assert state.screen is Screen.PROCESSING
        assert state.selected_item_id == 3

    def test_redraft_needs_failed_draft(self):
        with pytest.raises(PreconditionFailedError):
            navigation.redraft(on(Screen.PROCESSING, selected_item_id=1), item(1, article_status='draft'))

    def test_redraft_other_item_while_processing(self):
        with pytest.raises(PreconditionFailedError):
            navigation.redraft(
                on(Screen.PROCESSING, selected_item_id=1), item(2, article_status='draft', failed=True)
            )


class TestDraftScreen:

    def test_edit_session(self):
        state = navigation.begin_edit(on(Screen.DRAFT, selected_item_id=1), item(1))
        assert state.editing
        assert not navigation.cancel_edit(state, item(1)).editing

    def test_edit_body_ends_edit(self):
        state = on(Screen.DRAFT, selected_item_id=1, editing=True)
        assert not navigation.edit_body(state, item(1)).editing

    def test_submit_for_approval_returns_to_dashboard(self):
        state = navigation.submit_for_approval(on(Screen.DRAFT, selected_item_id=1), item(1))
        assert state.screen is Screen.DASHBOARD
        assert state.selected_item_id is None

    def test_begin_edit_off_draft(self):
        with pytest.raises(PreconditionFailedError):
            navigation.begin_edit(on(Screen.DASHBOARD), item())

    @pytest.mark.parametrize('command', [navigation.begin_edit, navigation.cancel_edit])
    def test_edit_session_for_other_item(self, command):
        with pytest.raises(PreconditionFailedError):
            command(on(Screen.DRAFT, selected_item_id=1), item(2))

    def test_submit_for_approval_resets_view(self):
        state = on(Screen.DRAFT, selected_item_id=1, dashboard_view='my_articles')
        assert navigation.submit_for_approval(state, item(1)).dashboard_view == 'all'


# ============================================================================
# Approval and Confirmation
# ============================================================================

class TestApprovalScreens:

    def approval(self, **fields):
        return on(Screen.APPROVAL, role=Role.SUPERVISOR, selected_item_id=4, **fields)

    def test_toggle(self):
        state = navigation.toggle_approval(self.approval(), item(4))
        assert state.approval_confirmed
        assert not navigation.toggle_approval(state, item(4)).approval_confirmed

    def test_toggle_for_other_item(self):
        with pytest.raises(PreconditionFailedError):
            navigation.toggle_approval(self.approval(), item(5))

    def test_approve_goes_to_confirmation(self):
        state = navigation.approve(self.approval(approval_confirmed=True), item(4))
        assert state.screen is Screen.CONFIRMATION
        assert state.selected_item_id == 4

    def test_reject_goes_to_dashboard(self):
        state = navigation.reject(self.approval(dashboard_view='pending_approval'), item(4))
        assert state.screen is Screen.DASHBOARD
        assert state.dashboard_view == 'all'

    def test_preview_cycle(self):
        confirmation = on(Screen.CONFIRMATION, role=Role.SUPERVISOR, selected_item_id=4)
        previewing = navigation.preview(confirmation)

        assert previewing.screen is Screen.PREVIEW
        assert navigation.close_preview(previewing) == confirmation

    def test_close_preview_only_from_preview(self):
        with pytest.raises(PreconditionFailedError):
            navigation.close_preview(on(Screen.CONFIRMATION))

    @pytest.mark.parametrize('screen', [Screen.UPLOAD, Screen.DRAFT, Screen.APPROVAL, Screen.CONFIRMATION])
    def test_back_to_dashboard(self, screen):
        state = navigation.back_to_dashboard(on(screen, selected_item_id=1, dashboard_view='approved'))
        assert state.screen is Screen.DASHBOARD
        assert state.dashboard_view == 'all'

    @pytest.mark.parametrize('screen', [Screen.PROCESSING, Screen.PREVIEW, Screen.ROLE_SELECT])
    def test_no_way_back_from(self, screen):
        with pytest.raises(PreconditionFailedError):
            navigation.back_to_dashboard(on(screen))


# ============================================================================
# Session Round Trip
# ============================================================================

class TestSessionStorage:

    def test_from_dict_of_to_dict(self):
        state = on(Screen.APPROVAL, role=Role.SUPERVISOR, selected_item_id=9, approval_confirmed=True)
        assert NavigationState.from_dict(state.to_dict()) == state

    def test_corrupt_session_starts_over(self):
        assert NavigationState.from_dict({'screen': 'lobby'}) == NavigationState()

    def test_empty_session(self):
        assert NavigationState.from_dict(None) == NavigationState()
