"""
Command surface for the presentation layer.

``NavigationController`` pairs one session's ``NavigationState`` with the
work item store. Each command loads what it needs, checks the lifecycle edge,
then the navigation gate, then applies the state machine operation; the new
navigation state is only kept once the whole command has succeeded, so a
failed command leaves both the screen and the data as they were.
"""

import logging
from typing import List, Optional

from . import navigation
from .models import WorkItem
from .navigation import NavigationState, Screen
from .state_machine import ArticleStatus, WorkItemStateMachine
from .store import WorkItemStore

logger = logging.getLogger(__name__)


class NavigationController:
    def __init__(
        self,
        state: Optional[NavigationState] = None,
        store: Optional[WorkItemStore] = None,
        machine: Optional[WorkItemStateMachine] = None,
    ):
        self.store = store or WorkItemStore()
        self.machine = machine or WorkItemStateMachine(store=self.store)
        self._state = state or navigation.initial_state()

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def menu(self):
        return navigation.menu_for(self._state.role)

    def _commit(self, new_state: NavigationState, command: str) -> NavigationState:
        if new_state.screen is not self._state.screen:
            logger.info(
                "%s: %s → %s",
                command,
                self._state.screen.value,
                new_state.screen.value,
            )
        self._state = new_state
        return new_state

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def select_role(self, role) -> NavigationState:
        return self._commit(navigation.select_role(self._state, role), 'select_role')

    def navigate(self, view: str) -> NavigationState:
        return self._commit(navigation.navigate(self._state, view), 'navigate')

    def back_to_dashboard(self) -> NavigationState:
        return self._commit(navigation.back_to_dashboard(self._state), 'back_to_dashboard')

    def logout(self) -> NavigationState:
        logger.info("Operator logged out (role=%s)", self._state.role.value if self._state.role else None)
        return self._commit(navigation.logout(self._state), 'logout')

    def sync(self) -> NavigationState:
        """Pick up a finished draft while the processing screen is shown."""
        if self._state.screen is not Screen.PROCESSING:
            return self._state
        try:
            item = WorkItem.objects.get(pk=self._state.selected_item_id)
        except WorkItem.DoesNotExist:
            return self._state
        return self._commit(navigation.sync(self._state, item), 'sync')

    def dashboard_items(self, view: Optional[str] = None) -> List[WorkItem]:
        return navigation.filter_items(self.store.list(), view or self._state.dashboard_view)

    # -------------------------------------------------------------------------
    # Entering item screens
    # -------------------------------------------------------------------------

    def create_article(self, item_id) -> NavigationState:
        item = self.store.get(item_id)
        return self._commit(navigation.create_article(self._state, item), 'create_article')

    def review_article(self, item_id) -> NavigationState:
        item = self.store.get(item_id)
        return self._commit(navigation.review_article(self._state, item), 'review_article')

    def open_draft(self, item_id) -> NavigationState:
        item = self.store.get(item_id)
        return self._commit(navigation.open_draft(self._state, item), 'open_draft')

    # -------------------------------------------------------------------------
    # Lifecycle commands
    # -------------------------------------------------------------------------

    def submit_intake(self, item_id, description, images, location=None) -> WorkItem:
        item = self.store.get(item_id)
        self.machine.ensure_transition(item, ArticleStatus.DRAFT)
        new_state = navigation.submit_intake(self._state, item)

        updated = self.machine.submit_intake(item.pk, description, images, location)
        self._commit(new_state, 'submit_intake')
        return updated

    def redraft(self, item_id) -> WorkItem:
        item = self.store.get(item_id)
        self.machine.ensure_draft(item, 'redrafted')
        new_state = navigation.redraft(self._state, item)

        updated = self.machine.redraft(item.pk)
        self._commit(new_state, 'redraft')
        return updated

    def begin_edit(self, item_id) -> NavigationState:
        item = self.store.get(item_id)
        return self._commit(navigation.begin_edit(self._state, item), 'begin_edit')

    def cancel_edit(self, item_id) -> NavigationState:
        item = self.store.get(item_id)
        return self._commit(navigation.cancel_edit(self._state, item), 'cancel_edit')

    def edit_body(self, item_id, text) -> WorkItem:
        item = self.store.get(item_id)
        new_state = navigation.edit_body(self._state, item)

        updated = self.machine.edit_body(item.pk, text)
        self._commit(new_state, 'edit_body')
        return updated

    def submit_for_approval(self, item_id) -> WorkItem:
        item = self.store.get(item_id)
        self.machine.ensure_transition(item, ArticleStatus.PENDING_APPROVAL)
        new_state = navigation.submit_for_approval(self._state, item)

        updated = self.machine.submit_for_approval(item.pk, in_edit_session=self._state.editing)
        self._commit(new_state, 'submit_for_approval')
        return updated

    def toggle_approval(self, item_id) -> NavigationState:
        item = self.store.get(item_id)
        return self._commit(navigation.toggle_approval(self._state, item), 'toggle_approval')

    def approve(self, item_id) -> WorkItem:
        item = self.store.get(item_id)
        self.machine.ensure_transition(item, ArticleStatus.APPROVED)
        new_state = navigation.approve(self._state, item)

        updated = self.machine.approve(item.pk, approval_confirmed=self._state.approval_confirmed)
        self._commit(new_state, 'approve')
        return updated

    def reject(self, item_id) -> WorkItem:
        item = self.store.get(item_id)
        self.machine.ensure_transition(item, ArticleStatus.DRAFT)
        new_state = navigation.reject(self._state, item)

        updated = self.machine.reject(item.pk)
        self._commit(new_state, 'reject')
        return updated

    def preview(self) -> NavigationState:
        return self._commit(navigation.preview(self._state), 'preview')

    def close_preview(self) -> NavigationState:
        return self._commit(navigation.close_preview(self._state), 'close_preview')
