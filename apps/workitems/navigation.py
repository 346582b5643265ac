"""
Navigation state for one operator session.

A pure reducer: every command is a function ``(state, ...) -> state`` over an
immutable ``NavigationState`` and, where a work item is involved, a snapshot
of that item. Nothing here touches the database or the Django session; the
controller loads items and persists the state.

Screens:
    role_select ─▶ dashboard ─▶ upload ─▶ processing ─▶ draft ─▶ dashboard
                       │
                       └─▶ approval ─▶ confirmation ⇄ preview

A draft the producer gave up on is sent back with ``redraft``, which leads to
``processing`` again.

Role and menu are a closed set; gates are plain functions of the role and
the item's lifecycle state.
"""

from dataclasses import dataclass, replace, asdict
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from apps.core.exceptions import PreconditionFailedError, ValidationError
from .state_machine import DRAFT_FAILURE_KEY


class Role(Enum):
    INSPECTOR = 'inspector'
    SUPERVISOR = 'supervisor'

    @classmethod
    def from_string(cls, value: str) -> 'Role':
        for role in cls:
            if role.value == value:
                return role
        raise ValidationError(f"Unknown role: {value!r}", field='role')


class Screen(Enum):
    ROLE_SELECT = 'role_select'
    DASHBOARD = 'dashboard'
    UPLOAD = 'upload'
    PROCESSING = 'processing'
    DRAFT = 'draft'
    APPROVAL = 'approval'
    CONFIRMATION = 'confirmation'
    PREVIEW = 'preview'


# Dashboard projections
VIEW_ALL = 'all'
VIEW_MY_ARTICLES = 'my_articles'
VIEW_PENDING_APPROVAL = 'pending_approval'
VIEW_APPROVED = 'approved'

DASHBOARD_VIEWS = (VIEW_ALL, VIEW_MY_ARTICLES, VIEW_PENDING_APPROVAL, VIEW_APPROVED)

MENUS = {
    Role.INSPECTOR: (VIEW_ALL, VIEW_MY_ARTICLES, VIEW_APPROVED),
    Role.SUPERVISOR: (VIEW_ALL, VIEW_PENDING_APPROVAL, VIEW_APPROVED),
}

MENU_LABELS = {
    VIEW_ALL: 'All',
    VIEW_MY_ARTICLES: 'My Articles',
    VIEW_PENDING_APPROVAL: 'Pending Approval',
    VIEW_APPROVED: 'Approved',
}

# Screens from which the operator may return to the dashboard directly.
RETURNABLE_SCREENS = (Screen.UPLOAD, Screen.DRAFT, Screen.APPROVAL, Screen.CONFIRMATION)


@dataclass(frozen=True)
class NavigationState:
    screen: Screen = Screen.ROLE_SELECT
    role: Optional[Role] = None
    selected_item_id: Optional[int] = None
    dashboard_view: str = VIEW_ALL
    editing: bool = False
    approval_confirmed: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data['screen'] = self.screen.value
        data['role'] = self.role.value if self.role else None
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'NavigationState':
        """Rebuild from the session; anything unreadable starts over."""
        if not data:
            return cls()
        try:
            return cls(
                screen=Screen(data.get('screen', Screen.ROLE_SELECT.value)),
                role=Role(data['role']) if data.get('role') else None,
                selected_item_id=data.get('selected_item_id'),
                dashboard_view=data.get('dashboard_view') or VIEW_ALL,
                editing=bool(data.get('editing')),
                approval_confirmed=bool(data.get('approval_confirmed')),
            )
        except ValueError:
            return cls()


def initial_state() -> NavigationState:
    return NavigationState()


# =============================================================================
# Menu and gates
# =============================================================================

def menu_for(role: Optional[Role]) -> Tuple[str, ...]:
    if role is None:
        return ()
    return MENUS[role]


def can_create_article(role: Optional[Role], item) -> bool:
    return (
        role is Role.INSPECTOR
        and item.execution_status == 'completed'
        and item.article_status == 'none'
    )


def can_review_article(role: Optional[Role], item) -> bool:
    return role is Role.SUPERVISOR and item.article_status == 'pending_approval'


def can_open_draft(role: Optional[Role], item) -> bool:
    return (
        role is Role.INSPECTOR
        and item.article_status == 'draft'
        and item.draft_produced_at is not None
    )


def can_redraft(role: Optional[Role], item) -> bool:
    """The producer gave up on this draft and it still has no result."""
    return (
        role is Role.INSPECTOR
        and item.article_status == 'draft'
        and item.draft_produced_at is None
        and DRAFT_FAILURE_KEY in (item.metadata or {})
    )


def filter_items(items: Iterable, view: str) -> List:
    """Dashboard projection of ``items`` for ``view``."""
    if view not in DASHBOARD_VIEWS:
        raise ValidationError(f"Unknown dashboard view: {view!r}", field='view')
    if view == VIEW_MY_ARTICLES:
        return [item for item in items if item.article_status != 'none']
    if view == VIEW_PENDING_APPROVAL:
        return [item for item in items if item.article_status == 'pending_approval']
    if view == VIEW_APPROVED:
        return [item for item in items if item.article_status == 'approved']
    return list(items)


def _require_screen(state: NavigationState, *screens: Screen):
    if state.screen not in screens:
        expected = ', '.join(screen.value for screen in screens)
        raise PreconditionFailedError(
            f"Not available on the {state.screen.value} screen (expected {expected})",
            details={'screen': state.screen.value},
        )


def _require_selected(state: NavigationState, item):
    if state.selected_item_id != item.pk:
        raise PreconditionFailedError(
            f"Work item {item.pk} is not the selected item",
            details={'selected_item_id': state.selected_item_id},
        )


def _require_role(state: NavigationState, role: Role):
    if state.role is not role:
        raise PreconditionFailedError(
            f"Only the {role.value} role can do this",
            details={'role': state.role.value if state.role else None},
        )


def _to_dashboard(state: NavigationState, view: str) -> NavigationState:
    return replace(
        state,
        screen=Screen.DASHBOARD,
        selected_item_id=None,
        dashboard_view=view,
        editing=False,
        approval_confirmed=False,
    )


# =============================================================================
# Commands
# =============================================================================

def select_role(state: NavigationState, role) -> NavigationState:
    _require_screen(state, Screen.ROLE_SELECT)
    if not isinstance(role, Role):
        role = Role.from_string(role)
    return replace(_to_dashboard(state, VIEW_ALL), role=role)


def navigate(state: NavigationState, view: str) -> NavigationState:
    if state.screen in (Screen.ROLE_SELECT, Screen.PROCESSING):
        raise PreconditionFailedError(
            f"Navigation is not available on the {state.screen.value} screen",
            details={'screen': state.screen.value},
        )
    if view not in menu_for(state.role):
        raise PreconditionFailedError(
            f"View {view!r} is not in the menu for this role",
            field='view',
            details={'menu': list(menu_for(state.role))},
        )
    return _to_dashboard(state, view)


def create_article(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DASHBOARD)
    if not can_create_article(state.role, item):
        raise PreconditionFailedError(
            f"Cannot start an article for work item {item.pk}: requires the inspector role, "
            f"completed works and no existing article",
            details={
                'role': state.role.value if state.role else None,
                'execution_status': item.execution_status,
                'article_status': item.article_status,
            },
        )
    return replace(state, screen=Screen.UPLOAD, selected_item_id=item.pk)


def review_article(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DASHBOARD)
    if not can_review_article(state.role, item):
        raise PreconditionFailedError(
            f"Cannot review work item {item.pk}: requires the supervisor role and an article pending approval",
            details={
                'role': state.role.value if state.role else None,
                'article_status': item.article_status,
            },
        )
    return replace(state, screen=Screen.APPROVAL, selected_item_id=item.pk, approval_confirmed=False)


def open_draft(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DASHBOARD)
    if not can_open_draft(state.role, item):
        raise PreconditionFailedError(
            f"Cannot open the draft of work item {item.pk}: requires the inspector role and a produced draft",
            details={
                'role': state.role.value if state.role else None,
                'article_status': item.article_status,
            },
        )
    return replace(state, screen=Screen.DRAFT, selected_item_id=item.pk, editing=False)


def submit_intake(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.UPLOAD)
    _require_role(state, Role.INSPECTOR)
    _require_selected(state, item)
    return replace(state, screen=Screen.PROCESSING)


def sync(state: NavigationState, item) -> NavigationState:
    """Leave ``processing`` once the selected item's draft is ready."""
    if state.screen is not Screen.PROCESSING or item is None:
        return state
    if item.pk != state.selected_item_id:
        return state
    if item.article_status == 'draft' and item.draft_produced_at is not None:
        return replace(state, screen=Screen.DRAFT, editing=False)
    return state


def redraft(state: NavigationState, item) -> NavigationState:
    """
    Send a failed draft back to the producer, from the processing screen it
    failed on or from the dashboard, and wait on ``processing`` again.
    """
    _require_screen(state, Screen.DASHBOARD, Screen.PROCESSING)
    if state.screen is Screen.PROCESSING:
        _require_selected(state, item)
    if not can_redraft(state.role, item):
        raise PreconditionFailedError(
            f"Cannot redraft work item {item.pk}: requires the inspector role and a failed draft",
            details={
                'role': state.role.value if state.role else None,
                'article_status': item.article_status,
            },
        )
    return replace(state, screen=Screen.PROCESSING, selected_item_id=item.pk, editing=False)


def begin_edit(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DRAFT)
    _require_selected(state, item)
    return replace(state, editing=True)


def cancel_edit(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DRAFT)
    _require_selected(state, item)
    return replace(state, editing=False)


def edit_body(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DRAFT)
    _require_selected(state, item)
    return replace(state, editing=False)


def submit_for_approval(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.DRAFT)
    _require_role(state, Role.INSPECTOR)
    _require_selected(state, item)
    return _to_dashboard(state, VIEW_ALL)


def toggle_approval(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.APPROVAL)
    _require_selected(state, item)
    return replace(state, approval_confirmed=not state.approval_confirmed)


def approve(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.APPROVAL)
    _require_role(state, Role.SUPERVISOR)
    _require_selected(state, item)
    return replace(state, screen=Screen.CONFIRMATION, approval_confirmed=False)


def reject(state: NavigationState, item) -> NavigationState:
    _require_screen(state, Screen.APPROVAL)
    _require_role(state, Role.SUPERVISOR)
    _require_selected(state, item)
    return _to_dashboard(state, VIEW_ALL)


def preview(state: NavigationState) -> NavigationState:
    _require_screen(state, Screen.CONFIRMATION)
    return replace(state, screen=Screen.PREVIEW)


def close_preview(state: NavigationState) -> NavigationState:
    _require_screen(state, Screen.PREVIEW)
    return replace(state, screen=Screen.CONFIRMATION)


def back_to_dashboard(state: NavigationState) -> NavigationState:
    _require_screen(state, *RETURNABLE_SCREENS)
    return _to_dashboard(state, VIEW_ALL)


def logout(state: NavigationState) -> NavigationState:
    return NavigationState()
