"""
Workflow API views.

The operator's navigation state lives in the Django session; every command
loads it, runs through ``NavigationController`` and writes it back only when
the command succeeded.
"""

import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.permissions import HasOperatorRole
from .controller import NavigationController
from .models import WorkItem
from .navigation import NavigationState
from .serializers import (
    EditBodySerializer,
    ExecutionStatusSerializer,
    IntakeSerializer,
    NavigateSerializer,
    RoleSerializer,
    SessionStateSerializer,
    WorkItemDetailSerializer,
    WorkItemListSerializer,
)

logger = logging.getLogger(__name__)

SESSION_KEY = 'navigation'


class NavigationSessionMixin:
    """Load and persist the session's navigation state around a command."""

    def get_controller(self, request) -> NavigationController:
        state = NavigationState.from_dict(request.session.get(SESSION_KEY))
        return NavigationController(state=state)

    def save_state(self, request, controller: NavigationController):
        request.session[SESSION_KEY] = controller.state.to_dict()

    def session_response(self, request, controller, item=None, status_code=status.HTTP_200_OK):
        self.save_state(request, controller)
        data = {'session': SessionStateSerializer(controller.state).data}
        if item is not None:
            data['workitem'] = WorkItemDetailSerializer(item).data
        return Response(data, status=status_code)


class SessionViewSet(NavigationSessionMixin, viewsets.ViewSet):
    """
    Operator session API.

    GET  /api/session/                - Current screen, menu, processing stages
    POST /api/session/role/           - Select role (role_select → dashboard)
    POST /api/session/navigate/       - Open a dashboard view from the menu
    POST /api/session/dashboard/      - Back to the dashboard
    POST /api/session/preview/        - Confirmation → preview
    POST /api/session/close-preview/  - Preview → confirmation
    POST /api/session/logout/         - Back to role selection
    """

    def list(self, request):
        controller = self.get_controller(request)
        controller.sync()
        return self.session_response(request, controller)

    @action(detail=False, methods=['post'])
    def role(self, request):
        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        controller = self.get_controller(request)
        controller.select_role(serializer.validated_data['role'])
        return self.session_response(request, controller)

    @action(detail=False, methods=['post'])
    def navigate(self, request):
        serializer = NavigateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        controller = self.get_controller(request)
        controller.navigate(serializer.validated_data['view'])
        return self.session_response(request, controller)

    @action(detail=False, methods=['post'])
    def dashboard(self, request):
        controller = self.get_controller(request)
        controller.back_to_dashboard()
        return self.session_response(request, controller)

    @action(detail=False, methods=['post'])
    def preview(self, request):
        controller = self.get_controller(request)
        controller.preview()
        return self.session_response(request, controller)

    @action(detail=False, methods=['post'], url_path='close-preview')
    def close_preview(self, request):
        controller = self.get_controller(request)
        controller.close_preview()
        return self.session_response(request, controller)

    @action(detail=False, methods=['post'])
    def logout(self, request):
        controller = self.get_controller(request)
        controller.logout()
        return self.session_response(request, controller)


class WorkItemViewSet(NavigationSessionMixin, viewsets.ReadOnlyModelViewSet):
    """
    Work item API.

    GET  /api/workitems/?view=all            - Dashboard projection
    GET  /api/workitems/{id}/                - Work item detail
    POST /api/workitems/{id}/create-article/ - Inspector: open the upload screen
    POST /api/workitems/{id}/review-article/ - Supervisor: open the approval screen
    POST /api/workitems/{id}/open-draft/     - Inspector: reopen a produced draft
    POST /api/workitems/{id}/intake/         - Submit description, images, location
    POST /api/workitems/{id}/redraft/        - Inspector: rerun a failed Draft Producer
    POST /api/workitems/{id}/begin-edit/     - Start editing the article body
    POST /api/workitems/{id}/cancel-edit/    - Discard the edit session
    POST /api/workitems/{id}/body/           - Save the article body
    POST /api/workitems/{id}/submit/         - Submit the draft for approval
    POST /api/workitems/{id}/toggle-approval/ - Flip the approval confirmation
    POST /api/workitems/{id}/approve/        - Approve the article
    POST /api/workitems/{id}/reject/         - Send the article back to draft
    POST /api/workitems/{id}/execution/      - Advance the execution status
    """

    permission_classes = [HasOperatorRole]
    queryset = WorkItem.objects.order_by('id')

    def get_serializer_class(self):
        if self.action == 'list':
            return WorkItemListSerializer
        return WorkItemDetailSerializer

    def list(self, request, *args, **kwargs):
        controller = self.get_controller(request)
        view = request.query_params.get('view')
        items = controller.dashboard_items(view)
        serializer = WorkItemListSerializer(items, many=True)
        return Response({
            'view': view or controller.state.dashboard_view,
            'count': len(items),
            'results': serializer.data,
        })

    # -------------------------------------------------------------------------
    # Entering item screens
    # -------------------------------------------------------------------------

    @action(detail=True, methods=['post'], url_path='create-article')
    def create_article(self, request, pk=None):
        controller = self.get_controller(request)
        controller.create_article(pk)
        return self.session_response(request, controller, controller.store.get(pk))

    @action(detail=True, methods=['post'], url_path='review-article')
    def review_article(self, request, pk=None):
        controller = self.get_controller(request)
        controller.review_article(pk)
        return self.session_response(request, controller, controller.store.get(pk))

    @action(detail=True, methods=['post'], url_path='open-draft')
    def open_draft(self, request, pk=None):
        controller = self.get_controller(request)
        controller.open_draft(pk)
        return self.session_response(request, controller, controller.store.get(pk))

    # -------------------------------------------------------------------------
    # Lifecycle commands
    # -------------------------------------------------------------------------

    @action(detail=True, methods=['post'])
    def intake(self, request, pk=None):
        serializer = IntakeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        controller = self.get_controller(request)
        item = controller.submit_intake(
            pk,
            description=data['description'],
            images=[dict(image) for image in data['images']],
            location=_plain(data.get('location')),
        )
        return self.session_response(request, controller, item, status.HTTP_202_ACCEPTED)

    @action(detail=True, methods=['post'])
    def redraft(self, request, pk=None):
        controller = self.get_controller(request)
        item = controller.redraft(pk)
        return self.session_response(request, controller, item, status.HTTP_202_ACCEPTED)

    @action(detail=True, methods=['post'], url_path='begin-edit')
    def begin_edit(self, request, pk=None):
        controller = self.get_controller(request)
        controller.begin_edit(pk)
        return self.session_response(request, controller, controller.store.get(pk))

    @action(detail=True, methods=['post'], url_path='cancel-edit')
    def cancel_edit(self, request, pk=None):
        controller = self.get_controller(request)
        controller.cancel_edit(pk)
        return self.session_response(request, controller, controller.store.get(pk))

    @action(detail=True, methods=['post'])
    def body(self, request, pk=None):
        serializer = EditBodySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        controller = self.get_controller(request)
        item = controller.edit_body(pk, serializer.validated_data['article_body'])
        return self.session_response(request, controller, item)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        controller = self.get_controller(request)
        item = controller.submit_for_approval(pk)
        return self.session_response(request, controller, item)

    @action(detail=True, methods=['post'], url_path='toggle-approval')
    def toggle_approval(self, request, pk=None):
        controller = self.get_controller(request)
        controller.toggle_approval(pk)
        return self.session_response(request, controller, controller.store.get(pk))

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        controller = self.get_controller(request)
        item = controller.approve(pk)
        return self.session_response(request, controller, item)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        controller = self.get_controller(request)
        item = controller.reject(pk)
        return self.session_response(request, controller, item)

    @action(detail=True, methods=['post'])
    def execution(self, request, pk=None):
        serializer = ExecutionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        controller = self.get_controller(request)
        item = controller.machine.advance_execution(pk, serializer.validated_data['execution_status'])
        return self.session_response(request, controller, item)


def _plain(value):
    """Validated nested data as plain dicts for JSON storage."""
    if isinstance(value, dict):
        return {key: _plain(inner) for key, inner in value.items()}
    return value
