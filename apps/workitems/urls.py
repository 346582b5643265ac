"""
Workflow API URLs.
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import SessionViewSet, WorkItemViewSet

app_name = 'workitems'

router = SimpleRouter()
router.register(r'session', SessionViewSet, basename='session')
router.register(r'workitems', WorkItemViewSet, basename='workitem')

urlpatterns = [
    path('', include(router.urls)),
]
