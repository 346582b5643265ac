"""
URL patterns for core observability endpoints.
"""

from django.urls import path
from .metrics import metrics_view
from .views import (
    HealthCheckView,
    LivenessView,
    ReadinessView,
)

app_name = 'core'

urlpatterns = [
    # Health checks
    path('health/', HealthCheckView.as_view(), name='health'),

    # Kubernetes probes
    path('livez/', LivenessView.as_view(), name='liveness'),
    path('readyz/', ReadinessView.as_view(), name='readiness'),

    # Prometheus
    path('metrics/', metrics_view, name='metrics'),
]
