"""
URL configuration for the field report workflow.
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    # Operator session and work item commands
    path('api/', include('apps.workitems.urls')),
    # Observability endpoints
    path('', include('apps.core.urls')),
]

# Customize admin site
admin.site.site_header = "Field Report Workflow Administration"
admin.site.site_title = "Field Report Workflow Admin"
admin.site.index_title = "Work items and articles"
