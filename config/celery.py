"""
Celery configuration for the field report workflow.

Includes request ID propagation so producer logs correlate with the command
that queued them.
"""

import os
from celery import Celery
from celery.signals import task_prerun, task_postrun

# Set default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('workflow')

# Load configuration from Django settings with CELERY namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()

app.conf.task_routes = {
    'apps.workitems.tasks.*': {'queue': 'drafts'},
}

# Default queue if not specified
app.conf.task_default_queue = 'default'


@task_prerun.connect
def setup_task_request_context(task_id, task, args, kwargs, **signals_kwargs):
    """
    Restore the request context carried in the task headers.

    Eager tasks run inside the request that queued them and keep its context.
    """
    from apps.core.middleware import setup_celery_request_context

    if task.request.is_eager:
        return
    headers = getattr(task.request, 'headers', None) or {}
    setup_celery_request_context(headers)


@task_postrun.connect
def cleanup_task_request_context(task_id, task, args, kwargs, retval, state, **signals_kwargs):
    """Clear the worker's request context; eager tasks leave the caller's alone."""
    from apps.core.middleware import clear_request_context

    if task.request.is_eager:
        return
    clear_request_context()
