from django.apps import AppConfig


class WorkItemsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.workitems'
    verbose_name = 'Work Items'
