"""
Load the demo work items.

Usage:
    python manage.py seed_workitems
    python manage.py seed_workitems --reset
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.workitems.models import WorkItem
from apps.workitems.store import WorkItemStore

SEED_WORKITEMS = [
    {
        'name': 'Road resurfacing - Street A',
        'location': 'City Centre',
        'execution_status': 'completed',
        'article_status': 'none',
    },
    {
        'name': 'Tree pruning - Park B',
        'location': 'District B',
        'execution_status': 'completed',
        'article_status': 'pending_approval',
        'article_data': {
            'description': 'Annual pruning of trees in Park B to ensure safety and health of the flora.',
            'location': {'name': 'District B', 'coordinates': {'lat': 38.0, 'lng': 23.75}},
            'images': [],
            'image_pairs': [],
            'project_type': 'Greenery',
            'key_points': ['Pruning of tall trees', 'Removal of dry branches'],
            'article_title': 'Maintenance works at Park B',
            'article_subtitle': 'Annual pruning completed for the safety of visitors',
            'article_body': (
                "The municipal parks crews have completed the scheduled pruning works in Park B. "
                "The intervention removed dangerous branches and keeps the trees healthy.\n\n"
                "The works improve the look of the park and keep its recreation areas safe."
            ),
            'service': 'Parks Department',
            'date': '15/05/2024',
        },
    },
    {
        'name': 'Playground repair - Square C',
        'location': 'District C',
        'execution_status': 'in_progress',
        'article_status': 'none',
    },
    {
        'name': 'LED lighting replacement - Avenue D',
        'location': 'District D',
        'execution_status': 'completed',
        'article_status': 'approved',
        'article_data': {
            'description': 'Replacement of old street lights with new energy-efficient LED lights on Avenue D.',
            'location': {'name': 'District D', 'coordinates': {'lat': 37.95, 'lng': 23.7}},
            'images': [],
            'image_pairs': [],
            'project_type': 'Street Lighting',
            'key_points': ['Energy savings', 'Improved visibility'],
            'article_title': 'New LED street lighting on Avenue D',
            'article_subtitle': 'Upgraded lighting for safer streets and lower energy use',
            'article_body': (
                "The replacement of the old light fittings on Avenue D with LED technology is complete. "
                "The upgraded network gives better visibility at night for drivers and pedestrians.\n\n"
                "LED lamps will also cut energy consumption considerably."
            ),
            'service': 'Technical Services',
            'date': '10/04/2024',
        },
    },
]


class Command(BaseCommand):
    help = 'Load the demo work items'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset',
            action='store_true',
            help='Delete all existing work items first',
        )

    def handle(self, *args, **options):
        store = WorkItemStore()

        with transaction.atomic():
            if options['reset']:
                deleted, _ = WorkItem.objects.all().delete()
                self.stdout.write(f"Deleted {deleted} work items")

            created = 0
            for fields in SEED_WORKITEMS:
                if WorkItem.objects.filter(name=fields['name']).exists():
                    continue
                fields = dict(fields)
                if fields.get('article_data') is not None:
                    fields['draft_produced_at'] = timezone.now()
                store.create(**fields)
                created += 1

        self.stdout.write(self.style.SUCCESS(f"Seeded {created} work items"))
