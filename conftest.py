"""
Shared pytest fixtures.
"""

import pytest
from rest_framework.test import APIClient

from apps.workitems.models import WorkItem


@pytest.fixture
def completed_item(db):
    """Completed works with no article yet."""
    return WorkItem.objects.create(
        name='Road resurfacing - Street A',
        location='City Centre',
        execution_status='completed',
        article_status='none',
    )


@pytest.fixture
def in_progress_item(db):
    return WorkItem.objects.create(
        name='Playground repair - Square C',
        location='District C',
        execution_status='in_progress',
        article_status='none',
    )


@pytest.fixture
def intake_images():
    return [
        {'url': 'https://img.example.com/before-1.jpg'},
        {'url': 'https://img.example.com/after-1.jpg'},
    ]


@pytest.fixture
def api_client():
    return APIClient()
