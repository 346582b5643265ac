"""
Work item models.
A work item is one municipal project being tracked and optionally reported on.
"""

from django.db import models
from apps.core.models import TimestampedModel


class WorkItem(TimestampedModel):
    """
    A municipal work item and its article lifecycle.

    ``article_data`` holds the field report and the generated article as one
    JSON object. It is null exactly when ``article_status`` is ``none``.
    """

    EXECUTION_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
    ]

    ARTICLE_STATUS_CHOICES = [
        ('none', 'No Article'),
        ('draft', 'Draft'),
        ('pending_approval', 'Pending Approval'),
        ('approved', 'Approved'),
    ]

    name = models.CharField(
        max_length=300,
        verbose_name='Name',
        help_text='Work item name'
    )

    location = models.CharField(
        max_length=300,
        blank=True,
        verbose_name='Location',
        help_text='Free-text location of the works'
    )

    execution_status = models.CharField(
        max_length=20,
        choices=EXECUTION_STATUS_CHOICES,
        default='pending',
        db_index=True,
        verbose_name='Execution Status',
        help_text='Progress of the works themselves'
    )

    article_status = models.CharField(
        max_length=20,
        choices=ARTICLE_STATUS_CHOICES,
        default='none',
        db_index=True,
        verbose_name='Article Status',
        help_text='Where the article about the works stands'
    )

    article_data = models.JSONField(
        null=True,
        blank=True,
        default=None,
        verbose_name='Article Data',
        help_text='Intake report and generated article fields'
    )

    draft_produced_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Draft Produced At',
        help_text='When the Draft Producer result was applied'
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name='Metadata',
        help_text='Transition bookkeeping'
    )

    class Meta:
        db_table = 'work_items'
        ordering = ['id']
        verbose_name = 'Work Item'
        verbose_name_plural = 'Work Items'
        indexes = [
            models.Index(fields=['execution_status', 'article_status'], name='work_items_status_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_article_status_display()})"

    @property
    def has_article(self):
        return self.article_status != 'none'

    @property
    def draft_ready(self):
        """True once the Draft Producer result has been applied."""
        return self.draft_produced_at is not None

    @property
    def draft_failed(self):
        """True once the Draft Producer has given up on this draft."""
        return not self.draft_ready and 'draft_failure' in (self.metadata or {})

    @property
    def image_pair_count(self):
        return len((self.article_data or {}).get('image_pairs', []))
