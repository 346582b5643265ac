# Initial schema for work items

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='WorkItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('name', models.CharField(help_text='Work item name', max_length=300, verbose_name='Name')),
                ('location', models.CharField(blank=True, help_text='Free-text location of the works', max_length=300, verbose_name='Location')),
                ('execution_status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In Progress'), ('completed', 'Completed')], db_index=True, default='pending', help_text='Progress of the works themselves', max_length=20, verbose_name='Execution Status')),
                ('article_status', models.CharField(choices=[('none', 'No Article'), ('draft', 'Draft'), ('pending_approval', 'Pending Approval'), ('approved', 'Approved')], db_index=True, default='none', help_text='Where the article about the works stands', max_length=20, verbose_name='Article Status')),
                ('article_data', models.JSONField(blank=True, default=None, help_text='Intake report and generated article fields', null=True, verbose_name='Article Data')),
                ('draft_produced_at', models.DateTimeField(blank=True, help_text='When the Draft Producer result was applied', null=True, verbose_name='Draft Produced At')),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Transition bookkeeping', verbose_name='Metadata')),
            ],
            options={
                'verbose_name': 'Work Item',
                'verbose_name_plural': 'Work Items',
                'db_table': 'work_items',
                'ordering': ['id'],
                'indexes': [models.Index(fields=['execution_status', 'article_status'], name='work_items_status_idx')],
            },
        ),
    ]
