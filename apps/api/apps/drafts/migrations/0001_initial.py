"""
Drafts: open point-of-sale tabs.

Generated manually
"""
import uuid

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='DraftSaleTab',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tab_id', models.CharField(max_length=100, unique=True, verbose_name='Tab ID')),
                ('tab_label', models.CharField(blank=True, max_length=100, verbose_name='Tab Label')),
                ('items', models.JSONField(
                    blank=True, default=list,
                    encoder=django.core.serializers.json.DjangoJSONEncoder,
                    verbose_name='Items'
                )),
                ('display_order', models.PositiveIntegerField(default=0, verbose_name='Display Order')),
                ('is_completed', models.BooleanField(default=False, verbose_name='Completed')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed At')),
                ('created_by', models.CharField(blank=True, max_length=150, verbose_name='Created By')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Draft Sale Tab',
                'verbose_name_plural': 'Draft Sale Tabs',
                'db_table': 'draft_sale_tabs',
                'ordering': ['display_order', 'created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='draftsaletab',
            index=models.Index(fields=['is_completed', 'display_order'], name='idx_draft_open_order'),
        ),
    ]
