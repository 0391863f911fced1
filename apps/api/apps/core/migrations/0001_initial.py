"""
Core: tenant-local sequence counters backing document numbers.

Generated manually
"""
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True, verbose_name='Name')),
                ('value', models.BigIntegerField(default=0, verbose_name='Current Value')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Sequence Counter',
                'verbose_name_plural': 'Sequence Counters',
                'db_table': 'sequence_counters',
            },
        ),
        migrations.AddConstraint(
            model_name='sequencecounter',
            constraint=models.CheckConstraint(check=models.Q(value__gte=0), name='sequence_counter_value_non_negative'),
        ),
    ]
