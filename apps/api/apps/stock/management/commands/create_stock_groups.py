"""
Management command to create pharmacy RBAC groups.

Usage:
    python manage.py create_stock_groups

Creates (idempotently):
- Pharmacist: Full access (stock writes, imports, corrections, sales)
- Cashier: Sales and draft carts, read-only stock
"""
from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group

from apps.stock.permissions import CASHIER_GROUP, PHARMACIST_GROUP


class Command(BaseCommand):
    help = 'Create pharmacy RBAC groups (Pharmacist, Cashier)'

    def handle(self, *args, **options):
        """Create groups if they don't exist."""
        groups = [
            (PHARMACIST_GROUP, 'Pharmacists - full stock and sales access'),
            (CASHIER_GROUP, 'Cashiers - sales and drafts, read-only stock'),
        ]

        created_count = 0
        existing_count = 0

        for group_name, description in groups:
            group, created = Group.objects.get_or_create(name=group_name)

            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f'Created group: {group_name} ({description})')
                )
            else:
                existing_count += 1
                self.stdout.write(
                    self.style.WARNING(f'Group already exists: {group_name}')
                )

        self.stdout.write(
            self.style.SUCCESS(
                f'\nSummary: {created_count} created, {existing_count} existing'
            )
        )
