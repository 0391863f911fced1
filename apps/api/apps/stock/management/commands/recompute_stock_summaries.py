"""
Management command to rebuild stock summaries from the ledger.

Usage:
    python manage.py recompute_stock_summaries --tenant TNT_ALPHA
    python manage.py recompute_stock_summaries --all-tenants
"""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import TenantError
from apps.core.tenancy import tenant_context
from apps.stock.services import recalculate_all


class Command(BaseCommand):
    help = 'Rebuild every product stock summary for one or all tenants'

    def add_arguments(self, parser):
        parser.add_argument('--tenant', help='Tenant id to rebuild')
        parser.add_argument('--all-tenants', action='store_true', help='Rebuild every configured tenant')

    def handle(self, *args, **options):
        if options['all_tenants']:
            tenant_ids = list(settings.TENANT_DATABASES)
        elif options['tenant']:
            tenant_ids = [options['tenant']]
        else:
            raise CommandError('Pass --tenant <id> or --all-tenants')

        for tenant_id in tenant_ids:
            try:
                with tenant_context(tenant_id):
                    count = recalculate_all()
            except TenantError as e:
                raise CommandError(str(e))

            self.stdout.write(
                self.style.SUCCESS(f'{tenant_id}: rebuilt {count} stock summaries')
            )
