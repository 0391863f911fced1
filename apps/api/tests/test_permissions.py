"""
Tests for pharmacy RBAC permissions.

Tests verify that:
- Cashier users CAN read stock and catalog, CANNOT write them (403)
- Cashier users CAN sell and sync draft carts
- Pharmacist users CAN write stock, import and recalculate (200/201)
- Users without a pharmacy role CANNOT access any endpoint (403)
- Unauthenticated requests are rejected (401)
- Superusers CAN access everything
"""
from datetime import timedelta
from io import StringIO

import pytest
from django.contrib.auth.models import Group, User
from django.core.management import call_command
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from apps.stock.permissions import CASHIER_GROUP, PHARMACIST_GROUP

TENANT_ID = 'TNT_ALPHA'

READ_URLS = [
    '/api/products/',
    '/api/stock/movements/',
    '/api/stock/batches/active/',
    '/api/stock/batches/expiring-soon/',
    '/api/stock/summary/',
    '/api/stock/summary/alerts/',
]


def _in_days(days):
    return timezone.localdate() + timedelta(days=days)


def _movement_payload(product):
    return {
        'product_id': str(product.id),
        'movement_type': 'PURCHASE',
        'quantity_change': 4,
        'unit_cost': '2.00',
    }


def _batch_payload(product):
    return {
        'product_id': str(product.id),
        'expiry_date': str(_in_days(120)),
        'quantity': 10,
        'unit_cost': '3.0000',
    }


@pytest.mark.django_db
class TestCashierPermissions:
    """Cashiers sell; stock is read-only for them."""

    @pytest.mark.parametrize('url', READ_URLS)
    def test_cashier_can_read(self, cashier_client, url):
        response = cashier_client.get(url)

        assert response.status_code == status.HTTP_200_OK

    def test_cashier_cannot_record_movement(self, cashier_client, product):
        response = cashier_client.post('/api/stock/movements/', _movement_payload(product), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cashier_cannot_create_batch(self, cashier_client, product):
        response = cashier_client.post('/api/stock/batches/', _batch_payload(product), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cashier_cannot_adjust_batch(self, cashier_client, product, batch_factory):
        batch = batch_factory(product, 90, 5)

        response = cashier_client.put(
            f'/api/stock/batches/{batch.id}/quantity/',
            {'new_quantity': 0, 'reason': 'Recalled'},
            format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        batch.refresh_from_db()
        assert batch.quantity == 5

    def test_cashier_cannot_import_or_recalculate(self, cashier_client, product):
        assert cashier_client.post(
            '/api/stock/import/execute/', {'rows': []}, format='json'
        ).status_code == status.HTTP_403_FORBIDDEN
        assert cashier_client.post(
            f'/api/stock/summary/recalculate/{product.id}/'
        ).status_code == status.HTTP_403_FORBIDDEN

    def test_cashier_cannot_edit_catalog(self, cashier_client):
        response = cashier_client.post('/api/products/', {
            'sku': 'NEW-1', 'name': 'New product', 'price': '1.00',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cashier_can_sync_drafts_and_sell(self, cashier_client, product, batch_factory):
        batch_factory(product, 90, 5)

        sync = cashier_client.post('/api/draft-sales/sync/', {'tabs': []}, format='json')
        sale = cashier_client.post('/api/sales/complete/', {
            'items': [{'product_id': str(product.id), 'quantity': 1, 'unit_price': '12.50'}],
            'payment': {'method': 'CASH', 'amount': '12.50'},
        }, format='json')

        assert sync.status_code == status.HTTP_200_OK
        assert sale.status_code == status.HTTP_201_CREATED


@pytest.mark.django_db
class TestPharmacistPermissions:
    """Pharmacists have full stock access."""

    def test_pharmacist_can_record_movement(self, pharmacist_client, product):
        response = pharmacist_client.post('/api/stock/movements/', _movement_payload(product), format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_pharmacist_can_create_batch(self, pharmacist_client, product):
        response = pharmacist_client.post('/api/stock/batches/', _batch_payload(product), format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_pharmacist_can_recalculate(self, pharmacist_client, product):
        response = pharmacist_client.post(f'/api/stock/summary/recalculate/{product.id}/')

        assert response.status_code == status.HTTP_200_OK

    def test_pharmacist_can_edit_catalog(self, pharmacist_client):
        response = pharmacist_client.post('/api/products/', {
            'sku': 'NEW-1', 'name': 'New product', 'price': '1.00',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED


@pytest.mark.django_db
class TestOutsiderAndAnonymous:
    """Users without a pharmacy role and anonymous requests are rejected."""

    @pytest.mark.parametrize('url', READ_URLS + ['/api/sales/', '/api/draft-sales/'])
    def test_outsider_is_forbidden(self, outsider_client, url):
        response = outsider_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_outsider_cannot_sell(self, outsider_client, product):
        response = outsider_client.post('/api/sales/complete/', {
            'items': [{'product_id': str(product.id), 'quantity': 1, 'unit_price': '12.50'}],
            'payment': {'method': 'CASH', 'amount': '12.50'},
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.parametrize('url', ['/api/stock/movements/', '/api/sales/', '/api/draft-sales/'])
    def test_anonymous_is_unauthorized(self, db, url):
        client = APIClient()
        client.credentials(HTTP_X_TENANT_ID=TENANT_ID)

        response = client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestSuperuserPermissions:

    def test_admin_can_write_stock(self, admin_client, product):
        response = admin_client.post('/api/stock/batches/', _batch_payload(product), format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_admin_can_import(self, admin_client, product):
        response = admin_client.post('/api/stock/import/execute/', {
            'rows': [{'row_number': 1, 'product_id': str(product.id), 'quantity': 2,
                      'lot_number': 'L-9', 'expiry_date': str(_in_days(200)), 'unit_cost': '2.00'}]
        }, format='json')

        assert response.status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestRoleBootstrap:
    """Management commands that bootstrap roles and the first admin."""

    def test_create_stock_groups_is_idempotent(self):
        call_command('create_stock_groups', stdout=StringIO())
        out = StringIO()
        call_command('create_stock_groups', stdout=out)

        assert set(Group.objects.values_list('name', flat=True)) == {PHARMACIST_GROUP, CASHIER_GROUP}
        assert 'Summary: 0 created, 2 existing' in out.getvalue()

    def test_ensure_superuser_creates_once(self, monkeypatch):
        monkeypatch.setenv('DJANGO_SUPERUSER_USERNAME', 'root')
        monkeypatch.setenv('DJANGO_SUPERUSER_PASSWORD', 'not-a-real-pass')

        call_command('ensure_superuser', stdout=StringIO())
        out = StringIO()
        call_command('ensure_superuser', stdout=out)

        assert User.objects.filter(username='root', is_superuser=True).count() == 1
        assert 'already exists' in out.getvalue()

    def test_ensure_superuser_skips_without_credentials(self, monkeypatch):
        monkeypatch.delenv('DJANGO_SUPERUSER_USERNAME', raising=False)
        monkeypatch.delenv('DJANGO_SUPERUSER_PASSWORD', raising=False)
        out = StringIO()

        call_command('ensure_superuser', stdout=out)

        assert not User.objects.filter(is_superuser=True).exists()
        assert 'skipping' in out.getvalue()
