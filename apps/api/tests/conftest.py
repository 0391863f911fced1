"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Authenticated API clients by role, bound to tenant TNT_ALPHA
- Model instances (Product, StockBatch)
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth.models import Group, User
from django.utils import timezone
from rest_framework.test import APIClient

from apps.products.models import Product
from apps.stock import services as stock_services
from apps.stock.permissions import CASHIER_GROUP, PHARMACIST_GROUP

TENANT_ID = 'TNT_ALPHA'
OTHER_TENANT_ID = 'TNT_BETA'


def days_from_today(days):
    return timezone.localdate() + timedelta(days=days)


def _client_for(user, tenant_id=TENANT_ID):
    client = APIClient()
    client.force_authenticate(user=user)
    client.credentials(HTTP_X_TENANT_ID=tenant_id)
    return client


def _user_in_group(username, group_name):
    user = User.objects.create_user(username=username, password='testpass123')
    group, _ = Group.objects.get_or_create(name=group_name)
    user.groups.add(group)
    return user


# ============================================================================
# Users and API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(
        username='admin',
        email='admin@test.com',
        password='testpass123',
    )


@pytest.fixture
def pharmacist_user(db):
    return _user_in_group('pharmacist', PHARMACIST_GROUP)


@pytest.fixture
def cashier_user(db):
    return _user_in_group('cashier', CASHIER_GROUP)


@pytest.fixture
def admin_client(admin_user):
    """Superuser client, full access."""
    return _client_for(admin_user)


@pytest.fixture
def pharmacist_client(pharmacist_user):
    """Pharmacist client: stock writes, imports, corrections, sales."""
    return _client_for(pharmacist_user)


@pytest.fixture
def cashier_client(cashier_user):
    """Cashier client: read-only stock, selling."""
    return _client_for(cashier_user)


@pytest.fixture
def outsider_client(db):
    """Authenticated user without any pharmacy role."""
    user = User.objects.create_user(username='outsider', password='testpass123')
    return _client_for(user)


# ============================================================================
# Model instances
# ============================================================================

@pytest.fixture
def product(db):
    """Batch-managed product with a low-stock threshold of 5."""
    return Product.objects.create(
        sku='PARA-500',
        gtin='08680001234567',
        name='Paracetamol 500mg',
        manufacturer='Acme Pharma',
        price=Decimal('12.50'),
        cost=Decimal('6.0000'),
        low_stock_threshold=5,
    )


@pytest.fixture
def another_product(db):
    return Product.objects.create(
        sku='IBU-200',
        name='Ibuprofen 200mg',
        price=Decimal('9.90'),
        cost=Decimal('4.0000'),
        low_stock_threshold=5,
    )


@pytest.fixture
def product_factory(db):
    """Factory fixture for creating multiple products."""
    counter = {'n': 0}

    def _create_product(**kwargs):
        counter['n'] += 1
        defaults = {
            'sku': f"SKU-{counter['n']:04d}",
            'name': f"Product {counter['n']}",
            'price': Decimal('10.00'),
            'cost': Decimal('5.0000'),
            'low_stock_threshold': 5,
        }
        defaults.update(kwargs)
        return Product.objects.create(**defaults)

    return _create_product


@pytest.fixture
def batch_factory(db):
    """
    Factory fixture receiving batches through the service layer, so each
    batch comes with its PURCHASE movement and a refreshed summary.
    """
    def _create_batch(product, expires_in_days, quantity, unit_cost=Decimal('5.00'), **kwargs):
        return stock_services.create_batch(
            product.id,
            days_from_today(expires_in_days),
            quantity,
            unit_cost,
            **kwargs
        )

    return _create_batch


@pytest.fixture
def fifo_batches(product, batch_factory):
    """
    Three batches with E1 < E2 < E3:
    B1 (10 units, E1), B2 (5 units, E2), B3 (20 units, E3).
    """
    return (
        batch_factory(product, 30, 10, Decimal('5.00'), batch_number='B1'),
        batch_factory(product, 60, 5, Decimal('5.50'), batch_number='B2'),
        batch_factory(product, 90, 20, Decimal('6.00'), batch_number='B3'),
    )
