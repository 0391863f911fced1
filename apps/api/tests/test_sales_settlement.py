"""
Atomic sale settlement tests.

Test coverage:
1. Happy path: sale, items, SALE movements, FIFO batch deduction,
   summary refresh and draft tab completion in one transaction
2. Any failing line rolls everything back (no sale, no movements,
   batches untouched, sequence not consumed)
3. Validation: empty cart, missing payment, price mismatch
4. Serialized items are released and linked to the sale line
5. A settled draft tab cannot be settled twice (409)
6. Fiscal receipt backfill
"""
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.utils import timezone
from prometheus_client import REGISTRY
from rest_framework import status

from apps.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
)
from apps.drafts.models import DraftSaleTab
from apps.sales.models import Sale, SaleItem
from apps.sales.services import attach_fiscal_receipt, complete_sale
from apps.stock.models import MovementTypeChoices, StockBatch, StockItem, StockMovement
from apps.stock.services import create_batch, post_movement

COMPLETE_URL = '/api/sales/complete/'
SALES_URL = '/api/sales/'


def _line(product, quantity, unit_price='12.50', **extra):
    line = {'product_id': product.id, 'quantity': quantity, 'unit_price': Decimal(unit_price)}
    line.update(extra)
    return line


def _request(*lines, tab_id=None, amount='1000.00', method='CASH'):
    data = {
        'items': list(lines),
        'payment': {'method': method, 'amount': Decimal(amount)},
    }
    if tab_id:
        data['draft_tab_id'] = tab_id
    return data


def _json_request(*lines, tab_id=None, amount='1000.00'):
    return {
        'draft_tab_id': tab_id,
        'items': [
            {key: str(value) if key in ('product_id', 'unit_price') else value for key, value in line.items()}
            for line in lines
        ],
        'payment': {'method': 'CASH', 'amount': amount},
    }


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0


@pytest.mark.django_db
class TestCompleteSale:

    def test_fifo_deduction_across_batches(self, product, fifo_batches):
        b1, b2, b3 = fifo_batches

        receipt = complete_sale(_request(_line(product, 12)), created_by='cashier')

        b1.refresh_from_db()
        b2.refresh_from_db()
        b3.refresh_from_db()
        assert (b1.quantity, b1.is_active) == (0, False)
        assert b2.quantity == 3
        assert b3.quantity == 20

        sale = Sale.objects.get(pk=receipt['sale_id'])
        movements = StockMovement.objects.filter(
            movement_type=MovementTypeChoices.SALE, reference_id=str(sale.id)
        ).order_by('movement_number')
        assert [(m.batch_id, m.quantity_change) for m in movements] == [(b1.id, -10), (b2.id, -2)]
        assert all(m.created_by == 'cashier' for m in movements)

    def test_receipt(self, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 2)))

        assert receipt['sale_number'] == f"SL-{timezone.localdate():%Y%m%d}-000001"
        assert receipt['total'] == Decimal('25.00')
        assert receipt['payment_method'] == 'CASH'
        assert receipt['item_count'] == 1
        assert receipt['stock_deducted'] is True
        assert receipt['fiscal_receipt_number'] is None

    def test_discount_per_line(self, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 2, unit_price='10.00', discount_rate=Decimal('10'))))

        sale = Sale.objects.get(pk=receipt['sale_id'])
        assert sale.subtotal == Decimal('20.00')
        assert sale.discount == Decimal('2.00')
        assert sale.total == Decimal('18.00')
        item = sale.items.get()
        assert item.discount_amount == Decimal('2.00')
        assert item.total_price == Decimal('20.00')

    def test_item_snapshots_product(self, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 1)))

        item = SaleItem.objects.get(sale_id=receipt['sale_id'])
        assert item.product_name == product.name
        assert item.gtin == product.gtin
        assert item.stock_deducted is True

    def test_summary_refreshed(self, product, fifo_batches):
        complete_sale(_request(_line(product, 12)))

        product.stock_summary.refresh_from_db()
        assert product.stock_summary.batch_quantity == 23
        assert product.stock_summary.total_quantity == 23

    def test_untracked_units_sold_after_batches(self, product, batch_factory):
        batch_factory(product, 90, 2, batch_number='B1')
        post_movement(product.id, MovementTypeChoices.PURCHASE, 5, unit_cost=Decimal('3.00'))

        complete_sale(_request(_line(product, 4)))

        sale_movements = StockMovement.objects.filter(movement_type=MovementTypeChoices.SALE)
        assert sorted(m.quantity_change for m in sale_movements) == [-2, -2]
        assert sale_movements.filter(batch__isnull=True).get().unit_cost == Decimal('6.0000')

    def test_draft_tab_completed(self, product, fifo_batches):
        DraftSaleTab.objects.create(tab_id='tab-1', tab_label='Sale 1')

        complete_sale(_request(_line(product, 1), tab_id='tab-1'))

        tab = DraftSaleTab.objects.get(tab_id='tab-1')
        assert tab.is_completed is True
        assert tab.completed_at is not None

    def test_settled_tab_cannot_settle_again(self, product, fifo_batches):
        DraftSaleTab.objects.create(tab_id='tab-1')
        complete_sale(_request(_line(product, 1), tab_id='tab-1'))

        with pytest.raises(ConflictError):
            complete_sale(_request(_line(product, 1), tab_id='tab-1'))

        assert Sale.objects.count() == 1

    def test_unknown_tab_id_does_not_block_sale(self, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 1), tab_id='never-synced'))

        assert Sale.objects.get(pk=receipt['sale_id']).draft_tab_id == 'never-synced'

    def test_literal_dated_batches(self, product):
        first = create_batch(product.id, date(2025, 1, 1), 10, Decimal('5.00'), batch_number='BATCH-1')
        second = create_batch(product.id, date(2025, 6, 1), 5, Decimal('5.50'), batch_number='BATCH-2')

        complete_sale(_request(_line(product, 12)))

        first.refresh_from_db()
        second.refresh_from_db()
        assert (first.quantity, first.is_active) == (0, False)
        assert (second.quantity, second.is_active) == (3, True)

    def test_same_product_on_two_lines(self, product, fifo_batches):
        b1, b2, b3 = fifo_batches

        receipt = complete_sale(_request(_line(product, 8), _line(product, 8)))

        for batch in fifo_batches:
            batch.refresh_from_db()
        assert [b.quantity for b in (b1, b2, b3)] == [0, 0, 19]
        movements = StockMovement.objects.filter(
            movement_type=MovementTypeChoices.SALE, reference_id=receipt['sale_id']
        )
        assert sum(m.quantity_change for m in movements) == -16
        product.stock_summary.refresh_from_db()
        assert product.stock_summary.batch_quantity == 19

    def test_serial_item(self, product):
        post_movement(product.id, MovementTypeChoices.PURCHASE, 1,
                      serial_number='SN-42', unit_cost=Decimal('7.00'))

        receipt = complete_sale(_request(_line(product, 1, serial_number='SN-42')))

        item = StockItem.objects.get(serial_number='SN-42')
        assert item.status == 'SOLD'
        assert item.sold_at is not None
        assert str(item.sale_item.sale_id) == receipt['sale_id']
        movement = StockMovement.objects.get(movement_type=MovementTypeChoices.SALE)
        assert movement.serial_number == 'SN-42'
        assert movement.unit_cost == Decimal('7.0000')
        product.stock_summary.refresh_from_db()
        assert product.stock_summary.total_tracked == 0

    def test_serial_not_in_stock(self, product):
        with pytest.raises(NotFoundError):
            complete_sale(_request(_line(product, 1, serial_number='SN-MISSING')))

        assert Sale.objects.count() == 0


@pytest.mark.django_db
class TestSettlementRollback:
    """A failing line leaves no trace."""

    def test_insufficient_second_line_rolls_back_first(self, product, another_product, fifo_batches, batch_factory):
        batch_factory(another_product, 60, 2, batch_number='IB-1')
        DraftSaleTab.objects.create(tab_id='tab-9')
        failures_before = _sample('sales_complete_total', result='insufficient_stock')

        with pytest.raises(InsufficientStockError) as exc_info:
            complete_sale(_request(_line(product, 12), _line(another_product, 3), tab_id='tab-9'))

        assert exc_info.value.product_id == str(another_product.id)
        assert Sale.objects.count() == 0
        assert SaleItem.objects.count() == 0
        assert not StockMovement.objects.filter(movement_type=MovementTypeChoices.SALE).exists()
        assert list(
            StockBatch.objects.filter(product=product).order_by('expiry_date').values_list('quantity', flat=True)
        ) == [10, 5, 20]
        assert DraftSaleTab.objects.get(tab_id='tab-9').is_completed is False
        assert _sample('sales_complete_total', result='insufficient_stock') == failures_before + 1

    def test_sale_number_not_consumed_by_failure(self, product, fifo_batches):
        with pytest.raises(InsufficientStockError):
            complete_sale(_request(_line(product, 100)))

        receipt = complete_sale(_request(_line(product, 1)))

        assert receipt['sale_number'].endswith('-000001')

    def test_consecutive_sales_never_reuse_drained_batch(self, product, fifo_batches):
        b1, b2, b3 = fifo_batches
        complete_sale(_request(_line(product, 10)))

        second = complete_sale(_request(_line(product, 5)))

        movements = StockMovement.objects.filter(
            movement_type=MovementTypeChoices.SALE, reference_id=second['sale_id']
        )
        assert [(m.batch_id, m.quantity_change) for m in movements] == [(b2.id, -5)]
        for batch in fifo_batches:
            batch.refresh_from_db()
        assert [b.quantity for b in (b1, b2, b3)] == [0, 0, 20]

    def test_oversized_sale_after_partial_drain_changes_nothing(self, product, fifo_batches):
        complete_sale(_request(_line(product, 10)))

        with pytest.raises(InsufficientStockError) as exc_info:
            complete_sale(_request(_line(product, 26)))

        assert exc_info.value.available == 25
        assert Sale.objects.count() == 1
        assert list(
            StockBatch.objects.filter(product=product).order_by('expiry_date').values_list('quantity', flat=True)
        ) == [0, 5, 20]

    def test_unknown_product_rolls_back(self, product, fifo_batches):
        missing = {'product_id': '00000000-0000-0000-0000-000000000000',
                   'quantity': 1, 'unit_price': Decimal('1.00')}

        with pytest.raises(NotFoundError):
            complete_sale(_request(_line(product, 1), missing))

        assert Sale.objects.count() == 0

    def test_storage_failure_becomes_persistence_error(self, product, fifo_batches):
        with patch('apps.sales.services.next_sale_number', side_effect=DatabaseError('disk full')):
            with pytest.raises(PersistenceError) as exc_info:
                complete_sale(_request(_line(product, 1)))

        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert Sale.objects.count() == 0


@pytest.mark.django_db
class TestSaleValidation:

    def test_zero_items(self, product):
        with pytest.raises(ValidationError) as exc_info:
            complete_sale(_request())

        assert 'items' in exc_info.value.message_dict
        assert Sale.objects.count() == 0

    def test_missing_payment_method(self, product, fifo_batches):
        data = _request(_line(product, 1))
        data['payment'] = {'amount': Decimal('10.00')}

        with pytest.raises(ValidationError):
            complete_sale(data)

    def test_total_price_must_match(self, product, fifo_batches):
        with pytest.raises(ValidationError) as exc_info:
            complete_sale(_request(_line(product, 2, unit_price='10.00', total_price=Decimal('25.00'))))

        assert 'items[0].total_price' in exc_info.value.message_dict

    def test_total_price_within_a_cent(self, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 3, unit_price='3.33', total_price=Decimal('10.00'))))

        assert receipt['total'] == Decimal('9.99')

    def test_serialized_line_sells_one_unit(self, product):
        with pytest.raises(ValidationError):
            complete_sale(_request(_line(product, 2, serial_number='SN-1')))


@pytest.mark.django_db
class TestFiscalReceipt:

    def test_attach_once(self, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 1)))

        sale = attach_fiscal_receipt(receipt['sale_id'], 'FR-0001', fiscal_status='printed')

        assert sale.fiscal_receipt_number == 'FR-0001'
        with pytest.raises(ConflictError):
            attach_fiscal_receipt(receipt['sale_id'], 'FR-0002')

    def test_unknown_sale(self):
        with pytest.raises(NotFoundError):
            attach_fiscal_receipt('00000000-0000-0000-0000-000000000000', 'FR-1')


@pytest.mark.django_db
class TestSalesAPI:

    def test_complete_returns_201_receipt(self, cashier_client, product, fifo_batches):
        response = cashier_client.post(COMPLETE_URL, _json_request(_line(product, 12)), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['item_count'] == 1
        assert response.data['total'] == '150.00'
        assert Sale.objects.get().created_by == 'cashier'

    def test_empty_cart_is_400(self, cashier_client):
        response = cashier_client.post(COMPLETE_URL, _json_request(), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'validation_error'
        assert 'items' in response.data['details']

    def test_insufficient_stock_is_400_with_detail(self, cashier_client, product, fifo_batches):
        response = cashier_client.post(COMPLETE_URL, _json_request(_line(product, 40)), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'insufficient_stock'
        assert response.data['requested'] == 40
        assert response.data['available'] == 35
        assert response.data['shortfall'] == 5
        assert Sale.objects.count() == 0

    def test_settled_tab_is_409(self, cashier_client, product, fifo_batches):
        DraftSaleTab.objects.create(tab_id='tab-1', is_completed=True, completed_at=timezone.now())

        response = cashier_client.post(
            COMPLETE_URL, _json_request(_line(product, 1), tab_id='tab-1'), format='json'
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error_type'] == 'conflict'

    def test_unknown_product_is_404(self, cashier_client, product, fifo_batches):
        line = {'product_id': '00000000-0000-0000-0000-000000000000', 'quantity': 1, 'unit_price': '1.00'}

        response = cashier_client.post(COMPLETE_URL, _json_request(line), format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_and_retrieve(self, cashier_client, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 2)))

        listing = cashier_client.get(SALES_URL)
        detail = cashier_client.get(f"{SALES_URL}{receipt['sale_id']}/")

        assert listing.data['count'] == 1
        assert listing.data['results'][0]['item_count'] == 1
        assert detail.status_code == status.HTTP_200_OK
        assert len(detail.data['items']) == 1

    def test_fiscal_receipt_route(self, cashier_client, product, fifo_batches):
        receipt = complete_sale(_request(_line(product, 1)))
        url = f"{SALES_URL}{receipt['sale_id']}/fiscal-receipt/"

        first = cashier_client.post(url, {'receipt_number': 'FR-1'}, format='json')
        second = cashier_client.post(url, {'receipt_number': 'FR-2'}, format='json')

        assert first.status_code == status.HTTP_200_OK
        assert first.data['fiscal_receipt_number'] == 'FR-1'
        assert second.status_code == status.HTTP_409_CONFLICT

    def test_outsider_cannot_sell(self, outsider_client, product, fifo_batches):
        response = outsider_client.post(COMPLETE_URL, _json_request(_line(product, 1)), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
