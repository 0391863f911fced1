"""
Movement ledger tests.

Test coverage:
1. Movements get sequential numbers and signed total cost
2. quantity_change != 0, sign matches movement type
3. Corrections are flagged and carry a reason
4. Ledger rows are immutable (instance and queryset)
5. Ledger API: list filters, manual posting, no update route
"""
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from rest_framework import status

from apps.stock.models import MovementTypeChoices, StockMovement
from apps.stock.services import (
    MovementFilters,
    post_movement,
    query_by_product,
    query_movements,
    record_movement,
)

MOVEMENTS_URL = '/api/stock/movements/'


@pytest.mark.django_db
class TestRecordMovement:
    """Appending entries to the ledger."""

    def test_movement_numbers_are_sequential(self, product):
        first = record_movement(product, MovementTypeChoices.PURCHASE, 5, unit_cost=Decimal('2.00'))
        second = record_movement(product, MovementTypeChoices.PURCHASE, 3, unit_cost=Decimal('2.00'))

        assert first.movement_number == 'SM000001'
        assert second.movement_number == 'SM000002'

    def test_total_cost_is_signed(self, product):
        inbound = record_movement(product, MovementTypeChoices.PURCHASE, 4, unit_cost=Decimal('2.5000'))
        outbound = record_movement(product, MovementTypeChoices.WASTE, -2, unit_cost=Decimal('2.5000'))

        assert inbound.total_cost == Decimal('10.0000')
        assert outbound.total_cost == Decimal('-5.0000')

    def test_total_cost_empty_without_unit_cost(self, product):
        movement = record_movement(product, MovementTypeChoices.PURCHASE, 4)

        assert movement.total_cost is None

    def test_zero_quantity_rejected(self, product):
        with pytest.raises(ValidationError):
            record_movement(product, MovementTypeChoices.PURCHASE, 0)

        assert StockMovement.objects.count() == 0

    def test_inbound_type_must_be_positive(self, product):
        with pytest.raises(ValidationError) as exc_info:
            record_movement(product, MovementTypeChoices.PURCHASE, -3)

        assert 'quantity_change' in exc_info.value.message_dict

    def test_outbound_type_must_be_negative(self, product):
        with pytest.raises(ValidationError):
            record_movement(product, MovementTypeChoices.SALE, 3)

    def test_correction_requires_reason(self, product):
        with pytest.raises(ValidationError) as exc_info:
            record_movement(product, MovementTypeChoices.CORRECTION, 2, is_correction=True)

        assert 'correction_reason' in exc_info.value.message_dict

    def test_correction_type_must_be_flagged(self, product):
        with pytest.raises(ValidationError):
            record_movement(
                product, MovementTypeChoices.CORRECTION, 2, correction_reason='Recount'
            )

    def test_correction_may_go_either_way(self, product):
        up = record_movement(
            product, MovementTypeChoices.CORRECTION, 2,
            is_correction=True, correction_reason='Recount found two more'
        )
        down = record_movement(
            product, MovementTypeChoices.CORRECTION, -1,
            is_correction=True, correction_reason='Recount found one less'
        )

        assert up.quantity_change == 2
        assert down.quantity_change == -1

    def test_serial_movement_moves_one_unit(self, product):
        with pytest.raises(ValidationError):
            record_movement(product, MovementTypeChoices.PURCHASE, 2, serial_number='SN-1')

    def test_rejected_entry_does_not_burn_a_number(self, product):
        with pytest.raises(ValidationError):
            record_movement(product, MovementTypeChoices.PURCHASE, 0)

        movement = record_movement(product, MovementTypeChoices.PURCHASE, 1)

        assert movement.movement_number == 'SM000001'


@pytest.mark.django_db
class TestLedgerImmutability:
    """Recorded movements can never be changed or removed."""

    def test_cannot_update_instance(self, product):
        movement = record_movement(product, MovementTypeChoices.PURCHASE, 5)
        movement.quantity_change = 50

        with pytest.raises(ValidationError):
            movement.save()

        movement.refresh_from_db()
        assert movement.quantity_change == 5

    def test_cannot_delete_instance(self, product):
        movement = record_movement(product, MovementTypeChoices.PURCHASE, 5)

        with pytest.raises(ValidationError):
            movement.delete()

        assert StockMovement.objects.filter(pk=movement.pk).exists()

    def test_cannot_bulk_update_or_delete(self, product):
        record_movement(product, MovementTypeChoices.PURCHASE, 5)

        with pytest.raises(ValidationError):
            StockMovement.objects.filter(product=product).update(quantity_change=1)
        with pytest.raises(ValidationError):
            StockMovement.objects.filter(product=product).delete()

        assert StockMovement.objects.get().quantity_change == 5

    def test_mistake_fixed_by_offsetting_correction(self, product):
        post_movement(product.id, MovementTypeChoices.PURCHASE, 10, unit_cost=Decimal('1.00'))
        post_movement(
            product.id, MovementTypeChoices.CORRECTION, -3,
            is_correction=True, correction_reason='Typed 10 instead of 7'
        )

        assert StockMovement.objects.count() == 2
        assert product.stock_summary.total_untracked == 7


@pytest.mark.django_db
class TestLedgerQueries:

    def test_filters_by_type_and_correction(self, product):
        record_movement(product, MovementTypeChoices.PURCHASE, 5)
        record_movement(product, MovementTypeChoices.WASTE, -1)
        record_movement(
            product, MovementTypeChoices.CORRECTION, 1,
            is_correction=True, correction_reason='Recount'
        )

        purchases = query_movements(MovementFilters(movement_type=MovementTypeChoices.PURCHASE))
        corrections = query_movements(MovementFilters(is_correction=True))

        assert [m.quantity_change for m in purchases] == [5]
        assert [m.movement_type for m in corrections] == [MovementTypeChoices.CORRECTION]

    def test_newest_first(self, product):
        first = record_movement(product, MovementTypeChoices.PURCHASE, 5)
        second = record_movement(product, MovementTypeChoices.PURCHASE, 6)

        assert list(query_movements()) == [second, first]

    def test_by_product_excludes_other_products(self, product, another_product):
        record_movement(product, MovementTypeChoices.PURCHASE, 5)
        record_movement(another_product, MovementTypeChoices.PURCHASE, 7)

        movements = query_by_product(product.id)

        assert [m.quantity_change for m in movements] == [5]


@pytest.mark.django_db
class TestPostMovement:
    """Manual movements apply their physical effect."""

    def test_untracked_outbound_cannot_go_negative(self, product):
        from apps.core.exceptions import InsufficientStockError

        post_movement(product.id, MovementTypeChoices.PURCHASE, 2)

        with pytest.raises(InsufficientStockError):
            post_movement(product.id, MovementTypeChoices.WASTE, -3)

        assert StockMovement.objects.count() == 1

    def test_batch_movement_changes_batch_quantity(self, product, batch_factory):
        batch = batch_factory(product, 90, 10)

        post_movement(product.id, MovementTypeChoices.WASTE, -4, batch_id=batch.id)

        batch.refresh_from_db()
        assert batch.quantity == 6
        movement = StockMovement.objects.get(movement_type=MovementTypeChoices.WASTE)
        assert movement.lot_number == batch.batch_number
        assert movement.unit_cost == batch.unit_cost

    def test_serial_receive_and_remove(self, product):
        post_movement(product.id, MovementTypeChoices.PURCHASE, 1, serial_number='SN-001')
        post_movement(product.id, MovementTypeChoices.WASTE, -1, serial_number='SN-001')

        item = product.serial_items.get(serial_number='SN-001')
        assert item.status == 'REMOVED'
        assert product.stock_summary.total_tracked == 0


@pytest.mark.django_db
class TestMovementAPI:

    def test_post_movement_refreshes_summary(self, pharmacist_client, product):
        response = pharmacist_client.post(MOVEMENTS_URL, {
            'product_id': str(product.id),
            'movement_type': 'PURCHASE',
            'quantity_change': 8,
            'unit_cost': '3.00',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['movement_number'] == 'SM000001'
        assert response.data['created_by'] == 'pharmacist'
        product.stock_summary.refresh_from_db()
        assert product.stock_summary.total_quantity == 8

    def test_correction_without_reason_is_400(self, pharmacist_client, product):
        response = pharmacist_client.post(MOVEMENTS_URL, {
            'product_id': str(product.id),
            'movement_type': 'CORRECTION',
            'quantity_change': 1,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'validation_error'
        assert 'correction_reason' in response.data['details']

    def test_zero_quantity_is_400(self, pharmacist_client, product):
        response = pharmacist_client.post(MOVEMENTS_URL, {
            'product_id': str(product.id),
            'movement_type': 'PURCHASE',
            'quantity_change': 0,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_product_is_404(self, pharmacist_client):
        response = pharmacist_client.post(MOVEMENTS_URL, {
            'product_id': '00000000-0000-0000-0000-000000000000',
            'movement_type': 'PURCHASE',
            'quantity_change': 1,
        }, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['entity'] == 'Product'

    def test_list_is_paginated_with_total(self, cashier_client, product):
        for _ in range(3):
            record_movement(product, MovementTypeChoices.PURCHASE, 1)

        response = cashier_client.get(MOVEMENTS_URL, {'page_size': 2})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 3
        assert len(response.data['results']) == 2

    def test_list_filters_by_type(self, cashier_client, product):
        record_movement(product, MovementTypeChoices.PURCHASE, 5)
        record_movement(product, MovementTypeChoices.WASTE, -1)

        response = cashier_client.get(MOVEMENTS_URL, {'movement_type': 'WASTE'})

        assert response.data['count'] == 1
        assert response.data['results'][0]['quantity_change'] == -1

    def test_invalid_date_range_is_400(self, cashier_client):
        response = cashier_client.get(MOVEMENTS_URL, {
            'start_date': '2025-02-01',
            'end_date': '2025-01-01',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_by_product_route(self, cashier_client, product, another_product):
        record_movement(product, MovementTypeChoices.PURCHASE, 5)
        record_movement(another_product, MovementTypeChoices.PURCHASE, 7)

        response = cashier_client.get(f'{MOVEMENTS_URL}product/{product.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1

    def test_no_update_or_delete_route(self, admin_client, product):
        movement = record_movement(product, MovementTypeChoices.PURCHASE, 5)
        url = f'{MOVEMENTS_URL}{movement.id}/'

        assert admin_client.put(url, {'quantity_change': 9}, format='json').status_code == 405
        assert admin_client.delete(url).status_code == 405

    def test_retrieve_unknown_movement_is_404(self, cashier_client):
        response = cashier_client.get(f'{MOVEMENTS_URL}00000000-0000-0000-0000-000000000000/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
