"""
Exception handler tests: the domain error taxonomy maps to stable
status codes and ``{"error", "error_type"}`` bodies.
"""
from unittest.mock import Mock

import pytest
from django.core.exceptions import ValidationError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions

from apps.core.exception_handler import api_exception_handler
from apps.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    UnknownTenantError,
)


def _handle(exc):
    return api_exception_handler(exc, {'view': Mock()})


def _product():
    return Mock(pk='p-1', sku='PARA-500')


class TestExceptionMapping:

    def test_insufficient_stock_is_400_with_payload(self):
        product = _product()
        product.name = 'Paracetamol'

        response = _handle(InsufficientStockError(product, requested=12, available=7))

        assert response.status_code == 400
        assert response.data['error_type'] == 'insufficient_stock'
        assert response.data['product_id'] == 'p-1'
        assert response.data['shortfall'] == 5

    def test_conflict_is_409(self):
        response = _handle(ConflictError('Draft tab already settled'))

        assert response.status_code == 409
        assert response.data == {'error': 'Draft tab already settled', 'error_type': 'conflict'}

    def test_validation_error_keeps_field_detail(self):
        response = _handle(ValidationError({'quantity': 'Quantity must be positive'}))

        assert response.status_code == 400
        assert response.data['details'] == {'quantity': ['Quantity must be positive']}

    def test_not_found_is_404(self):
        response = _handle(NotFoundError('Product', 'p-404'))

        assert response.status_code == 404
        assert response.data['entity'] == 'Product'
        assert 'p-404' in response.data['error']

    def test_http404_is_404(self):
        response = _handle(Http404())

        assert response.status_code == 404
        assert response.data['error_type'] == 'not_found'

    def test_tenant_error_uses_its_status(self):
        response = _handle(UnknownTenantError('TNT_X'))

        assert response.status_code == 404
        assert response.data['error_type'] == 'unknown_tenant'

    def test_drf_errors_are_wrapped(self):
        response = _handle(drf_exceptions.NotAuthenticated())

        assert response.status_code == 401
        assert response.data['error_type'] == 'not_authenticated'

    def test_persistence_error_hides_cause(self):
        response = _handle(PersistenceError('could not save: constraint sale_total_non_negative'))

        assert response.status_code == 500
        assert response.data['error'] == 'Internal server error'
        assert 'constraint' not in str(response.data)
        assert 'request_id' in response.data
