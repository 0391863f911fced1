"""Sales views."""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.pagination import StandardResultsPagination
from apps.core.views import CorrelatedViewMixin

from . import services
from .permissions import CanSell
from .serializers import (
    FiscalReceiptSerializer,
    SaleCompleteSerializer,
    SaleFilterSerializer,
    SaleListSerializer,
    SaleReceiptSerializer,
    SaleSerializer,
)


class SaleViewSet(CorrelatedViewMixin, viewsets.GenericViewSet):
    """
    Settled sales.

    Additional endpoints:
    - POST /sales/complete/ - Settle a cart atomically
    - POST /sales/{id}/fiscal-receipt/ - Backfill the fiscal receipt number
    """
    serializer_class = SaleSerializer
    permission_classes = [CanSell]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        filters = SaleFilterSerializer(data=self.request.query_params.dict())
        filters.is_valid(raise_exception=True)
        return services.list_sales(**filters.validated_data)

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(SaleListSerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        return Response(SaleSerializer(services.get_sale(pk)).data)

    @action(detail=False, methods=['post'])
    def complete(self, request):
        serializer = SaleCompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        receipt = services.complete_sale(
            serializer.validated_data,
            created_by=request.user.get_username(),
        )
        return Response(SaleReceiptSerializer(receipt).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='fiscal-receipt')
    def fiscal_receipt(self, request, pk=None):
        serializer = FiscalReceiptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        sale = services.attach_fiscal_receipt(
            pk,
            serializer.validated_data['receipt_number'],
            fiscal_status=serializer.validated_data['fiscal_status'],
        )
        return Response(SaleSerializer(sale).data)
