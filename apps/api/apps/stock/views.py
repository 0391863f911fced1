"""Stock views: ledger, batches (FIFO by expiry), summaries and imports."""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.pagination import StandardResultsPagination
from apps.core.views import CorrelatedViewMixin

from . import services
from .permissions import IsPharmacist, IsPharmacyStaff
from .serializers import (
    BatchCreateSerializer,
    BatchQuantitySerializer,
    ImportExecuteSerializer,
    MovementCreateSerializer,
    MovementFilterSerializer,
    StockBatchSerializer,
    StockMovementSerializer,
    StockSummarySerializer,
    SummaryFilterSerializer,
)


def _query_data(serializer_class, request):
    serializer = serializer_class(data=request.query_params.dict())
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class StockMovementViewSet(CorrelatedViewMixin,
                           mixins.ListModelMixin,
                           mixins.RetrieveModelMixin,
                           mixins.CreateModelMixin,
                           viewsets.GenericViewSet):
    """
    Movement ledger.

    Append-only: there is no update or delete route. A wrong entry is
    fixed by posting an offsetting movement with is_correction=true.
    """

    serializer_class = StockMovementSerializer
    permission_classes = [IsPharmacyStaff]
    pagination_class = StandardResultsPagination

    def _filters(self):
        return services.MovementFilters(**_query_data(MovementFilterSerializer, self.request))

    def get_queryset(self):
        return services.query_movements(self._filters())

    def get_object(self):
        return services.get_movement(self.kwargs['pk'])

    def create(self, request, *args, **kwargs):
        serializer = MovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        movement = services.post_movement(
            data.pop('product_id'),
            data.pop('movement_type'),
            data.pop('quantity_change'),
            created_by=request.user.get_username(),
            **data
        )
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path=r'product/(?P<product_id>[^/.]+)')
    def product(self, request, product_id=None):
        """Movements of one product, newest first."""
        queryset = services.query_by_product(product_id, self._filters())
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(StockMovementSerializer(page, many=True).data)


class StockBatchViewSet(CorrelatedViewMixin, viewsets.GenericViewSet):
    """Batch store: receive, list, expiry view, quantity adjustment."""

    serializer_class = StockBatchSerializer
    permission_classes = [IsPharmacyStaff]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        return services.list_active_batches()

    def create(self, request):
        serializer = BatchCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        batch = services.create_batch(
            data['product_id'],
            data['expiry_date'],
            data['quantity'],
            data['unit_cost'],
            batch_number=data.get('batch_number') or None,
            location_id=data.get('location_id'),
            received_at=data.get('received_at'),
            created_by=request.user.get_username(),
            notes=data.get('notes', ''),
        )
        return Response(StockBatchSerializer(batch).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path=r'product/(?P<product_id>[^/.]+)')
    def product(self, request, product_id=None):
        """Batches of one product, earliest expiry first."""
        active_only = request.query_params.get('active_only', '').lower() in ('1', 'true', 'yes')
        batches = services.list_batches_for_product(product_id, active_only=active_only)
        return Response(StockBatchSerializer(batches, many=True).data)

    @action(detail=False, methods=['get'])
    def active(self, request):
        page = self.paginate_queryset(services.list_active_batches())
        return self.get_paginated_response(StockBatchSerializer(page, many=True).data)

    @action(detail=False, methods=['get'], url_path='expiring-soon')
    def expiring_soon(self, request):
        """
        Get active batches expiring within the given window.

        Query params:
        - days_ahead: number of days (default 180)
        """
        try:
            days_ahead = int(request.query_params.get('days_ahead', 180))
        except ValueError:
            return Response(
                {'error': 'days_ahead must be an integer', 'error_type': 'validation_error'},
                status=status.HTTP_400_BAD_REQUEST
            )

        batches = services.list_expiring(days_ahead)
        return Response(StockBatchSerializer(batches, many=True).data)

    @action(detail=True, methods=['put'], url_path='quantity')
    def quantity(self, request, pk=None):
        """Set remaining quantity; the delta is recorded as a correction."""
        serializer = BatchQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        batch = services.adjust_quantity(
            pk,
            serializer.validated_data['new_quantity'],
            reason=serializer.validated_data['reason'],
            created_by=request.user.get_username(),
        )
        return Response(StockBatchSerializer(batch).data)


class StockSummaryViewSet(CorrelatedViewMixin, viewsets.GenericViewSet):
    """Derived per-product stock snapshots and alerts."""

    serializer_class = StockSummarySerializer
    permission_classes = [IsPharmacyStaff]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        return services.list_summaries(**_query_data(SummaryFilterSerializer, self.request))

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(StockSummarySerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        return Response(StockSummarySerializer(services.get_summary(pk)).data)

    @action(detail=False, methods=['get'])
    def alerts(self, request):
        """Products needing attention: expired, low stock, expiring soon."""
        return Response(StockSummarySerializer(services.get_alerts(), many=True).data)

    @action(
        detail=False,
        methods=['post'],
        url_path=r'recalculate/(?P<product_id>[^/.]+)',
        permission_classes=[IsPharmacist],
    )
    def recalculate(self, request, product_id=None):
        product = services.get_product(product_id)
        summary = services.recompute_summary(product)
        return Response(StockSummarySerializer(summary).data)


class StockImportViewSet(CorrelatedViewMixin, viewsets.GenericViewSet):
    """Execute confirmed purchase-import rows."""

    serializer_class = ImportExecuteSerializer
    permission_classes = [IsPharmacist]

    @action(detail=False, methods=['post'])
    def execute(self, request):
        serializer = ImportExecuteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.execute_import(
            serializer.validated_data['rows'],
            created_by=request.user.get_username(),
        )
        return Response(result)
